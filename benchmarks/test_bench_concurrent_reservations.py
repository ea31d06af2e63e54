"""
Benchmark: Concurrent Reservations

Measures how create/cancel throughput scales with concurrency, both when
callers spread across spots and when they all contend for one spot.

Usage:
    uv run pytest benchmarks/test_bench_concurrent_reservations.py -v --no-cov
"""

import asyncio
import statistics
import time
from typing import List, Tuple

import pytest

from parking_reservations.exceptions import ConflictError


class TestConcurrentReservations:
    """Throughput of the reservation path under concurrency."""

    @pytest.mark.asyncio
    async def test_scaling_across_spots(
        self, benchmark_service, benchmark_spots, bench_time
    ):
        """
        Measure create throughput when every caller targets a different spot.

        Per-spot locking means throughput should not collapse as
        concurrency grows.
        """
        concurrency_levels = [1, 10, 50, len(benchmark_spots)]
        results: List[Tuple[int, float]] = []

        for day, concurrency in enumerate(concurrency_levels, start=1):
            targets = benchmark_spots[:concurrency]

            start = time.perf_counter()
            created = await asyncio.gather(
                *(
                    benchmark_service.create_reservation(
                        spot.spot_id,
                        f"user-{i}",
                        spot.spot_type,
                        bench_time(11, day_offset=day),
                        bench_time(13, day_offset=day),
                    )
                    for i, spot in enumerate(targets)
                )
            )
            elapsed = time.perf_counter() - start

            assert len(created) == concurrency
            results.append((concurrency, concurrency / elapsed))

        print("\n--- Reservation Scaling Results ---")
        print(f"{'Concurrency':>12} | {'Throughput':>12}")
        print(f"{'-'*12}-+-{'-'*12}")
        for conc, throughput in results:
            print(f"{conc:>12} | {throughput:>10.1f}/s")

        single_throughput = results[0][1]
        max_throughput = max(r[1] for r in results)
        assert max_throughput >= single_throughput * 0.8, (
            "Throughput collapsed under concurrency"
        )

    @pytest.mark.asyncio
    async def test_contended_spot(
        self, benchmark_service, benchmark_spots, bench_time
    ):
        """
        Many callers race for one window on one spot.

        Exactly one wins each round; the rest must fail fast with
        ConflictError rather than queue behind a slow path.
        """
        spot = benchmark_spots[0]
        rounds = 5
        contenders = 100
        round_times = []

        for day in range(1, rounds + 1):
            start = time.perf_counter()
            results = await asyncio.gather(
                *(
                    benchmark_service.create_reservation(
                        spot.spot_id,
                        f"user-{i}",
                        spot.spot_type,
                        bench_time(11, day_offset=day),
                        bench_time(13, day_offset=day),
                    )
                    for i in range(contenders)
                ),
                return_exceptions=True,
            )
            round_times.append(time.perf_counter() - start)

            winners = [r for r in results if not isinstance(r, BaseException)]
            assert len(winners) == 1
            assert all(
                isinstance(r, ConflictError)
                for r in results
                if isinstance(r, BaseException)
            )

        avg_ms = statistics.mean(round_times) * 1000
        print(f"\n--- Contended Spot: {contenders} callers ---")
        print(f"Average round: {avg_ms:.2f}ms")

    @pytest.mark.asyncio
    async def test_create_cancel_cycle(
        self, benchmark_service, benchmark_spots, bench_time
    ):
        """Measure the cost of one create followed by its cancel."""
        spot = benchmark_spots[1]

        # Warmup
        for _ in range(10):
            created = await benchmark_service.create_reservation(
                spot.spot_id, "user-1", spot.spot_type, bench_time(11), bench_time(13)
            )
            await benchmark_service.cancel_reservation(created.reservation_id, "user-1")

        iterations = 200
        start = time.perf_counter()
        for _ in range(iterations):
            created = await benchmark_service.create_reservation(
                spot.spot_id, "user-1", spot.spot_type, bench_time(11), bench_time(13)
            )
            await benchmark_service.cancel_reservation(created.reservation_id, "user-1")
        elapsed = time.perf_counter() - start

        avg_ms = (elapsed / iterations) * 1000
        print("\n--- Create/Cancel Cycle ---")
        print(f"Iterations: {iterations}")
        print(f"Average: {avg_ms:.3f}ms ({iterations / elapsed:.1f} cycles/sec)")

        assert avg_ms < 50, f"Create/cancel cycle too slow: {avg_ms:.3f}ms"

    @pytest.mark.asyncio
    async def test_quote_overhead(self, benchmark_service, bench_time):
        """Pricing is pure; quoting should be far cheaper than booking."""
        iterations = 10000
        start = time.perf_counter()
        for i in range(iterations):
            benchmark_service.quote_price(
                "standard", bench_time(i % 24), bench_time(i % 24 + 2)
            )
        elapsed = time.perf_counter() - start

        avg_us = (elapsed / iterations) * 1_000_000
        print(f"\n--- Quote Overhead: {avg_us:.2f}us per quote ---")
        assert avg_us < 1000
