# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
RedisBackend for the parking reservation core.

This module provides a Redis backend so several service instances can share
one store and still get exactly one winner for a contested spot.

Key Features:
- Atomic multi-record commit with version checks in one Lua script
- Every key shares one hash tag, so the script also runs on Redis Cluster
- Per-user and per-spot index sets for listing
- Transparent script reload after a Redis restart
"""

import asyncio
import base64
import contextlib
import json
import logging
import os
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Any, ClassVar

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import (
    ConnectionError,
    NoScriptError,
    RedisError,
    TimeoutError,
)

from ..exceptions import BackendConnectionError, BackendOperationError
from ..observability.constants import (
    BACKEND_CONNECTION_ERRORS_TOTAL,
    BACKEND_LUA_EXECUTIONS_TOTAL,
)
from ..observability.protocols import MetricsCollectorProtocol
from ..types.reservation import PaymentConfirmation, Reservation, ReservationStatus
from ..types.spot import ParkingSpot
from .base import (
    BaseBackend,
    HealthCheckResult,
    Mutation,
    PutPayment,
    PutReservation,
    PutSpot,
    sort_newest_first,
)

logger = logging.getLogger(__name__)

COMMIT_SCRIPT = "commit_mutations"


class RedisBackend(BaseBackend):
    """
    A distributed Redis backend.

    Layout (all keys carry the `{namespace}` hash tag):
    - pk:{ns}:spots         hash spot_id -> spot JSON
    - pk:{ns}:reservations  hash reservation_id -> reservation JSON
    - pk:{ns}:payments      hash reservation_id -> payment JSON
    - pk:{ns}:user:<b64>    set of reservation ids per user
    - pk:{ns}:spot:<b64>    set of reservation ids per spot

    Deployment Requirements:
    - Redis 3.2+ (cjson in Lua)
    """

    _lua_scripts: ClassVar[dict[str, str]] = {}

    @classmethod
    def _load_lua_scripts(cls) -> None:
        """Load Lua scripts from files at class level."""
        if cls._lua_scripts:
            return

        lua_dir = Path(__file__).parent / "lua"
        for script_name in (COMMIT_SCRIPT,):
            script_path = lua_dir / f"{script_name}.lua"
            if script_path.exists():
                cls._lua_scripts[script_name] = script_path.read_text(encoding="utf-8")
            else:
                logger.warning(f"Lua script not found: {script_path}")

    def __init__(
        self,
        redis_url: str | None = None,
        redis_client: Any | None = None,
        namespace: str = "parking",
        max_connections: int = 10,
        socket_timeout: float = 5.0,
        metrics_collector: MetricsCollectorProtocol | None = None,
    ) -> None:
        """
        Initialize the Redis backend.

        Args:
            redis_url: Redis connection URL. If not provided, falls back to the
                REDIS_URL environment variable, then to "redis://localhost:6379".
            redis_client: Optional pre-configured redis.asyncio client
            namespace: Namespace used as the key hash tag
            max_connections: Maximum connections in the pool
            socket_timeout: Socket connect/read timeout in seconds
            metrics_collector: Optional metrics sink

        Environment Variables:
            REDIS_URL: Default Redis connection URL.
        """
        super().__init__(namespace)

        self.redis_url = (
            redis_url or os.environ.get("REDIS_URL") or "redis://localhost:6379"
        )
        self.max_connections = max_connections
        self.socket_timeout = socket_timeout
        self._metrics = metrics_collector

        self._redis: Any | None = redis_client
        self._owned_redis = redis_client is None
        self._pool: ConnectionPool | None = None
        self._connected = False
        self._connection_lock = asyncio.Lock()
        self._script_shas: dict[str, str] = {}

        hash_tag = f"{{{namespace}}}"
        self.spots_key = f"pk:{hash_tag}:spots"
        self.reservations_key = f"pk:{hash_tag}:reservations"
        self.payments_key = f"pk:{hash_tag}:payments"
        self._key_prefix = f"pk:{hash_tag}:"

    # Keys

    @staticmethod
    def _b64(value: str) -> str:
        return base64.urlsafe_b64encode(value.encode()).decode().rstrip("=")

    def _user_index_key(self, user_id: str) -> str:
        return f"{self._key_prefix}user:{self._b64(user_id)}"

    def _spot_index_key(self, spot_id: str) -> str:
        return f"{self._key_prefix}spot:{self._b64(spot_id)}"

    # Connection

    @contextlib.contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        """Map redis-py exceptions onto the backend exception hierarchy."""
        try:
            yield
        except (ConnectionError, TimeoutError) as e:
            self._connected = False
            if self._metrics is not None:
                self._metrics.inc_counter(
                    BACKEND_CONNECTION_ERRORS_TOTAL,
                    labels={"error_type": type(e).__name__},
                )
            raise BackendConnectionError(f"Redis {operation} failed: {e}") from e
        except RedisError as e:
            raise BackendOperationError(f"Redis {operation} failed: {e}") from e

    async def _ensure_connected(self) -> Any:
        """Connect (or reconnect) and load scripts on first use."""
        if self._redis is not None and self._connected:
            return self._redis

        async with self._connection_lock:
            if self._redis is not None and self._connected:
                return self._redis

            with self._translate_errors("connect"):
                if self._redis is None:
                    self._pool = ConnectionPool.from_url(
                        self.redis_url,
                        max_connections=self.max_connections,
                        decode_responses=True,
                        socket_connect_timeout=self.socket_timeout,
                        socket_timeout=self.socket_timeout,
                        retry_on_timeout=True,
                        health_check_interval=30,
                    )
                    self._redis = Redis(connection_pool=self._pool)
                    logger.info(f"Connecting to Redis at {self.redis_url}")

                await self._redis.ping()
                await self._load_scripts()
                self._connected = True

        return self._redis

    async def _load_scripts(self) -> None:
        """Load Lua scripts into Redis."""
        if self._redis is None:
            raise RuntimeError("Redis client not initialized")

        self.__class__._load_lua_scripts()

        for script_name, script_source in self._lua_scripts.items():
            self._script_shas[script_name] = await self._redis.script_load(
                script_source
            )

    async def _evalsha_with_reload(
        self,
        redis_client: Any,
        script_name: str,
        num_keys: int,
        *args: Any,
    ) -> Any:
        """
        Execute EVALSHA, reloading scripts once on NoScriptError.

        Redis drops cached scripts on restart or failover.
        """
        script_sha = self._script_shas.get(script_name)
        if not script_sha:
            await self._load_scripts()
            script_sha = self._script_shas[script_name]

        if self._metrics is not None:
            self._metrics.inc_counter(
                BACKEND_LUA_EXECUTIONS_TOTAL, labels={"script_name": script_name}
            )
        try:
            return await redis_client.evalsha(script_sha, num_keys, *args)
        except NoScriptError:
            logger.warning(
                f"Script '{script_name}' not found in Redis (SHA: {script_sha}). "
                f"Reloading Lua scripts..."
            )
            self._script_shas.clear()
            await self._load_scripts()
            return await redis_client.evalsha(
                self._script_shas[script_name], num_keys, *args
            )

    # Reads

    async def _fetch_reservations(
        self, client: Any, reservation_ids: Sequence[str]
    ) -> list[Reservation]:
        if not reservation_ids:
            return []
        rows = await client.hmget(self.reservations_key, list(reservation_ids))
        payments = await client.hmget(self.payments_key, list(reservation_ids))
        result = []
        for raw, raw_payment in zip(rows, payments):
            if raw is None:
                continue
            payment = PaymentConfirmation.from_dict(
                json.loads(raw_payment) if raw_payment else None
            )
            result.append(Reservation.from_dict(json.loads(raw), payment))
        return result

    async def load_spot(self, spot_id: str) -> ParkingSpot | None:
        client = await self._ensure_connected()
        with self._translate_errors("load_spot"):
            raw = await client.hget(self.spots_key, spot_id)
        return ParkingSpot.from_dict(json.loads(raw)) if raw else None

    async def load_reservation(self, reservation_id: str) -> Reservation | None:
        client = await self._ensure_connected()
        with self._translate_errors("load_reservation"):
            found = await self._fetch_reservations(client, [reservation_id])
        return found[0] if found else None

    async def list_spots(self) -> list[ParkingSpot]:
        client = await self._ensure_connected()
        with self._translate_errors("list_spots"):
            rows = await client.hvals(self.spots_key)
        return [ParkingSpot.from_dict(json.loads(raw)) for raw in rows]

    async def list_reservations(
        self,
        user_id: str | None = None,
        spot_id: str | None = None,
        statuses: Sequence[ReservationStatus] | None = None,
    ) -> list[Reservation]:
        client = await self._ensure_connected()
        with self._translate_errors("list_reservations"):
            index_keys = []
            if user_id is not None:
                index_keys.append(self._user_index_key(user_id))
            if spot_id is not None:
                index_keys.append(self._spot_index_key(spot_id))

            if index_keys:
                ids = await client.sinter(index_keys)
            else:
                ids = await client.hkeys(self.reservations_key)
            found = await self._fetch_reservations(client, sorted(ids))

        if statuses is not None:
            wanted = set(statuses)
            found = [r for r in found if r.status in wanted]
        return sort_newest_first(found)

    # Writes

    def _encode_mutations(
        self, mutations: Sequence[Mutation]
    ) -> tuple[list[str], list[dict[str, Any]]]:
        """Build the KEYS list and the script's mutation payload."""
        keys = [self.spots_key, self.reservations_key, self.payments_key]
        positions: dict[str, int] = {}

        def key_position(key: str) -> int:
            if key not in positions:
                keys.append(key)
                positions[key] = len(keys)  # Lua KEYS are 1-based
            return positions[key]

        encoded: list[dict[str, Any]] = []
        for mutation in mutations:
            if isinstance(mutation, PutSpot):
                encoded.append(
                    {
                        "kind": "spot",
                        "id": mutation.spot.spot_id,
                        "expected": mutation.expected_version,
                        "data": json.dumps(mutation.spot.to_dict()),
                    }
                )
            elif isinstance(mutation, PutReservation):
                reservation = mutation.reservation
                expected = mutation.expected_version
                encoded.append(
                    {
                        "kind": "reservation",
                        "id": reservation.reservation_id,
                        "expected": -1 if expected is None else expected,
                        "data": json.dumps(reservation.to_dict()),
                        "indexes": [
                            key_position(self._user_index_key(reservation.user_id)),
                            key_position(self._spot_index_key(reservation.spot_id)),
                        ],
                    }
                )
            elif isinstance(mutation, PutPayment):
                encoded.append(
                    {
                        "kind": "payment",
                        "id": mutation.reservation_id,
                        "data": json.dumps(mutation.payment.to_dict()),
                    }
                )
            else:
                raise BackendOperationError(f"Unsupported mutation: {mutation!r}")
        return keys, encoded

    async def commit(self, mutations: Sequence[Mutation]) -> bool:
        if not mutations:
            return True
        keys, encoded = self._encode_mutations(mutations)
        client = await self._ensure_connected()
        with self._translate_errors("commit"):
            result = await self._evalsha_with_reload(
                client, COMMIT_SCRIPT, len(keys), *keys, json.dumps(encoded)
            )
        if int(result[0]) == 1:
            return True
        logger.debug(f"Commit rejected on version check: {result[1]} {result[2]}")
        return False

    async def seed_spots(self, spots: Iterable[ParkingSpot]) -> int:
        client = await self._ensure_connected()
        inserted = 0
        with self._translate_errors("seed_spots"):
            for spot in spots:
                if await client.hsetnx(
                    self.spots_key, spot.spot_id, json.dumps(spot.to_dict())
                ):
                    inserted += 1
        logger.debug(f"Seeded {inserted} spots")
        return inserted

    async def clear(self) -> None:
        client = await self._ensure_connected()
        with self._translate_errors("clear"):
            keys = [key async for key in client.scan_iter(match=f"{self._key_prefix}*")]
            if keys:
                await client.delete(*keys)
        logger.debug(f"Cleared {len(keys)} Redis keys")

    # Health and Monitoring

    async def health_check(self) -> HealthCheckResult:
        try:
            client = await self._ensure_connected()
            with self._translate_errors("health_check"):
                await client.ping()
                spots = await client.hlen(self.spots_key)
                reservations = await client.hlen(self.reservations_key)
        except (BackendConnectionError, BackendOperationError) as e:
            return HealthCheckResult(
                healthy=False,
                backend_type="redis",
                namespace=self.namespace,
                error=str(e),
            )
        return HealthCheckResult(
            healthy=True,
            backend_type="redis",
            namespace=self.namespace,
            metadata={
                "redis_url": self.redis_url,
                "spots_count": spots,
                "reservations_count": reservations,
                "scripts_loaded": sorted(self._script_shas),
            },
        )

    async def close(self) -> None:
        """Close the connection if this backend created it."""
        self._connected = False
        if not self._owned_redis or self._redis is None:
            return
        try:
            await self._redis.aclose()
            if self._pool is not None:
                await self._pool.disconnect()
        except RedisError as e:
            logger.debug(f"Error closing Redis connection: {e}")
        finally:
            self._redis = None
            self._pool = None

    async def __aenter__(self) -> "RedisBackend":
        await self._ensure_connected()
        return self

    async def __aexit__(self, exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.close()


__all__ = ["RedisBackend"]
