import pytest

from parking_reservations.config import ReservationConfig


class TestReservationConfig:
    def test_defaults(self):
        config = ReservationConfig()
        assert config.persistence_timeout == 5.0
        assert config.persistence_retries == 1
        assert config.subscriber_queue_size == 256
        assert config.lifecycle_sweep_interval == 60.0
        assert config.prometheus_host == "127.0.0.1"
        assert config.start_prometheus_server is False

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("persistence_timeout", 0),
            ("persistence_retries", -1),
            ("persistence_retry_backoff", -0.1),
            ("subscriber_queue_size", 0),
            ("event_replay_buffer", -1),
            ("lifecycle_sweep_interval", 0),
            ("past_start_tolerance", -5),
            ("prometheus_port", 0),
            ("prometheus_port", 70000),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValueError):
            ReservationConfig(**{field: value})

    def test_backoff_cap_must_cover_base(self):
        with pytest.raises(ValueError, match="max_retry_backoff"):
            ReservationConfig(persistence_retry_backoff=3.0, max_retry_backoff=1.0)

    def test_zero_retries_allowed(self):
        assert ReservationConfig(persistence_retries=0).persistence_retries == 0
