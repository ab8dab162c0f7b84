"""ConsoleConfigのユニットテスト。"""

import pytest
from pydantic import ValidationError

from eventflow_console.config import ConsoleConfig


class TestConsoleConfig:
    def test_defaults(self) -> None:
        config = ConsoleConfig()
        assert config.list_poll_interval == 5.0
        assert config.detail_poll_interval == 3.0
        assert config.request_timeout == 10.0

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EVENTFLOW_BASE_URL", "http://backend:9000")
        monkeypatch.setenv("EVENTFLOW_DETAIL_POLL_INTERVAL", "4")

        config = ConsoleConfig()

        assert config.base_url == "http://backend:9000"
        assert config.detail_poll_interval == 4.0

    @pytest.mark.parametrize("interval", [2.9, 5.1])
    def test_detail_interval_must_be_between_3_and_5(self, interval: float) -> None:
        with pytest.raises(ValidationError):
            ConsoleConfig(detail_poll_interval=interval)

    @pytest.mark.parametrize("field", ["list_poll_interval", "request_timeout"])
    def test_non_positive_values_are_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError):
            ConsoleConfig(**{field: 0})
