"""EventFlowコンソールの設定管理。"""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

_PACKAGE_ROOT = Path(__file__).parent
_REPO_ROOT = _PACKAGE_ROOT.parent.parent


class ConsoleConfig(BaseSettings):
    """コンソール設定。環境変数から読み込み可能。"""

    model_config = {"env_prefix": "EVENTFLOW_"}

    # バックエンドAPI
    base_url: str = "http://localhost:8080"
    request_timeout: float = 10.0

    data_dir: Path = _REPO_ROOT / ".eventflow"
    config_dir: Path = _REPO_ROOT / "config"

    # ポーリング間隔（秒）
    list_poll_interval: float = 5.0
    detail_poll_interval: float = 3.0

    # ツールサーバー
    host: str = "0.0.0.0"
    port: int = 8000
    url_token: str = ""

    log_level: str = "INFO"

    @field_validator("detail_poll_interval")
    @classmethod
    def _check_detail_interval(cls, v: float) -> float:
        if not 3.0 <= v <= 5.0:
            raise ValueError("detail_poll_interval must be between 3 and 5 seconds")
        return v

    @field_validator("list_poll_interval", "request_timeout")
    @classmethod
    def _check_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v
