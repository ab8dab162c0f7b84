"""デプロイリクエストの検証と組み立てを行うサービス。"""

import base64
from pathlib import Path

import yaml

from eventflow_console.models.deployment import DeploymentRequest, GitConfig, RuntimeInfo
from eventflow_console.models.errors import DeploymentValidationError, StorageError
from eventflow_console.models.function import FUNCTION_NAME_PATTERN, MAX_REPLICAS, MIN_REPLICAS


def validate_name(name: str) -> str:
    """関数名を検証する。

    Raises:
        DeploymentValidationError: 名前が空、または形式に合わない場合。
    """
    if not name or not name.strip():
        raise DeploymentValidationError("name", "name is required")
    if not FUNCTION_NAME_PATTERN.fullmatch(name):
        raise DeploymentValidationError("name", "must be lowercase alphanumeric with hyphens")
    return name


def validate_replicas(replicas: int) -> int:
    """レプリカ数が0〜10の範囲にあることを検証する。"""
    if isinstance(replicas, bool) or not isinstance(replicas, int):
        raise DeploymentValidationError("replicas", "must be an integer")
    if not MIN_REPLICAS <= replicas <= MAX_REPLICAS:
        raise DeploymentValidationError("replicas", f"must be between {MIN_REPLICAS} and {MAX_REPLICAS}")
    return replicas


def _validate_env(env: dict[str, str] | None) -> dict[str, str] | None:
    if not env:
        return None
    for key in env:
        if not key or not key.strip():
            raise DeploymentValidationError("env", "environment variable names must not be empty")
    return dict(env)


def _validate_command(command: list[str] | None) -> list[str] | None:
    if not command:
        return None
    return list(command)


class DeploymentRequestBuilder:
    """3種類のデプロイ形式からDeploymentRequestを組み立てる。

    検証に失敗した場合は例外を送出し、Transportは呼ばれない。
    名前とレプリカ数の検証はすべての形式で共通。
    """

    def __init__(self, config_dir: Path) -> None:
        self._config_dir = config_dir
        self._runtimes: dict[str, RuntimeInfo] | None = None

    def _load_runtimes(self) -> dict[str, RuntimeInfo]:
        """ランタイム定義を読み込む。"""
        if self._runtimes is None:
            runtimes_file = self._config_dir / "runtimes.yaml"
            try:
                with open(runtimes_file, encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except FileNotFoundError:
                raise StorageError(f"Runtime catalog not found: {runtimes_file}") from None
            runtimes = [RuntimeInfo.model_validate(item) for item in data["runtimes"]]
            self._runtimes = {runtime.id: runtime for runtime in runtimes}
        return self._runtimes

    def runtimes(self) -> list[RuntimeInfo]:
        """利用可能なランタイムの一覧を返す。"""
        return list(self._load_runtimes().values())

    def code_template(self, runtime: str) -> str:
        """ランタイムの雛形コードを返す。"""
        info = self._load_runtimes().get(runtime)
        if info is None:
            raise DeploymentValidationError("runtime", f"unknown runtime: {runtime}")
        return info.template

    def build_image(
        self,
        name: str,
        image: str,
        replicas: int = 1,
        env: dict[str, str] | None = None,
        command: list[str] | None = None,
    ) -> DeploymentRequest:
        """コンテナイメージ参照からリクエストを組み立てる。"""
        validate_name(name)
        validate_replicas(replicas)
        if not image or not image.strip():
            raise DeploymentValidationError("image", "image reference is required")
        return DeploymentRequest(
            name=name,
            replicas=replicas,
            deployment_type="image",
            image=image.strip(),
            env=_validate_env(env),
            command=_validate_command(command),
        )

    def build_code(
        self,
        name: str,
        runtime: str,
        source: str,
        replicas: int = 1,
        env: dict[str, str] | None = None,
        command: list[str] | None = None,
    ) -> DeploymentRequest:
        """インラインソースコードからリクエストを組み立てる。

        ソースはbase64で送信する。ベースイメージはランタイムからバックエンドが決定する。
        """
        validate_name(name)
        validate_replicas(replicas)
        if not runtime:
            raise DeploymentValidationError("runtime", "runtime is required")
        if runtime not in self._load_runtimes():
            raise DeploymentValidationError("runtime", f"unknown runtime: {runtime}")
        if not source or not source.strip():
            raise DeploymentValidationError("source_code", "source code is required")
        return DeploymentRequest(
            name=name,
            replicas=replicas,
            deployment_type="code",
            runtime=runtime,
            source_code=base64.b64encode(source.encode("utf-8")).decode("ascii"),
            env=_validate_env(env),
            command=_validate_command(command),
        )

    def build_git(
        self,
        name: str,
        url: str,
        branch: str = "main",
        path: str = "./",
        replicas: int = 1,
        env: dict[str, str] | None = None,
        command: list[str] | None = None,
    ) -> DeploymentRequest:
        """Gitリポジトリからリクエストを組み立てる。

        ランタイムとイメージはリポジトリの内容からバックエンドが判定する。
        """
        validate_name(name)
        validate_replicas(replicas)
        if not url or not url.strip():
            raise DeploymentValidationError("git_config.url", "repository URL is required")
        return DeploymentRequest(
            name=name,
            replicas=replicas,
            deployment_type="git",
            git_config=GitConfig(url=url.strip(), branch=branch.strip() or "main", path=path.strip() or "./"),
            env=_validate_env(env),
            command=_validate_command(command),
        )
