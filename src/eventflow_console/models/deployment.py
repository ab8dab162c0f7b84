"""デプロイリクエスト関連のデータモデル。"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from eventflow_console.models.function import CodeSource, DeploymentSource, GitSource, ImageSource

DeploymentType = Literal["image", "code", "git"]


class GitConfig(BaseModel):
    """Gitデプロイ時のリポジトリ指定。"""

    url: str
    branch: str = "main"
    path: str = "./"


class DeploymentRequest(BaseModel):
    """関数作成リクエスト。送信の間だけ存在し、永続化されない。"""

    name: str
    replicas: int
    deployment_type: DeploymentType
    image: str | None = None
    runtime: str | None = None
    source_code: str | None = None
    git_config: GitConfig | None = None
    env: dict[str, str] | None = None
    command: list[str] | None = None

    def to_payload(self) -> dict[str, Any]:
        """POST /v1/functions のリクエストボディを返す。"""
        return self.model_dump(mode="json", exclude_none=True)

    def deployment_source(self) -> DeploymentSource:
        """リクエストのデプロイ元を返す。"""
        if self.deployment_type == "code":
            return CodeSource(runtime=self.runtime or "", source_base64=self.source_code or "")
        if self.deployment_type == "git":
            git = self.git_config or GitConfig(url="")
            return GitSource(url=git.url, branch=git.branch, path=git.path)
        return ImageSource(ref=self.image or "")


class RuntimeInfo(BaseModel):
    """コード実行ランタイムの定義。"""

    id: str
    label: str
    language: str
    description: str = ""
    template: str = Field(default="", repr=False)
