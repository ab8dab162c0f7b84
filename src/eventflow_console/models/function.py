"""関数リソース関連のデータモデル。"""

import re
from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

FUNCTION_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")

MIN_REPLICAS = 0
MAX_REPLICAS = 10

FunctionStatus = Literal["Pending", "Running", "Failed"]


class CodeSource(BaseModel):
    """インラインソースコードによるデプロイ元。"""

    type: Literal["code"] = "code"
    runtime: str
    source_base64: str


class GitSource(BaseModel):
    """Gitリポジトリによるデプロイ元。"""

    type: Literal["git"] = "git"
    url: str
    branch: str = "main"
    path: str = "./"


class ImageSource(BaseModel):
    """コンテナイメージ参照によるデプロイ元。"""

    type: Literal["image"] = "image"
    ref: str


DeploymentSource = Annotated[CodeSource | GitSource | ImageSource, Field(discriminator="type")]


class FunctionResource(BaseModel):
    """バックエンドが報告する関数リソースの状態。

    statusはバックエンドのみが設定する。楽観的に挿入された直後はNone。
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    namespace: str = ""
    image: str = ""
    deployment_source: DeploymentSource | None = None
    desired_replicas: int = Field(default=0, alias="replicas")
    ready_replicas: int = 0
    available_replicas: int = 0
    updated_replicas: int = 0
    status: FunctionStatus | None = None
    env: dict[str, str] = Field(default_factory=dict)
    command: list[str] = Field(default_factory=list)
    created_at: datetime | None = None


class InvokeResult(BaseModel):
    """関数呼び出しの結果。同期実行・キュー投入のどちらの応答形式も受け付ける。"""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    name: str
    event_id: str | None = None
    status: str | None = None
    response: str | None = None
    duration_ms: float | None = None
    pod: str | None = None
    invoked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


MutationOperation = Literal["create", "delete", "undeploy", "invoke"]


class MutationResult(BaseModel):
    """変更操作の結果。"""

    name: str
    operation: MutationOperation
    resynced: bool = False
    resource: FunctionResource | None = None
    invocation: InvokeResult | None = None

    def summary(self) -> dict[str, Any]:
        """ツール応答向けの要約を返す。"""
        data: dict[str, Any] = {"name": self.name, "operation": self.operation, "resynced": self.resynced}
        if self.resource is not None:
            data["resource"] = self.resource.model_dump(mode="json")
        if self.invocation is not None:
            data["invocation"] = self.invocation.model_dump(mode="json")
        return data
