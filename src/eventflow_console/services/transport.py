"""バックエンドAPIへのRPCファサード。"""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from eventflow_console.models.deployment import DeploymentRequest
from eventflow_console.models.errors import BackendUnavailableError, UnauthenticatedError
from eventflow_console.models.function import FunctionResource, InvokeResult
from eventflow_console.models.session import Session
from eventflow_console.services.http import raise_for_status
from eventflow_console.services.identity import IdentityStore

logger = logging.getLogger(__name__)

_FUNCTIONS_PATH = "/v1/functions"


class FunctionList(BaseModel):
    """一覧取得の結果。発行時のセッションのnamespaceを保持する。"""

    namespace: str
    items: list[FunctionResource]


class ResourceTransport:
    """バックエンドの各エンドポイントに1対1で対応する薄いクライアント。

    すべての呼び出しに現在のセッションのBearerトークンを付与する。
    自動リトライは行わない。特にinvokeは副作用があるため、
    再実行は常に利用者の明示的な操作とする。
    """

    def __init__(self, identity: IdentityStore, http_client: httpx.AsyncClient, timeout: float = 10.0) -> None:
        self._identity = identity
        self._http = http_client
        self._timeout = timeout

    async def _request(
        self,
        method: str,
        path: str,
        *,
        name: str | None = None,
        json: dict[str, Any] | None = None,
    ) -> tuple[httpx.Response, Session]:
        """認証付きリクエストを1回だけ送信し、エラーを分類する。

        Raises:
            UnauthenticatedError: 未ログイン、または401の場合。
            FunctionNotFoundError: 404の場合。
            RequestRejectedError: その他の4xxの場合。
            BackendUnavailableError: ネットワーク障害・5xx・タイムアウトの場合。
        """
        session = self._identity.current()
        if session is None:
            raise UnauthenticatedError()

        headers = {"Authorization": f"Bearer {session.token}"}
        logger.debug("%s %s", method, path)
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._http.request(method, path, headers=headers, json=json)
        except TimeoutError as e:
            raise BackendUnavailableError(f"{method} {path} timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise BackendUnavailableError(f"{method} {path} failed: {e}") from e

        try:
            raise_for_status(response, name)
        except UnauthenticatedError:
            logger.warning("%s %s rejected the session token", method, path)
            # 発行後にセッションが切り替わっていれば新しいセッションは残す
            if self._identity.current() is session:
                await self._identity.clear()
            raise
        return response, session

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise BackendUnavailableError(f"Malformed response from {response.request.url.path}") from e

    @staticmethod
    def _parse_function(data: Any, session: Session) -> FunctionResource:
        try:
            resource = FunctionResource.model_validate(data)
        except ValidationError as e:
            raise BackendUnavailableError(f"Malformed function response: {e}") from e
        if not resource.namespace:
            resource.namespace = session.namespace
        return resource

    async def list_functions(self) -> FunctionList:
        """GET /v1/functions"""
        response, session = await self._request("GET", _FUNCTIONS_PATH)
        items = (self._json(response) if response.content else None) or []
        return FunctionList(
            namespace=session.namespace,
            items=[self._parse_function(item, session) for item in items],
        )

    async def get_function(self, name: str) -> FunctionResource:
        """GET /v1/functions/{name}"""
        response, session = await self._request("GET", f"{_FUNCTIONS_PATH}/{name}", name=name)
        return self._parse_function(self._json(response), session)

    async def create_function(self, request: DeploymentRequest) -> None:
        """POST /v1/functions"""
        await self._request("POST", _FUNCTIONS_PATH, name=request.name, json=request.to_payload())

    async def delete_function(self, name: str) -> None:
        """DELETE /v1/functions/{name}"""
        await self._request("DELETE", f"{_FUNCTIONS_PATH}/{name}", name=name)

    async def undeploy_function(self, name: str) -> None:
        """POST /v1/functions/{name}:undeploy

        デプロイメントのみを削除し、関数レコードと設定は残す。
        """
        await self._request("POST", f"{_FUNCTIONS_PATH}/{name}:undeploy", name=name)

    async def invoke_function(self, name: str, payload: dict[str, Any] | None = None) -> InvokeResult:
        """POST /v1/functions/{name}:invoke

        BackendUnavailableErrorでも再送しない。
        """
        body: dict[str, Any] = {} if payload is None else {"payload": payload}
        response, _ = await self._request("POST", f"{_FUNCTIONS_PATH}/{name}:invoke", name=name, json=body)
        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {"message": response.text}
        if not isinstance(data, dict):
            data = {"response": str(data)}
        data.setdefault("name", name)
        try:
            return InvokeResult.model_validate(data)
        except ValidationError:
            # 呼び出し自体は成功しているため本文をそのまま返す
            return InvokeResult(name=name, response=response.text)

    async def fetch_logs(self, name: str) -> str:
        """GET /v1/functions/{name}/logs

        ログはその時点のスナップショットとして一括取得する。
        """
        response, _ = await self._request("GET", f"{_FUNCTIONS_PATH}/{name}/logs", name=name)
        return response.text

    async def check_health(self) -> bool:
        """GET /healthz を認証なしで呼び出し、バックエンドの稼働を確認する。"""
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._http.get("/healthz")
        except (TimeoutError, httpx.HTTPError) as e:
            logger.warning("health check failed: %s", e)
            return False
        return response.status_code == 200
