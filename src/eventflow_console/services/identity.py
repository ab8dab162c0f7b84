"""認証セッションの取得・保持・破棄を行うサービス。"""

import logging
from collections.abc import Callable
from pathlib import Path

import httpx
import yaml
from pydantic import ValidationError

from eventflow_console.models.errors import (
    BackendUnavailableError,
    IdentityNotFoundError,
    SessionNotFoundError,
    StorageError,
    UnauthenticatedError,
)
from eventflow_console.models.session import DemoIdentity, Session
from eventflow_console.services.http import raise_for_status
from eventflow_console.storage.service import StorageService

logger = logging.getLogger(__name__)

ClearListener = Callable[[], None]


class IdentityStore:
    """現在のセッションを保持するプロセス全体のコンテキスト。

    TransportとCacheはこのオブジェクトを明示的に受け取り、
    グローバル参照はしない。トークンの自動更新は行わない。
    """

    def __init__(self, storage: StorageService, http_client: httpx.AsyncClient, config_dir: Path) -> None:
        self._storage = storage
        self._http = http_client
        self._config_dir = config_dir
        self._session: Session | None = None
        self._identities: dict[str, DemoIdentity] | None = None
        self._clear_listeners: list[ClearListener] = []

    def _load_identities(self) -> dict[str, DemoIdentity]:
        """デモID定義を読み込む。"""
        if self._identities is None:
            identities_file = self._config_dir / "identities.yaml"
            try:
                with open(identities_file, encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except FileNotFoundError:
                raise StorageError(f"Identity catalog not found: {identities_file}") from None
            identities = [DemoIdentity.model_validate(item) for item in data["identities"]]
            self._identities = {identity.user_id: identity for identity in identities}
        return self._identities

    def identities(self) -> list[DemoIdentity]:
        """選択可能なデモIDの一覧を返す。"""
        return list(self._load_identities().values())

    def resolve(self, selector: str | DemoIdentity) -> DemoIdentity:
        """セレクタをデモIDに解決する。

        Raises:
            IdentityNotFoundError: カタログに存在しないIDの場合。
        """
        if isinstance(selector, DemoIdentity):
            return selector
        identity = self._load_identities().get(selector)
        if identity is None:
            raise IdentityNotFoundError(selector)
        return identity

    def add_clear_listener(self, listener: ClearListener) -> None:
        """セッション破棄時に呼ばれるコールバックを登録する。"""
        self._clear_listeners.append(listener)

    def current(self) -> Session | None:
        """現在のセッションを返す。未ログインならNone。"""
        return self._session

    def require(self) -> Session:
        """現在のセッションを返す。

        Raises:
            UnauthenticatedError: 未ログインの場合。
        """
        if self._session is None:
            raise UnauthenticatedError()
        return self._session

    async def restore(self) -> Session | None:
        """保存済みセッションを復元する。壊れた保存内容は破棄する。"""
        try:
            self._session = await self._storage.load_session()
        except SessionNotFoundError:
            return None
        except StorageError:
            logger.warning("stored session is unreadable; discarding it")
            await self._storage.delete_session()
            return None
        logger.info("session restored: user=%s namespace=%s", self._session.user_id, self._session.namespace)
        return self._session

    async def acquire(self, selector: str | DemoIdentity) -> Session:
        """トークンエンドポイントからセッションを取得して保存する。

        新しいセッションの取得に成功した場合のみ既存のセッションを破棄する。

        Raises:
            IdentityNotFoundError: セレクタが解決できない場合。
            UnauthenticatedError: バックエンドが認証を拒否した場合。
            RequestRejectedError: リクエストが拒否された場合。
            BackendUnavailableError: ネットワーク障害・5xxの場合。
        """
        identity = self.resolve(selector)

        try:
            response = await self._http.post("/auth/token", json=identity.token_request())
        except httpx.HTTPError as e:
            raise BackendUnavailableError(f"Token request failed: {e}") from e
        raise_for_status(response)

        try:
            session = Session.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BackendUnavailableError(f"Malformed token response: {e}") from e

        if self._session is not None:
            await self.clear()
        await self._storage.save_session(session)
        self._session = session
        logger.info("session acquired: user=%s namespace=%s", session.user_id, session.namespace)
        return session

    async def clear(self) -> None:
        """セッションを無条件に破棄する。何度呼んでも同じ結果になる。"""
        had_session = self._session is not None
        self._session = None
        await self._storage.delete_session()
        for listener in self._clear_listeners:
            listener()
        if had_session:
            logger.info("session cleared")
