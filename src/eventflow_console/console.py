"""コンソールの各コンポーネントを組み立てるエントリポイント。"""

import logging

import httpx

from eventflow_console.config import ConsoleConfig
from eventflow_console.models.errors import FunctionNotFoundError
from eventflow_console.models.function import FunctionResource
from eventflow_console.models.session import DemoIdentity, Session
from eventflow_console.services.builder import DeploymentRequestBuilder, validate_name
from eventflow_console.services.cache import FunctionRegistryCache
from eventflow_console.services.coordinator import MutationCoordinator
from eventflow_console.services.identity import IdentityStore
from eventflow_console.services.reconciler import ErrorCallback
from eventflow_console.services.transport import ResourceTransport
from eventflow_console.services.views import ViewManager
from eventflow_console.storage.service import StorageService

logger = logging.getLogger(__name__)


class Console:
    """1テナント分のコンソール状態。

    セッションが破棄されると（ログアウト・401のどちらでも）
    すべてのビューを停止してからキャッシュを空にする。
    """

    def __init__(
        self,
        config: ConsoleConfig,
        http_client: httpx.AsyncClient,
        *,
        owns_client: bool = False,
        on_poll_error: ErrorCallback | None = None,
    ) -> None:
        self.config = config
        self._http = http_client
        self._owns_client = owns_client

        # データアクセス層
        storage = StorageService(data_dir=config.data_dir)
        self.identity = IdentityStore(storage=storage, http_client=http_client, config_dir=config.config_dir)
        self.transport = ResourceTransport(self.identity, http_client, timeout=config.request_timeout)
        self.cache = FunctionRegistryCache(self.identity)

        # サービス層
        self.builder = DeploymentRequestBuilder(config_dir=config.config_dir)
        self.coordinator = MutationCoordinator(self.identity, self.transport, self.cache)
        self.views = ViewManager(
            self.transport,
            self.cache,
            list_interval=config.list_poll_interval,
            detail_interval=config.detail_poll_interval,
            on_error=on_poll_error,
        )

        self.identity.add_clear_listener(self._on_session_cleared)

    def _on_session_cleared(self) -> None:
        self.views.close_all()
        self.cache.clear()

    async def restore(self) -> Session | None:
        """前回のセッションを復元する。"""
        return await self.identity.restore()

    async def login(self, selector: str | DemoIdentity) -> Session:
        """デモIDでログインする。"""
        return await self.identity.acquire(selector)

    async def logout(self) -> None:
        """ビューを停止し、セッションとキャッシュを破棄する。"""
        self.views.close_all()
        await self.identity.clear()

    async def refresh_list(self) -> list[FunctionResource]:
        """一覧を1回取得してキャッシュに反映する。"""
        since = self.cache.epoch()
        result = await self.transport.list_functions()
        self.cache.upsert_list(result.items, namespace=result.namespace, since=since)
        return self.cache.all()

    async def refresh_function(self, name: str) -> FunctionResource | None:
        """1件を取得してキャッシュに反映する。存在しなければキャッシュから取り除きNoneを返す。"""
        validate_name(name)
        since = self.cache.epoch()
        try:
            resource = await self.transport.get_function(name)
        except FunctionNotFoundError:
            self.cache.remove(name, since=since)
            return None
        self.cache.upsert(resource, since=since)
        return self.cache.get(name)

    async def aclose(self) -> None:
        await self.views.aclose()
        if self._owns_client:
            await self._http.aclose()


def create_console(
    config: ConsoleConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
    on_poll_error: ErrorCallback | None = None,
) -> Console:
    """Consoleを作成する。

    Args:
        config: コンソール設定。Noneの場合はデフォルト設定を使用。
        http_client: バックエンド用HTTPクライアント。Noneの場合はbase_urlから作成する。
        on_poll_error: ポーリング中のエラーを受け取るコールバック。

    Returns:
        組み立て済みのConsole。
    """
    if config is None:
        config = ConsoleConfig()
    owns_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(base_url=config.base_url, timeout=config.request_timeout)
    logger.info("console backend: %s", config.base_url)
    return Console(config, http_client, owns_client=owns_client, on_poll_error=on_poll_error)
