"""アクティブなビューとそのポーリングタスクの管理。"""

import logging
import uuid
from typing import Literal

from pydantic import BaseModel

from eventflow_console.models.errors import ConsoleError
from eventflow_console.services.builder import validate_name
from eventflow_console.services.cache import FunctionRegistryCache
from eventflow_console.services.reconciler import DetailReconciler, ErrorCallback, ListReconciler, PollingReconciler
from eventflow_console.services.transport import ResourceTransport

logger = logging.getLogger(__name__)

ViewKind = Literal["list", "detail"]


class ViewInfo(BaseModel):
    """ビューの状態。"""

    id: str
    kind: ViewKind
    function_name: str | None = None
    interval: float
    ticks: int
    skipped_ticks: int
    last_error: str | None = None


class ViewManager:
    """ビューごとに1つのReconcilerを生成し、ビューの寿命に合わせて停止する。"""

    def __init__(
        self,
        transport: ResourceTransport,
        cache: FunctionRegistryCache,
        list_interval: float,
        detail_interval: float,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._transport = transport
        self._cache = cache
        self._list_interval = list_interval
        self._detail_interval = detail_interval
        self._on_error = on_error
        self._views: dict[str, PollingReconciler] = {}

    def _open(self, reconciler: PollingReconciler) -> str:
        view_id = uuid.uuid4().hex[:12]
        self._views[view_id] = reconciler
        reconciler.start()
        return view_id

    def open_list_view(self) -> str:
        """一覧ビューを開き、ポーリングを開始する。"""
        return self._open(ListReconciler(self._transport, self._cache, self._list_interval, self._on_error))

    def open_detail_view(self, name: str) -> str:
        """詳細ビューを開き、指定関数のポーリングを開始する。"""
        validate_name(name)
        return self._open(
            DetailReconciler(self._transport, self._cache, name, self._detail_interval, self._on_error)
        )

    def get(self, view_id: str) -> PollingReconciler:
        reconciler = self._views.get(view_id)
        if reconciler is None:
            raise KeyError(view_id)
        return reconciler

    def close_view(self, view_id: str) -> bool:
        """ビューのReconcilerを同期的に停止してから破棄する。"""
        reconciler = self._views.pop(view_id, None)
        if reconciler is None:
            return False
        reconciler.stop()
        return True

    def close_all(self) -> None:
        """すべてのビューを閉じる。ログアウト・セッション破棄時に呼ばれる。"""
        for view_id in list(self._views):
            self.close_view(view_id)

    async def aclose(self) -> None:
        """すべてのビューを閉じ、タスクの終了を待つ。"""
        reconcilers = list(self._views.values())
        self._views.clear()
        for reconciler in reconcilers:
            await reconciler.aclose()

    def describe(self) -> list[ViewInfo]:
        """開いているビューの状態を返す。"""
        infos = []
        for view_id, reconciler in self._views.items():
            error: ConsoleError | None = reconciler.last_error
            infos.append(
                ViewInfo(
                    id=view_id,
                    kind="detail" if isinstance(reconciler, DetailReconciler) else "list",
                    function_name=reconciler.name if isinstance(reconciler, DetailReconciler) else None,
                    interval=reconciler.interval,
                    ticks=reconciler.ticks,
                    skipped_ticks=reconciler.skipped_ticks,
                    last_error=f"{type(error).__name__}: {error}" if error is not None else None,
                )
            )
        return infos
