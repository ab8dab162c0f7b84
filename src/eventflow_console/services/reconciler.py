"""ビュー単位の定期ポーリングによるキャッシュ同期。"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from eventflow_console.models.errors import ConsoleError, FunctionNotFoundError, UnauthenticatedError
from eventflow_console.services.cache import FunctionRegistryCache
from eventflow_console.services.transport import ResourceTransport

logger = logging.getLogger(__name__)

ErrorCallback = Callable[["PollingReconciler", ConsoleError], None]


class PollingReconciler:
    """1つのビューに紐づく協調的な定期タスク。

    タイマーは一定間隔でtickを発火するが、前回の取得が未完了なら
    そのtickは待ち行列に積まずにスキップする。stop()は同期的に
    キャンセルトークンを立てるため、以降に完了した取得はキャッシュに書き込まない。
    """

    def __init__(
        self,
        transport: ResourceTransport,
        cache: FunctionRegistryCache,
        interval: float,
        on_error: ErrorCallback | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._transport = transport
        self._cache = cache
        self._interval = interval
        self._on_error = on_error
        self._stopped = False
        self._timer: asyncio.Task[None] | None = None
        self._in_flight: asyncio.Task[bool] | None = None
        self.ticks = 0
        self.skipped_ticks = 0
        self.last_error: ConsoleError | None = None

    @property
    def label(self) -> str:
        return type(self).__name__

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def _fetch(self) -> Any:
        raise NotImplementedError

    def _apply(self, result: Any, since: int) -> None:
        raise NotImplementedError

    async def _tick(self) -> bool:
        """1回取得してキャッシュに反映する。停止後に完了した場合はFalseを返す。"""
        since = self._cache.epoch()
        result = await self._fetch()
        if self._stopped:
            logger.debug("%s: discarding result completed after stop", self.label)
            return False
        self._apply(result, since)
        self.ticks += 1
        return True

    def _deliver_error(self, error: ConsoleError) -> None:
        self.last_error = error
        if self._on_error is not None:
            self._on_error(self, error)
        else:
            logger.warning("%s: poll failed: %s", self.label, error)
        if isinstance(error, UnauthenticatedError):
            self.stop()

    async def _guarded_tick(self) -> bool:
        try:
            return await self._tick()
        except ConsoleError as e:
            if not self._stopped:
                self._deliver_error(e)
            return False

    def _fire(self) -> None:
        if self._in_flight is not None and not self._in_flight.done():
            self.skipped_ticks += 1
            logger.debug("%s: previous fetch still in flight; skipping tick", self.label)
            return
        self._in_flight = asyncio.create_task(self._guarded_tick())

    async def _run(self) -> None:
        while not self._stopped:
            self._fire()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        """定期タスクを開始する。最初のtickは即座に発火する。"""
        if self._stopped:
            raise RuntimeError(f"{self.label} has been stopped")
        if self.running:
            return
        logger.info("%s: polling every %ss", self.label, self._interval)
        self._timer = asyncio.create_task(self._run())

    async def refresh(self) -> bool:
        """間隔を待たずに1回取得する。

        取得中のものがあれば新たに発行せずその完了を待つ。エラーは呼び出し元に送出する。

        Raises:
            RuntimeError: 停止済みの場合。
            ConsoleError: Transportのエラー。
        """
        if self._stopped:
            raise RuntimeError(f"{self.label} has been stopped")
        if self._in_flight is not None and not self._in_flight.done():
            await asyncio.wait([self._in_flight])
            return False
        task = asyncio.create_task(self._tick())
        self._in_flight = task
        return await task

    def stop(self) -> None:
        """同期的に停止する。以降のtickはキャッシュに書き込まない。"""
        if self._stopped:
            return
        self._stopped = True
        for task in (self._timer, self._in_flight):
            if task is not None and not task.done():
                task.cancel()
        logger.info("%s: stopped", self.label)

    async def aclose(self) -> None:
        """停止し、タスクの終了を待つ。"""
        self.stop()
        tasks = [t for t in (self._timer, self._in_flight) if t is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


class ListReconciler(PollingReconciler):
    """一覧ビュー用。namespace内の全関数を取得して既知集合を置き換える。"""

    async def _fetch(self) -> Any:
        return await self._transport.list_functions()

    def _apply(self, result: Any, since: int) -> None:
        self._cache.upsert_list(result.items, namespace=result.namespace, since=since)


class DetailReconciler(PollingReconciler):
    """詳細ビュー用。1つの関数を取得する。

    404はリモートで削除されたものとしてキャッシュから取り除き、エラーにはしない。
    """

    def __init__(
        self,
        transport: ResourceTransport,
        cache: FunctionRegistryCache,
        name: str,
        interval: float,
        on_error: ErrorCallback | None = None,
    ) -> None:
        super().__init__(transport, cache, interval, on_error)
        self.name = name

    @property
    def label(self) -> str:
        return f"DetailReconciler[{self.name}]"

    async def _fetch(self) -> Any:
        try:
            return await self._transport.get_function(self.name)
        except FunctionNotFoundError:
            return None

    def _apply(self, result: Any, since: int) -> None:
        if result is None:
            logger.info("%s: function deleted remotely", self.label)
            self._cache.remove(self.name, since=since)
        else:
            self._cache.upsert(result, since=since)
