"""ViewManagerのユニットテスト。"""

import asyncio
from collections.abc import AsyncIterator

import pytest
from fake_backend import FakeBackend

from eventflow_console.models.errors import DeploymentValidationError
from eventflow_console.models.session import Session
from eventflow_console.services.cache import FunctionRegistryCache
from eventflow_console.services.reconciler import DetailReconciler, ListReconciler
from eventflow_console.services.transport import ResourceTransport
from eventflow_console.services.views import ViewManager


@pytest.fixture
async def views(transport: ResourceTransport, cache: FunctionRegistryCache) -> AsyncIterator[ViewManager]:
    manager = ViewManager(transport, cache, list_interval=0.01, detail_interval=0.01)
    yield manager
    await manager.aclose()


async def _wait_until_ticked(views: ViewManager, view_id: str) -> None:
    async with asyncio.timeout(1.0):
        while views.get(view_id).ticks < 1:
            await asyncio.sleep(0.005)


class TestOpenView:
    async def test_list_view_populates_cache(
        self, views: ViewManager, cache: FunctionRegistryCache, backend: FakeBackend, session: Session
    ) -> None:
        backend.seed(session.namespace, "web")

        view_id = views.open_list_view()
        await _wait_until_ticked(views, view_id)

        assert isinstance(views.get(view_id), ListReconciler)
        assert cache.get("web") is not None

    async def test_detail_view_polls_single_function(
        self, views: ViewManager, cache: FunctionRegistryCache, backend: FakeBackend, session: Session
    ) -> None:
        backend.seed(session.namespace, "web")
        backend.seed(session.namespace, "other")

        view_id = views.open_detail_view("web")
        await _wait_until_ticked(views, view_id)

        reconciler = views.get(view_id)
        assert isinstance(reconciler, DetailReconciler)
        assert reconciler.name == "web"
        assert cache.get("web") is not None
        assert cache.get("other") is None
        assert backend.count("GET", "/v1/functions") == 0

    def test_detail_view_rejects_invalid_name(self, views: ViewManager) -> None:
        with pytest.raises(DeploymentValidationError):
            views.open_detail_view("Bad_Name")
        assert views.describe() == []

    async def test_each_view_gets_its_own_reconciler(self, views: ViewManager, session: Session) -> None:
        first = views.open_list_view()
        second = views.open_list_view()

        assert first != second
        assert views.get(first) is not views.get(second)


class TestCloseView:
    async def test_close_stops_polling(self, views: ViewManager, backend: FakeBackend, session: Session) -> None:
        view_id = views.open_list_view()
        await _wait_until_ticked(views, view_id)
        reconciler = views.get(view_id)

        assert views.close_view(view_id) is True
        assert reconciler.stopped
        calls = backend.count("GET", "/v1/functions")
        await asyncio.sleep(0.05)

        assert backend.count("GET", "/v1/functions") == calls
        with pytest.raises(KeyError):
            views.get(view_id)

    def test_close_unknown_view(self, views: ViewManager) -> None:
        assert views.close_view("nope") is False

    async def test_close_all(self, views: ViewManager, session: Session) -> None:
        reconcilers = [views.get(views.open_list_view()), views.get(views.open_detail_view("web"))]

        views.close_all()

        assert views.describe() == []
        assert all(r.stopped for r in reconcilers)


class TestDescribe:
    async def test_describe_reports_state(self, views: ViewManager, session: Session) -> None:
        detail_id = views.open_detail_view("missing")
        await _wait_until_ticked(views, detail_id)

        infos = {info.id: info for info in views.describe()}

        assert infos[detail_id].kind == "detail"
        assert infos[detail_id].function_name == "missing"
        assert infos[detail_id].last_error is None
