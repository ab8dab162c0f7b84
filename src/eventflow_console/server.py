"""FastMCPベースのコンソールサーバーエントリポイント。"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount

from eventflow_console.config import ConsoleConfig
from eventflow_console.console import Console, create_console
from eventflow_console.middleware import TokenAuthMiddleware
from eventflow_console.tools.functions import register_function_tools
from eventflow_console.tools.session import register_session_tools
from eventflow_console.tools.views import register_view_tools

logger = logging.getLogger(__name__)


def create_server(config: ConsoleConfig | None = None, console: Console | None = None) -> FastMCP:
    """コンソールMCPサーバーを作成し、ツールを登録する。

    Args:
        config: コンソール設定。Noneの場合はデフォルト設定を使用。
        console: 組み立て済みのConsole。Noneの場合はconfigから作成する。

    Returns:
        設定済みのFastMCPインスタンス。
    """
    if config is None:
        config = console.config if console is not None else ConsoleConfig()
    if console is None:
        console = create_console(config)

    mcp = FastMCP("eventflow-console")

    # MCPインターフェース登録
    register_session_tools(mcp, console)
    register_function_tools(mcp, console)
    register_view_tools(mcp, console)

    # ヘルスチェックエンドポイント
    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        backend_ok = await console.transport.check_health()
        return JSONResponse({"status": "ok", "backend": "ok" if backend_ok else "unreachable"})

    return mcp


def create_app(config: ConsoleConfig | None = None, console: Console | None = None) -> Starlette:
    """HTTPで公開するASGIアプリを作成する。

    起動時に保存済みセッションを復元し、終了時にポーリングタスクと
    HTTPクライアントを閉じる。
    """
    if config is None:
        config = console.config if console is not None else ConsoleConfig()
    if console is None:
        console = create_console(config)

    mcp = create_server(config, console)
    mcp_app = mcp.http_app(
        transport="streamable-http",
        middleware=[Middleware(TokenAuthMiddleware, url_token=config.url_token)],
    )

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with mcp_app.router.lifespan_context(app):
            await console.restore()
            try:
                yield
            finally:
                logger.info("shutting down console")
                await console.aclose()

    return Starlette(routes=[Mount("/", app=mcp_app)], lifespan=lifespan)
