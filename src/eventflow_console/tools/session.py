"""認証セッションのMCPツール定義。"""

from typing import Any

from fastmcp import FastMCP

from eventflow_console.console import Console
from eventflow_console.models.errors import ConsoleError


def register_session_tools(mcp: FastMCP, console: Console) -> None:
    """ログイン・ログアウト関連のMCPツールを登録する。"""

    @mcp.tool()
    async def list_identities() -> dict[str, Any]:
        """ログインに使用できるデモIDの一覧を取得する。"""
        try:
            return {"identities": [identity.model_dump() for identity in console.identity.identities()]}
        except ConsoleError as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def login(user_id: str) -> dict[str, Any]:
        """デモIDでログインし、テナントのnamespaceを取得する。

        既にログインしている場合は先にログアウトされます。

        Args:
            user_id: list_identitiesで取得したデモIDのuser_id。
        """
        try:
            session = await console.login(user_id)
            return session.public_view()
        except ConsoleError as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def logout() -> dict[str, Any]:
        """ログアウトする。開いているビューはすべて閉じられ、キャッシュは空になる。"""
        await console.logout()
        return {"logged_out": True}

    @mcp.tool()
    async def whoami() -> dict[str, Any]:
        """現在のセッションのID情報を返す。"""
        session = console.identity.current()
        if session is None:
            return {"authenticated": False}
        return {"authenticated": True, **session.public_view()}
