"""ビュー（定期ポーリング）のMCPツール定義。"""

from typing import Any, Literal

from fastmcp import FastMCP

from eventflow_console.console import Console
from eventflow_console.models.errors import ConsoleError


def register_view_tools(mcp: FastMCP, console: Console) -> None:
    """ビューの開閉に関するMCPツールを登録する。"""

    @mcp.tool()
    async def open_view(kind: Literal["list", "detail"], name: str | None = None) -> dict[str, Any]:
        """ビューを開き、キャッシュの定期同期を開始する。

        一覧ビューは全関数を、詳細ビューは指定した1関数をポーリングします。
        不要になったらclose_viewで閉じてください。

        Args:
            kind: "list" または "detail"。
            name: 詳細ビューの場合の関数名。
        """
        if console.identity.current() is None:
            return {"error": "UnauthenticatedError", "message": "Not authenticated"}
        try:
            if kind == "detail":
                if not name:
                    return {"error": "ValueError", "message": "name is required for a detail view"}
                view_id = console.views.open_detail_view(name)
            else:
                view_id = console.views.open_list_view()
            return {"view_id": view_id, "kind": kind}
        except ConsoleError as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def close_view(view_id: str) -> dict[str, Any]:
        """ビューを閉じ、ポーリングを停止する。

        Args:
            view_id: open_viewで取得したビューID。
        """
        return {"view_id": view_id, "closed": console.views.close_view(view_id)}

    @mcp.tool()
    async def list_views() -> dict[str, Any]:
        """開いているビューとポーリング状態の一覧を返す。"""
        return {"views": [info.model_dump() for info in console.views.describe()]}
