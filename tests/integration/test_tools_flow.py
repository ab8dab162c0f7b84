"""MCPプロトコル経由でのツール統合テスト。"""

import json
from typing import Any

import pytest
from fake_backend import FakeBackend
from fastmcp import Client, FastMCP

from eventflow_console.config import ConsoleConfig
from eventflow_console.console import Console
from eventflow_console.server import create_server


@pytest.fixture
def mcp_server(console_config: ConsoleConfig, console: Console) -> FastMCP:
    """FakeBackendに接続されたテスト用MCPサーバー。"""
    return create_server(console_config, console)


def parse_tool_result(result: object) -> dict[str, Any]:
    """CallToolResultからJSONデータを抽出する。"""
    content = result.content  # type: ignore[attr-defined]
    assert len(content) > 0
    return json.loads(content[0].text)


class TestToolRegistration:
    async def test_all_tools_registered(self, mcp_server: FastMCP) -> None:
        async with Client(mcp_server) as client:
            tools = await client.list_tools()
            names = {tool.name for tool in tools}

        assert {
            "list_identities",
            "login",
            "logout",
            "whoami",
            "list_runtimes",
            "get_code_template",
            "create_image_function",
            "create_code_function",
            "create_git_function",
            "list_functions",
            "get_function",
            "delete_function",
            "undeploy_function",
            "invoke_function",
            "get_function_logs",
            "open_view",
            "close_view",
            "list_views",
        } <= names


class TestSessionTools:
    async def test_login_and_whoami(self, mcp_server: FastMCP) -> None:
        async with Client(mcp_server) as client:
            data = parse_tool_result(await client.call_tool("login", {"user_id": "alice"}))
            assert data["namespace"] == "tenant-alice"
            assert "token" not in data

            data = parse_tool_result(await client.call_tool("whoami", {}))
            assert data["authenticated"] is True
            assert data["user_id"] == "alice"

            await client.call_tool("logout", {})
            data = parse_tool_result(await client.call_tool("whoami", {}))
            assert data["authenticated"] is False

    async def test_unknown_identity_returns_error(self, mcp_server: FastMCP) -> None:
        async with Client(mcp_server) as client:
            data = parse_tool_result(await client.call_tool("login", {"user_id": "mallory"}))
        assert data["error"] == "IdentityNotFoundError"


class TestFunctionTools:
    async def test_create_list_and_delete_with_confirmation(self, mcp_server: FastMCP, backend: FakeBackend) -> None:
        async with Client(mcp_server) as client:
            await client.call_tool("login", {"user_id": "demo-user"})

            data = parse_tool_result(
                await client.call_tool("create_image_function", {"name": "f1", "image": "nginx:alpine"})
            )
            assert data["name"] == "f1"
            assert data["operation"] == "create"

            data = parse_tool_result(await client.call_tool("list_functions", {}))
            assert [f["name"] for f in data["functions"]] == ["f1"]

            data = parse_tool_result(await client.call_tool("delete_function", {"name": "f1"}))
            assert data["error"] == "ConfirmationRequiredError"
            assert "f1" in data["prompt"]
            assert "f1" in backend.functions["tenant-demo-user"]

            data = parse_tool_result(await client.call_tool("delete_function", {"name": "f1", "confirm": True}))
            assert data["operation"] == "delete"

            data = parse_tool_result(await client.call_tool("get_function", {"name": "f1"}))
            assert data["error"] == "FunctionNotFoundError"

    async def test_create_code_function(self, mcp_server: FastMCP, backend: FakeBackend) -> None:
        async with Client(mcp_server) as client:
            await client.call_tool("login", {"user_id": "demo-user"})
            data = parse_tool_result(
                await client.call_tool(
                    "create_code_function",
                    {"name": "hello", "runtime": "python", "source": "print('hi')"},
                )
            )
        assert data["operation"] == "create"
        assert backend.bodies[-2]["deployment_type"] == "code"

    async def test_validation_error_is_returned(self, mcp_server: FastMCP, backend: FakeBackend) -> None:
        async with Client(mcp_server) as client:
            await client.call_tool("login", {"user_id": "demo-user"})
            data = parse_tool_result(
                await client.call_tool("create_image_function", {"name": "Bad_Name", "image": "nginx"})
            )
        assert data["error"] == "DeploymentValidationError"
        assert ("POST", "/v1/functions") not in backend.calls

    async def test_path_like_name_is_rejected(self, mcp_server: FastMCP, backend: FakeBackend) -> None:
        async with Client(mcp_server) as client:
            await client.call_tool("login", {"user_id": "demo-user"})
            calls = list(backend.calls)
            logs = parse_tool_result(await client.call_tool("get_function_logs", {"name": "a/../b"}))
            detail = parse_tool_result(
                await client.call_tool("get_function", {"name": "f1:undeploy", "refresh": True})
            )
        assert logs["error"] == "DeploymentValidationError"
        assert detail["error"] == "DeploymentValidationError"
        assert backend.calls == calls

    async def test_unauthenticated_error(self, mcp_server: FastMCP) -> None:
        async with Client(mcp_server) as client:
            data = parse_tool_result(await client.call_tool("list_functions", {"refresh": True}))
        assert data["error"] == "UnauthenticatedError"

    async def test_runtimes_and_template(self, mcp_server: FastMCP) -> None:
        async with Client(mcp_server) as client:
            data = parse_tool_result(await client.call_tool("list_runtimes", {}))
            assert [r["id"] for r in data["runtimes"]] == ["python", "nodejs", "go"]
            assert "template" not in data["runtimes"][0]

            data = parse_tool_result(await client.call_tool("get_code_template", {"runtime": "go"}))
            assert "8080" in data["template"]


class TestViewTools:
    async def test_open_and_close_view(self, mcp_server: FastMCP) -> None:
        async with Client(mcp_server) as client:
            data = parse_tool_result(await client.call_tool("open_view", {"kind": "list"}))
            assert data["error"] == "UnauthenticatedError"

            await client.call_tool("login", {"user_id": "demo-user"})
            data = parse_tool_result(await client.call_tool("open_view", {"kind": "list"}))
            view_id = data["view_id"]

            data = parse_tool_result(await client.call_tool("list_views", {}))
            assert [v["id"] for v in data["views"]] == [view_id]

            data = parse_tool_result(await client.call_tool("close_view", {"view_id": view_id}))
            assert data["closed"] is True

    async def test_detail_view_requires_name(self, mcp_server: FastMCP) -> None:
        async with Client(mcp_server) as client:
            await client.call_tool("login", {"user_id": "demo-user"})
            data = parse_tool_result(await client.call_tool("open_view", {"kind": "detail"}))
        assert data["error"] == "ValueError"
