"""TokenAuthMiddlewareのユニットテスト。"""

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from eventflow_console.middleware import TOKEN_HEADER, TokenAuthMiddleware


async def _ok(request: Request) -> PlainTextResponse:
    return PlainTextResponse("ok")


def _client(url_token: str) -> TestClient:
    app = Starlette(
        routes=[Route("/mcp", _ok), Route("/health", _ok)],
        middleware=[Middleware(TokenAuthMiddleware, url_token=url_token)],
    )
    return TestClient(app)


class TestTokenAuthMiddleware:
    def test_no_token_configured_allows_all(self) -> None:
        assert _client("").get("/mcp").status_code == 200

    def test_missing_token_is_rejected(self) -> None:
        response = _client("secret").get("/mcp")
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_query_token(self) -> None:
        client = _client("secret")
        assert client.get("/mcp", params={"token": "secret"}).status_code == 200
        assert client.get("/mcp", params={"token": "wrong"}).status_code == 401

    def test_header_token(self) -> None:
        assert _client("secret").get("/mcp", headers={TOKEN_HEADER: "secret"}).status_code == 200

    def test_health_is_not_checked(self) -> None:
        assert _client("secret").get("/health").status_code == 200
