"""ツールサーバーへのアクセストークン検証ミドルウェア。"""

import hmac
import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Console-Token"


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """EVENTFLOW_URL_TOKEN が設定されている場合にアクセストークンを要求する。

    トークンは X-Console-Token ヘッダ、または token クエリパラメータで渡す。
    /health は検証しない。
    """

    SKIP_PATHS = frozenset({"/health"})

    def __init__(self, app: ASGIApp, url_token: str = "") -> None:
        super().__init__(app)
        self.url_token = url_token

    def _presented_token(self, request: Request) -> str:
        return request.headers.get(TOKEN_HEADER) or request.query_params.get("token", "")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.url_token or request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        if not hmac.compare_digest(self._presented_token(request), self.url_token):
            logger.warning("rejected %s %s: invalid or missing console token", request.method, request.url.path)
            return JSONResponse(
                {"error": "Unauthorized", "message": "Invalid or missing console token"},
                status_code=401,
            )
        return await call_next(request)
