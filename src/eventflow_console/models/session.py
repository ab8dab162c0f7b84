"""認証セッション関連のデータモデル。"""

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class DemoIdentity(BaseModel):
    """ログイン時に選択可能なデモID。"""

    user_id: str
    username: str
    email: str | None = None

    def token_request(self) -> dict[str, str]:
        """POST /auth/token のリクエストボディを返す。"""
        body = {"user_id": self.user_id, "username": self.username}
        if self.email:
            body["email"] = self.email
        return body


class Session(BaseModel):
    """認証済みセッション。トークンは更新されず、失効時は再ログインが必要。"""

    token: str = Field(repr=False)
    user_id: str
    username: str
    email: str | None = None
    namespace: str
    acquired_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def public_view(self) -> dict[str, str | None]:
        """トークンを除いたID属性を返す。"""
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "namespace": self.namespace,
        }
