"""バックエンドHTTP応答のエラー分類。"""

import json

import httpx

from eventflow_console.models.errors import (
    BackendUnavailableError,
    FunctionNotFoundError,
    RequestRejectedError,
    UnauthenticatedError,
)


def backend_message(response: httpx.Response) -> str:
    """エラー応答からバックエンドのメッセージを取り出す。

    {"error": ..., "message": ...} 形式ならmessageを、それ以外は本文をそのまま返す。
    """
    text = response.text.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text or response.reason_phrase
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if message:
            return str(message)
    return text


def raise_for_status(response: httpx.Response, name: str | None = None) -> None:
    """HTTPステータスを例外に分類する。2xxの場合は何もしない。

    Raises:
        UnauthenticatedError: 401の場合。
        FunctionNotFoundError: 404の場合。
        RequestRejectedError: その他の4xxの場合。
        BackendUnavailableError: 5xxの場合。
    """
    status = response.status_code
    if status < 400:
        return
    message = backend_message(response)
    if status == 401:
        raise UnauthenticatedError(message or "Token rejected")
    if status == 404:
        raise FunctionNotFoundError(name or response.request.url.path)
    if status < 500:
        raise RequestRejectedError(message, status)
    raise BackendUnavailableError(f"Backend error {status}: {message}", status)
