"""EventFlowコンソールのカスタム例外クラス。"""


class ConsoleError(Exception):
    """EventFlowコンソールの基底例外クラス。"""


class TransportError(ConsoleError):
    """バックエンド呼び出しで発生するエラーの基底クラス。"""


class UnauthenticatedError(TransportError):
    """認証情報が無い、またはバックエンドに拒否された場合の例外。"""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class FunctionNotFoundError(TransportError):
    """関数がバックエンドに存在しない場合の例外。"""

    def __init__(self, name: str) -> None:
        super().__init__(f"Function not found: {name}")
        self.name = name


class RequestRejectedError(TransportError):
    """バックエンドがリクエストを検証エラー・競合として拒否した場合の例外。"""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BackendUnavailableError(TransportError):
    """ネットワーク障害・5xx・タイムアウトの場合の例外。再試行は呼び出し側が判断する。"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MutationConflictError(ConsoleError):
    """同一関数に対する変更操作が実行中の場合の例外。"""

    def __init__(self, name: str) -> None:
        super().__init__(f"Mutation already in progress for function: {name}")
        self.name = name


class ConfirmationRequiredError(ConsoleError):
    """破壊的操作が確認されなかった場合の例外。"""

    def __init__(self, name: str, operation: str, prompt: str) -> None:
        super().__init__(f"Confirmation required to {operation} function: {name}")
        self.name = name
        self.operation = operation
        self.prompt = prompt


class DeploymentValidationError(ConsoleError):
    """デプロイリクエストの検証エラー。"""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid {field}: {message}")
        self.field = field


class IdentityNotFoundError(ConsoleError):
    """指定されたデモIDが見つからない場合の例外。"""

    def __init__(self, selector: str) -> None:
        super().__init__(f"Identity not found: {selector}")
        self.selector = selector


class SessionNotFoundError(ConsoleError):
    """保存済みセッションが存在しない場合の例外。"""

    def __init__(self) -> None:
        super().__init__("No stored session")


class StorageError(ConsoleError):
    """ストレージ操作のエラー。"""
