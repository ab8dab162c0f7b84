"""ローカルファイルシステムベースのストレージサービス。"""

import json
import os
from pathlib import Path

from pydantic import ValidationError

from eventflow_console.models.errors import SessionNotFoundError, StorageError
from eventflow_console.models.session import Session

# セッションの保存キー（固定）
SESSION_KEY = "session.json"


class StorageService:
    """ローカルファイルシステムを利用したセッション永続化層。

    プロセス再起動をまたいでセッションを復元するために使用する。
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir

    @property
    def session_file(self) -> Path:
        return self._data_dir / SESSION_KEY

    async def save_session(self, session: Session) -> None:
        """セッションをファイルシステムに保存する。"""
        self._data_dir.mkdir(parents=True, exist_ok=True)
        # 書き込み前に所有者のみ読み書き可能にする。既存ファイルにはO_CREATのモードが効かない
        fd = os.open(self.session_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(session.model_dump_json(indent=2))

    async def load_session(self) -> Session:
        """セッションをファイルシステムから読み込む。

        Raises:
            SessionNotFoundError: セッションが保存されていない場合。
            StorageError: 保存内容が壊れている場合。
        """
        if not self.session_file.exists():
            raise SessionNotFoundError()
        try:
            data = json.loads(self.session_file.read_text(encoding="utf-8"))
            return Session.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Corrupted session file: {self.session_file}") from e

    async def delete_session(self) -> None:
        """保存済みセッションを削除する。存在しない場合は何もしない。"""
        self.session_file.unlink(missing_ok=True)
