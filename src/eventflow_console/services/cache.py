"""関数リソースの最新既知状態を保持するインメモリキャッシュ。"""

import logging

from eventflow_console.models.function import FunctionResource
from eventflow_console.services.identity import IdentityStore

logger = logging.getLogger(__name__)

_Key = tuple[str, str]


class FunctionRegistryCache:
    """(namespace, name) をキーとする関数リソースのキャッシュ。

    すべてのビューはこのキャッシュだけを読む。書き込みはTransportの応答に限る。

    書き込みには2種類ある。
    - 即時書き込み（since=None）: 変更操作とその直後の再同期。書き込みエポックを進める。
    - 取得結果の書き込み（since=発行時エポック）: ポーリング。発行後に即時書き込みで
      削除されたエントリを復活させず、発行後に即時書き込みされたエントリを削除しない。
    取得結果同士は完了順の後勝ちとなる。
    """

    def __init__(self, identity: IdentityStore) -> None:
        self._identity = identity
        self._entries: dict[_Key, FunctionResource] = {}
        self._written: dict[_Key, int] = {}
        self._evicted: dict[_Key, int] = {}
        self._epoch = 0

    def _namespace(self) -> str | None:
        session = self._identity.current()
        return session.namespace if session is not None else None

    def epoch(self) -> int:
        """現在の書き込みエポックを返す。取得の発行時に記録する。"""
        return self._epoch

    def _mark_written(self, key: _Key) -> None:
        self._epoch += 1
        self._written[key] = self._epoch
        self._evicted.pop(key, None)

    def _mark_evicted(self, key: _Key) -> None:
        self._epoch += 1
        self._evicted[key] = self._epoch
        self._written.pop(key, None)

    def _evicted_after(self, key: _Key, since: int) -> bool:
        return self._evicted.get(key, 0) > since

    def _written_after(self, key: _Key, since: int) -> bool:
        return self._written.get(key, 0) > since

    def upsert(self, resource: FunctionResource, *, since: int | None = None) -> bool:
        """1件のリソースを書き込む。適用された場合はTrueを返す。

        現在のセッションと異なるnamespaceのリソースは破棄する。
        """
        namespace = self._namespace()
        if namespace is None or resource.namespace != namespace:
            logger.debug("dropping %s from namespace %r (current %r)", resource.name, resource.namespace, namespace)
            return False
        key = (namespace, resource.name)
        if since is None:
            self._mark_written(key)
        elif self._evicted_after(key, since):
            return False
        self._entries[key] = resource
        return True

    def upsert_list(self, resources: list[FunctionResource], *, namespace: str, since: int | None = None) -> bool:
        """namespace内の既知集合を一覧取得の結果で置き換える。

        結果に含まれないエントリは削除されたものとして追い出す。
        呼び出し時点のセッションのnamespaceと一致しない結果は適用しない。
        """
        current = self._namespace()
        if current is None or namespace != current:
            logger.debug("dropping list for namespace %r (current %r)", namespace, current)
            return False

        fresh: dict[str, FunctionResource] = {}
        for resource in resources:
            if resource.namespace != namespace:
                continue
            key = (namespace, resource.name)
            if since is not None and self._evicted_after(key, since):
                continue
            fresh[resource.name] = resource

        for key in [k for k in self._entries if k[0] == namespace and k[1] not in fresh]:
            if since is not None and self._written_after(key, since):
                continue
            del self._entries[key]

        for name, resource in fresh.items():
            key = (namespace, name)
            if since is None:
                self._mark_written(key)
            self._entries[key] = resource
        return True

    def remove(self, name: str, *, since: int | None = None) -> bool:
        """現在のnamespaceからエントリを削除する。"""
        namespace = self._namespace()
        if namespace is None:
            return False
        key = (namespace, name)
        if since is None:
            self._mark_evicted(key)
        elif self._written_after(key, since):
            return False
        return self._entries.pop(key, None) is not None

    def get(self, name: str) -> FunctionResource | None:
        namespace = self._namespace()
        if namespace is None:
            return None
        return self._entries.get((namespace, name))

    def all(self) -> list[FunctionResource]:
        """現在のnamespaceのエントリを名前順で返す。"""
        namespace = self._namespace()
        if namespace is None:
            return []
        return sorted((r for (ns, _), r in self._entries.items() if ns == namespace), key=lambda r: r.name)

    def clear(self) -> None:
        """全エントリを削除する。ログアウト時に呼ばれる。"""
        self._entries.clear()
        self._written.clear()
        self._evicted.clear()
