"""利用者起点の変更操作を関数名単位で直列化するサービス。"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from eventflow_console.models.deployment import DeploymentRequest
from eventflow_console.models.errors import (
    BackendUnavailableError,
    ConfirmationRequiredError,
    FunctionNotFoundError,
    MutationConflictError,
)
from eventflow_console.models.function import FunctionResource, MutationResult
from eventflow_console.services.builder import validate_name, validate_replicas
from eventflow_console.services.cache import FunctionRegistryCache
from eventflow_console.services.identity import IdentityStore
from eventflow_console.services.transport import ResourceTransport

logger = logging.getLogger(__name__)

# 確認ダイアログ相当。boolを直接渡すか、プロンプトを受け取って判定する関数を渡す。
Confirm = bool | Callable[[str], bool | Awaitable[bool]]

_DELETE_PROMPT = 'Are you sure you want to delete function "{name}"? This cannot be undone.'
_UNDEPLOY_PROMPT = 'Undeploy "{name}"? This removes the running deployment but keeps the configuration.'


async def _is_confirmed(confirm: Confirm, prompt: str) -> bool:
    if isinstance(confirm, bool):
        return confirm
    answer = confirm(prompt)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)


class MutationCoordinator:
    """create/delete/invoke/undeployを実行する。

    同一関数名に対する変更操作は同時に1つまで。実行中に同名の操作が来た場合は
    待たせずにMutationConflictErrorで即座に失敗させる。異なる関数名の操作は並行に進む。
    """

    def __init__(self, identity: IdentityStore, transport: ResourceTransport, cache: FunctionRegistryCache) -> None:
        self._identity = identity
        self._transport = transport
        self._cache = cache
        # 関数名単位の排他ロック
        self._name_locks: dict[str, asyncio.Lock] = {}

    def _get_name_lock(self, name: str) -> asyncio.Lock:
        """関数名単位のasyncio.Lockを取得する。"""
        if name not in self._name_locks:
            self._name_locks[name] = asyncio.Lock()
        return self._name_locks[name]

    def in_progress(self, name: str) -> bool:
        """指定関数の変更操作が実行中かどうかを返す。"""
        lock = self._name_locks.get(name)
        return lock is not None and lock.locked()

    def _acquire_or_conflict(self, name: str) -> asyncio.Lock:
        lock = self._get_name_lock(name)
        if lock.locked():
            raise MutationConflictError(name)
        return lock

    async def _resync(self, name: str) -> tuple[bool, FunctionResource | None]:
        """ポーリング間隔を待たずに1件を再取得してキャッシュを合わせる。

        404は削除済みとして追い出す。バックエンド障害の場合は変更操作自体は
        成功しているため、再同期できなかったことを結果で返す。
        """
        try:
            resource = await self._transport.get_function(name)
        except FunctionNotFoundError:
            self._cache.remove(name)
            return True, None
        except BackendUnavailableError as e:
            logger.warning("resync of %s failed: %s", name, e)
            return False, self._cache.get(name)
        self._cache.upsert(resource)
        return True, resource

    async def create(self, request: DeploymentRequest) -> MutationResult:
        """関数を作成する。

        成功時は即座にキャッシュへ挿入し、その後バックエンドと再同期する。

        Raises:
            DeploymentValidationError: 名前・レプリカ数が不正な場合。
            MutationConflictError: 同名の変更操作が実行中の場合。
            TransportError: Transportのエラー。
        """
        validate_name(request.name)
        validate_replicas(request.replicas)
        session = self._identity.require()
        lock = self._acquire_or_conflict(request.name)

        async with lock:
            logger.info("creating function %s (%s)", request.name, request.deployment_type)
            await self._transport.create_function(request)
            # statusはバックエンドの報告を待つ
            self._cache.upsert(
                FunctionResource(
                    name=request.name,
                    namespace=session.namespace,
                    image=request.image or "",
                    deployment_source=request.deployment_source(),
                    desired_replicas=request.replicas,
                    env=request.env or {},
                    command=request.command or [],
                )
            )
            resynced, resource = await self._resync(request.name)
            logger.info("created function %s", request.name)
            return MutationResult(name=request.name, operation="create", resynced=resynced, resource=resource)

    async def delete_function(self, name: str, confirm: Confirm = False) -> MutationResult:
        """関数レコードごと削除する。取り消しはできない。

        Raises:
            DeploymentValidationError: 関数名が不正な場合。
            MutationConflictError: 同名の変更操作が実行中の場合。
            ConfirmationRequiredError: 確認されなかった場合。
            TransportError: Transportのエラー。
        """
        validate_name(name)
        self._identity.require()
        lock = self._acquire_or_conflict(name)

        async with lock:
            prompt = _DELETE_PROMPT.format(name=name)
            if not await _is_confirmed(confirm, prompt):
                raise ConfirmationRequiredError(name, "delete", prompt)
            logger.info("deleting function %s", name)
            await self._transport.delete_function(name)
            self._cache.remove(name)
            resynced, resource = await self._resync(name)
            logger.info("deleted function %s", name)
            return MutationResult(name=name, operation="delete", resynced=resynced, resource=resource)

    async def undeploy(self, name: str, confirm: Confirm = False) -> MutationResult:
        """実行中のデプロイメントのみを削除する。関数レコードと設定は残る。

        Raises:
            DeploymentValidationError: 関数名が不正な場合。
            MutationConflictError: 同名の変更操作が実行中の場合。
            ConfirmationRequiredError: 確認されなかった場合。
            TransportError: Transportのエラー。
        """
        validate_name(name)
        self._identity.require()
        lock = self._acquire_or_conflict(name)

        async with lock:
            prompt = _UNDEPLOY_PROMPT.format(name=name)
            if not await _is_confirmed(confirm, prompt):
                raise ConfirmationRequiredError(name, "undeploy", prompt)
            logger.info("undeploying function %s", name)
            await self._transport.undeploy_function(name)
            resynced, resource = await self._resync(name)
            logger.info("undeployed function %s", name)
            return MutationResult(name=name, operation="undeploy", resynced=resynced, resource=resource)

    async def invoke(self, name: str, payload: dict[str, Any] | None = None) -> MutationResult:
        """関数を呼び出す。失敗しても自動では再実行しない。

        Raises:
            DeploymentValidationError: 関数名が不正な場合。
            MutationConflictError: 同名の変更操作が実行中の場合。
            TransportError: Transportのエラー。
        """
        validate_name(name)
        self._identity.require()
        lock = self._acquire_or_conflict(name)

        async with lock:
            logger.info("invoking function %s", name)
            invocation = await self._transport.invoke_function(name, payload)
            return MutationResult(name=name, operation="invoke", invocation=invocation)
