"""テスト共通フィクスチャ。"""

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
from fake_backend import FakeBackend

from eventflow_console.config import ConsoleConfig
from eventflow_console.console import Console
from eventflow_console.models.session import Session
from eventflow_console.services.builder import DeploymentRequestBuilder
from eventflow_console.services.cache import FunctionRegistryCache
from eventflow_console.services.coordinator import MutationCoordinator
from eventflow_console.services.identity import IdentityStore
from eventflow_console.services.transport import ResourceTransport
from eventflow_console.storage.service import StorageService

BASE_URL = "http://eventflow.test"


@pytest.fixture
def tmp_data_dir(tmp_path: Path) -> Path:
    """テスト用の一時データディレクトリ。"""
    return tmp_path / "eventflow-test"


@pytest.fixture
def config_dir() -> Path:
    """設定ファイルディレクトリ。"""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def console_config(tmp_data_dir: Path, config_dir: Path) -> ConsoleConfig:
    """テスト用ConsoleConfig。"""
    return ConsoleConfig(base_url=BASE_URL, data_dir=tmp_data_dir, config_dir=config_dir, request_timeout=2.0)


@pytest.fixture
def backend() -> FakeBackend:
    """インメモリのバックエンド。"""
    return FakeBackend()


@pytest.fixture
async def http_client(backend: FakeBackend) -> AsyncIterator[httpx.AsyncClient]:
    """FakeBackendに接続されたHTTPクライアント。"""
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler), base_url=BASE_URL)
    yield client
    await client.aclose()


@pytest.fixture
def storage(tmp_data_dir: Path) -> StorageService:
    """テスト用StorageService。"""
    return StorageService(data_dir=tmp_data_dir)


@pytest.fixture
def identity(storage: StorageService, http_client: httpx.AsyncClient, config_dir: Path) -> IdentityStore:
    """テスト用IdentityStore。"""
    return IdentityStore(storage=storage, http_client=http_client, config_dir=config_dir)


@pytest.fixture
def transport(identity: IdentityStore, http_client: httpx.AsyncClient) -> ResourceTransport:
    """テスト用ResourceTransport。"""
    return ResourceTransport(identity, http_client, timeout=2.0)


@pytest.fixture
def cache(identity: IdentityStore) -> FunctionRegistryCache:
    """テスト用FunctionRegistryCache。"""
    return FunctionRegistryCache(identity)


@pytest.fixture
def builder(config_dir: Path) -> DeploymentRequestBuilder:
    """テスト用DeploymentRequestBuilder。"""
    return DeploymentRequestBuilder(config_dir=config_dir)


@pytest.fixture
def coordinator(
    identity: IdentityStore, transport: ResourceTransport, cache: FunctionRegistryCache
) -> MutationCoordinator:
    """テスト用MutationCoordinator。"""
    return MutationCoordinator(identity, transport, cache)


@pytest.fixture
async def session(identity: IdentityStore) -> Session:
    """demo-userでログイン済みのセッション。"""
    return await identity.acquire("demo-user")


@pytest.fixture
async def console(console_config: ConsoleConfig, http_client: httpx.AsyncClient) -> AsyncIterator[Console]:
    """FakeBackendに接続されたConsole。"""
    console = Console(console_config, http_client)
    yield console
    await console.aclose()
