"""関数リソースのMCPツール定義。"""

from typing import Any

from fastmcp import FastMCP

from eventflow_console.console import Console
from eventflow_console.models.deployment import DeploymentRequest
from eventflow_console.models.errors import ConfirmationRequiredError, ConsoleError
from eventflow_console.services.builder import validate_name


def _error(e: ConsoleError) -> dict[str, Any]:
    data: dict[str, Any] = {"error": type(e).__name__, "message": str(e)}
    if isinstance(e, ConfirmationRequiredError):
        data["prompt"] = e.prompt
    return data


def register_function_tools(mcp: FastMCP, console: Console) -> None:
    """関数の作成・参照・削除・呼び出しに関するMCPツールを登録する。"""

    async def _submit(request: DeploymentRequest) -> dict[str, Any]:
        result = await console.coordinator.create(request)
        return result.summary()

    @mcp.tool()
    async def list_runtimes() -> dict[str, Any]:
        """コードデプロイで選択できるランタイムの一覧を取得する。"""
        try:
            return {
                "runtimes": [
                    runtime.model_dump(exclude={"template"}) for runtime in console.builder.runtimes()
                ]
            }
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def get_code_template(runtime: str) -> dict[str, Any]:
        """ランタイムの雛形コードを取得する。

        Args:
            runtime: ランタイムID（python, nodejs, go）。
        """
        try:
            return {"runtime": runtime, "template": console.builder.code_template(runtime)}
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def create_image_function(
        name: str,
        image: str,
        replicas: int = 1,
        env: dict[str, str] | None = None,
        command: list[str] | None = None,
    ) -> dict[str, Any]:
        """コンテナイメージから関数を作成する。

        イメージはポート8080でHTTPリクエストを受け付ける必要があります。

        Args:
            name: 関数名（英小文字・数字・ハイフン）。
            image: コンテナイメージ参照（例: nginx:alpine）。
            replicas: レプリカ数（0〜10）。
            env: 環境変数。
            command: コンテナの起動コマンド。
        """
        try:
            return await _submit(console.builder.build_image(name, image, replicas, env, command))
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def create_code_function(
        name: str,
        runtime: str,
        source: str,
        replicas: int = 1,
        env: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """ソースコードから関数を作成する。

        ソースはbase64エンコードして送信され、ランタイムに応じたベースイメージでビルドされます。

        Args:
            name: 関数名（英小文字・数字・ハイフン）。
            runtime: ランタイムID（list_runtimesで取得）。
            source: ソースコード本文。
            replicas: レプリカ数（0〜10）。
            env: 環境変数。
        """
        try:
            return await _submit(console.builder.build_code(name, runtime, source, replicas, env))
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def create_git_function(
        name: str,
        url: str,
        branch: str = "main",
        path: str = "./",
        replicas: int = 1,
        env: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Gitリポジトリから関数を作成する。

        ランタイムはリポジトリの内容（requirements.txt, package.json, go.mod）から
        バックエンドが自動判定します。

        Args:
            name: 関数名（英小文字・数字・ハイフン）。
            url: リポジトリURL。
            branch: ブランチ名。
            path: リポジトリ内のパス。
            replicas: レプリカ数（0〜10）。
            env: 環境変数。
        """
        try:
            return await _submit(console.builder.build_git(name, url, branch, path, replicas, env))
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def list_functions(refresh: bool = False) -> dict[str, Any]:
        """キャッシュ上の関数一覧を名前順で返す。

        Args:
            refresh: Trueの場合はバックエンドから取得し直してから返す。
        """
        try:
            resources = await console.refresh_list() if refresh else console.cache.all()
            return {"functions": [r.model_dump(mode="json") for r in resources]}
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def get_function(name: str, refresh: bool = False) -> dict[str, Any]:
        """キャッシュ上の関数の状態を返す。

        Args:
            name: 関数名。
            refresh: Trueの場合はバックエンドから取得し直してから返す。
        """
        try:
            validate_name(name)
            resource = await console.refresh_function(name) if refresh else console.cache.get(name)
            if resource is None:
                return {"error": "FunctionNotFoundError", "message": f"Function not found: {name}"}
            return resource.model_dump(mode="json")
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def delete_function(name: str, confirm: bool = False) -> dict[str, Any]:
        """関数を完全に削除する。取り消しはできません。

        confirm=Trueを指定しない場合は実行されず、確認メッセージが返ります。

        Args:
            name: 関数名。
            confirm: 削除を確認済みであればTrue。
        """
        try:
            result = await console.coordinator.delete_function(name, confirm=confirm)
            return result.summary()
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def undeploy_function(name: str, confirm: bool = False) -> dict[str, Any]:
        """関数のデプロイメントを停止する。関数の設定は残ります。

        confirm=Trueを指定しない場合は実行されず、確認メッセージが返ります。

        Args:
            name: 関数名。
            confirm: アンデプロイを確認済みであればTrue。
        """
        try:
            result = await console.coordinator.undeploy(name, confirm=confirm)
            return result.summary()
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def invoke_function(name: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """関数を呼び出す。失敗しても自動では再実行されません。

        Args:
            name: 関数名。
            payload: 関数に渡すJSONペイロード。
        """
        try:
            result = await console.coordinator.invoke(name, payload)
            return result.summary()
        except ConsoleError as e:
            return _error(e)

    @mcp.tool()
    async def get_function_logs(name: str) -> dict[str, Any]:
        """関数のログをその時点のスナップショットとして取得する。

        Args:
            name: 関数名。
        """
        try:
            validate_name(name)
            return {"name": name, "logs": await console.transport.fetch_logs(name)}
        except ConsoleError as e:
            return _error(e)
