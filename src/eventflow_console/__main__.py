"""コンソールMCPサーバーのコマンドラインエントリポイント。"""

if __name__ == "__main__":
    import uvicorn

    from eventflow_console.config import ConsoleConfig
    from eventflow_console.logging_setup import setup_logging
    from eventflow_console.server import create_app

    config = ConsoleConfig()
    setup_logging(config.log_level)
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port)
