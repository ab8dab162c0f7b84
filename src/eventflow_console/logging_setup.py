"""ログ出力の初期設定。"""

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """ルートロガーにストリームハンドラを設定する。複数回呼んでも一度だけ設定される。"""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if getattr(root, "_eventflow_logging_configured", False):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    root.addHandler(handler)
    setattr(root, "_eventflow_logging_configured", True)
    logging.getLogger(__name__).info("logging configured: level=%s", level.upper())
