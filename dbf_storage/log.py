"""
dbf_storage 的文件日志开关：
  - 各模块使用 logging.getLogger(__name__)，都挂在 "dbf_storage" 之下
  - enable_log() 给 "dbf_storage" 加一个 FileHandler（只加一次）
"""
from __future__ import annotations

import logging
import os

from . import config

_ROOT = "dbf_storage"
_handler: logging.Handler | None = None


def enable_log(path: str | None = None) -> str:
    """开启文件日志，默认写入 __logs__/dbf.log；返回日志路径。"""
    global _handler
    logger = logging.getLogger(_ROOT)
    if _handler is not None:
        return getattr(_handler, "baseFilename", path or "")
    logger.setLevel(config.LOG_LEVEL)
    if path is None:
        os.makedirs(config.LOG_DIR, exist_ok=True)
        path = os.path.join(config.LOG_DIR, config.LOG_FILE)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
    _handler = handler
    return path


def disable_log() -> None:
    """关闭文件日志（移除 handler）"""
    global _handler
    if _handler is not None:
        logging.getLogger(_ROOT).removeHandler(_handler)
        _handler.close()
    _handler = None
