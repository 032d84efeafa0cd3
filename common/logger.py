from __future__ import annotations

import logging
import os
from typing import Optional

from common.get_env import get_env_str

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_LEVEL_ENV = "SPARK_CONNECTOR_LOG_LEVEL"


def resolve_log_level(default: int = logging.INFO) -> int:
    """SPARK_CONNECTOR_LOG_LEVEL(DEBUG/INFO/...)에서 로그 레벨을 읽는다."""
    name = get_env_str(os.environ, LOG_LEVEL_ENV)
    if name is None:
        return default
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"{LOG_LEVEL_ENV} must be a logging level name (got: {name})")
    return level


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """핸들러가 하나 붙은 모듈 로거를 반환한다."""
    logger = logging.getLogger(name)
    logger.setLevel(resolve_log_level() if level is None else level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    return logger
