"""
日志模块
"""

import os
import sys
import logging
import yaml
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"


def _config_path() -> Path:
    env_path = os.environ.get("INFOBAR_CONFIG")
    return Path(env_path) if env_path else PROJECT_ROOT / "config.yaml"


def _load_project_flags() -> dict:
    """从 config.yaml 读取 project 段（debug / log_to_file）"""
    try:
        config_path = _config_path()
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
                if config and isinstance(config.get("project"), dict):
                    return config["project"]
    except Exception as e:
        # 在日志系统初始化前，只能打印到标准错误
        sys.stderr.write(f"Warning: Failed to load logging config: {e}\n")
    return {}


_PROJECT_FLAGS = _load_project_flags()
DEBUG_MODE = bool(_PROJECT_FLAGS.get("debug", False))
LOG_TO_FILE = bool(_PROJECT_FLAGS.get("log_to_file", True))


class ConditionalFormatter(logging.Formatter):
    """WARNING+ 显示模块与行号"""

    def format(self, record):
        if record.levelno >= logging.WARNING:
            self._style._fmt = "[%(asctime)s] [%(levelname)s] [%(name)s] [%(module)s:%(lineno)d] - %(message)s"
        else:
            self._style._fmt = "[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s"
        return super().format(record)


def _build_file_handler(formatter: logging.Formatter):
    try:
        LOG_DIR.mkdir(exist_ok=True)
    except OSError as e:
        sys.stderr.write(f"Warning: cannot create log directory {LOG_DIR}: {e}\n")
        return None

    # 使用日期作为文件名
    today = datetime.now().strftime("%Y-%m-%d")
    file_handler = RotatingFileHandler(
        LOG_DIR / f"{today}.log",
        maxBytes=10*1024*1024, # 最大10MB
        encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    return file_handler


def setup_logger(name="infobar", log_level=logging.INFO):
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # 防止重复添加 handler
    if logger.handlers:
        return logger

    formatter = ConditionalFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if LOG_TO_FILE:
        file_handler = _build_file_handler(formatter)
        if file_handler is not None:
            logger.addHandler(file_handler)

    return logger

def get_logger(module_name: str, log_level: str = "INFO"):
    # 字符串到级别的映射
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL
    }

    # 如果开启了调试模式，且请求的级别是 INFO，则提升为 DEBUG
    if DEBUG_MODE and log_level.upper() == "INFO":
        log_level = "DEBUG"

    # 转换字符串为级别，如果不存在则默认为 INFO
    actual_level = level_map.get(log_level.upper(), logging.INFO)

    return setup_logger(name=module_name, log_level=actual_level)
