"""
WeMall 工具包
"""
from .logger import get_logger, setup_logging, LogContext
from .errors import WeMallException

__all__ = ["get_logger", "setup_logging", "LogContext", "WeMallException"]
