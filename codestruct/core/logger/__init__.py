"""Logging module."""

from codestruct.core.logger.logger import get_logger, set_level, setup_logging

__all__ = ["get_logger", "set_level", "setup_logging"]
