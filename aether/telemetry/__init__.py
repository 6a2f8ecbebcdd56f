from .logger import configure, get_logger, log  # noqa: F401

__all__ = ["configure", "get_logger", "log"]
