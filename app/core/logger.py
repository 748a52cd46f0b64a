import logging

from app.core.config import settings

ROOT_LOGGER = "concierge"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"))
        root.addHandler(handler)
        root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Component logger under the shared ``concierge`` hierarchy, e.g. ``concierge.ToolExecutor``."""
    _configure_root()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
