import logging
import sys
from typing import Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"

# Third-party loggers that drown out step progress at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "openai", "langchain")


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure process-wide logging for the orchestrator.

    Args:
        level: Override for settings.log_level (e.g. "DEBUG" in tests)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level or settings.log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured for %s (%s)", settings.service_name, settings.environment
    )
