"""Default logging setup for hosts that do not configure logging themselves."""
import logging
from typing import Optional

from config.settings import settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging at ``level`` (defaults to FETCHSTATE_LOG_LEVEL)."""
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
