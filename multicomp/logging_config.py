"""multicomp logging configuration.

multicomp logs through `loguru`. Every module imports the shared `logger`
and passes structured context as keyword arguments, which loguru attaches to
the record's `extra` mapping.

Logs go to stderr by default. Set `MULTICOMP_LOG_FILE` to also write a
rotating file log, and `MULTICOMP_LOG_LEVEL` to change the threshold.
Example: `MULTICOMP_LOG_LEVEL=DEBUG multicomp-stats`.
"""

from __future__ import annotations

import os
import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZ} {level:<7} {name}: {message} {extra}"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure multicomp logging.

    Args:
        level: Optional override for `MULTICOMP_LOG_LEVEL`.
    """
    if level:
        os.environ["MULTICOMP_LOG_LEVEL"] = level

    resolved = os.environ.get("MULTICOMP_LOG_LEVEL", "INFO").upper()
    logger.remove()
    logger.add(sys.stderr, level=resolved, format=LOG_FORMAT)

    log_file = os.environ.get("MULTICOMP_LOG_FILE")
    if log_file:
        logger.add(log_file, level=resolved, format=LOG_FORMAT, rotation="1 MB", retention=5)
