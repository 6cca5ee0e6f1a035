import logging
import os
import sys
from typing import Optional, Union


def setup_logging(level: Optional[Union[int, str]] = None) -> None:
    """Configure the root logger once; ``LOG_LEVEL`` is used when no level is given."""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s:%(lineno)d | %(message)s",
        datefmt="%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    # passlib logs a traceback-level warning while probing the bcrypt backend
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("multipart").setLevel(logging.WARNING)
