# fraudscore/core/logging.py
import logging
import sys

from fraudscore.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # SQL echo is controlled by the engine, keep the root level quiet for it
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
