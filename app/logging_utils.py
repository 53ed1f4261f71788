import logging

from .config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """
    Configure root logging for the application.

    Called once when the FastAPI app is created. Unknown level names fall back to INFO.
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger(__name__).debug(f"Logging configured at level {logging.getLevelName(numeric_level)}")
