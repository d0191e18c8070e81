import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Root logger setup, called once when the app starts"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger(__name__).debug("Logging configured at %s", level)
