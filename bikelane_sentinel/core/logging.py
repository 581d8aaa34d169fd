import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the package logger."""
    global _configured

    package_logger = logging.getLogger("bikelane_sentinel")
    package_logger.setLevel(level.upper())

    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    _configured = True
