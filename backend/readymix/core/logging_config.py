"""
Logging setup for the API process
"""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once; later calls only adjust the level"""
    global _configured

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if not _configured:
        logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
        # Third-party clients are chatty at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("stripe").setLevel(logging.WARNING)
        _configured = True
    else:
        logging.getLogger().setLevel(numeric_level)
