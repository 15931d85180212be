import logging

from axent.config import settings

_configured = False


def get_logger(name: str) -> logging.Logger:
    global _configured
    if not _configured:
        logging.basicConfig(
            level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        )
        # httpx logs every request line at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
        _configured = True
    return logging.getLogger(name)
