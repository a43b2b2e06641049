import logging

from app.config import settings

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_configured = False


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process and CLI scripts."""
    global _configured
    if _configured:
        return
    resolved = (level or settings.log_level or "INFO").upper()
    logging.basicConfig(level=getattr(logging, resolved, logging.INFO), format=_LOG_FORMAT)
    # httpx logs every request at INFO; keep the integration logs readable
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True

