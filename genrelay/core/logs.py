import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# client libraries that log full request URLs (Gemini keys travel in the query)
_QUIET_LOGGERS = ("httpx", "httpcore")

# shorter secrets would mangle ordinary words when replaced
MIN_REDACT_LENGTH = 4


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    # create_app() may run more than once (tests); install the handler once
    if not any(getattr(h, "_genrelay", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._genrelay = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def preview(text: str, limit: int = 50) -> str:
    """Shorten user text for log lines."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def redact(text: str, secret: str) -> str:
    """Replace every occurrence of a credential in text destined for logs or clients."""
    if len(secret or "") < MIN_REDACT_LENGTH:
        return text
    return text.replace(secret, "****")
