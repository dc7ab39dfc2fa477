import logging
import sys

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"

# Third-party loggers that are too chatty at INFO
_QUIET = ("httpx", "sqlalchemy.engine", "aiosqlite", "uvicorn.access")


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if any(getattr(h, "_callboard", False) for h in root.handlers):
        root.setLevel(level.upper())
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._callboard = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)
