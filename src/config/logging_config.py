import logging
import logging.config
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE = os.getenv("LOG_FILE")


def build_logging_config(level: str = LOG_LEVEL, log_file: str | None = LOG_FILE):
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": level,
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "formatter": "default",
            "level": level,
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": LOG_FORMAT,
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers),
            "level": level,
        },
        "loggers": {
            # uvicorn logs through our handlers; keep its access log quiet unless debugging
            "uvicorn.access": {"level": "DEBUG" if level == "DEBUG" else "WARNING"},
        },
    }


def setup_logging(debug: bool = False):
    level = "DEBUG" if debug else LOG_LEVEL.upper()
    if LOG_FILE:
        os.makedirs(os.path.dirname(os.path.abspath(LOG_FILE)), exist_ok=True)
    logging.config.dictConfig(build_logging_config(level=level))
    # httpx logs every request at INFO; only show it in debug mode
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
