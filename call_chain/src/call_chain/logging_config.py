import logging.config

from call_chain.src.call_chain.config import settings

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(levelname)s:     %(asctime)s - %(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "": {  # Root logger
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
    },
}


def setup_logging(level: str | None = None):
    """Applies LOGGING_CONFIG with the root level taken from settings unless given."""
    config = dict(LOGGING_CONFIG)
    config["loggers"] = {"": {**LOGGING_CONFIG["loggers"][""], "level": (level or settings.LOG_LEVEL).upper()}}
    logging.config.dictConfig(config)
