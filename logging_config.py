# logging_config.py
import logging
import logging.config

from flask import Flask

FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(app: Flask) -> logging.Logger:
    """Console logging for everything, plus an error file when LOG_FILE is set."""
    level = app.config.get("LOG_LEVEL", "INFO")
    log_file = app.config.get("LOG_FILE")

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stderr",
        },
    }
    if log_file:
        handlers["errors"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": log_file,
            "level": "ERROR",
            "delay": True,
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": FORMAT}},
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
    })

    # let app.logger records flow to the root handlers only
    app.logger.handlers.clear()
    app.logger.setLevel(level)
    app.logger.propagate = True
    app.logger.debug("Logging configured (level=%s, file=%s)", level, log_file)
    return app.logger
