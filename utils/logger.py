import logging
from logging.config import dictConfig


def configure_logging(app):
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "[%(asctime)s] %(levelname)s in %(name)s: %(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
    })
    app.logger.setLevel(level)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
