import logging
import logging.config
import time

from flask import g, request

logger = logging.getLogger("pioerp.requests")


def configure_logging(level: str = "INFO"):
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "[{levelname}] {asctime} {name} - {message}",
                "style": "{",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {
                "format": "[{levelname}] {asctime} - {message}",
                "style": "{",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
            "requests": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
            },
        },
        "loggers": {
            "pioerp": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            "pioerp.requests": {
                "handlers": ["requests"],
                "level": level,
                "propagate": False,
            },
        },
    })


def register_request_logging(app):
    @app.before_request
    def _marca_inicio():
        g.inicio_request = time.perf_counter()

    @app.after_request
    def _loga_request(response):
        inicio = g.pop("inicio_request", None)
        ms = (time.perf_counter() - inicio) * 1000 if inicio is not None else 0.0
        logger.info("%s %s %s %.1fms", request.method, request.path, response.status_code, ms)
        return response
