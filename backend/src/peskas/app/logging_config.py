# backend/src/peskas/app/logging_config.py
import logging
import logging.config
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [cid=%(correlation_id)s] %(name)s: %(message)s"


def build_logging_config(level: str = "INFO") -> dict:
    """dictConfig con el filtro de correlation id en todos los handlers."""
    return {
        "version": 1,
        "disable_existing_loggers": False,  # mantiene loggers de uvicorn/fastapi
        "filters": {
            "cid": {
                "()": "peskas.observability.logging_filters.CorrelationIdLogFilter"
            }
        },
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "filters": ["cid"],
                "formatter": "default",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"]
        },
        "loggers": {
            "uvicorn.error": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False
            },
            "peskas": {
                "level": level,
                "handlers": ["console"],
                "propagate": False
            }
        }
    }


def setup_logging(level: str = None) -> None:
    """Configura logging; el nivel sale de PESKAS_LOG_LEVEL (INFO por defecto)."""
    level = (level or os.getenv("PESKAS_LOG_LEVEL") or "INFO").upper()
    logging.config.dictConfig(build_logging_config(level))
