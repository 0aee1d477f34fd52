# backend/src/peskas/observability/logging_context.py
from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Optional

# Correlation id del request en curso ("-" fuera de un request)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

_FACTORY_INSTALLED = False


def set_correlation_id(cid: Optional[str]) -> None:
    """Fija el correlation_id del contexto actual (vacío -> '-')."""
    correlation_id_var.set((cid or "").strip() or "-")


def get_correlation_id() -> str:
    return correlation_id_var.get()


def clear_correlation_id() -> None:
    correlation_id_var.set("-")


def install_logrecord_factory() -> None:
    """
    Instala una LogRecordFactory que agrega 'correlation_id' a cada LogRecord.

    Respeta un valor ya presente (p. ej. pasado vía ``extra=``) salvo que sea
    vacío o '-'. Llamadas repetidas (reinicios de la app en tests) no apilan
    factories.
    """
    global _FACTORY_INSTALLED
    if _FACTORY_INSTALLED:
        return

    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        current = record.__dict__.get("correlation_id")
        if not current or current == "-":
            record.__dict__["correlation_id"] = correlation_id_var.get() or "-"
        return record

    logging.setLogRecordFactory(record_factory)
    _FACTORY_INSTALLED = True
