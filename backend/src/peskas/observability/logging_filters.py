# backend/src/peskas/observability/logging_filters.py
import logging

from .logging_context import correlation_id_var


class CorrelationIdLogFilter(logging.Filter):
    """
    Garantiza 'correlation_id' en el LogRecord para que el formatter pueda
    usar %(correlation_id)s aunque la LogRecordFactory no esté instalada.
    """
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id_var.get()
        return True
