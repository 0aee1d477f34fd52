"""
Paquete de observabilidad.
Exporta helpers de correlation-id para logging y middleware HTTP.
"""

from .logging_context import (
    clear_correlation_id,
    get_correlation_id,
    install_logrecord_factory,
    set_correlation_id,
)

__all__ = [
    "clear_correlation_id",
    "get_correlation_id",
    "install_logrecord_factory",
    "set_correlation_id",
]
