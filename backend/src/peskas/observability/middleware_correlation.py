# backend/src/peskas/observability/middleware_correlation.py
import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .logging_context import correlation_id_var

HEADER = "X-Correlation-Id"
SESSION_HEADER = "X-Session-Id"

logger = logging.getLogger("peskas.http")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    - Lee o genera un X-Correlation-Id por request
    - Lo expone en request.state.correlation_id
    - Expone X-Session-Id en request.state.session_id (None si falta) para
      el registro de colores
    - Lo devuelve en la respuesta y lo deja en la ContextVar para los logs
    """
    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        cid = (request.headers.get(HEADER) or "").strip() or str(uuid.uuid4())
        request.state.correlation_id = cid
        request.state.session_id = (request.headers.get(SESSION_HEADER) or "").strip() or None

        token = correlation_id_var.set(cid)
        try:
            response: Response = await call_next(request)
            logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        finally:
            correlation_id_var.reset(token)

        response.headers[HEADER] = cid
        return response
