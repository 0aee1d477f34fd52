"""
Módulo principal de la API de Peskas.

Responsabilidades:
- Instanciación de FastAPI
- Registro de routers (rutas agrupadas por dominio)
- Endpoints globales mínimos (/health)
- Habilitar CORS para el frontend (orígenes desde PESKAS_ALLOWED_ORIGINS)
- Inyectar middleware de Correlation-Id (X-Correlation-Id) para trazabilidad
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from peskas.app import settings
from peskas.app.logging_config import setup_logging
from peskas.observability.logging_context import install_logrecord_factory
from peskas.observability.middleware_correlation import CorrelationIdMiddleware

from .routers import catch, composition, dashboard, districts, fishers, gear, stats, taxa

app = FastAPI(title="Peskas API", version=settings.api_version())

ALLOWED_ORIGINS = settings.allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-Id"],
    max_age=600,
)

# Agrega/propaga X-Correlation-Id y resuelve el id de sesión del registro de colores
app.add_middleware(CorrelationIdMiddleware)


@app.on_event("startup")
def _startup_logging() -> None:
    """
    - Configura logging (dictConfig con filtro cid)
    - Instala LogRecordFactory que inyecta correlation_id desde ContextVar
    """
    setup_logging()
    install_logrecord_factory()
    logging.getLogger("peskas").info("Peskas API lista; CORS=%s", ALLOWED_ORIGINS)


@app.get("/health")
def health() -> dict:
    """Endpoint de salud: permite saber si la API está arriba."""
    return {"status": "ok"}


app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
app.include_router(catch.router,     prefix="/catch",     tags=["catch"])
app.include_router(districts.router, prefix="/districts", tags=["districts"])
app.include_router(taxa.router,      prefix="/taxa",      tags=["taxa"])
app.include_router(gear.router,      prefix="/gear",      tags=["gear"])
app.include_router(stats.router,     prefix="/stats",     tags=["stats"])
app.include_router(composition.router, prefix="/composition", tags=["composition"])
app.include_router(fishers.router,   prefix="/fishers",   tags=["fishers"])
