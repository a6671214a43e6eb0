"""
Application principale FastAPI.

Ce module assemble les composants de l'application: logging, middlewares et routes du
panneau astrologique.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, timing)
- Monter les routers (santé, profils, astrologie)
- Fermer le client LLM à l'arrêt
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.api.routes_astrology import router as astrology_router
from backend.api.routes_health import router as health_router
from backend.api.routes_profile import router as profile_router
from backend.core.container import container
from backend.core.logging import setup_logging
from backend.middlewares.request_id import RequestIDMiddleware
from backend.middlewares.timing import TimingMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Libère le client HTTP du LLM à l'arrêt de l'application."""
    yield
    await container.llm.aclose()


def create_app() -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes de santé, de profil et d'astrologie
    """
    settings = container.settings
    setup_logging(settings.LOG_LEVEL)
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG, lifespan=lifespan)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.include_router(health_router)
    app.include_router(profile_router)
    app.include_router(astrology_router)
    return app


app = create_app()
