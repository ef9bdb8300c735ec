"""
CivicLink Billing - Application principale FastAPI
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import api_router
from app.core.config import settings
from app.core.logging_config import configure_logging
from app.core.redis_client import RedisClient

configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 Démarrage de {settings.APP_NAME} ({settings.ENVIRONMENT})")
    yield
    # Le pool Redis n'existe que si le cache des quotas a servi
    RedisClient.close()
    logger.info(f"🛑 Arrêt de {settings.APP_NAME}")


# Créer l'application FastAPI
app = FastAPI(
    title=settings.APP_NAME,
    description="Moteur de facturation, de quotas et de cycle de vie des collectivités clientes",
    version=settings.APP_VERSION,
    docs_url=None if settings.is_production else "/api/docs",
    redoc_url=None if settings.is_production else "/api/redoc",
    lifespan=lifespan,
)

# Configuration CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Inclure les routes API v1
app.include_router(api_router)


@app.get("/")
async def root():
    """Page d'accueil - Health check"""
    return {
        "app": settings.APP_NAME,
        "status": "running",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health")
async def health_check():
    """Endpoint de vérification de santé"""
    return {"status": "healthy"}
