"""
Ledger Export API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from ledger_export.config import settings
from ledger_export.api.routes import export, health

logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - handles startup and shutdown events."""
    try:
        settings.validate_production_config()
        logger.info(f"✅ Environment validated: ENV={settings.ENV}, DEBUG={settings.DEBUG}")
        logger.info(f"✅ Allowed origins: {settings.allowed_origins_list}")
        logger.info(f"✅ Ledger store: {settings.STORE_PATH or 'in-memory'}")
    except ValueError as e:
        logger.error(f"❌ Configuration validation failed: {e}")
        raise

    yield

    logger.info("🛑 Shutting down Ledger Export API")


app = FastAPI(
    title="Ledger Export API",
    description="SIE4, VAT declaration, SRU and supplier payment exports from a BAS ledger",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["authorization", "content-type", "x-api-key"],
    expose_headers=["content-disposition"],
)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(export.router, prefix="/api/v1/export", tags=["export"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Ledger Export API",
        "version": "1.0.0",
        "status": "operational",
        "endpoints": {
            "health": "/health",
            "sie": "/api/v1/export/sie",
            "vat": "/api/v1/export/vat",
            "sru": "/api/v1/export/sru",
            "payment": "/api/v1/export/payment"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level="info"
    )
