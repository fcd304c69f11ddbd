import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

import config
from db import create_db_and_tables
from middleware.security_headers import SecurityHeadersMiddleware
from utils.error_handler import register_exception_handlers
from web.admin_router import admin_router
from web.shop_router import shop_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    # Startup: create missing tables and run the schema upgrade before serving
    await create_db_and_tables()
    logging.info(f"[Startup] Storefront ready ({config.RUNTIME_ENVIRONMENT.value})")

    yield

    # Shutdown
    logging.warning('Shutting down..')


app = FastAPI(title="Storefront", lifespan=lifespan)

if config.SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware)
    logging.info("[Startup] Security headers middleware enabled")
else:
    logging.debug("[Startup] Security headers middleware disabled")

if config.CORS_ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type"],
    )
    logging.info(f"[Startup] CORS middleware enabled for origins: {config.CORS_ALLOWED_ORIGINS}")
else:
    logging.debug("[Startup] CORS middleware disabled (no allowed origins configured)")

register_exception_handlers(app)

app.include_router(shop_router)
app.include_router(admin_router)


# Health check endpoint (for Docker container monitoring)
@app.get("/health")
async def health_check():
    return {"status": "healthy"}


def main() -> None:
    uvicorn.run(app, host=config.WEBAPP_HOST, port=config.WEBAPP_PORT)
