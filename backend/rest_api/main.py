"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI

from rest_api.core import (
    configure_cors,
    lifespan,
    register_exception_handlers,
    register_middlewares,
)
from rest_api.routers.catalog import router as catalog_router
from rest_api.routers.orders import router as orders_router
from rest_api.routers.public import health_router
from shared.config.settings import settings


app = FastAPI(
    title="POS Core API",
    description="Catalog pricing and order composition for multi-location restaurants",
    version="0.1.0",
    lifespan=lifespan,
)

register_middlewares(app)
configure_cors(app)
register_exception_handlers(app)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(catalog_router)
app.include_router(orders_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        reload=settings.debug,
    )
