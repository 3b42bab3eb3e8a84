import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from starlette.middleware.base import BaseHTTPMiddleware
from library_api.config import settings
from library_api.errors import LibraryError
from library_api.routes import book, transaction, fine, member, events
from library_api.services.catalog import CatalogService
from library_api.services.circulation import CirculationService
from library_api.services.members import MemberService
from library_api.services.mqtt_service import MQTTBridge
from library_api.services.notifier import ChangeNotifier
from library_api.store import InventoryStore, create_fallback_store, create_store

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log incoming requests."""
    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} - IP: {client_ip} - {response.status_code}")
        return response


async def library_error_handler(request: Request, exc: LibraryError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors()})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"Missing or invalid fields: {', '.join(fields)}"}
    )


def create_app(
    store: Optional[InventoryStore] = None,
    fallback_store: Optional[InventoryStore] = None,
    notifier: Optional[ChangeNotifier] = None,
    mqtt_enabled: Optional[bool] = None,
) -> FastAPI:
    """Wire the store, notifier and services into a FastAPI app.

    Anything not passed in is built from settings.
    """
    if store is None:
        store = create_store(settings)
        if fallback_store is None:
            fallback_store = create_fallback_store(settings)
    notifier = notifier or ChangeNotifier()
    if mqtt_enabled is None:
        mqtt_enabled = settings.mqtt_enabled
    mqtt_bridge = MQTTBridge(notifier, settings) if mqtt_enabled else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start/stop the MQTT bridge and release the store with FastAPI."""
        if mqtt_bridge is not None:
            logger.info("Starting MQTT bridge...")
            mqtt_bridge.connect()

        yield

        if mqtt_bridge is not None:
            logger.info("Stopping MQTT bridge...")
            mqtt_bridge.disconnect()
        store.close()

    app = FastAPI(
        title="Library Circulation API",
        description="Borrowing, returns, fines and copy inventory over CSV or SQL storage",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.store = store
    app.state.notifier = notifier
    app.state.mqtt_bridge = mqtt_bridge
    app.state.circulation = CirculationService(store, notifier, settings.loan_period_days)
    app.state.catalog = CatalogService(store, fallback_store)
    app.state.members = MemberService(store)

    app.add_middleware(LoggingMiddleware)
    app.add_exception_handler(LibraryError, library_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Include routers
    app.include_router(book.router)
    app.include_router(transaction.router)
    app.include_router(fine.router)
    app.include_router(member.router)
    app.include_router(events.router)

    @app.get("/")
    async def root():
        return {"message": "Library Circulation API", "version": "1.0.0"}

    @app.get("/api/health")
    async def health_check():
        return {"status": "healthy", "store": store.backend}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "library_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
