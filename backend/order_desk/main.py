import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from order_desk.config import Settings, get_settings
from order_desk.core.database import OrderStore
from order_desk.core.errors import PersistenceError
from order_desk.api.routes import orders
from order_desk.services.order_repository import OrderRepository

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        # A store that cannot be opened or migrated aborts startup
        store = OrderStore(settings.database_path, fsync=settings.fsync_on_persist)
        state = store.initialize()
        logger.info(f"Order store ready at {settings.database_path} (schema was {state.value})")

        app.state.store = store
        app.state.repository = OrderRepository(store)
        try:
            yield
        finally:
            store.close()

    app = FastAPI(
        title=settings.app_name,
        description="Local API for order intake, status tracking and lookup",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])

    @app.get("/")
    async def root():
        return {"message": f"{settings.app_name} API", "version": "1.0.0"}

    @app.get("/health")
    async def health_check(request: Request):
        store = getattr(request.app.state, "store", None)
        return {"status": "healthy" if store is not None and store.is_open else "unavailable"}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the API on localhost."""
    import uvicorn

    uvicorn.run("order_desk.main:app", host="127.0.0.1", port=8000)
