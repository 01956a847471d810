import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, status

from league_service.consumers.outbox_dispatcher import OutboxDispatcher
from league_service.core.config import LOG_LEVEL, PROJECT_NAME, VERSION
from league_service.core.db import close_db, init_db
from league_service.core.exception_handlers import setup_exception_handlers

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("league_service")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db()  # Connect to DB and generate schemas
    dispatcher = OutboxDispatcher()
    await dispatcher.start()
    app.state.outbox_dispatcher = dispatcher
    yield
    await dispatcher.shutdown("lifespan shutdown")
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")


app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

setup_exception_handlers(app)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
