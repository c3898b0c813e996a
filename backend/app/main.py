import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI

# Import settings first for logging configuration
from backend.app.core.config import settings as app_settings, APP_VERSION

# Configure logging based on settings
# DEBUG=true -> DEBUG level, else use LOG_LEVEL setting
log_level_str = "DEBUG" if app_settings.debug else app_settings.log_level.upper()
log_level = getattr(logging, log_level_str, logging.INFO)
log_format = '%(asctime)s %(levelname)s [%(name)s] %(message)s'

# Create root logger
root_logger = logging.getLogger()
root_logger.setLevel(log_level)

# Console handler - always enabled
console_handler = logging.StreamHandler()
console_handler.setLevel(log_level)
console_handler.setFormatter(logging.Formatter(log_format))
root_logger.addHandler(console_handler)

# File handler - only in production or if explicitly enabled
if app_settings.log_to_file:
    log_file = app_settings.log_dir / "spool_usage.log"
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5*1024*1024,  # 5MB
        backupCount=3,
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(file_handler)
    logging.info(f"Logging to file: {log_file}")

# Reduce noise from third-party libraries in production
if not app_settings.debug:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

logging.info(f"Spool Usage Tracker starting - debug={app_settings.debug}, log_level={log_level_str}")
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, JSONResponse

from backend.app.core.database import init_db, async_session
from backend.app.api.errors import validation_exception_handler
from backend.app.api.routes import spoolman, usage
from backend.app.api.routes import settings as settings_routes
from backend.app.services.settings_store import SettingsStore


def create_settings_store() -> SettingsStore:
    """Settings store seeded with the configured defaults."""
    return SettingsStore(
        spoolman_url=app_settings.spoolman_url,
        flow_compensation_value=app_settings.flow_compensation_value,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()

    # Load persisted Spoolman URL / flow compensation into memory
    async with async_session() as db:
        config = await app.state.settings_store.load(db)
    logging.info(f"Using Spoolman at {config.spoolman_api_url}")

    yield

    # Shutdown
    logging.info("Spool Usage Tracker stopped")


app = FastAPI(
    title=app_settings.app_name,
    description="Log filament usage per print job against a Spoolman inventory",
    version=APP_VERSION,
    lifespan=lifespan,
)
app.state.settings_store = create_settings_store()

app.add_exception_handler(RequestValidationError, validation_exception_handler)

# API routes
app.include_router(settings_routes.router, prefix=app_settings.api_prefix)
app.include_router(spoolman.router, prefix=app_settings.api_prefix)
app.include_router(usage.router, prefix=app_settings.api_prefix)


# Serve static files (dashboard build)
if app_settings.static_dir.exists() and (app_settings.static_dir / "assets").exists():
    app.mount(
        "/assets",
        StaticFiles(directory=app_settings.static_dir / "assets"),
        name="assets",
    )


@app.get("/")
async def serve_frontend():
    """Serve the dashboard."""
    index_file = app_settings.static_dir / "index.html"
    if index_file.exists():
        return FileResponse(index_file)
    return {
        "message": "Spool Usage Tracker API",
        "docs": "/docs",
        "frontend": "Build and place the dashboard in /static directory",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Catch-all route for client-side routing (must be last)
@app.get("/{full_path:path}")
async def serve_spa(full_path: str):
    """Serve the dashboard for client-side routes."""
    # Don't intercept API routes
    if full_path.startswith("api/"):
        return JSONResponse(status_code=404, content={"error": "Not found"})

    index_file = app_settings.static_dir / "index.html"
    if index_file.exists():
        return FileResponse(index_file)

    return {"error": "Frontend not built"}
