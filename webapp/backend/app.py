"""
FastAPI web application for the GA4 home dashboard
"""
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from .core.config import Settings, load_settings
from .core.errors import DashboardError
from .data_providers import GA4ReportSource
from .routes import auth, dashboard, meta

settings = load_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug_mode else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

frontend_path = Path(__file__).parent.parent / "frontend"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting GA4 Home Dashboard")
    logger.info(f"CLIENT_SECRET length: {len(app.state.settings.google_client_secret)}")
    logger.info(f"GA4 property configured: {bool(app.state.settings.ga4_property_id)}")
    yield
    logger.info("Shutting down GA4 Home Dashboard")


async def dashboard_error_handler(request: Request, exc: DashboardError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def create_app(app_settings: Settings, report_source=None) -> FastAPI:
    """Build the application around the given settings and report source"""
    app = FastAPI(
        title="GA4 Home Dashboard",
        description="Authenticated GA4 proxy and single-page dashboard",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.report_source = report_source or GA4ReportSource()

    app.add_middleware(
        SessionMiddleware,
        secret_key=app_settings.session_secret,
        same_site="lax",
        https_only=app_settings.session_https_only,
    )
    app.add_exception_handler(DashboardError, dashboard_error_handler)

    app.include_router(auth.router, tags=["auth"])
    app.include_router(dashboard.router, prefix="/api", tags=["dashboard"])
    app.include_router(meta.router, prefix="/api", tags=["metadata"])

    static_dir = frontend_path / "static"
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    @app.get("/", response_class=HTMLResponse)
    async def read_root():
        """Serve the dashboard page"""
        try:
            with open(frontend_path / "index.html", "r", encoding="utf-8") as f:
                return HTMLResponse(content=f.read())
        except FileNotFoundError:
            return HTMLResponse(
                "<!DOCTYPE html><html><head><title>GA4 Dashboard</title></head>"
                "<body><h1>GA4 Home Dashboard</h1>"
                "<p>The frontend files are not available. The API is running at <a href=\"/docs\">/docs</a></p>"
                "</body></html>"
            )

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "timestamp": time.time()}

    return app


app = create_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "webapp.backend.app:app",
        host="127.0.0.1",
        port=settings.port,
        log_level="debug" if settings.debug_mode else "info"
    )
