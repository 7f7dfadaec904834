import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

# Load environment variables from a .env file next to the project, if present.
# This runs before the service modules are imported.
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path, override=False)

from og_preview.api.v1.routes import legacy_router  # noqa: E402
from og_preview.api.v1.routes import router as api_v1_router  # noqa: E402
from og_preview.services.storage import storage_dir  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if env_path.exists():
    logger.info("Loaded environment from %s", env_path)


def _cors_origins() -> list[str]:
    raw = os.getenv("OG_CORS_ALLOW_ORIGINS", "*").strip()
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


def create_app() -> FastAPI:
    """
    Application factory for the social preview API.

    Keeping this as a separate function makes it easier to build isolated
    apps in tests.
    """
    app = FastAPI(
        title="Social Preview API",
        version="0.1.0",
        description="Renders 1200x630 social preview (Open Graph) images.",
    )

    origins = _cors_origins()
    use_wildcard = "*" in origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if use_wildcard else origins,
        allow_credentials=not use_wildcard,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Infrastructure-level health check (non-versioned) primarily for ops.
    @app.get("/health", tags=["health"])
    async def root_health_check() -> dict:
        """Simple root health check endpoint."""
        return {"status": "ok"}

    app.include_router(api_v1_router)
    app.include_router(legacy_router)

    # Previews stored in local mode are served from here.
    static_dir = storage_dir()
    static_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    return app


app = create_app()
