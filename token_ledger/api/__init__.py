"""
Token Ledger API Application Factory
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .token import router as token_router
from .transfers import router as transfers_router
from .journal import router as journal_router
from .. import __version__
from ..config import get_config
from ..logging_config import setup_logging


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Token Ledger API",
        description="Fixed-supply token ledger with transfers, allowances and a notification journal",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(token_router, tags=["Token"])
    app.include_router(transfers_router, tags=["Transfers"])
    app.include_router(journal_router, tags=["Journal"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "token_ledger_api",
            "version": __version__
        }

    return app


def run_server(host: str = None, port: int = None, debug: bool = False) -> None:
    """Run the API with uvicorn, defaulting to the configured host/port"""
    config = get_config()
    setup_logging(level="DEBUG" if debug else config.log_level, log_format=config.log_format)
    uvicorn.run(
        create_app(),
        host=host or config.api_host,
        port=port or config.api_port,
        log_level="debug" if debug else "info"
    )
