"""
FastAPI application initialization for the Payer Coverage Insights API.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional, Union

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from payer_insights.core.config import get_cors_origins
from payer_insights.core.dataset import DatasetLoadError, load_dataset
from payer_insights.routes.coverage import router as coverage_router


logger = logging.getLogger(__name__)


def create_app(data_dir: Optional[Union[str, Path]] = None) -> FastAPI:
    """
    Build the application.

    The coverage dataset is loaded once at startup. A load failure does not
    stop the app: it is logged, kept on ``app.state.load_error`` and reported
    by every data endpoint.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.dataset = None
        app.state.load_error = None
        try:
            app.state.dataset = load_dataset(data_dir)
        except DatasetLoadError as exc:
            logger.exception("Failed to load coverage dataset")
            app.state.load_error = str(exc)
        yield

    app = FastAPI(
        title="Payer Coverage Insights API",
        description="Compare drug coverage policy (prior authorization, step therapy, HCPCS codes) across insurers",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(coverage_router)

    @app.get("/health")
    def health(request: Request) -> Dict[str, Any]:
        """
        Application health check endpoint.
        """
        load_error = getattr(request.app.state, "load_error", None)
        if load_error:
            return {"status": "degraded", "service": "payer_insights", "notice": load_error}
        return {"status": "healthy", "service": "payer_insights"}

    return app


app = create_app()
