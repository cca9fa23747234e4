from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kaeva import __version__
from kaeva.api.factcheck import router as factcheck_router
from kaeva.api.middleware import setup_middleware
from kaeva.config import Settings, get_settings
from kaeva.pipeline import FactCheckPipeline, build_job_store
from kaeva.utils.logging import configure_logging, get_component_logger


def create_app(settings: Settings | None = None, pipeline: FactCheckPipeline | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Application settings, the process-wide settings by default
        pipeline: Pipeline to serve, built from ``settings`` by default
    """
    settings = settings or get_settings()
    configure_logging(
        level=settings.logging.level.value,
        json_logging=settings.logging.format == "json",
        log_file=settings.logging.file,
        rotation_size=settings.logging.rotation_size,
        rotation_count=settings.logging.rotation_count,
        daily_rotation=settings.logging.daily_rotation,
    )
    logger = get_component_logger("main")
    if pipeline is None:
        pipeline = FactCheckPipeline(settings, job_store=build_job_store(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting %s %s (job store: %s)",
            settings.app_name,
            settings.app_version,
            settings.jobs.backend.value,
        )
        yield
        await pipeline.job_store.close()

    app = FastAPI(
        title="Kaeva Fact Check API",
        description="Asynchronous fact-checking of text claims and media",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline

    setup_middleware(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.get("/")
    def read_root():
        return {"message": "Welcome to the Kaeva fact-check API"}

    app.include_router(factcheck_router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=get_settings().api.host, port=get_settings().api.port)
