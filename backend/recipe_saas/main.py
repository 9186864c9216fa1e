import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from recipe_saas.config import Settings, get_settings
from recipe_saas.middleware import setup_middleware
from recipe_saas.recipes.generator import build_generator
from recipe_saas.recipes.router import router as recipes_router
from recipe_saas.auth.router import router as auth_router
from recipe_saas.storage.backends import build_store

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(
        f"Recipe SaaS Backend starting on port {settings.port} "
        f"(storage={app.state.store.name}, generator={app.state.generator.name})"
    )
    yield
    logger.info("Recipe SaaS Backend shutting down")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title="Recipe SaaS API",
        version=VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = build_store(settings)
    app.state.generator = build_generator(settings)

    setup_middleware(app, settings)

    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(recipes_router, prefix="/api/recipes")

    @app.get("/")
    async def root():
        return {
            "status": "success",
            "message": "Recipe SaaS Backend is running!",
            "version": VERSION,
        }

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "recipe-saas-api"}

    @app.get("/health/detailed")
    async def health_detailed(request: Request):
        s: Settings = request.app.state.settings
        checks = {
            "api": "healthy",
            "storage": request.app.state.store.name,
            "generator": request.app.state.generator.name,
        }
        if s.generator_backend == "openai":
            checks["openai"] = "configured" if s.openai_api_key else "missing"
        overall = "healthy" if all(v != "missing" for v in checks.values()) else "degraded"
        return {"status": overall, "checks": checks}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("recipe_saas.main:app", host="0.0.0.0", port=get_settings().port)
