"""
Application factory. Run with:  uvicorn tubely.main:create_app --factory
"""
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from tubely.config import Settings, load_settings
from tubely.database import Base, build_engine, build_session_factory
from tubely.routers import users, videos
from tubely.services.storage import ObjectStorage, build_object_storage
import tubely.models  # noqa: F401 - register models on Base


def create_app(settings: Settings | None = None, storage: ObjectStorage | None = None) -> FastAPI:
    settings = settings or load_settings()
    engine = build_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            engine.dispose()

    app = FastAPI(title="Tubely API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.storage = storage or build_object_storage(settings)

    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)

    assets_root = Path(settings.assets_root)
    assets_root.mkdir(parents=True, exist_ok=True)
    app.mount("/assets", StaticFiles(directory=assets_root), name="assets")

    app.include_router(users.router)
    app.include_router(videos.router)

    @app.get("/")
    def root():
        return {"message": "Tubely API", "docs": "/docs"}

    return app
