from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from boostshop import __version__
from boostshop.api import create_api_router
from boostshop.core.config import Settings, get_settings
from boostshop.core.container import ApplicationContainer
from boostshop.core.logging import configure_logging
from boostshop.infrastructure.database.session import build_engine, build_session_factory, init_db


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ApplicationContainer] = None,
) -> FastAPI:
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if container is None:
            engine = build_engine(settings)
            await init_db(engine)
            app.state.container = ApplicationContainer.build(
                settings, session_factory=build_session_factory(engine)
            )
        await app.state.container.startup()
        try:
            yield
        finally:
            await app.state.container.shutdown()
            if engine is not None:
                await engine.dispose()

    app = FastAPI(
        title=settings.project_name,
        description="Facebook engagement storefront: orders paid from a prepaid wallet",
        version=__version__,
        lifespan=lifespan,
    )
    if container is not None:
        # available without running the lifespan, e.g. under ASGITransport
        app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "boostshop.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.server.reload,
    )


if __name__ == "__main__":
    run()
