from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from components.mediastorage.http import private_router, public_router, storage_router, uwf_ok
from components.mediastorage.contracts import UWFResponse
from .container import MediaContainer, build_from_env
from .errors import install_error_handlers
from .observability import RequestContextMiddleware
from .settings import APP_NAME, APP_VERSION, CORS_ORIGINS, LOG_LEVEL, PORT

logger = logging.getLogger("apigateway")


class HealthResult(BaseModel):
    status: str
    version: str
    time: str


def create_app(container: Optional[MediaContainer] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        c = container or build_from_env()
        c.wire()
        await c.start()
        app.state.container = c
        logger.info("app.start name=%s version=%s", APP_NAME, APP_VERSION)
        try:
            yield
        finally:
            await c.aclose()
            logger.info("app.stop name=%s", APP_NAME)

    app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=CORS_ORIGINS, allow_methods=["*"], allow_headers=["*"])
    app.add_middleware(RequestContextMiddleware)
    install_error_handlers(app)

    @app.get("/health", response_model=UWFResponse)
    def health(request: Request):
        now = datetime.now(timezone.utc).isoformat()
        return uwf_ok(request, HealthResult(status="ok", version=APP_VERSION, time=now))

    app.include_router(public_router)
    app.include_router(private_router)
    app.include_router(storage_router)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    uvicorn.run("components.apigateway.app:app", host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    main()
