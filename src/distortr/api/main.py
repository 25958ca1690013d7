"""Distortr - FastAPI Application.

This module defines the application factory, every route, and the ``main()``
CLI function that launches the uvicorn server.

Architecture
------------
- **Templates** (page, stylesheet, script) are compiled once inside the
  lifespan handler.  A template that fails to compile aborts startup.
- **Uploads** are distorted in a worker thread so the event loop stays
  responsive, then inserted into the :class:`~distortr.core.store.ImageStore`
  under a fresh ULID.
- **The store** is created by :func:`create_app` and lives on ``app.state``;
  there is no module-level store, so each test can build an isolated app.
- **Errors** are logged in full server-side and returned to the client as a
  fixed, generic message.

Endpoints
---------
========  ======================  ==========================================
Method    Path                    Purpose
========  ======================  ==========================================
GET       ``/``                   Rendered ``index.html``
GET       ``/style.css``          Rendered stylesheet
GET       ``/main.js``            Rendered script
POST      ``/upload``             Distort and store an image (raw body)
GET       ``/images/{id}``        Fetch a stored image (``.jpg`` optional)
GET       ``/healthz``            Liveness and store size
========  ======================  ==========================================

Usage
-----
CLI (installed entry point)::

    distortr

Direct invocation::

    python -m distortr.api.main
"""

from __future__ import annotations

import logging
import random
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from distortr import __version__
from distortr.api.models import ErrorResponse, HealthResponse, UploadResponse
from distortr.core.config import DistortrConfig, config as default_config
from distortr.core.errors import (
    DecodeError,
    DistortrError,
    InvalidIdentifier,
    TemplateRenderError,
    TransformError,
)
from distortr.core.ids import image_url, parse_image_ref, render_id
from distortr.core.store import ImageStore, StoredImage
from distortr.core.templates import (
    INDEX_TEMPLATE,
    MEDIA_TYPES,
    SCRIPT_TEMPLATE,
    STYLESHEET_TEMPLATE,
    TemplateRegistry,
)
from distortr.core.transform import OUTPUT_CONTENT_TYPE, DistortionSettings, distort

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong, sorry!"

# Stored images never change, so clients may cache them indefinitely.
IMMUTABLE_CACHE = "public, max-age=31536000, immutable"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the server process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _generic_error(status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=GENERIC_ERROR).model_dump(),
    )


def create_app(
    config: DistortrConfig | None = None,
    *,
    store: ImageStore | None = None,
    rng_factory: Callable[[], random.Random] | None = None,
) -> FastAPI:
    """Build a Distortr application.

    Args:
        config: Settings to use.  Defaults to the global ``config``.
        store: Image store to serve from.  A fresh empty store is created
            when omitted.
        rng_factory: Called once per upload to obtain the random source for
            the distortion pipeline.  ``None`` lets the pipeline create its
            own generator per call.

    Returns:
        The configured FastAPI application.  Templates are compiled when
        the application starts, not here.
    """
    config = config or default_config
    settings = DistortionSettings.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Compile templates on startup.

        A :class:`~distortr.core.errors.TemplateCompileError` propagates out
        of here and stops the server before it accepts any request.
        """
        app.state.templates = TemplateRegistry.load(config.templates_dir)
        logger.info(f"Loaded {len(app.state.templates.names)} templates from {config.templates_dir}")

        yield

        logger.info(f"Shutting down with {len(app.state.store)} images in memory.")

    app = FastAPI(
        title="Distortr",
        description="Upload an image, get back a thoroughly mangled JPEG.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store if store is not None else ImageStore()

    # -----------------------------------------------------------------------
    # Exception handlers.
    # -----------------------------------------------------------------------

    @app.exception_handler(DecodeError)
    async def handle_decode_error(request: Request, exc: DecodeError) -> JSONResponse:
        logger.warning(f"Rejected upload on {request.url.path}: {exc}")
        return _generic_error(500)

    @app.exception_handler(TransformError)
    async def handle_transform_error(request: Request, exc: TransformError) -> JSONResponse:
        logger.error(f"Distortion failed on {request.url.path}: {exc}", exc_info=exc)
        return _generic_error(500)

    @app.exception_handler(TemplateRenderError)
    async def handle_render_error(request: Request, exc: TemplateRenderError) -> JSONResponse:
        logger.error(f"While serving template: {exc}", exc_info=exc)
        return _generic_error(500)

    @app.exception_handler(DistortrError)
    async def handle_distortr_error(request: Request, exc: DistortrError) -> JSONResponse:
        logger.error(f"Unhandled error on {request.url.path}: {exc!r}", exc_info=exc)
        return _generic_error(500)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unexpected error on {request.url.path}: {exc!r}", exc_info=exc)
        return _generic_error(500)

    # -----------------------------------------------------------------------
    # Template routes.
    # -----------------------------------------------------------------------

    def _render(request: Request, name: str) -> Response:
        logger.info(f"Serving {request.url.path}")
        registry: TemplateRegistry = request.app.state.templates
        return Response(content=registry.render(name), media_type=MEDIA_TYPES[name])

    @app.get("/")
    async def index(request: Request) -> Response:
        """Serve the rendered upload page."""
        return _render(request, INDEX_TEMPLATE)

    @app.get("/style.css")
    async def stylesheet(request: Request) -> Response:
        """Serve the rendered stylesheet."""
        return _render(request, STYLESHEET_TEMPLATE)

    @app.get("/main.js")
    async def script(request: Request) -> Response:
        """Serve the rendered front-end script."""
        return _render(request, SCRIPT_TEMPLATE)

    # -----------------------------------------------------------------------
    # Image routes.
    # -----------------------------------------------------------------------

    @app.post(
        "/upload",
        response_model=UploadResponse,
        responses={413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def upload(request: Request) -> UploadResponse:
        """Distort the raw request body and store the result.

        The body is the encoded image itself, not a multipart form.  The
        distortion runs in the threadpool; only the final insert touches the
        store, so a failed upload never leaves an entry behind.

        Returns:
            :class:`UploadResponse` with the retrieval path of the new image.

        Raises:
            HTTPException: 413 if the body exceeds ``max_upload_bytes``.
            DecodeError: If the body is not an image (handled as 500).
            TransformError: If distortion fails (handled as 500).
        """
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > config.max_upload_bytes:
            logger.warning(
                f"Rejected upload declaring {declared} bytes (limit {config.max_upload_bytes})"
            )
            raise HTTPException(status_code=413, detail="Upload too large")

        # Chunked bodies carry no length header, so check again once buffered.
        body = await request.body()
        if len(body) > config.max_upload_bytes:
            logger.warning(f"Rejected {len(body)} byte upload (limit {config.max_upload_bytes})")
            raise HTTPException(status_code=413, detail="Upload too large")

        rng = rng_factory() if rng_factory is not None else None
        data = await run_in_threadpool(distort, body, rng=rng, settings=settings)

        image_store: ImageStore = request.app.state.store
        image_id = image_store.add(StoredImage(content_type=OUTPUT_CONTENT_TYPE, data=data))
        logger.info(f"Stored image {render_id(image_id)} ({len(body)} -> {len(data)} bytes)")

        return UploadResponse(src=image_url(image_id))

    @app.get(
        "/images/{image_ref}",
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    )
    async def get_image(image_ref: str, request: Request) -> Response:
        """Return a stored image with its stored content type.

        ``image_ref`` is the image id, optionally followed by ``.jpg``.

        Raises:
            HTTPException: 400 for a malformed id, 404 for an unknown one.
        """
        try:
            image_id = parse_image_ref(image_ref)
        except InvalidIdentifier as e:
            logger.info(f"Bad image reference: {e}")
            raise HTTPException(status_code=400, detail="Invalid image id") from e

        image_store: ImageStore = request.app.state.store
        image = image_store.get(image_id)
        if image is None:
            logger.debug(f"Image {render_id(image_id)} not found")
            raise HTTPException(status_code=404, detail="Image not found")

        return Response(
            content=image.data,
            media_type=image.content_type,
            headers={"Cache-Control": IMMUTABLE_CACHE},
        )

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz(request: Request) -> HealthResponse:
        """Report liveness and the number of stored images."""
        return HealthResponse(version=__version__, images=len(request.app.state.store))

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Host, port and log level come from the global config
    (``DISTORTR_SERVER_HOST``, ``DISTORTR_SERVER_PORT``,
    ``DISTORTR_LOG_LEVEL``).  Registered as the ``distortr`` console script.
    """
    import uvicorn

    configure_logging(default_config.log_level)
    uvicorn.run(
        "distortr.api.main:app",
        host=default_config.server_host,
        port=default_config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
