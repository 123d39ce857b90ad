"""
FastAPI application exposing upload and download of content-addressed files.

Usage:
    python -m hashserve
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, Header, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException

import hashserve.utils as u
from .__meta__ import __version__
from .config import Settings
from .errors import BadRequest, HashServeError
from .fetch import RemoteFetcher
from .index import DedupIndex
from .ingest import IngestionPipeline, Receipt
from .layout import StorageLayout
from .retrieve import RetrievalPipeline

logger = logging.getLogger(__name__)

BODY_TOO_LARGE = "Request body is too large"


class BodyLimitMiddleware(object):
    """Reject request bodies larger than the limit configured for their path.

    A declared ``Content-Length`` over the limit is refused before anything
    is read. Bodies without one, such as chunked uploads, are counted as they
    arrive and abandoned as soon as the limit is crossed.

    Attributes:
        limits (dict): Maps request paths to their byte ceiling. Paths not
            listed are passed through untouched.
    """

    def __init__(self, app, limits):
        self.app = app
        self.limits = limits

    async def __call__(self, scope, receive, send):
        limit = self.limits.get(scope["path"]) if scope["type"] == "http" else None
        if limit is None:
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > limit:
            logger.warning("Refused %s body of %s bytes", scope["path"], length)
            response = PlainTextResponse(BODY_TOO_LARGE, status_code=400)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    logger.warning("Abandoned %s body after %d bytes", scope["path"], received)
                    # Raised while the form is parsed, then rendered by the
                    # HTTPException handler.
                    raise HTTPException(status_code=400, detail=BODY_TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)


def create_app(settings: Optional[Settings] = None,
               index: Optional[DedupIndex] = None,
               layout: Optional[StorageLayout] = None,
               fetcher: Optional[RemoteFetcher] = None) -> FastAPI:
    """Build the application. Collaborators that are not passed in are
    created from `settings`, which defaults to :meth:`Settings.from_env`.
    """
    settings = settings or Settings.from_env()
    layout = layout or StorageLayout(settings.uploads_dir, settings.uploads_dir_v2)
    owns_index = index is None
    index = index or DedupIndex(layout, settings.db_file)
    fetcher = fetcher or RemoteFetcher(timeout=settings.remote_fetch_timeout,
                                       max_size=settings.max_remote_size)

    ingestion = IngestionPipeline(index,
                                  layout,
                                  settings.api_key,
                                  fetcher=fetcher,
                                  max_upload_size=settings.max_upload_size)
    retrieval = RetrievalPipeline(index, layout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("hashserve %s ready", __version__)
        yield
        if owns_index:
            index.close()

    app = FastAPI(title="hashserve", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.ingestion = ingestion
    app.state.retrieval = retrieval

    # Multipart framing around the file part is charged to the form allowance.
    app.add_middleware(
        BodyLimitMiddleware,
        limits={
            "/upload": settings.max_upload_size + settings.max_form_size,
            "/upload-url": settings.max_form_size,
        },
    )

    @app.exception_handler(HashServeError)
    async def handle_error(request: Request, exc: HashServeError):
        return PlainTextResponse(exc.detail, status_code=exc.status_code)

    @app.exception_handler(HTTPException)
    async def handle_http_error(request: Request, exc: HTTPException):
        return PlainTextResponse(str(exc.detail),
                                 status_code=exc.status_code,
                                 headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return PlainTextResponse(BadRequest.default_detail, status_code=BadRequest.status_code)

    @app.get("/", response_class=PlainTextResponse)
    def hello():
        return "Hello, World!"

    @app.post("/upload", response_class=PlainTextResponse)
    def upload(file: Optional[UploadFile] = File(None),
               x_api_key: Optional[str] = Header(None)):
        fileobj = file.file if file is not None else None
        filename = file.filename if file is not None else None
        return _receipt_response(ingestion.upload(x_api_key, fileobj, filename))

    @app.post("/upload-url", response_class=PlainTextResponse)
    def upload_url(url: Optional[str] = Form(None),
                   filename: Optional[str] = Form(None),
                   x_api_key: Optional[str] = Header(None)):
        return _receipt_response(ingestion.upload_url(x_api_key, url, filename))

    @app.get("/files/{identifier}")
    def download(identifier: str):
        stored, fileobj = retrieval.open(identifier)
        return StreamingResponse(
            retrieval.stream(fileobj),
            media_type="application/octet-stream",
            headers={"Content-Disposition": u.content_disposition(stored.filename)},
        )

    return app


def _receipt_response(receipt: Receipt) -> PlainTextResponse:
    status_code = 200 if receipt.is_duplicate else 201
    return PlainTextResponse(receipt.identifier, status_code=status_code)
