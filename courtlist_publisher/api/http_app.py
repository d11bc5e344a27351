from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import Awaitable, Callable
from datetime import date
import logging

from fastapi import FastAPI, HTTPException, Query, Response

from courtlist_publisher.api.handlers.deps import ApiDeps
from courtlist_publisher.api.handlers.files import download_file_handler, list_files_handler
from courtlist_publisher.api.handlers.publish import publish_court_list_handler
from courtlist_publisher.api.handlers.status import find_court_list_statuses_handler, get_court_list_status_handler
from courtlist_publisher.api.schemas import (
    CourtListStatusListResponse,
    CourtListStatusResponse,
    DispatcherMetrics,
    ErrorResponse,
    HealthResponse,
    PublishCourtListRequest,
    PublishCourtListResponse,
    ReadyResponse,
    StoredFileListResponse,
)
from courtlist_publisher.domain.errors import (
    ArtifactNotFound,
    DispatchRejected,
    DomainError,
    DomainValidationError,
    InvalidTransition,
    NotFound,
    StorageFailed,
)
from courtlist_publisher.workers.dispatcher import AsyncPublishDispatcher

PDF_MEDIA_TYPE = "application/pdf"


def _http_error(exc: DomainError) -> HTTPException:
    if isinstance(exc, (NotFound, ArtifactNotFound)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DomainValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, InvalidTransition):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, DispatchRejected):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, StorageFailed):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def build_app(
    role: str,
    run_id: str,
    api_deps: ApiDeps | None = None,
    on_startup: Callable[[], Awaitable[None]] | None = None,
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    logger = logging.getLogger("runtime")
    dispatcher = api_deps.dispatcher if api_deps is not None else None
    async_dispatcher = dispatcher if isinstance(dispatcher, AsyncPublishDispatcher) else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        del app
        logger.info(
            "role started",
            extra={"role": role, "service": role, "run_id": run_id},
        )

        if on_startup is not None:
            await on_startup()

        yield

        if on_shutdown is not None:
            await on_shutdown()

        logger.info(
            "role stopped",
            extra={"role": role, "service": role, "run_id": run_id},
        )

    app = FastAPI(title="courtlist-publisher", version="0.1.0", lifespan=lifespan)

    def _deps() -> ApiDeps:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        return api_deps

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", role=role)

    @app.get("/ready", response_model=ReadyResponse, tags=["System"])
    async def ready() -> ReadyResponse:
        dispatcher_enabled = async_dispatcher is not None
        dispatcher_ready = True
        metrics = DispatcherMetrics(
            started=False,
            stopped=False,
            accepted_total=0,
            rejected_total=0,
            runs_total=0,
            errors_total=0,
            coalesced_total=0,
            in_flight=0,
            queue_depth=0,
        )
        if async_dispatcher is not None:
            state = async_dispatcher.state
            dispatcher_ready = async_dispatcher.running
            metrics = DispatcherMetrics(
                started=state.started,
                stopped=state.stopped,
                accepted_total=state.accepted_total,
                rejected_total=state.rejected_total,
                runs_total=state.runs_total,
                errors_total=state.errors_total,
                coalesced_total=state.coalesced_total,
                in_flight=state.in_flight,
                queue_depth=async_dispatcher.queue_depth,
            )
        return ReadyResponse(
            status="ready" if dispatcher_ready else "starting",
            role=role,
            dispatcher_enabled=dispatcher_enabled,
            dispatcher_ready=dispatcher_ready,
            dispatcher_metrics=metrics,
        )

    @app.post(
        "/court-lists/publish",
        status_code=202,
        response_model=PublishCourtListResponse,
        responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Court lists"],
    )
    async def publish_court_list(request: PublishCourtListRequest) -> PublishCourtListResponse:
        try:
            return await publish_court_list_handler(request, api_deps=_deps())
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.get(
        "/court-lists/status",
        response_model=CourtListStatusListResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Court lists"],
    )
    async def find_court_list_statuses(
        court_centre_id: str | None = Query(default=None, min_length=1),
        court_list_id: str | None = Query(default=None, min_length=1),
        publish_date: date | None = Query(default=None),
        court_list_type: str | None = Query(default=None, min_length=1),
    ) -> CourtListStatusListResponse:
        try:
            return await find_court_list_statuses_handler(
                api_deps=_deps(),
                court_centre_id=court_centre_id,
                court_list_id=court_list_id,
                publish_date=publish_date,
                court_list_type=court_list_type,
            )
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.get(
        "/court-lists/{court_list_id}/status",
        response_model=CourtListStatusResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Court lists"],
    )
    async def get_court_list_status(court_list_id: str) -> CourtListStatusResponse:
        try:
            return await get_court_list_status_handler(court_list_id=court_list_id, api_deps=_deps())
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.get(
        "/files",
        response_model=StoredFileListResponse,
        responses={502: {"model": ErrorResponse}},
        tags=["Files"],
    )
    async def list_files(folder: str | None = Query(default=None)) -> StoredFileListResponse:
        try:
            return await list_files_handler(folder=folder, api_deps=_deps())
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.get(
        "/files/{reference:path}",
        response_class=Response,
        responses={200: {"content": {PDF_MEDIA_TYPE: {}}}, 404: {"model": ErrorResponse}},
        tags=["Files"],
    )
    async def download_file(reference: str) -> Response:
        try:
            payload = await download_file_handler(reference=reference, api_deps=_deps())
        except DomainError as exc:
            raise _http_error(exc) from exc
        name = reference.rsplit("/", maxsplit=1)[-1]
        return Response(
            content=payload,
            media_type=PDF_MEDIA_TYPE,
            headers={"Content-Disposition": f'inline; filename="{name}"'},
        )

    return app
