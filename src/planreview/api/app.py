"""FastAPI app exposing plans, review state and the change event stream."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse

from planreview.config import Settings, load_settings
from planreview.errors import ReviewValidationError, StorageIOError
from planreview.logging import configure_logging, get_logger
from planreview.models.base import CamelModel
from planreview.models.listing import PlanListItem
from planreview.models.plan import ParsedPlan
from planreview.models.review import Comment, PlanCommentFile, SectionReview
from planreview.notify.broker import EventBroker
from planreview.notify.watcher import DirectoryWatcher
from planreview.store.plan_index import PlanIndex
from planreview.store.review_store import ReviewStore

KEEPALIVE_S = 15.0


class AddCommentRequest(CamelModel):
    """Add-comment request. Missing fields are reported as validation errors (400)."""

    section_id: str = ""
    text: str = ""
    heading: str = ""


class SectionStatusRequest(CamelModel):
    status: str = ""
    heading: str | None = None


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create FastAPI app."""

    settings = settings or load_settings()
    configure_logging(settings.log_level)
    logger = get_logger(__name__)

    locations = settings.locations()
    store = ReviewStore(locations, default_author=settings.default_author)
    index = PlanIndex(locations, store)
    broker = EventBroker(max_queue_size=settings.subscriber_queue_size)
    watcher = DirectoryWatcher(
        locations,
        broker,
        stability_threshold=settings.watch_stability_s,
        poll_interval=settings.watch_poll_interval_s,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if settings.watch_enabled:
            watcher.start()
        try:
            yield
        finally:
            await watcher.stop()

    app = FastAPI(title="planreview", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.review_store = store
    app.state.plan_index = index
    app.state.broker = broker
    app.state.watcher = watcher

    @app.exception_handler(ReviewValidationError)
    async def on_validation_error(_: Request, exc: ReviewValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def on_request_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        # Malformed bodies get the same 400 shape as store-level validation.
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or 'body'}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {problems}"})

    @app.exception_handler(StorageIOError)
    async def on_storage_error(request: Request, exc: StorageIOError) -> JSONResponse:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": "Storage failure"})

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/plans", response_model_exclude_none=True)
    def list_plans() -> list[PlanListItem]:
        return index.list()

    @app.post("/api/plans/refresh")
    def refresh_plans() -> dict[str, int]:
        return {"count": index.refresh()}

    @app.get("/api/plans/{plan_id}", response_model_exclude_none=True)
    def get_plan(plan_id: str) -> ParsedPlan:
        plan = index.get(plan_id)
        if plan is None:
            raise HTTPException(status_code=404, detail="Plan not found")
        return plan

    @app.get("/api/comments/{plan_id}", response_model_exclude_none=True)
    def get_comments(plan_id: str) -> PlanCommentFile:
        data = store.get(plan_id)
        if data is None:
            # No review yet: an empty structure, not a 404.
            return PlanCommentFile(plan_id=plan_id, plan_path="")
        return data

    @app.post("/api/comments/{plan_id}", status_code=201, response_model_exclude_none=True)
    def add_comment(plan_id: str, req: AddCommentRequest) -> Comment:
        return store.add_comment(plan_id, req.section_id, req.text, req.heading)

    @app.patch("/api/comments/{plan_id}/{comment_id}", response_model_exclude_none=True)
    def update_comment(plan_id: str, comment_id: str, changes: dict[str, Any] = Body(...)) -> Comment:
        comment = store.update_comment(plan_id, comment_id, changes)
        if comment is None:
            raise HTTPException(status_code=404, detail="Comment not found")
        return comment

    @app.delete("/api/comments/{plan_id}/{comment_id}", status_code=204)
    def delete_comment(plan_id: str, comment_id: str) -> Response:
        if not store.delete_comment(plan_id, comment_id):
            raise HTTPException(status_code=404, detail="Comment not found")
        return Response(status_code=204)

    @app.patch("/api/sections/{plan_id}/{section_id}/status", response_model_exclude_none=True)
    def set_section_status(plan_id: str, section_id: str, req: SectionStatusRequest) -> SectionReview:
        return store.set_section_status(plan_id, section_id, req.status, req.heading)

    @app.get("/api/events")
    async def events(request: Request) -> StreamingResponse:
        async def gen() -> AsyncGenerator[bytes, None]:
            async with broker.subscribe() as sub:
                yield b": connected\n\n"
                while not await request.is_disconnected():
                    try:
                        event = await asyncio.wait_for(sub.get(), timeout=KEEPALIVE_S)
                    except asyncio.TimeoutError:
                        yield b": keepalive\n\n"
                        continue
                    yield f"data: {event.to_json()}\n\n".encode("utf-8")

        return StreamingResponse(gen(), media_type="text/event-stream")

    logger.info("Serving plans from %s (reviews in %s)", locations.plans_dir, locations.reviews_dir)
    return app
