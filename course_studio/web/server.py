"""FastAPI application exposing the course content engine."""

from __future__ import annotations

import contextvars
import logging
import uuid
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.types import ASGIApp, Receive, Scope, Send

from ..config import AppConfig
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..services.access import Principal
from ..services.events import emit_db_event, emit_structured_event
from ..services.lifecycle import ChapterDetail, CourseDetail, CourseLifecycleManager
from ..services.storage import ChapterRecord, ContentRepository, CourseRecord, VideoRecord


_REQUEST_ID_VAR: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "course_studio_request_id",
    default=None,
)
_ACTOR_VAR: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "course_studio_actor",
    default=None,
)

_SERVER_ERROR_DETAIL = "Server error"


def _new_correlation_id() -> str:
    return uuid.uuid4().hex


def _collect_correlation_context() -> Dict[str, str]:
    context: Dict[str, str] = {}
    request_id = _REQUEST_ID_VAR.get()
    if request_id:
        context["request_id"] = str(request_id)
    actor = _ACTOR_VAR.get()
    if actor:
        context["actor"] = str(actor)
    return context


class RequestContextMiddleware:
    """Assign a correlation identifier to each request and expose it via contextvars."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = _new_correlation_id()
        scope_state = scope.get("state")
        if scope_state is None:
            scope_state = {}
            scope["state"] = scope_state
        if isinstance(scope_state, dict):
            scope_state["request_id"] = request_id
        else:
            setattr(scope_state, "request_id", request_id)

        method = scope.get("method")
        actor_hint = f"request:{method.upper()}" if isinstance(method, str) else "request"
        request_token = _REQUEST_ID_VAR.set(request_id)
        actor_token = _ACTOR_VAR.set(actor_hint)

        async def send_with_request_id(message: Dict[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers") or [])
                headers.append((b"x-request-id", request_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            _ACTOR_VAR.reset(actor_token)
            _REQUEST_ID_VAR.reset(request_token)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that injects correlation context into records."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple[Any, Dict[str, Any]]:  # type: ignore[override]
        extra: Dict[str, Any] = dict(self.extra)
        provided = kwargs.get("extra")
        if isinstance(provided, dict):
            extra.update(provided)
        for key, value in _collect_correlation_context().items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


LOGGER = ContextualLoggerAdapter(logging.getLogger(__name__), {})
EVENT_LOGGER = ContextualLoggerAdapter(logging.getLogger("course_studio.web.events"), {})


def _emit_db_event(
    action: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.DEBUG,
) -> None:
    emit_db_event(
        action,
        payload=payload,
        correlation=_collect_correlation_context(),
        duration_ms=duration_ms,
        level=level,
        logger=EVENT_LOGGER,
    )


def _log_event(message: str, **context: Any) -> None:
    emit_structured_event(
        "APP_EVENT",
        message,
        context=context,
        correlation=_collect_correlation_context(),
        level=logging.INFO,
        logger=EVENT_LOGGER,
    )


class CourseCreatePayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None


class CourseUpdatePayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None


class ChapterCreatePayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ChapterUpdatePayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ChapterReorderPayload(BaseModel):
    chapter_ids: List[int] = Field(default_factory=list)


class VideoCreatePayload(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[str] = None


class VideoUpdatePayload(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[str] = None
    is_active: Optional[bool] = None


class VideoReorderPayload(BaseModel):
    video_ids: List[int] = Field(default_factory=list)


def _normalize_root_path(value: Optional[str]) -> str:
    if value is None:
        return ""
    normalized = value.strip()
    if not normalized:
        return ""
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return normalized.rstrip("/")


def _serialize_course(record: CourseRecord) -> Dict[str, Any]:
    return asdict(record)


def _serialize_chapter(record: ChapterRecord) -> Dict[str, Any]:
    return asdict(record)


def _serialize_video(record: VideoRecord) -> Dict[str, Any]:
    return asdict(record)


def _serialize_chapter_detail(detail: ChapterDetail) -> Dict[str, Any]:
    payload = _serialize_chapter(detail.chapter)
    payload["videos"] = [_serialize_video(video) for video in detail.videos]
    return payload


def _serialize_course_detail(detail: CourseDetail) -> Dict[str, Any]:
    payload = _serialize_course(detail.course)
    payload["chapters"] = [_serialize_chapter_detail(chapter) for chapter in detail.chapters]
    return payload


async def get_principal(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Principal:
    """Read the already-authenticated caller from the proxy-provided headers."""

    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return Principal.from_values(x_user_id, x_user_role)


def create_app(
    repository: ContentRepository,
    *,
    config: AppConfig,
    root_path: str | None = None,
) -> FastAPI:
    """Return a configured FastAPI application."""

    normalized_root = _normalize_root_path(root_path)
    app = FastAPI(
        title="Course Studio",
        description="Manage courses, chapters and videos",
        root_path=normalized_root,
    )
    app.state.server = None

    def _repository_event_emitter(action: str, **kwargs: Any) -> None:
        _emit_db_event(action, **kwargs)

    configure_emitter = getattr(repository, "configure_event_emitter", None)
    if callable(configure_emitter):
        configure_emitter(_repository_event_emitter)

    manager = CourseLifecycleManager(repository, page_size=config.page_size)
    app.state.manager = manager

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def _handle_validation_error(request: Request, error: ValidationError) -> JSONResponse:
        LOGGER.info("Rejected %s %s: %s", request.method, request.url.path, error.message)
        body: Dict[str, Any] = {"detail": error.message}
        if error.field:
            body["field"] = error.field
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation(
        request: Request, error: RequestValidationError
    ) -> JSONResponse:
        LOGGER.info("Malformed request for %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request", "errors": jsonable_encoder(error.errors())},
        )

    @app.exception_handler(ForbiddenError)
    async def _handle_forbidden(request: Request, error: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": error.message})

    @app.exception_handler(NotFoundError)
    async def _handle_not_found(request: Request, error: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": error.message})

    @app.exception_handler(Exception)
    async def _handle_unexpected(request: Request, error: Exception) -> JSONResponse:
        LOGGER.exception("Unhandled error for %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": _SERVER_ERROR_DETAIL},
        )

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    @app.get("/api/courses")
    async def list_courses(
        status_filter: Optional[str] = Query(None, alias="status"),
        page: int = Query(1, ge=1),
        limit: Optional[int] = Query(None, ge=1, le=100),
        principal: Principal = Depends(get_principal),
    ) -> Dict[str, Any]:
        result = manager.list_courses(principal, status=status_filter, page=page, limit=limit)
        _log_event("Listed courses", principal=principal.id, count=len(result.items), page=page)
        return {
            "courses": [_serialize_course(record) for record in result.items],
            "pagination": {
                "page": result.page,
                "limit": result.limit,
                "total": result.total,
                "pages": result.pages,
            },
        }

    @app.post("/api/courses", status_code=status.HTTP_201_CREATED)
    async def create_course(
        payload: CourseCreatePayload,
        principal: Principal = Depends(get_principal),
    ) -> Dict[str, Any]:
        record = manager.create_course(
            principal,
            name=payload.name,
            description=payload.description,
            thumbnail=payload.thumbnail,
        )
        _log_event("Created course", course_id=record.id, principal=principal.id)
        return {"course": _serialize_course(record)}

    @app.get("/api/courses/{course_id}")
    async def get_course(course_id: int, principal: Principal = Depends(get_principal)) -> Dict[str, Any]:
        detail = manager.get_course(principal, course_id)
        return {"course": _serialize_course_detail(detail)}

    @app.put("/api/courses/{course_id}")
    async def update_course(
        course_id: int,
        payload: CourseUpdatePayload,
        principal: Principal = Depends(get_principal),
    ) -> Dict[str, Any]:
        record = manager.update_course(
            principal,
            course_id,
            name=payload.name,
            description=payload.description,
            thumbnail=payload.thumbnail,
        )
        _log_event("Updated course", course_id=course_id)
        return {"course": _serialize_course(record)}

    @app.patch("/api/courses/{course_id}/publish")
    async def toggle_publish(course_id: int, principal: Principal = Depends(get_principal)) -> Dict[str, Any]:
        record = manager.toggle_publish(principal, course_id)
        _log_event("Toggled course status", course_id=course_id, status=record.status)
        return {"course": _serialize_course(record)}

    @app.delete(
        "/api/courses/{course_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
    )
    async def delete_course(course_id: int, principal: Principal = Depends(get_principal)) -> Response:
        report = manager.delete_course(principal, course_id)
        _log_event(
            "Deleted course",
            course_id=course_id,
            chapter_count=len(report.deleted_chapters),
            video_count=len(report.deleted_videos),
            failures=len(report.failures),
        )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------
    @app.get("/api/courses/{course_id}/chapters")
    async def list_chapters(course_id: int, principal: Principal = Depends(get_principal)) -> Dict[str, Any]:
        chapters = manager.list_chapters(principal, course_id)
        return {"chapters": [_serialize_chapter_detail(detail) for detail in chapters]}

    @app.post("/api/courses/{course_id}/chapters", status_code=status.HTTP_201_CREATED)
    async def create_chapter(
        course_id: int,
        payload: ChapterCreatePayload,
        principal: Principal = Depends(get_principal),
    ) -> Dict[str, Any]:
        record = manager.create_chapter(
            principal,
            course_id,
            name=payload.name,
            description=payload.description,
        )
        _log_event("Created chapter", course_id=course_id, chapter_id=record.id)
        return {"chapter": _serialize_chapter(record)}

    @app.post("/api/courses/{course_id}/chapters/reorder")
    async def reorder_chapters(
        course_id: int,
        payload: ChapterReorderPayload,
        principal: Principal = Depends(get_principal),
    ) -> Dict[str, Any]:
        chapters = manager.reorder_chapters(principal, course_id, payload.chapter_ids)
        _log_event("Reordered chapters", course_id=course_id, chapter_count=len(payload.chapter_ids))
        return {"chapters": [_serialize_chapter(record) for record in chapters]}

    @app.get("/api/chapters/{chapter_id}")
    async def get_chapter(chapter_id: int, principal: Principal = Depends(get_principal)) -> Dict[str, Any]:
        detail = manager.get_chapter(principal, chapter_id)
        return {"chapter": _serialize_chapter_detail(detail)}

    @app.put("/api/chapters/{chapter_id}")
    async def update_chapter(
        chapter_id: int,
        payload: ChapterUpdatePayload,
        principal: Principal = Depends(get_principal),
    ) -> Dict[str, Any]:
        record = manager.update_chapter(
            principal,
            chapter_id,
            name=payload.name,
            description=payload.description,
        )
        return {"chapter": _serialize_chapter(record)}

    @app.delete(
        "/api/chapters/{chapter_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
    )
    async def delete_chapter(chapter_id: int, principal: Principal = Depends(get_principal)) -> Response:
        report = manager.delete_chapter(principal, chapter_id)
        _log_event(
            "Deleted chapter",
            chapter_id=chapter_id,
            video_count=len(report.deleted_videos),
            failures=len(report.failures),
        )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------
    @app.get("/api/chapters/{chapter_id}/videos")
    async def list_videos(chapter_id: int, principal: Principal = Depends(get_principal)) -> Dict[str, Any]:
        videos = manager.list_videos(principal, chapter_id)
        return {"videos": [_serialize_video(record) for record in videos]}

    @app.post("/api/chapters/{chapter_id}/videos", status_code=status.HTTP_201_CREATED)
    async def create_video(
        chapter_id: int,
        payload: VideoCreatePayload,
        principal: Principal = Depends(get_principal),
    ) -> Dict[str, Any]:
        record = manager.create_video(
            principal,
            chapter_id,
            title=payload.title,
            description=payload.description,
            video_url=payload.video_url,
            thumbnail=payload.thumbnail,
            duration=payload.duration,
        )
        _log_event("Created video", chapter_id=chapter_id, video_id=record.id)
        return {"video": _serialize_video(record)}

    @app.post("/api/chapters/{chapter_id}/videos/reorder")
    async def reorder_videos(
        chapter_id: int,
        payload: VideoReorderPayload,
        principal: Principal = Depends(get_principal),
    ) -> Dict[str, Any]:
        videos = manager.reorder_videos(principal, chapter_id, payload.video_ids)
        _log_event("Reordered videos", chapter_id=chapter_id, video_count=len(payload.video_ids))
        return {"videos": [_serialize_video(record) for record in videos]}

    @app.get("/api/videos/{video_id}")
    async def get_video(video_id: int, principal: Principal = Depends(get_principal)) -> Dict[str, Any]:
        return {"video": _serialize_video(manager.get_video(principal, video_id))}

    @app.put("/api/videos/{video_id}")
    async def update_video(
        video_id: int,
        payload: VideoUpdatePayload,
        principal: Principal = Depends(get_principal),
    ) -> Dict[str, Any]:
        record = manager.update_video(
            principal,
            video_id,
            title=payload.title,
            description=payload.description,
            video_url=payload.video_url,
            thumbnail=payload.thumbnail,
            duration=payload.duration,
            is_active=payload.is_active,
        )
        return {"video": _serialize_video(record)}

    @app.delete(
        "/api/videos/{video_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
    )
    async def delete_video(video_id: int, principal: Principal = Depends(get_principal)) -> Response:
        manager.delete_video(principal, video_id)
        _log_event("Deleted video", video_id=video_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/api/videos/{video_id}/views")
    async def record_view(video_id: int, principal: Principal = Depends(get_principal)) -> Dict[str, Any]:
        return {"video": _serialize_video(manager.record_view(principal, video_id))}

    return app


__all__ = ["ContextualLoggerAdapter", "RequestContextMiddleware", "create_app", "get_principal"]
