"""FastAPI application — push notification endpoints and event actions.

Run with ``uvicorn campus_push.main:create_app --factory``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import NoReturn

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from campus_push.config import get_settings
from campus_push.container import ServiceContainer, build_container
from campus_push.domain.models import (
    CreateEventRequest,
    Event,
    EventDetail,
    MemberActionRequest,
    Membership,
    PushTokenRequest,
    SendPushRequest,
    SendPushResponse,
    SweepResult,
    UpdateEventRequest,
)
from campus_push.errors import (
    CampusPushError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    UpstreamFetchError,
    ValidationError,
)
from campus_push.log import configure_logging, get_logger

logger = get_logger(__name__)

router = APIRouter()

_STATUS_BY_ERROR: dict[type[CampusPushError], int] = {
    ValidationError: 400,
    PermissionDeniedError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    UpstreamFetchError: 500,
}


def _raise_http(exc: CampusPushError) -> NoReturn:
    status = next(
        (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500
    )
    if status >= 500:
        logger.error("Request failed: %s", exc)
    raise HTTPException(status_code=status, detail=str(exc)) from exc


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return "Invalid JSON body"
    missing = [
        str(err["loc"][-1])
        for err in errors
        if err.get("type") in ("missing", "string_too_short") and err.get("loc")
    ]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    return "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in errors
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": _describe_validation_error(exc)})


async def _http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# ── Push notification routes ─────────────────────────────────────────


@router.post("/send-push", response_model=SendPushResponse)
def send_push(
    payload: SendPushRequest, container: ServiceContainer = Depends(get_container)
) -> SendPushResponse:
    """Notify the people affected by a join, update or cancel."""
    try:
        sent = container.notifier.notify(
            payload.type, payload.event_id, payload.actor_id
        )
    except CampusPushError as exc:
        _raise_http(exc)
    return SendPushResponse(sent=sent)


@router.api_route(
    "/event-reminders", methods=["GET", "POST"], response_model=SweepResult
)
def event_reminders(container: ServiceContainer = Depends(get_container)) -> SweepResult:
    """Run one reminder sweep. Meant to be hit by a cron every few minutes."""
    try:
        return container.sweep.run()
    except UpstreamFetchError as exc:
        logger.error("Reminder sweep aborted: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch events") from exc


# ── Event action routes ──────────────────────────────────────────────


@router.post("/events", response_model=Event, status_code=201)
def create_event(
    body: CreateEventRequest, container: ServiceContainer = Depends(get_container)
) -> Event:
    try:
        return container.actions.create(body)
    except CampusPushError as exc:
        _raise_http(exc)


@router.get("/events/{event_id}", response_model=EventDetail)
def get_event(
    event_id: str, container: ServiceContainer = Depends(get_container)
) -> EventDetail:
    try:
        return container.actions.detail(event_id)
    except CampusPushError as exc:
        _raise_http(exc)


@router.patch("/events/{event_id}", response_model=Event)
def update_event(
    event_id: str,
    body: UpdateEventRequest,
    container: ServiceContainer = Depends(get_container),
) -> Event:
    """Change time or location; members are notified in the background."""
    try:
        return container.actions.update(event_id, body)
    except CampusPushError as exc:
        _raise_http(exc)


@router.post("/events/{event_id}/join", response_model=Membership, status_code=201)
def join_event(
    event_id: str,
    body: MemberActionRequest,
    container: ServiceContainer = Depends(get_container),
) -> Membership:
    try:
        return container.actions.join(event_id, body.user_id)
    except CampusPushError as exc:
        _raise_http(exc)


@router.post("/events/{event_id}/leave")
def leave_event(
    event_id: str,
    body: MemberActionRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    try:
        container.actions.leave(event_id, body.user_id)
    except CampusPushError as exc:
        _raise_http(exc)
    return {"status": "left"}


@router.post("/events/{event_id}/cancel", response_model=Event)
def cancel_event(
    event_id: str,
    body: MemberActionRequest,
    container: ServiceContainer = Depends(get_container),
) -> Event:
    try:
        return container.actions.cancel(event_id, body.user_id)
    except CampusPushError as exc:
        _raise_http(exc)


@router.put("/profiles/{user_id}/push-token")
def register_push_token(
    user_id: str,
    body: PushTokenRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    try:
        container.actions.register_push_token(user_id, body.expo_push_token)
    except CampusPushError as exc:
        _raise_http(exc)
    return {"status": "saved"}


# ── App factory ──────────────────────────────────────────────────────


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Build the app around *container*, or a production one from settings."""
    if container is None:
        settings = get_settings()
        configure_logging(settings)
        container = build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.container.close()

    app = FastAPI(title="Campus Push Service", lifespan=lifespan)
    app.state.container = container
    app.include_router(router)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    return app
