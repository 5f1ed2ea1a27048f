from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from starlette.concurrency import run_in_threadpool

from . import auth, storage
from .chart import chart_days
from .db import init_db, today_local
from .errors import AuthError, InvalidInput, NotFound, StoreError, StorageError, StrideFlowError
from .models import (
    ChartDayModel,
    CredentialsRequest,
    OkResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SessionResponse,
    StatsResponse,
    WalkingListResponse,
    WalkingRecord,
    WalkingStats,
    WalkingUpsertRequest,
    WalkingUpsertResponse,
)
from .profile import ensure_profile, update_profile, update_profile_image
from .walking import delete_record, fetch_records, load_snapshot, upsert_record

logger = logging.getLogger(__name__)

app = FastAPI(title="StrideFlow", version="0.1.0")

session_events = auth.SessionEvents()


def _on_session_change(user_id: str | None) -> None:
    if user_id is None:
        logger.info("Session ended")
        return
    ensure_profile(user_id, auth.get_user_email(user_id))


session_events.subscribe(_on_session_change)


@app.on_event("startup")
def _startup() -> None:
    init_db()


@app.exception_handler(StrideFlowError)
async def _strideflow_error(request: Request, exc: StrideFlowError) -> JSONResponse:
    if isinstance(exc, (StoreError, StorageError)):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    logger.warning("%s %s rejected (invalid_input): %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content=InvalidInput(message).to_dict())


def bearer_token(authorization: str | None = Header(default=None)) -> str:
    return auth.parse_bearer(authorization)


def current_user_id(token: str = Depends(bearer_token)) -> str:
    user_id = auth.resolve_session(token)
    if user_id is None:
        raise AuthError("Session expired. Please sign in again.")
    return user_id


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/auth/signup", response_model=SessionResponse, status_code=201)
def signup(req: CredentialsRequest) -> SessionResponse:
    session = auth.sign_up(req.email, req.password, events=session_events)
    return SessionResponse(userId=session.user_id, token=session.token)


@app.post("/api/auth/signin", response_model=SessionResponse)
def signin(req: CredentialsRequest) -> SessionResponse:
    session = auth.sign_in(req.email, req.password, events=session_events)
    return SessionResponse(userId=session.user_id, token=session.token)


@app.post("/api/auth/signout", response_model=OkResponse)
def signout(token: str = Depends(bearer_token)) -> OkResponse:
    auth.sign_out(token, events=session_events)
    return OkResponse(ok=True)


@app.get("/api/walking", response_model=WalkingListResponse)
def list_walking(user_id: str = Depends(current_user_id)) -> WalkingListResponse:
    return WalkingListResponse(records=[WalkingRecord.from_record(r) for r in fetch_records(user_id)])


@app.post("/api/walking", response_model=WalkingUpsertResponse)
def add_walking(
    req: WalkingUpsertRequest,
    today: Optional[date] = None,
    user_id: str = Depends(current_user_id),
) -> WalkingUpsertResponse:
    record = upsert_record(user_id, req.date, req.minutes)
    snapshot = load_snapshot(user_id, today or today_local())
    return WalkingUpsertResponse(
        record=WalkingRecord.from_record(record),
        stats=WalkingStats.from_snapshot(snapshot),
    )


@app.delete("/api/walking/{day}", response_model=OkResponse)
def remove_walking(day: str, user_id: str = Depends(current_user_id)) -> OkResponse:
    if not delete_record(user_id, day):
        raise NotFound("No walking data for that date")
    return OkResponse(ok=True)


@app.get("/api/stats", response_model=StatsResponse)
def stats(today: Optional[date] = None, user_id: str = Depends(current_user_id)) -> StatsResponse:
    # Resolved once so the series, the badges and the labels share one "today".
    today = today or today_local()
    snapshot = load_snapshot(user_id, today)
    return StatsResponse(
        today=today,
        stats=WalkingStats.from_snapshot(snapshot),
        days=[ChartDayModel.from_chart_day(d) for d in chart_days(today)],
    )


@app.get("/api/profile", response_model=ProfileResponse)
def get_profile(user_id: str = Depends(current_user_id)) -> dict:
    return ensure_profile(user_id, auth.get_user_email(user_id))


@app.put("/api/profile", response_model=ProfileResponse)
def put_profile(req: ProfileUpdateRequest, user_id: str = Depends(current_user_id)) -> dict:
    ensure_profile(user_id, auth.get_user_email(user_id))
    return update_profile(user_id, display_name=req.display_name)


@app.post("/api/profile/image", response_model=ProfileResponse)
async def upload_profile_image(
    request: Request,
    content_type: str | None = Header(default=None),
    content_length: int | None = Header(default=None),
    user_id: str = Depends(current_user_id),
) -> dict:
    if content_length is not None and content_length > storage.MAX_IMAGE_BYTES:
        raise InvalidInput("Image must be smaller than 5MB")
    data = await request.body()
    ct = storage.validate_image(content_type, len(data))
    return await run_in_threadpool(_store_profile_image, user_id, ct, data)


def _store_profile_image(user_id: str, content_type: str, data: bytes) -> dict:
    path = storage.build_image_path(user_id, content_type)
    url = storage.upload(path, data)
    try:
        ensure_profile(user_id, auth.get_user_email(user_id))
        return update_profile_image(user_id, url)
    except StrideFlowError:
        storage.remove(path)
        raise


@app.get("/media/{bucket}/{path:path}")
def media(bucket: str, path: str) -> FileResponse:
    if bucket != storage.BUCKET:
        raise NotFound("Object not found")
    return FileResponse(storage.open_object(path))
