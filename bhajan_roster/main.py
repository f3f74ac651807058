from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from bhajan_roster.config import load_settings
from bhajan_roster.db.database import Database
from bhajan_roster.errors import ConflictRetry, InvalidInput, RosterError, StaleReference, StorageUnavailable
from bhajan_roster.logging_utils import (
    clear_request_context,
    configure_logging,
    current_request_id,
    elapsed_ms,
    log_event,
    new_request_id,
    set_request_context,
)
from bhajan_roster.models import (
    CatalogBrowseResponse,
    CatalogEntryResponse,
    CatalogSearchResponse,
    EnsureSessionRequest,
    FestivalListsResponse,
    InstrumentRequest,
    MonthOccupancyResponse,
    PitchSuggestions,
    RosterSyncRequest,
    SessionDetailResponse,
    SessionIdResponse,
    SessionInstrument,
    SessionNotesRequest,
    Singer,
    SingerHistoryResponse,
    SyncSummary,
)
from bhajan_roster.services import instruments, lookups, roster_sync, session_registry
from bhajan_roster.services.catalog_index import CatalogIndex


logger = logging.getLogger(__name__)

EDIT_COOKIE = "edit"
EDIT_COOKIE_MAX_AGE = 60 * 60 * 24 * 365

settings = load_settings()
configure_logging(settings.log_level, json_output=settings.log_json)
database = Database(settings.db_path, timeout=settings.db_timeout_seconds)
catalog_index = CatalogIndex(
    lambda: lookups.catalog_titles(database),
    ttl_seconds=settings.catalog_cache_ttl_seconds,
    limit=settings.catalog_search_limit,
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    database.initialize()
    log_event(logger, "database_ready", db_path=database.path)
    yield


app = FastAPI(title="Bhajan Roster", lifespan=lifespan)


def edit_capability(request: Request) -> bool:
    return request.cookies.get(EDIT_COOKIE) == "1"


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or new_request_id()
    set_request_context(
        request_id=request_id,
        route=request.url.path,
        method=request.method,
        edit_mode=edit_capability(request),
    )
    started = time.perf_counter()
    log_event(logger, "request_started")
    try:
        response = await call_next(request)
    except Exception:
        log_event(logger, "request_completed", status_code=500, duration_ms=elapsed_ms(started))
        raise

    log_event(logger, "request_completed", status_code=response.status_code, duration_ms=elapsed_ms(started))
    response.headers["X-Request-ID"] = request_id
    clear_request_context()
    return response


@app.exception_handler(Exception)
async def global_exception_handler(_request: Request, exc: Exception):
    request_id = current_request_id()
    logger.exception(
        "unhandled_exception",
        extra={"event": "unhandled_exception", "request_id": request_id},
    )
    response = JSONResponse(
        status_code=500,
        content={
            "detail": "Something went wrong while processing your request. Please try again.",
            "request_id": request_id,
        },
        headers={"X-Request-ID": request_id},
    )
    clear_request_context()
    return response


_STATUS_BY_ERROR: dict[type[RosterError], int] = {
    InvalidInput: 400,
    StaleReference: 404,
    ConflictRetry: 409,
    StorageUnavailable: 503,
}


def _handle_roster_error(action: str, exc: RosterError) -> HTTPException:
    status_code = _STATUS_BY_ERROR.get(type(exc), 500)
    level = logging.ERROR if status_code >= 500 else logging.WARNING
    log_event(logger, "request_failed", level=level, action=action, error=exc.kind, reason=exc.message)
    return HTTPException(
        status_code=status_code,
        detail={
            "error": exc.kind,
            "message": f"{action} failed. {exc.message}",
            "request_id": current_request_id(),
        },
    )


def _require_edit(can_edit: bool, action: str) -> None:
    if can_edit:
        return
    log_event(logger, "edit_refused", level=logging.WARNING, action=action)
    raise HTTPException(
        status_code=403,
        detail={
            "error": "read_only",
            "message": f"{action} requires edit mode.",
            "request_id": current_request_id(),
        },
    )


def _safe_next(target: str | None, default: str) -> str:
    # Only internal redirects.
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return default


@app.get("/api/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@app.get("/api/edit")
def enable_edit_mode(k: str = "", next_path: str = Query("/", alias="next")):
    edit_key = settings.edit_key
    if not edit_key or k != edit_key:
        log_event(logger, "edit_mode_rejected", level=logging.WARNING)
        return JSONResponse(status_code=401, content={"error": "Invalid key"})

    response = RedirectResponse(url=_safe_next(next_path, "/"), status_code=307)
    response.set_cookie(EDIT_COOKIE, "1", path="/", samesite="lax", secure=True, httponly=False, max_age=EDIT_COOKIE_MAX_AGE)
    log_event(logger, "edit_mode_enabled")
    return response


@app.get("/api/readonly")
def disable_edit_mode(next_path: str = Query("/roster", alias="next")):
    response = RedirectResponse(url=_safe_next(next_path, "/roster"), status_code=307)
    response.delete_cookie(EDIT_COOKIE, path="/")
    log_event(logger, "edit_mode_disabled")
    return response


@app.post("/api/sessions/ensure", response_model=SessionIdResponse)
def ensure_session_endpoint(payload: EnsureSessionRequest, can_edit: bool = Depends(edit_capability)):
    action = "Session creation"
    _require_edit(can_edit, action)
    try:
        return SessionIdResponse(session_id=session_registry.ensure_session(database, payload.date))
    except RosterError as exc:
        raise _handle_roster_error(action, exc) from exc


@app.get("/api/sessions/lookup", response_model=SessionIdResponse)
def lookup_session_endpoint(date: str = ""):
    try:
        return SessionIdResponse(session_id=session_registry.lookup_session(database, date))
    except RosterError as exc:
        raise _handle_roster_error("Session lookup", exc) from exc


@app.get("/api/sessions/month", response_model=MonthOccupancyResponse)
def month_occupancy_endpoint(month: str = ""):
    try:
        days = session_registry.month_occupancy(database, month)
    except InvalidInput as exc:
        log_event(logger, "month_occupancy_invalid_month", level=logging.WARNING, month=month, reason=exc.message)
        return MonthOccupancyResponse()
    except StorageUnavailable as exc:
        log_event(logger, "month_occupancy_degraded", level=logging.WARNING, month=month, reason=exc.message)
        return MonthOccupancyResponse()
    return MonthOccupancyResponse(days=days)


@app.get("/api/sessions/{session_id}", response_model=SessionDetailResponse)
def session_detail_endpoint(session_id: str):
    action = "Session load"
    try:
        session = session_registry.get_session(database, session_id)
        if session is None:
            raise StaleReference("The session does not exist.", session_id=session_id)
        return SessionDetailResponse(
            session=session,
            rows=roster_sync.list_rows(database, session_id),
            instruments=instruments.list_instruments(database, session_id),
        )
    except RosterError as exc:
        raise _handle_roster_error(action, exc) from exc


@app.put("/api/sessions/{session_id}/notes")
def session_notes_endpoint(session_id: str, payload: SessionNotesRequest, can_edit: bool = Depends(edit_capability)):
    action = "Notes update"
    _require_edit(can_edit, action)
    try:
        session_registry.update_session_notes(database, session_id, payload.notes)
    except RosterError as exc:
        raise _handle_roster_error(action, exc) from exc
    return {"ok": True}


@app.put("/api/sessions/{session_id}/roster", response_model=SyncSummary)
def synchronize_roster_endpoint(session_id: str, payload: RosterSyncRequest, can_edit: bool = Depends(edit_capability)):
    action = "Roster save"
    _require_edit(can_edit, action)
    try:
        return roster_sync.synchronize(database, session_id, payload.rows)
    except RosterError as exc:
        raise _handle_roster_error(action, exc) from exc


@app.delete("/api/roster-rows/{row_id}")
def delete_roster_row_endpoint(row_id: str, can_edit: bool = Depends(edit_capability)):
    action = "Roster row delete"
    _require_edit(can_edit, action)
    try:
        session_id = roster_sync.delete_row(database, row_id)
    except RosterError as exc:
        raise _handle_roster_error(action, exc) from exc
    return {"ok": True, "deleted": session_id is not None}


@app.post("/api/sessions/{session_id}/instruments", response_model=SessionInstrument)
def add_instrument_endpoint(session_id: str, payload: InstrumentRequest, can_edit: bool = Depends(edit_capability)):
    action = "Instrument assignment"
    _require_edit(can_edit, action)
    try:
        return instruments.add_instrument(database, session_id, payload.instrument, payload.person)
    except RosterError as exc:
        raise _handle_roster_error(action, exc) from exc


@app.delete("/api/instruments/{instrument_id}")
def delete_instrument_endpoint(instrument_id: str, can_edit: bool = Depends(edit_capability)):
    action = "Instrument delete"
    _require_edit(can_edit, action)
    try:
        deleted = instruments.delete_instrument(database, instrument_id)
    except RosterError as exc:
        raise _handle_roster_error(action, exc) from exc
    return {"ok": True, "deleted": deleted}


@app.get("/api/bhajans/search", response_model=CatalogSearchResponse)
def search_catalog_endpoint(q: str = ""):
    try:
        items = catalog_index.search(q)
    except StorageUnavailable as exc:
        log_event(logger, "catalog_search_degraded", level=logging.WARNING, reason=exc.message)
        return CatalogSearchResponse()
    return CatalogSearchResponse(items=items)


@app.get("/api/bhajans", response_model=CatalogBrowseResponse)
def browse_catalog_endpoint(q: str = "", deity: str = "", lang: str = ""):
    try:
        return lookups.browse_catalog(database, query=q, deity=deity, language=lang)
    except RosterError as exc:
        raise _handle_roster_error("Bhajan browse", exc) from exc


@app.get("/api/bhajans/by-id", response_model=CatalogEntryResponse)
def catalog_entry_endpoint(id: str = ""):
    try:
        return CatalogEntryResponse(bhajan=lookups.get_catalog_entry(database, id))
    except RosterError as exc:
        raise _handle_roster_error("Bhajan lookup", exc) from exc


@app.get("/api/singers", response_model=list[Singer])
def list_singers_endpoint():
    try:
        return lookups.list_singers(database)
    except RosterError as exc:
        raise _handle_roster_error("Singer listing", exc) from exc


@app.get("/api/singers/{singer_id}/history", response_model=SingerHistoryResponse)
def singer_history_endpoint(singer_id: str):
    action = "Singer history"
    try:
        singer = lookups.get_singer(database, singer_id)
        if singer is None:
            raise StaleReference("The singer does not exist.", singer_id=singer_id)
        return SingerHistoryResponse(singer=singer, history=lookups.singer_history(database, singer_id))
    except RosterError as exc:
        raise _handle_roster_error(action, exc) from exc


@app.get("/api/pitches", response_model=PitchSuggestions)
def pitch_suggestions_endpoint():
    try:
        return lookups.pitch_suggestions(database)
    except RosterError as exc:
        raise _handle_roster_error("Pitch suggestions", exc) from exc


@app.get("/api/festival", response_model=FestivalListsResponse)
def festival_lists_endpoint():
    try:
        return FestivalListsResponse(singers=lookups.festival_lists(database))
    except RosterError as exc:
        raise _handle_roster_error("Festival lists", exc) from exc
