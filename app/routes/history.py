"""Activity history endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.dependencies import get_api_key, get_db
from app.schemas.common import ErrorResponse
from app.schemas.history import (
    EntryDetailResponse,
    EntryResponse,
    FilterOptionsResponse,
    HistoryPageResponse,
    HistoryRecord,
    HistoryRecorded,
)
from activity.services.errors import HistoryNotFoundError, HistoryValidationError
from activity.services.history_service import HistoryService
from activity.services.query_engine import HistoryCriteria
from config import get_settings

router = APIRouter(prefix="/api/history", tags=["history"])


def _criteria(
    search: str | None = None,
    entity_type: str | None = Query(None, alias="entityType"),
    action: str | None = None,
    date_from: str | None = Query(None, alias="from"),
    date_to: str | None = Query(None, alias="to"),
    tz: str | None = None,
    limit: int | None = Query(None, ge=1),
) -> HistoryCriteria:
    max_length: int = get_settings().history.search_max_length
    if search is not None and len(search.strip()) > max_length:
        raise HTTPException(status_code=422, detail=f"search must be at most {max_length} characters")
    # Dates stay raw strings; the engine ignores bounds it cannot parse.
    return HistoryCriteria(
        search=search,
        entity_type=entity_type,
        action=action,
        date_from=date_from,
        date_to=date_to,
        timezone=tz,
        limit=limit,
    )


@router.get("", response_model=HistoryPageResponse)
def get_history(criteria: HistoryCriteria = Depends(_criteria), db: Session = Depends(get_db)):
    return HistoryService(db).history_page(criteria)


@router.post(
    "",
    response_model=HistoryRecorded,
    status_code=201,
    responses={401: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def record_history(
    body: HistoryRecord,
    db: Session = Depends(get_db),
    _key: str = Depends(get_api_key),
):
    svc = HistoryService(db)
    try:
        entry_id = svc.record(
            entity_type=body.entity_type,
            entity_id=body.entity_id,
            action=body.action,
            entity_name=body.entity_name,
            changes=body.changes_payload(),
            user_id=body.user_id,
            user_name=body.user_name,
        )
    except HistoryValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"id": entry_id}


@router.get("/entries", response_model=list[EntryResponse])
def list_history_entries(criteria: HistoryCriteria = Depends(_criteria), db: Session = Depends(get_db)):
    return HistoryService(db).list_entries(criteria)


@router.get("/filters", response_model=FilterOptionsResponse)
def get_filter_options(db: Session = Depends(get_db)):
    return HistoryService(db).filter_options()


@router.get("/entity/{entity_type}/{entity_id}", response_model=HistoryPageResponse)
def get_entity_timeline(
    entity_type: str,
    entity_id: str,
    tz: str | None = None,
    db: Session = Depends(get_db),
):
    return HistoryService(db).entity_timeline(entity_type, entity_id, timezone=tz)


@router.get("/{entry_id}", response_model=EntryDetailResponse, responses={404: {"model": ErrorResponse}})
def get_history_entry(entry_id: int, tz: str | None = None, db: Session = Depends(get_db)):
    try:
        return HistoryService(db).entry_detail(entry_id, timezone=tz)
    except HistoryNotFoundError:
        raise HTTPException(status_code=404, detail="History entry not found")
