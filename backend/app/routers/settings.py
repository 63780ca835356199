"""Legacy AI settings and notification routes."""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from app.db.dependencies import get_db
from app.schemas.ai_settings import AISettingsRead, AISettingsUpdate
from app.schemas.common import ApiResponse
from app.schemas.notification import NotificationsPage
from app.services.agents import get_ai_settings, upsert_ai_settings
from app.services.notifications import list_notifications, mark_all_read

router = APIRouter(prefix="/users/{user_id}")


@router.get("/ai-settings", response_model=ApiResponse[AISettingsRead])
def read_ai_settings(
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[AISettingsRead]:
    """Return legacy auto-reply settings, or defaults."""

    return ApiResponse(data=get_ai_settings(db, user_id))


@router.put("/ai-settings", response_model=ApiResponse[AISettingsRead])
def write_ai_settings(
    payload: AISettingsUpdate,
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[AISettingsRead]:
    return ApiResponse(data=upsert_ai_settings(db, user_id, payload))


@router.get("/notifications", response_model=ApiResponse[NotificationsPage])
def get_notifications(
    user_id: str = Path(..., min_length=1),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> ApiResponse[NotificationsPage]:
    return ApiResponse(data=list_notifications(db, user_id, limit=limit, offset=offset))


@router.post("/notifications/read-all", response_model=ApiResponse[dict[str, int]])
def read_all_notifications(
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[dict[str, int]]:
    return ApiResponse(data={"updated": mark_all_read(db, user_id)})
