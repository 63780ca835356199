"""Connected page, conversation and message history routes."""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from app.db.dependencies import get_db
from app.schemas.common import ApiResponse
from app.schemas.page import ConversationsPage, MessagesPage, PageRead, ReplyRequest, ReplyResult
from app.services.conversations import (
    ReplyError,
    disconnect_page,
    get_owned_page,
    list_page_conversations,
    list_page_messages,
    list_pages,
    send_manual_reply,
)
from app.services.meta import MessagingGateway, get_default_gateway

LimitParam = Query(default=50, ge=1, le=200)
OffsetParam = Query(default=0, ge=0)

router = APIRouter(prefix="/users/{user_id}")


@router.get("/pages", response_model=ApiResponse[list[PageRead]])
def get_pages(
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[list[PageRead]]:
    """List a merchant's connected pages."""

    return ApiResponse(data=list_pages(db, user_id))


@router.delete("/pages/{page_id}", response_model=ApiResponse[dict[str, bool]])
def delete_page(
    page_id: int,
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[dict[str, bool]]:
    """Disconnect a page without deleting its history."""

    if not disconnect_page(db, user_id, page_id):
        raise HTTPException(status_code=404, detail="Page not found")
    return ApiResponse(data={"success": True})


@router.get("/pages/{page_id}/conversations", response_model=ApiResponse[ConversationsPage])
def get_page_conversations(
    page_id: int,
    user_id: str = Path(..., min_length=1),
    status: str = Query(default="active"),
    limit: int = LimitParam,
    offset: int = OffsetParam,
    db: Session = Depends(get_db),
) -> ApiResponse[ConversationsPage]:
    """List a page's conversations by latest activity."""

    page = get_owned_page(db, user_id, page_id)
    if page is None:
        raise HTTPException(status_code=404, detail="Page not found or access denied")
    return ApiResponse(data=list_page_conversations(db, page, status=status, limit=limit, offset=offset))


@router.get("/pages/{page_id}/messages", response_model=ApiResponse[MessagesPage])
def get_page_messages(
    page_id: int,
    user_id: str = Path(..., min_length=1),
    type: Literal["incoming", "outgoing"] | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    limit: int = LimitParam,
    offset: int = OffsetParam,
    db: Session = Depends(get_db),
) -> ApiResponse[MessagesPage]:
    """Return a page's message history, newest first."""

    page = get_owned_page(db, user_id, page_id)
    if page is None:
        raise HTTPException(status_code=404, detail="Page not found or access denied")
    payload = list_page_messages(
        db,
        page,
        direction=type,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return ApiResponse(data=payload)


@router.post("/conversations/{conversation_id}/reply", response_model=ApiResponse[ReplyResult])
def post_reply(
    conversation_id: int,
    payload: ReplyRequest,
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    gateway: MessagingGateway = Depends(get_default_gateway),
) -> ApiResponse[ReplyResult]:
    """Send a manual reply from the dashboard."""

    if not payload.message.strip():
        raise HTTPException(status_code=400, detail="Message text is required.")
    try:
        result = send_manual_reply(db, user_id, conversation_id, payload.message, gateway=gateway)
    except ReplyError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    if result is None:
        raise HTTPException(status_code=404, detail="Conversation not found or access denied")
    return ApiResponse(data=result)
