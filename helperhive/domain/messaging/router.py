"""Messaging router - FastAPI endpoints for chat"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import ChatMessageResponse, ConversationSummary, MessageCreate
from .service import MessagingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    """Dependency injection for MessagingService"""
    return MessagingService(db)


@router.post("", response_model=ChatMessageResponse, status_code=201)
async def send_message(
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.send_message(current_user, data.recipient_id, data.body)


@router.get("/conversations", response_model=list[ConversationSummary])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Inbox: latest message per counterpart, most recent first"""
    return service.list_conversations(current_user)


@router.get("/conversations/{counterpart_id}", response_model=list[ChatMessageResponse])
async def get_conversation(
    counterpart_id: str,
    limit: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.get_conversation(current_user, counterpart_id, limit)
