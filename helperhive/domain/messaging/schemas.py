"""Messaging domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...services.storage_service import resolve_url


class MessageCreate(BaseModel):
    recipient_id: str
    body: str


class ChatMessageResponse(BaseModel):
    id: str
    sender_id: Optional[str]
    recipient_id: Optional[str]
    conversation_key: str
    body: str
    sent_at: datetime
    sequence: int
    participants: list[str]

    class Config:
        from_attributes = True


class ConversationSummary(BaseModel):
    """One inbox row: the counterpart, their presence and the latest message"""

    conversation_key: str
    counterpart_id: str
    counterpart_name: Optional[str] = None
    counterpart_avatar_url: Optional[str] = None
    counterpart_is_online: bool = False
    counterpart_last_seen: Optional[datetime] = None
    last_message: ChatMessageResponse
    is_last_message_mine: bool

    @field_validator("counterpart_avatar_url")
    @classmethod
    def resolve_avatar(cls, v):
        return resolve_url(v)
