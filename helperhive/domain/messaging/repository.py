"""Messaging repository - Database operations for messages"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Message, User


class MessageRepository:
    """Repository for message database operations"""

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_users(db: Session, user_ids: list[str]) -> dict[str, User]:
        if not user_ids:
            return {}
        return {u.id: u for u in db.query(User).filter(User.id.in_(user_ids)).all()}

    @staticmethod
    def last_position(db: Session, conversation_key: str) -> tuple[Optional[datetime], int]:
        """Latest sent_at and highest sequence in the conversation (None, 0 when empty)"""
        last_sent_at, last_sequence = (
            db.query(func.max(Message.sent_at), func.max(Message.sequence))
            .filter(Message.conversation_key == conversation_key)
            .one()
        )
        return last_sent_at, last_sequence or 0

    @staticmethod
    def add_message(db: Session, **message_data) -> Message:
        message = Message(**message_data)
        db.add(message)
        db.flush()
        return message

    @staticmethod
    def get_conversation(db: Session, conversation_key: str, limit: Optional[int] = None) -> list[Message]:
        query = (
            db.query(Message)
            .filter(Message.conversation_key == conversation_key)
            .order_by(Message.sequence.asc())
        )
        if limit:
            # Most recent `limit` messages, still returned oldest first
            total = query.count()
            if total > limit:
                query = query.offset(total - limit)
        return query.all()

    @staticmethod
    def messages_for_user(db: Session, user_id: str) -> list[Message]:
        """All messages the user sent or received, newest first"""
        return (
            db.query(Message)
            .filter(or_(Message.sender_id == user_id, Message.recipient_id == user_id))
            .order_by(Message.sent_at.desc(), Message.sequence.desc())
            .all()
        )
