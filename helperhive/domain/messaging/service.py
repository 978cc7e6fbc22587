"""Messaging service - conversations between two users"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import MESSAGE_MAX_LENGTH
from ...database import atomic
from ...errors import Conflict, InvalidInput, NotFound
from ...models import Message, User
from ...realtime import LiveQueryHub, live_queries
from ...shared.clock import utcnow
from .repository import MessageRepository
from .schemas import ChatMessageResponse, ConversationSummary

logger = logging.getLogger(__name__)

SEND_ATTEMPTS = 3


def conversation_key(user_a: str, user_b: str) -> str:
    """Direction-independent identifier for the conversation between two users"""
    first, second = sorted((user_a, user_b))
    return f"{first}:{second}"


class MessagingService:
    """Service layer for the messaging channel"""

    def __init__(self, db: Session, hub: LiveQueryHub = live_queries):
        self.db = db
        self.hub = hub
        self.repo = MessageRepository()

    def send_message(self, sender: User, recipient_id: str, body: str) -> Message:
        text = (body or "").strip()
        if not text:
            raise InvalidInput("Message body cannot be empty")
        if len(text) > MESSAGE_MAX_LENGTH:
            raise InvalidInput(f"Message cannot exceed {MESSAGE_MAX_LENGTH} characters")
        if recipient_id == sender.id:
            raise InvalidInput("You cannot message yourself")

        recipient = self.repo.get_user(self.db, recipient_id)
        if not recipient:
            raise NotFound("Recipient not found")

        key = conversation_key(sender.id, recipient.id)
        for attempt in range(1, SEND_ATTEMPTS + 1):
            try:
                message = self._append(key, sender.id, recipient.id, text)
                break
            except IntegrityError as e:
                # Another writer took the same sequence number; re-read and go again
                logger.warning(f"⚠️ Sequence clash in {key} (attempt {attempt}): {e}")
        else:
            raise Conflict("Conversation is busy. Try sending again.")
        self.db.refresh(message)

        logger.info(f"✉️ Message {message.id} sent in conversation {key}")
        try:
            self.hub.publish("messages", ChatMessageResponse.model_validate(message).model_dump(mode="json"))
        except Exception as e:
            logger.error(f"❌ Failed to publish message {message.id}: {e}")
        return message

    def _append(self, key: str, sender_id: str, recipient_id: str, text: str) -> Message:
        with atomic(self.db):
            # Server clock, nudged forward so sent_at strictly increases per conversation
            sent_at = utcnow()
            last_sent_at, last_sequence = self.repo.last_position(self.db, key)
            if last_sent_at is not None and sent_at <= last_sent_at:
                sent_at = last_sent_at + timedelta(microseconds=1)

            return self.repo.add_message(
                self.db,
                sender_id=sender_id,
                recipient_id=recipient_id,
                conversation_key=key,
                body=text,
                sent_at=sent_at,
                sequence=last_sequence + 1,
            )

    def get_conversation(self, user: User, counterpart_id: str, limit: Optional[int] = None) -> list[Message]:
        """Messages between the user and a counterpart, in send order"""
        if limit is not None and limit < 1:
            raise InvalidInput("limit must be positive")
        return self.repo.get_conversation(self.db, conversation_key(user.id, counterpart_id), limit)

    def list_conversations(self, user: User) -> list[ConversationSummary]:
        """
        One entry per counterpart, most recent conversation first.

        Aggregated on read: the newest message per conversation key wins,
        then counterpart presence is loaded in a single query.
        """
        latest: dict[str, Message] = {}
        for message in self.repo.messages_for_user(self.db, user.id):
            if message.conversation_key not in latest:
                latest[message.conversation_key] = message

        def counterpart_of(message: Message) -> Optional[str]:
            return message.recipient_id if message.sender_id == user.id else message.sender_id

        counterparts = self.repo.get_users(
            self.db, [cid for cid in map(counterpart_of, latest.values()) if cid]
        )

        summaries = []
        for key, message in latest.items():
            counterpart_id = counterpart_of(message)
            if not counterpart_id:
                continue
            counterpart = counterparts.get(counterpart_id)
            summaries.append(
                ConversationSummary(
                    conversation_key=key,
                    counterpart_id=counterpart_id,
                    counterpart_name=counterpart.name if counterpart else None,
                    counterpart_avatar_url=counterpart.avatar_url if counterpart else None,
                    counterpart_is_online=bool(counterpart and counterpart.is_online),
                    counterpart_last_seen=counterpart.last_seen if counterpart else None,
                    last_message=ChatMessageResponse.model_validate(message),
                    is_last_message_mine=message.sender_id == user.id,
                )
            )

        summaries.sort(key=lambda s: (s.last_message.sent_at, s.last_message.id), reverse=True)
        return summaries
