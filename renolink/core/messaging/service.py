"""Contractor/homeowner conversations.

A conversation's key is derived from ``(contractor_id, project_id)``, so at
most one thread exists per pair and opening one is idempotent.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.common.enums import UserRole
from renolink.common.exceptions import BadRequestError, NotFoundError, PermissionDeniedError
from renolink.common.logging import get_logger
from renolink.core.marketplace.service import find_unlock, get_project
from renolink.db.base import utcnow
from renolink.db.models.conversation import Conversation, Message
from renolink.db.models.user import User

logger = get_logger("messaging.service")

PREVIEW_LENGTH = 80


def conversation_key(contractor_id: uuid.UUID, project_id: uuid.UUID) -> str:
    return f"{contractor_id}_{project_id}"


def message_preview(content: str) -> str:
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


class MessagingService:
    async def get_or_create_conversation(
        self, db: AsyncSession, contractor: User, project_id: uuid.UUID
    ) -> tuple[Conversation, bool]:
        """Return ``(conversation, created)``."""
        key = conversation_key(contractor.id, project_id)
        existing = await self._by_key(db, key)
        if existing is not None:
            return existing, False

        project = await get_project(db, project_id)
        if await find_unlock(db, contractor.id, project_id) is None:
            raise PermissionDeniedError("Unlock this project before contacting the homeowner")

        homeowner = await db.get(User, project.homeowner_id)
        conversation = Conversation(
            conversation_key=key,
            contractor_id=contractor.id,
            homeowner_id=project.homeowner_id,
            project_id=project_id,
            homeowner_name=homeowner.full_name if homeowner else "",
            contractor_name=contractor.company_name or contractor.full_name,
            project_category=project.category_name,
            last_message="",
            message_count=0,
        )
        try:
            # A lost race rolls back only this insert
            async with db.begin_nested():
                db.add(conversation)
        except IntegrityError:
            existing = await self._by_key(db, key)
            if existing is None:
                raise
            return existing, False

        logger.info("Opened conversation %s", key)
        return conversation, True

    async def get_conversation(
        self, db: AsyncSession, conversation_id: uuid.UUID, user: User
    ) -> Conversation:
        result = await db.execute(
            select(Conversation).where(
                Conversation.id == conversation_id, Conversation.is_deleted.is_(False)
            )
        )
        conversation = result.scalar_one_or_none()
        if not conversation:
            raise NotFoundError("Conversation", str(conversation_id))
        if user.role != UserRole.ADMIN.value and user.id not in (
            conversation.contractor_id,
            conversation.homeowner_id,
        ):
            raise PermissionDeniedError("You are not a participant in this conversation")
        return conversation

    async def send_message(
        self, db: AsyncSession, conversation: Conversation, sender: User, content: str
    ) -> Message:
        if sender.id not in (conversation.contractor_id, conversation.homeowner_id):
            raise PermissionDeniedError("Only participants can send messages")
        content = content.strip()
        if not content:
            raise BadRequestError("Message content is required")

        now = utcnow()
        message = Message(
            conversation_id=conversation.id,
            sender_id=sender.id,
            sender_name=sender.full_name,
            content=content,
            is_read=False,
            created_at=now,
        )
        db.add(message)

        # Counter is incremented in the database, not read-modified-written
        await db.execute(
            update(Conversation)
            .where(Conversation.id == conversation.id)
            .values(
                last_message=message_preview(content),
                last_message_at=now,
                message_count=Conversation.message_count + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        await db.refresh(conversation)
        return message

    async def mark_messages_read(
        self, db: AsyncSession, conversation: Conversation, reader_id: uuid.UUID
    ) -> int:
        result = await db.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation.id,
                Message.sender_id != reader_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def list_conversations(self, db: AsyncSession, user: User) -> list[Conversation]:
        query = select(Conversation).where(Conversation.is_deleted.is_(False))
        if user.role == UserRole.HOMEOWNER.value:
            query = query.where(Conversation.homeowner_id == user.id)
        elif user.role == UserRole.CONTRACTOR.value:
            query = query.where(Conversation.contractor_id == user.id)
        result = await db.execute(query.order_by(Conversation.last_message_at.desc()))
        return list(result.scalars().all())

    async def list_messages(self, db: AsyncSession, conversation: Conversation) -> list[Message]:
        result = await db.execute(
            select(Message)
            .where(Message.conversation_id == conversation.id, Message.is_deleted.is_(False))
            .order_by(Message.created_at.asc())
        )
        return list(result.scalars().all())

    async def unread_count(self, db: AsyncSession, user: User) -> int:
        result = await db.execute(
            select(func.count(Message.id))
            .select_from(Message)
            .join(Conversation, Message.conversation_id == Conversation.id)
            .where(
                or_(Conversation.contractor_id == user.id, Conversation.homeowner_id == user.id),
                Message.sender_id != user.id,
                Message.is_read.is_(False),
            )
        )
        return result.scalar() or 0

    async def _by_key(self, db: AsyncSession, key: str) -> Conversation | None:
        result = await db.execute(
            select(Conversation).where(Conversation.conversation_key == key)
        )
        return result.scalar_one_or_none()
