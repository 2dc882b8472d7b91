import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from renolink.db.base import BaseModel, utcnow


class Conversation(BaseModel):
    """Thread between one contractor and one homeowner about one project."""

    __tablename__ = "conversations"

    conversation_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    homeowner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False, index=True
    )
    homeowner_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contractor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    project_category: Mapped[str] = mapped_column(String(100), nullable=False)
    last_message: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_message_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Message(BaseModel):
    __tablename__ = "messages"

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("conversations.id"), nullable=False, index=True
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    sender_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
