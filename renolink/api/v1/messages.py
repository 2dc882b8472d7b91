import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from renolink.api.deps import get_current_user, get_db, require_role
from renolink.common.enums import UserRole
from renolink.common.events import conversation_topic, emit, user_topic
from renolink.core.messaging.service import MessagingService
from renolink.db.models.conversation import Conversation, Message
from renolink.db.models.user import User

router = APIRouter(prefix="/conversations", tags=["Messages"])

messaging = MessagingService()


# ---------- Schemas ----------


class ConversationCreate(BaseModel):
    project_id: uuid.UUID


class MessageCreate(BaseModel):
    content: str


class ConversationResponse(BaseModel):
    id: uuid.UUID
    conversation_key: str
    contractor_id: uuid.UUID
    homeowner_id: uuid.UUID
    project_id: uuid.UUID
    homeowner_name: str
    contractor_name: str
    project_category: str
    last_message: str
    last_message_at: str
    message_count: int

    @classmethod
    def from_conversation(cls, c: Conversation) -> "ConversationResponse":
        return cls(
            id=c.id,
            conversation_key=c.conversation_key,
            contractor_id=c.contractor_id,
            homeowner_id=c.homeowner_id,
            project_id=c.project_id,
            homeowner_name=c.homeowner_name,
            contractor_name=c.contractor_name,
            project_category=c.project_category,
            last_message=c.last_message,
            last_message_at=c.last_message_at.isoformat(),
            message_count=c.message_count,
        )


class MessageResponse(BaseModel):
    id: uuid.UUID
    conversation_id: uuid.UUID
    sender_id: uuid.UUID
    sender_name: str
    content: str
    is_read: bool
    created_at: str

    @classmethod
    def from_message(cls, m: Message) -> "MessageResponse":
        return cls(
            id=m.id,
            conversation_id=m.conversation_id,
            sender_id=m.sender_id,
            sender_name=m.sender_name,
            content=m.content,
            is_read=m.is_read,
            created_at=m.created_at.isoformat(),
        )


class UnreadResponse(BaseModel):
    unread: int


class MarkReadResponse(BaseModel):
    marked: int


# ---------- Endpoints ----------


@router.post("", response_model=ConversationResponse)
async def open_conversation(
    body: ConversationCreate,
    current_user: User = Depends(require_role(UserRole.CONTRACTOR)),
    db: AsyncSession = Depends(get_db),
):
    conversation, created = await messaging.get_or_create_conversation(db, current_user, body.project_id)
    if created:
        emit(db, user_topic(conversation.homeowner_id), "conversation.opened", {
            "conversation_id": str(conversation.id),
            "contractor_name": conversation.contractor_name,
            "project_id": str(conversation.project_id),
        })
    return ConversationResponse.from_conversation(conversation)


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return [
        ConversationResponse.from_conversation(c)
        for c in await messaging.list_conversations(db, current_user)
    ]


@router.get("/unread", response_model=UnreadResponse)
async def unread_messages(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadResponse(unread=await messaging.unread_count(db, current_user))


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    conversation = await messaging.get_conversation(db, conversation_id, current_user)
    return ConversationResponse.from_conversation(conversation)


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    conversation = await messaging.get_conversation(db, conversation_id, current_user)
    return [MessageResponse.from_message(m) for m in await messaging.list_messages(db, conversation)]


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    conversation_id: uuid.UUID,
    body: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    conversation = await messaging.get_conversation(db, conversation_id, current_user)
    message = await messaging.send_message(db, conversation, current_user, body.content)

    payload = {
        "conversation_id": str(conversation.id),
        "message_id": str(message.id),
        "sender_id": str(message.sender_id),
        "sender_name": message.sender_name,
        "preview": conversation.last_message,
    }
    emit(db, conversation_topic(conversation.id), "message.created", payload)
    recipient = (
        conversation.homeowner_id
        if current_user.id == conversation.contractor_id
        else conversation.contractor_id
    )
    emit(db, user_topic(recipient), "message.created", payload)
    return MessageResponse.from_message(message)


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    conversation = await messaging.get_conversation(db, conversation_id, current_user)
    return MarkReadResponse(marked=await messaging.mark_messages_read(db, conversation, current_user.id))
