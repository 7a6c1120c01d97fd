from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import DocumentStore, get_chat_service
from app.core.auth import CurrentUser
from app.core.errors import NotFoundAppError
from app.core.input_validation import validate_conversation_title
from app.schemas.conversation import (
    DEFAULT_CONVERSATION_TITLE,
    ConversationCreate,
    ConversationCreatedResponse,
    ConversationListResponse,
    ConversationOut,
    ConversationResponse,
    ConversationUpdate,
    GenerateTitleRequest,
    GenerateTitleResponse,
)
from app.schemas.notion import SuccessResponse
from app.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["Conversations"])


def _not_found() -> NotFoundAppError:
    return NotFoundAppError(code="conversation_not_found", message="Conversation not found")


@router.get("", response_model=ConversationListResponse)
def list_conversations(user: CurrentUser, store: DocumentStore) -> ConversationListResponse:
    records = store.list_conversations(user.user_id)
    return ConversationListResponse(conversations=[ConversationOut.from_record(r) for r in records])


@router.post("", response_model=ConversationCreatedResponse)
def create_conversation(
    user: CurrentUser,
    store: DocumentStore,
    body: ConversationCreate | None = None,
) -> ConversationCreatedResponse:
    title = DEFAULT_CONVERSATION_TITLE
    if body is not None and body.title:
        title = validate_conversation_title(body.title)

    record = store.create_conversation(user.user_id, title)
    logger.info("conversation.created", extra={"conversation_id": record.id, "user_id": user.user_id})
    return ConversationCreatedResponse(
        conversation_id=record.id,
        conversation=ConversationOut.from_record(record),
    )


# Declared before "/{conversation_id}" routes so the literal path wins.
@router.post("/generate-title", response_model=GenerateTitleResponse)
async def generate_title(
    body: GenerateTitleRequest,
    user: CurrentUser,
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> GenerateTitleResponse:
    title = await service.generate_title(body.messages)
    return GenerateTitleResponse(title=title)


@router.get("/{conversation_id}", response_model=ConversationResponse)
def get_conversation(conversation_id: str, user: CurrentUser, store: DocumentStore) -> ConversationResponse:
    record = store.get_conversation(user.user_id, conversation_id)
    if record is None:
        raise _not_found()
    return ConversationResponse(conversation=ConversationOut.from_record(record))


@router.patch("/{conversation_id}", response_model=ConversationResponse)
def update_conversation(
    conversation_id: str,
    user: CurrentUser,
    store: DocumentStore,
    update: ConversationUpdate,
) -> ConversationResponse:
    """Replace messages/strategies or rename a conversation.

    A title sent by the client marks the conversation as manually renamed
    unless ``is_manually_renamed`` is given explicitly.
    """
    if update.title is not None:
        update.title = validate_conversation_title(update.title)
        if update.is_manually_renamed is None:
            update.is_manually_renamed = True

    record = store.update_conversation(user.user_id, conversation_id, update)
    if record is None:
        raise _not_found()
    return ConversationResponse(conversation=ConversationOut.from_record(record))


@router.delete("/{conversation_id}", response_model=SuccessResponse)
def delete_conversation(conversation_id: str, user: CurrentUser, store: DocumentStore) -> SuccessResponse:
    if not store.delete_conversation(user.user_id, conversation_id):
        raise _not_found()
    logger.info("conversation.deleted", extra={"conversation_id": conversation_id, "user_id": user.user_id})
    return SuccessResponse()
