"""MongoDB document store built on mongoengine.

Collections: ``users``, ``strategies`` and ``conversations``; messages and
embedded strategies live inside their conversation document. Identifiers
are ObjectIds exposed as hex strings; an id that is not a valid ObjectId
is treated as "not found".
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import mongoengine as me
from bson import ObjectId
from mongoengine.errors import NotUniqueError

from app.adapters.storage.base import AbstractDocumentStore, DuplicateEmailError
from app.schemas.auth import UserRecord
from app.schemas.conversation import ConversationRecord, ConversationUpdate
from app.schemas.strategy import StrategyCreate, StrategyRecord

logger = logging.getLogger(__name__)

MONGO_ALIAS = "trading_assistant"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # BSON dates come back naive (UTC).
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _object_id(value: str) -> ObjectId | None:
    return ObjectId(value) if ObjectId.is_valid(value) else None


class UserDocument(me.Document):
    email = me.StringField(required=True, unique=True)
    password_hash = me.StringField(required=True)
    created_at = me.DateTimeField(required=True)
    notion_access_token = me.StringField()
    notion_workspace_name = me.StringField()
    custom_instructions = me.StringField()

    meta = {"collection": "users", "db_alias": MONGO_ALIAS}

    def to_record(self) -> UserRecord:
        return UserRecord(
            id=str(self.id),
            email=self.email,
            password_hash=self.password_hash,
            created_at=_aware(self.created_at),
            notion_access_token=self.notion_access_token,
            notion_workspace_name=self.notion_workspace_name,
            custom_instructions=self.custom_instructions,
        )


class StrategyDocument(me.Document):
    user_id = me.ObjectIdField(required=True)
    name = me.StringField(required=True)
    analysis = me.StringField(default="")
    strategy_text = me.StringField(default="")
    file_type = me.StringField(choices=("pdf", "text"))
    additional_comments = me.StringField()
    created_at = me.DateTimeField(required=True)
    updated_at = me.DateTimeField(required=True)

    meta = {
        "collection": "strategies",
        "db_alias": MONGO_ALIAS,
        "indexes": [("user_id", "-updated_at")],
    }

    def to_record(self) -> StrategyRecord:
        return StrategyRecord(
            id=str(self.id),
            user_id=str(self.user_id),
            name=self.name,
            analysis=self.analysis,
            strategy_text=self.strategy_text,
            file_type=self.file_type,
            additional_comments=self.additional_comments,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


class ConversationDocument(me.Document):
    user_id = me.ObjectIdField(required=True)
    title = me.StringField(required=True)
    messages = me.ListField(me.DictField())
    strategies = me.ListField(me.DictField())
    strategy_text = me.StringField()
    strategy_analysis = me.StringField()
    is_manually_renamed = me.BooleanField(default=False)
    created_at = me.DateTimeField(required=True)
    updated_at = me.DateTimeField(required=True)
    last_message_at = me.DateTimeField(required=True)

    meta = {
        "collection": "conversations",
        "db_alias": MONGO_ALIAS,
        "indexes": [("user_id", "-last_message_at")],
    }

    def to_record(self) -> ConversationRecord:
        return ConversationRecord.model_validate(
            {
                "id": str(self.id),
                "user_id": str(self.user_id),
                "title": self.title,
                "messages": list(self.messages or []),
                "strategies": list(self.strategies) if self.strategies else None,
                "strategy_text": self.strategy_text,
                "strategy_analysis": self.strategy_analysis,
                "is_manually_renamed": bool(self.is_manually_renamed),
                "created_at": _aware(self.created_at),
                "updated_at": _aware(self.updated_at),
                "last_message_at": _aware(self.last_message_at),
            }
        )


class MongoDocumentStore(AbstractDocumentStore):
    """Document store backed by MongoDB.

    Args:
        uri: MongoDB connection string.
        db_name: Database name.
        **client_kwargs: Forwarded to ``mongoengine.connect`` (for example
            ``mongo_client_class`` in tests).
    """

    def __init__(self, uri: str, db_name: str, **client_kwargs: Any) -> None:
        me.connect(db=db_name, host=uri, alias=MONGO_ALIAS, tz_aware=False, **client_kwargs)
        logger.info("storage.mongo_connected", extra={"db_name": db_name})

    def close(self) -> None:
        me.disconnect(alias=MONGO_ALIAS)

    # Users

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        if UserDocument.objects(email=email).first() is not None:
            raise DuplicateEmailError(email)
        doc = UserDocument(email=email, password_hash=password_hash, created_at=_utcnow())
        try:
            doc.save()
        except NotUniqueError as exc:
            raise DuplicateEmailError(email) from exc
        return doc.to_record()

    def get_user(self, user_id: str) -> UserRecord | None:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = UserDocument.objects(id=oid).first()
        return doc.to_record() if doc else None

    def get_user_by_email(self, email: str) -> UserRecord | None:
        doc = UserDocument.objects(email=email).first()
        return doc.to_record() if doc else None

    def _modify_user(self, user_id: str, **update: Any) -> UserRecord | None:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = UserDocument.objects(id=oid).modify(new=True, **update)
        return doc.to_record() if doc else None

    def set_custom_instructions(self, user_id: str, instructions: str) -> UserRecord | None:
        return self._modify_user(user_id, set__custom_instructions=instructions)

    def set_notion_credentials(
        self, user_id: str, access_token: str, workspace_name: str | None
    ) -> UserRecord | None:
        update: dict[str, Any] = {"set__notion_access_token": access_token}
        if workspace_name:
            update["set__notion_workspace_name"] = workspace_name
        else:
            update["unset__notion_workspace_name"] = True
        return self._modify_user(user_id, **update)

    def clear_notion_credentials(self, user_id: str) -> UserRecord | None:
        return self._modify_user(
            user_id,
            unset__notion_access_token=True,
            unset__notion_workspace_name=True,
        )

    # Strategies

    def create_strategy(self, strategy: StrategyCreate) -> StrategyRecord:
        now = _utcnow()
        fields = strategy.model_dump()
        fields["user_id"] = ObjectId(strategy.user_id)
        doc = StrategyDocument(created_at=now, updated_at=now, **fields)
        doc.save()
        return doc.to_record()

    def list_strategies(self, user_id: str) -> list[StrategyRecord]:
        oid = _object_id(user_id)
        if oid is None:
            return []
        return [doc.to_record() for doc in StrategyDocument.objects(user_id=oid).order_by("-updated_at")]

    def delete_strategy(self, user_id: str, strategy_id: str) -> bool:
        oid, sid = _object_id(user_id), _object_id(strategy_id)
        if oid is None or sid is None:
            return False
        return StrategyDocument.objects(id=sid, user_id=oid).delete() > 0

    # Conversations

    def create_conversation(self, user_id: str, title: str) -> ConversationRecord:
        now = _utcnow()
        doc = ConversationDocument(
            user_id=ObjectId(user_id),
            title=title,
            messages=[],
            created_at=now,
            updated_at=now,
            last_message_at=now,
        )
        doc.save()
        return doc.to_record()

    def list_conversations(self, user_id: str) -> list[ConversationRecord]:
        oid = _object_id(user_id)
        if oid is None:
            return []
        docs = ConversationDocument.objects(user_id=oid).order_by("-last_message_at")
        return [doc.to_record() for doc in docs]

    def get_conversation(self, user_id: str, conversation_id: str) -> ConversationRecord | None:
        oid, cid = _object_id(user_id), _object_id(conversation_id)
        if oid is None or cid is None:
            return None
        doc = ConversationDocument.objects(id=cid, user_id=oid).first()
        return doc.to_record() if doc else None

    def update_conversation(
        self, user_id: str, conversation_id: str, update: ConversationUpdate
    ) -> ConversationRecord | None:
        oid, cid = _object_id(user_id), _object_id(conversation_id)
        if oid is None or cid is None:
            return None

        now = _utcnow()
        fields = update.model_dump(exclude_unset=True, exclude_none=True)
        changes = {f"set__{name}": value for name, value in fields.items()}
        changes.update(set__updated_at=now, set__last_message_at=now)

        doc = ConversationDocument.objects(id=cid, user_id=oid).modify(new=True, **changes)
        return doc.to_record() if doc else None

    def delete_conversation(self, user_id: str, conversation_id: str) -> bool:
        oid, cid = _object_id(user_id), _object_id(conversation_id)
        if oid is None or cid is None:
            return False
        return ConversationDocument.objects(id=cid, user_id=oid).delete() > 0
