"""In-memory document store.

Used for development and tests. Records are stored as pydantic models and
copied on the way in and out so callers never share mutable state with the
store.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Callable

from app.adapters.storage.base import AbstractDocumentStore, DuplicateEmailError
from app.schemas.auth import UserRecord
from app.schemas.conversation import ConversationRecord, ConversationUpdate
from app.schemas.strategy import StrategyCreate, StrategyRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex[:24]


class InMemoryDocumentStore(AbstractDocumentStore):
    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._users: dict[str, UserRecord] = {}
        self._strategies: dict[str, StrategyRecord] = {}
        self._conversations: dict[str, ConversationRecord] = {}

    # Users

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        with self._lock:
            if any(u.email == email for u in self._users.values()):
                raise DuplicateEmailError(email)
            user = UserRecord(
                id=_new_id(),
                email=email,
                password_hash=password_hash,
                created_at=self._clock(),
            )
            self._users[user.id] = user
            return user.model_copy()

    def get_user(self, user_id: str) -> UserRecord | None:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_user_by_email(self, email: str) -> UserRecord | None:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.model_copy()
            return None

    def _update_user(self, user_id: str, **fields) -> UserRecord | None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = user.model_copy(update=fields)
            self._users[user_id] = updated
            return updated.model_copy()

    def set_custom_instructions(self, user_id: str, instructions: str) -> UserRecord | None:
        return self._update_user(user_id, custom_instructions=instructions)

    def set_notion_credentials(
        self, user_id: str, access_token: str, workspace_name: str | None
    ) -> UserRecord | None:
        return self._update_user(
            user_id,
            notion_access_token=access_token,
            notion_workspace_name=workspace_name,
        )

    def clear_notion_credentials(self, user_id: str) -> UserRecord | None:
        return self._update_user(user_id, notion_access_token=None, notion_workspace_name=None)

    # Strategies

    def create_strategy(self, strategy: StrategyCreate) -> StrategyRecord:
        now = self._clock()
        record = StrategyRecord(id=_new_id(), created_at=now, updated_at=now, **strategy.model_dump())
        with self._lock:
            self._strategies[record.id] = record
        return record.model_copy()

    def list_strategies(self, user_id: str) -> list[StrategyRecord]:
        with self._lock:
            owned = [s.model_copy() for s in self._strategies.values() if s.user_id == user_id]
        return sorted(owned, key=lambda s: s.updated_at, reverse=True)

    def delete_strategy(self, user_id: str, strategy_id: str) -> bool:
        with self._lock:
            record = self._strategies.get(strategy_id)
            if record is None or record.user_id != user_id:
                return False
            del self._strategies[strategy_id]
            return True

    # Conversations

    def create_conversation(self, user_id: str, title: str) -> ConversationRecord:
        now = self._clock()
        record = ConversationRecord(
            id=_new_id(),
            user_id=user_id,
            title=title,
            messages=[],
            created_at=now,
            updated_at=now,
            last_message_at=now,
        )
        with self._lock:
            self._conversations[record.id] = record
        return record.model_copy(deep=True)

    def list_conversations(self, user_id: str) -> list[ConversationRecord]:
        with self._lock:
            owned = [
                c.model_copy(deep=True) for c in self._conversations.values() if c.user_id == user_id
            ]
        return sorted(owned, key=lambda c: c.last_message_at, reverse=True)

    def get_conversation(self, user_id: str, conversation_id: str) -> ConversationRecord | None:
        with self._lock:
            record = self._conversations.get(conversation_id)
            if record is None or record.user_id != user_id:
                return None
            return record.model_copy(deep=True)

    def update_conversation(
        self, user_id: str, conversation_id: str, update: ConversationUpdate
    ) -> ConversationRecord | None:
        now = self._clock()
        fields = update.model_dump(exclude_unset=True, exclude_none=True)
        with self._lock:
            record = self._conversations.get(conversation_id)
            if record is None or record.user_id != user_id:
                return None
            merged = record.model_dump()
            merged.update(fields)
            merged.update(updated_at=now, last_message_at=now)
            updated = ConversationRecord.model_validate(merged)
            self._conversations[conversation_id] = updated
            return updated.model_copy(deep=True)

    def delete_conversation(self, user_id: str, conversation_id: str) -> bool:
        with self._lock:
            record = self._conversations.get(conversation_id)
            if record is None or record.user_id != user_id:
                return False
            del self._conversations[conversation_id]
            return True
