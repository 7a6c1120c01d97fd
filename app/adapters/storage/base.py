"""Document store interface.

Routes depend on this abstraction so the backing store (in-memory for
development and tests, MongoDB in production) can be swapped by
configuration. Every strategy/conversation operation takes the owner's id
and only ever touches records belonging to that user; an unknown id and a
foreign id are indistinguishable to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.schemas.auth import UserRecord
from app.schemas.conversation import ConversationRecord, ConversationUpdate
from app.schemas.strategy import StrategyCreate, StrategyRecord


class DuplicateEmailError(Exception):
    """Raised when registering an email that already has an account."""


class AbstractDocumentStore(ABC):
    """Persistence for users, strategies and conversations."""

    # Users

    @abstractmethod
    def create_user(self, email: str, password_hash: str) -> UserRecord:
        """Insert a user.

        Raises:
            DuplicateEmailError: If the email is already registered.
        """

    @abstractmethod
    def get_user(self, user_id: str) -> UserRecord | None: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> UserRecord | None: ...

    @abstractmethod
    def set_custom_instructions(self, user_id: str, instructions: str) -> UserRecord | None: ...

    @abstractmethod
    def set_notion_credentials(
        self, user_id: str, access_token: str, workspace_name: str | None
    ) -> UserRecord | None: ...

    @abstractmethod
    def clear_notion_credentials(self, user_id: str) -> UserRecord | None: ...

    # Strategies

    @abstractmethod
    def create_strategy(self, strategy: StrategyCreate) -> StrategyRecord: ...

    @abstractmethod
    def list_strategies(self, user_id: str) -> list[StrategyRecord]:
        """Return the user's strategies, most recently updated first."""

    @abstractmethod
    def delete_strategy(self, user_id: str, strategy_id: str) -> bool: ...

    # Conversations

    @abstractmethod
    def create_conversation(self, user_id: str, title: str) -> ConversationRecord: ...

    @abstractmethod
    def list_conversations(self, user_id: str) -> list[ConversationRecord]:
        """Return the user's conversations, most recent activity first."""

    @abstractmethod
    def get_conversation(self, user_id: str, conversation_id: str) -> ConversationRecord | None: ...

    @abstractmethod
    def update_conversation(
        self, user_id: str, conversation_id: str, update: ConversationUpdate
    ) -> ConversationRecord | None:
        """Apply the fields set on ``update`` and bump the activity timestamps."""

    @abstractmethod
    def delete_conversation(self, user_id: str, conversation_id: str) -> bool: ...

    def close(self) -> None:
        """Release connections held by the store."""
