"""Per-conversation dialogue state and the stores that hold it."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import date
from typing import Deque, Dict, List, Optional, Protocol

from luxebot.models.catalog import PropertySummary
from luxebot.models.chat import ContentKind, ConversationMessage, DialogueState, SenderRole

GREETING = "Hello! I'm your Luxe Living AI assistant. How can I help you find the perfect short-let stay today?"

# Turns kept for the completion call; the system prompt is added on top.
MAX_LLM_TURNS = 10


@dataclass
class PreferredDates:
    check_in: Optional[date] = None
    check_out: Optional[date] = None


@dataclass
class SessionContext:
    conversation_id: str
    state: DialogueState = DialogueState.IDLE
    transcript: List[ConversationMessage] = field(default_factory=list)
    llm_turns: Deque[Dict[str, str]] = field(default_factory=lambda: deque(maxlen=MAX_LLM_TURNS))
    last_query: Optional[str] = None
    preferred_location: Optional[str] = None
    preferred_dates: PreferredDates = field(default_factory=PreferredDates)
    guest_count: Optional[int] = None
    budget: Optional[int] = None
    referral_code: Optional[str] = None
    catalog_cache: Optional[List[PropertySummary]] = None

    @classmethod
    def start(cls, conversation_id: str) -> "SessionContext":
        context = cls(conversation_id=conversation_id)
        context.transcript.append(ConversationMessage(role=SenderRole.BOT, text=GREETING))
        return context

    def add_user_message(self, text: str) -> ConversationMessage:
        message = ConversationMessage(role=SenderRole.USER, text=text)
        self.transcript.append(message)
        self.llm_turns.append({"role": "user", "content": text})
        return message

    def add_bot_message(
        self,
        text: str,
        kind: ContentKind = ContentKind.PLAIN_TEXT,
        properties: Optional[List[PropertySummary]] = None,
    ) -> ConversationMessage:
        message = ConversationMessage(
            role=SenderRole.BOT,
            text=text,
            content_kind=kind,
            properties=list(properties or []),
        )
        self.transcript.append(message)
        if kind == ContentKind.PLAIN_TEXT:
            self.llm_turns.append({"role": "assistant", "content": text})
        return message

    def bounded_history(self, system_prompt: str) -> List[Dict[str, str]]:
        """System instruction first, then at most MAX_LLM_TURNS recent turns."""
        return [{"role": "system", "content": system_prompt}, *self.llm_turns]

    def slot_summary(self) -> str:
        parts = []
        if self.preferred_location:
            parts.append(f"location={self.preferred_location}")
        if self.guest_count is not None:
            parts.append(f"guests={self.guest_count}")
        if self.budget is not None:
            parts.append(f"budget_per_night={self.budget}")
        if self.preferred_dates.check_in and self.preferred_dates.check_out:
            parts.append(
                f"dates={self.preferred_dates.check_in.isoformat()}..{self.preferred_dates.check_out.isoformat()}"
            )
        if self.referral_code:
            parts.append("referral_code=provided")
        return ", ".join(parts)


class ContextStore(Protocol):
    def get(self, conversation_id: str) -> Optional[SessionContext]:
        ...

    def set(self, context: SessionContext) -> None:
        ...

    def evict(self, conversation_id: str) -> None:
        ...


class InMemoryContextStore:
    """Process-local store; contexts live as long as the server process."""

    def __init__(self) -> None:
        self._contexts: Dict[str, SessionContext] = {}

    def get(self, conversation_id: str) -> Optional[SessionContext]:
        return self._contexts.get(conversation_id)

    def set(self, context: SessionContext) -> None:
        self._contexts[context.conversation_id] = context

    def evict(self, conversation_id: str) -> None:
        self._contexts.pop(conversation_id, None)

    def __len__(self) -> int:
        return len(self._contexts)


def get_or_start(store: ContextStore, conversation_id: str) -> SessionContext:
    context = store.get(conversation_id)
    if context is None:
        context = SessionContext.start(conversation_id)
        store.set(context)
    return context
