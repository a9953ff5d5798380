from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from luxebot.models.catalog import PropertySummary


class Intent(str, Enum):
    FIND_PROPERTY = "find-property"
    CHECK_AVAILABILITY = "check-availability"
    REFERRAL_CODE = "referral-code"
    GENERAL = "general"


class SenderRole(str, Enum):
    BOT = "bot"
    USER = "user"


class ContentKind(str, Enum):
    PLAIN_TEXT = "plain-text"
    PROPERTY_LIST = "property-list"
    REFERRAL_CODE_PROMPT = "referral-code-prompt"
    AVAILABILITY_PROMPT = "availability-prompt"


class DialogueState(str, Enum):
    IDLE = "idle"
    AWAITING_INTENT_REPLY = "awaiting-intent-reply"
    AWAITING_REFERRAL_INPUT = "awaiting-referral-input"
    AWAITING_AVAILABILITY_INPUT = "awaiting-availability-input"


def _message_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationMessage(BaseModel):
    id: str = Field(default_factory=_message_id)
    role: SenderRole
    text: str
    timestamp: datetime = Field(default_factory=_now)
    content_kind: ContentKind = ContentKind.PLAIN_TEXT
    properties: List[PropertySummary] = Field(default_factory=list)


class ChatRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    message: str = Field(..., min_length=1, max_length=2000)

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("message must not be blank")
        return value


class ReferralSubmission(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    code: str = Field(..., max_length=64)


class AvailabilitySubmission(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    check_in: str
    check_out: str


class ChatResponse(BaseModel):
    session_id: str
    state: DialogueState
    reply: Optional[str] = None
    messages: List[ConversationMessage] = Field(default_factory=list)


class TranscriptResponse(BaseModel):
    session_id: str
    state: DialogueState
    location: Optional[str] = None
    guest_count: Optional[int] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    messages: List[ConversationMessage] = Field(default_factory=list)
