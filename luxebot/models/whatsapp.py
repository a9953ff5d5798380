from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class TextBody(BaseModel):
    body: str = ""


class ReplyChoice(BaseModel):
    id: Optional[str] = None
    title: str = ""


class InteractiveReply(BaseModel):
    type: str
    button_reply: Optional[ReplyChoice] = None
    list_reply: Optional[ReplyChoice] = None


class InboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sender: str = Field(..., alias="from", min_length=1)
    id: str
    timestamp: Optional[str] = None
    type: str
    text: Optional[TextBody] = None
    interactive: Optional[InteractiveReply] = None


class ContactProfile(BaseModel):
    name: Optional[str] = None


class Contact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    wa_id: Optional[str] = None
    profile: Optional[ContactProfile] = None


class ChangeValue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messaging_product: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    contacts: List[Contact] = Field(default_factory=list)
    messages: List[InboundMessage] = Field(default_factory=list)
    statuses: List[Dict[str, Any]] = Field(default_factory=list)


class WebhookChange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    field: Optional[str] = None
    value: ChangeValue


class WebhookEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    changes: List[WebhookChange] = Field(default_factory=list)


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: Optional[str] = None
    entry: List[WebhookEntry] = Field(default_factory=list)


@dataclass(frozen=True)
class ParsedInboundMessage:
    sender: str
    text: str
    message_id: str
    profile_name: Optional[str] = None


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseResult = Union[ParsedInboundMessage, ParseFailure]


def parse_webhook_payload(raw: Any) -> ParseResult:
    """Validate a WhatsApp Cloud API webhook body and pull out the first user message.

    Status callbacks, unsupported message types and malformed bodies all come
    back as a ``ParseFailure`` carrying the reason; nothing here raises.
    """
    try:
        payload = WebhookPayload.model_validate(raw)
    except ValidationError as exc:
        return ParseFailure(reason=f"invalid payload: {exc.error_count()} validation error(s)")

    if not payload.entry:
        return ParseFailure(reason="no entries")
    changes = payload.entry[0].changes
    if not changes:
        return ParseFailure(reason="no changes")
    value = changes[0].value
    if not value.messages:
        if value.statuses:
            return ParseFailure(reason="status update")
        return ParseFailure(reason="no messages")

    message = value.messages[0]
    text = _message_text(message)
    if text is None:
        return ParseFailure(reason=f"unsupported message type: {message.type}")
    text = text.strip()
    if not text:
        return ParseFailure(reason="empty message text")

    profile_name = None
    for contact in value.contacts:
        if contact.wa_id in (None, message.sender) and contact.profile and contact.profile.name:
            profile_name = contact.profile.name
            break

    return ParsedInboundMessage(
        sender=message.sender,
        text=text,
        message_id=message.id,
        profile_name=profile_name,
    )


def _message_text(message: InboundMessage) -> Optional[str]:
    if message.type == "text" and message.text is not None:
        return message.text.body
    if message.type == "interactive" and message.interactive is not None:
        # Button and list replies carry the quick-reply label as their title
        choice = message.interactive.button_reply or message.interactive.list_reply
        if choice is not None:
            return choice.title
    return None
