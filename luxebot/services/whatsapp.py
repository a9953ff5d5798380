from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import httpx
import logging

from luxebot.logging.flight_recorder import FlightRecorder, redact_phone
from luxebot.models.chat import ContentKind, ConversationMessage

logger = logging.getLogger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com"


class WhatsAppError(Exception):
    pass


class WhatsAppConfigError(WhatsAppError):
    """Access token or phone number id is missing."""


class WhatsAppSendError(WhatsAppError):
    pass


class WhatsAppClient:
    def __init__(
        self,
        access_token: Optional[str] = None,
        phone_number_id: Optional[str] = None,
        api_version: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.access_token = access_token or os.getenv("WHATSAPP_ACCESS_TOKEN")
        self.phone_number_id = phone_number_id or os.getenv("WHATSAPP_PHONE_NUMBER_ID")
        self.api_version = api_version or os.getenv("WHATSAPP_API_VERSION") or "v17.0"
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.access_token and self.phone_number_id)

    async def send(self, to_phone: str, body: str) -> Dict[str, Any]:
        if not self.configured:
            raise WhatsAppConfigError("WhatsApp credentials not configured")

        url = f"{GRAPH_API_BASE}/{self.api_version}/{self.phone_number_id}/messages"
        payload = {
            "messaging_product": "whatsapp",
            "to": to_phone,
            "type": "text",
            "text": {"body": body},
        }
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(10.0, connect=5.0), transport=self._transport
            ) as client:
                response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "whatsapp.error to=%s status=%s body=%s",
                redact_phone(to_phone),
                exc.response.status_code,
                exc.response.text[:500],
            )
            raise WhatsAppSendError(f"WhatsApp API error: HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("whatsapp.error to=%s err=%s", redact_phone(to_phone), exc)
            raise WhatsAppSendError(f"WhatsApp API request failed: {exc}") from exc

        data = response.json()
        message_ids = [item.get("id") for item in data.get("messages", []) if isinstance(item, dict)]
        logger.info("whatsapp.sent to=%s ids=%s", redact_phone(to_phone), message_ids)
        return {"status": "sent", "to": to_phone, "message_ids": message_ids}


def render_message(message: ConversationMessage) -> str:
    """Plain-text rendering of a bot message; WhatsApp has no property cards or forms."""
    if message.content_kind == ContentKind.PROPERTY_LIST and message.properties:
        lines = [message.text]
        for prop in message.properties:
            lines.append(f"- {prop.name} ({prop.location}): ₦{prop.price_per_night:,} per night, sleeps {prop.max_guests}")
        return "\n".join(lines)
    if message.content_kind == ContentKind.REFERRAL_CODE_PROMPT:
        return f"{message.text}\nReply with just your code."
    if message.content_kind == ContentKind.AVAILABILITY_PROMPT:
        return f"{message.text}\nReply with your dates, e.g. 2025-03-01 to 2025-03-04."
    return message.text


class WhatsAppChannel:
    """Pushes a turn's bot messages to the sender, in order."""

    def __init__(self, client: WhatsAppClient) -> None:
        self.client = client

    async def deliver(
        self,
        to_phone: str,
        messages: List[ConversationMessage],
        recorder: Optional[FlightRecorder] = None,
    ) -> List[Dict[str, Any]]:
        results = []
        for message in messages:
            if recorder:
                with recorder.stage("WHATSAPP", to=to_phone, kind=message.content_kind.value):
                    results.append(await self.client.send(to_phone, render_message(message)))
            else:
                results.append(await self.client.send(to_phone, render_message(message)))
        return results
