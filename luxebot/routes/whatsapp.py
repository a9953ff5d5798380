"""WhatsApp Cloud API webhook: verification handshake and inbound messages."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

import logging
from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse

from luxebot.logging.flight_recorder import FlightRecorder, redact_phone
from luxebot.models.whatsapp import ParseFailure, parse_webhook_payload
from luxebot.services.assistant import BookingAssistant
from luxebot.services.whatsapp import WhatsAppChannel, WhatsAppConfigError, WhatsAppError

logger = logging.getLogger(__name__)

router = APIRouter()


def verify_subscription(mode: Optional[str], token: Optional[str], expected: Optional[str]) -> bool:
    if not expected or not token:
        return False
    return token == expected and mode in (None, "subscribe")


@router.get("/webhook")
async def verify_webhook(
    hub_mode: Optional[str] = Query(default=None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    hub_challenge: str = Query(default="", alias="hub.challenge"),
) -> PlainTextResponse:
    if verify_subscription(hub_mode, hub_verify_token, os.getenv("WHATSAPP_VERIFY_TOKEN")):
        logger.info("whatsapp.webhook_verified")
        return PlainTextResponse(hub_challenge, status_code=200)
    logger.warning("whatsapp.webhook_verification_failed mode=%s", hub_mode)
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("/webhook")
async def receive_webhook(request: Request) -> Dict[str, Any]:
    recorder: FlightRecorder = getattr(request.state, "flight_recorder", None) or FlightRecorder()
    try:
        raw = await request.json()
    except ValueError:
        logger.warning("whatsapp.webhook_ignored reason=invalid_json")
        return {"status": "ignored", "reason": "invalid json"}

    parsed = parse_webhook_payload(raw)
    if isinstance(parsed, ParseFailure):
        logger.info("whatsapp.webhook_ignored reason=%s", parsed.reason)
        return {"status": "ignored", "reason": parsed.reason}

    recorder.log("INBOUND", "whatsapp_message", sender=parsed.sender, name=parsed.profile_name)
    assistant: BookingAssistant = request.app.state.assistant
    channel: WhatsAppChannel = request.app.state.whatsapp_channel

    result = await assistant.handle_text_reply(parsed.sender, parsed.text, recorder)
    try:
        await channel.deliver(parsed.sender, result.messages, recorder)
    except WhatsAppConfigError as exc:
        logger.error("whatsapp.not_configured to=%s err=%s", redact_phone(parsed.sender), exc)
        return {"status": "not_sent", "reason": str(exc), "replies": len(result.messages)}
    except WhatsAppError as exc:
        logger.error("whatsapp.delivery_failed to=%s err=%s", redact_phone(parsed.sender), exc, exc_info=True)
        return {"status": "failed", "reason": str(exc), "replies": len(result.messages)}

    return {"status": "sent", "replies": len(result.messages)}
