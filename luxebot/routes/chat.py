"""Web chat channel: one HTTP request per user turn."""

from __future__ import annotations

import logging
from fastapi import APIRouter, HTTPException, Request

from luxebot.logging.flight_recorder import FlightRecorder
from luxebot.models.chat import (
    AvailabilitySubmission,
    ChatRequest,
    ChatResponse,
    ReferralSubmission,
    TranscriptResponse,
)
from luxebot.services.assistant import BookingAssistant, TurnResult

logger = logging.getLogger(__name__)

router = APIRouter()


def _assistant(request: Request) -> BookingAssistant:
    return request.app.state.assistant


def _recorder(request: Request) -> FlightRecorder:
    return getattr(request.state, "flight_recorder", None) or FlightRecorder()


def _response(session_id: str, result: TurnResult) -> ChatResponse:
    return ChatResponse(
        session_id=session_id,
        state=result.context.state,
        reply=result.reply,
        messages=result.messages,
    )


@router.post("", response_model=ChatResponse)
async def post_message(body: ChatRequest, request: Request) -> ChatResponse:
    recorder = _recorder(request)
    with recorder.stage("WEB", route="chat"):
        result = await _assistant(request).handle_message(body.session_id, body.message, recorder)
    return _response(body.session_id, result)


@router.post("/referral", response_model=ChatResponse)
async def post_referral(body: ReferralSubmission, request: Request) -> ChatResponse:
    recorder = _recorder(request)
    with recorder.stage("WEB", route="referral"):
        result = await _assistant(request).submit_referral(body.session_id, body.code, recorder)
    return _response(body.session_id, result)


@router.post("/availability", response_model=ChatResponse)
async def post_availability(body: AvailabilitySubmission, request: Request) -> ChatResponse:
    recorder = _recorder(request)
    with recorder.stage("WEB", route="availability"):
        result = await _assistant(request).submit_availability(
            body.session_id, body.check_in, body.check_out, recorder
        )
    return _response(body.session_id, result)


@router.get("/{session_id}/messages", response_model=TranscriptResponse)
async def get_transcript(session_id: str, request: Request) -> TranscriptResponse:
    context = _assistant(request).get_context(session_id)
    if context is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return TranscriptResponse(
        session_id=session_id,
        state=context.state,
        location=context.preferred_location,
        guest_count=context.guest_count,
        check_in=context.preferred_dates.check_in,
        check_out=context.preferred_dates.check_out,
        messages=context.transcript,
    )
