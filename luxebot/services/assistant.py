"""Dialogue manager shared by the web chat and WhatsApp channels.

Each inbound turn is classified, its slots merged into the session context and
a reply produced by the configured responder. Quick-reply buttons skip the
responder and open their sub-flow directly. Structured form submissions
(referral code, stay dates) are validated and then rewritten as ordinary chat
text so that they go through the same pipeline as typed messages.

Turns for one conversation are serialized with a per-conversation lock, so the
transcript always reads in the order the user sent messages.
"""

from __future__ import annotations

import asyncio
import os
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

import logging
from dateutil import parser as dateparser

from luxebot.logging.flight_recorder import FlightRecorder
from luxebot.models.chat import ContentKind, ConversationMessage, DialogueState, Intent
from luxebot.services.catalog import PropertyCatalog, build_catalog
from luxebot.services.intents import classify, extract_location, extract_slots
from luxebot.services.llm import CompletionError
from luxebot.services.recommender import recommend
from luxebot.services.responders import APOLOGY, Responder, ScriptedQuickReply, choose_responder
from luxebot.services.session_store import (
    ContextStore,
    InMemoryContextStore,
    PreferredDates,
    SessionContext,
    get_or_start,
)

logger = logging.getLogger(__name__)

_REFERRAL_CODE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{2,31}$")
_DATE_RANGE_PATTERN = re.compile(r"^\s*(?:from\s+)?(.+?)\s+(?:to|until|till|-)\s+(.+?)\s*$", re.IGNORECASE)


class SubmissionError(ValueError):
    """A structured form value was rejected; the message is shown to the user."""


@dataclass
class TurnResult:
    context: SessionContext
    messages: List[ConversationMessage] = field(default_factory=list)

    @property
    def reply(self) -> Optional[str]:
        return self.messages[-1].text if self.messages else None


def validate_referral_code(code: str) -> str:
    cleaned = (code or "").strip()
    if not cleaned:
        raise SubmissionError("Please type a referral code before submitting.")
    if not _REFERRAL_CODE_PATTERN.match(cleaned):
        raise SubmissionError("That referral code doesn't look right. Codes are 3-32 letters or numbers.")
    return cleaned.upper()


def looks_like_referral_code(text: str) -> bool:
    """True for a typed reply such as ``AGENT42``; plain words like "thanks" or "Lekki" are not codes."""
    if not _REFERRAL_CODE_PATTERN.match(text):
        return False
    if not any(char.isdigit() or char in "-_" for char in text):
        return False
    return extract_location(text) is None and classify(text) == Intent.GENERAL


def parse_stay_date(value: str) -> date:
    try:
        return dateparser.parse(value.strip()).date()
    except (ValueError, OverflowError, AttributeError) as exc:
        raise SubmissionError(f"I couldn't read '{value}' as a date.") from exc


def validate_stay_dates(check_in: str, check_out: str, today: Optional[date] = None) -> PreferredDates:
    start = parse_stay_date(check_in)
    end = parse_stay_date(check_out)
    if start < (today or date.today()):
        raise SubmissionError("Your check-in date can't be in the past.")
    if end <= start:
        raise SubmissionError("Your check-out date needs to be after your check-in date.")
    return PreferredDates(check_in=start, check_out=end)


class BookingAssistant:
    def __init__(
        self,
        store: Optional[ContextStore] = None,
        catalog: Optional[PropertyCatalog] = None,
        responder: Optional[Responder] = None,
        scripted: Optional[ScriptedQuickReply] = None,
        typing_delay: Optional[float] = None,
    ) -> None:
        self.store = store if store is not None else InMemoryContextStore()
        self.catalog = catalog if catalog is not None else build_catalog()
        self.responder = responder if responder is not None else choose_responder()
        self.scripted = scripted or ScriptedQuickReply()
        if typing_delay is None:
            typing_delay = float(os.getenv("LUXEBOT_TYPING_DELAY", "1.0"))
        self.typing_delay = max(typing_delay, 0.0)
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, conversation_id: str) -> asyncio.Lock:
        return self._locks.setdefault(conversation_id, asyncio.Lock())

    def get_context(self, conversation_id: str) -> Optional[SessionContext]:
        return self.store.get(conversation_id)

    def forget(self, conversation_id: str) -> None:
        self.store.evict(conversation_id)
        self._locks.pop(conversation_id, None)

    async def handle_message(
        self, conversation_id: str, text: str, recorder: Optional[FlightRecorder] = None
    ) -> TurnResult:
        recorder = recorder or FlightRecorder()
        text = (text or "").strip()
        async with self._lock(conversation_id):
            context = get_or_start(self.store, conversation_id)
            if not text:
                return TurnResult(context=context)
            messages = await self._run_turn(context, text, recorder)
            self.store.set(context)
            return TurnResult(context=context, messages=messages)

    async def submit_referral(
        self, conversation_id: str, code: str, recorder: Optional[FlightRecorder] = None
    ) -> TurnResult:
        recorder = recorder or FlightRecorder()
        async with self._lock(conversation_id):
            context = get_or_start(self.store, conversation_id)
            return await self._accept_referral(context, code, recorder)

    async def submit_availability(
        self,
        conversation_id: str,
        check_in: str,
        check_out: str,
        recorder: Optional[FlightRecorder] = None,
    ) -> TurnResult:
        recorder = recorder or FlightRecorder()
        async with self._lock(conversation_id):
            context = get_or_start(self.store, conversation_id)
            return await self._accept_dates(context, check_in, check_out, recorder)

    async def handle_text_reply(
        self, conversation_id: str, text: str, recorder: Optional[FlightRecorder] = None
    ) -> TurnResult:
        """Entry point for text-only channels, where form prompts are answered by typing.

        The routing decision is made under the conversation lock, so a second
        delivery never sees a prompt that the first one already answered.
        """
        recorder = recorder or FlightRecorder()
        text = (text or "").strip()
        async with self._lock(conversation_id):
            context = get_or_start(self.store, conversation_id)
            if not text:
                return TurnResult(context=context)
            if self.scripted.match(text) is None:
                if context.state == DialogueState.AWAITING_REFERRAL_INPUT and looks_like_referral_code(text):
                    return await self._accept_referral(context, text, recorder)
                if context.state == DialogueState.AWAITING_AVAILABILITY_INPUT:
                    match = _DATE_RANGE_PATTERN.match(text)
                    if match and _is_date(match.group(1)) and _is_date(match.group(2)):
                        return await self._accept_dates(context, match.group(1), match.group(2), recorder)
            messages = await self._run_turn(context, text, recorder)
            self.store.set(context)
            return TurnResult(context=context, messages=messages)

    async def _accept_referral(self, context: SessionContext, code: str, recorder: FlightRecorder) -> TurnResult:
        try:
            cleaned = validate_referral_code(code)
        except SubmissionError as exc:
            recorder.log("INBOUND", "referral_rejected", reason=str(exc))
            message = self._reprompt(context, str(exc), Intent.REFERRAL_CODE)
            return TurnResult(context=context, messages=[message])
        context.referral_code = cleaned
        messages = await self._run_turn(
            context, f"I have a referral code: {cleaned}", recorder, submitted=Intent.REFERRAL_CODE
        )
        self.store.set(context)
        return TurnResult(context=context, messages=messages)

    async def _accept_dates(
        self, context: SessionContext, check_in: str, check_out: str, recorder: FlightRecorder
    ) -> TurnResult:
        try:
            dates = validate_stay_dates(check_in, check_out)
        except SubmissionError as exc:
            recorder.log("INBOUND", "availability_rejected", reason=str(exc))
            message = self._reprompt(context, str(exc), Intent.CHECK_AVAILABILITY)
            return TurnResult(context=context, messages=[message])
        context.preferred_dates = dates
        text = (
            f"I want to check availability from {dates.check_in.isoformat()} "
            f"to {dates.check_out.isoformat()}"
        )
        messages = await self._run_turn(context, text, recorder, submitted=Intent.CHECK_AVAILABILITY)
        self.store.set(context)
        return TurnResult(context=context, messages=messages)

    async def _run_turn(
        self,
        context: SessionContext,
        text: str,
        recorder: FlightRecorder,
        submitted: Optional[Intent] = None,
    ) -> List[ConversationMessage]:
        start = len(context.transcript)
        recorder.log("INBOUND", "turn_received", sender=context.conversation_id, length=len(text))

        context.last_query = text
        context.add_user_message(text)
        context.state = DialogueState.AWAITING_INTENT_REPLY
        with recorder.stage("CLASSIFY"):
            intent = classify(text)
            extract_slots(text, context)

        quick_reply = self.scripted.match(text)
        if quick_reply is not None:
            logger.info("assistant.quick_reply conversation=%s intent=%s", context.conversation_id, quick_reply.value)
            await self._typing()
            await self._enter_subflow(quick_reply, context, text, recorder)
            return context.transcript[start + 1:]

        try:
            with recorder.stage("RESPOND", responder=self.responder.name, intent=intent.value):
                reply = await self.responder.generate(intent, context)
        except CompletionError as exc:
            logger.warning(
                "assistant.completion_failed conversation=%s err=%s", context.conversation_id, exc, exc_info=True
            )
            recorder.log("LLM", "completion_failed", error=str(exc))
            return self._apologize(context, start)
        except Exception:  # noqa: BLE001
            logger.exception("assistant.responder_error conversation=%s", context.conversation_id)
            recorder.log("LLM", "responder_error")
            return self._apologize(context, start)

        await self._typing()
        context.add_bot_message(reply)
        context.state = DialogueState.IDLE

        if intent != Intent.GENERAL and intent != submitted:
            await self._typing()
            await self._enter_subflow(intent, context, text, recorder)

        logger.info(
            "assistant.turn conversation=%s intent=%s state=%s replies=%d",
            context.conversation_id,
            intent.value,
            context.state.value,
            len(context.transcript) - start - 1,
        )
        return context.transcript[start + 1:]

    def _apologize(self, context: SessionContext, start: int) -> List[ConversationMessage]:
        context.add_bot_message(APOLOGY)
        context.state = DialogueState.IDLE
        return context.transcript[start + 1:]

    async def _enter_subflow(
        self, intent: Intent, context: SessionContext, text: str, recorder: FlightRecorder
    ) -> None:
        if intent == Intent.FIND_PROPERTY:
            with recorder.stage("RECOMMEND"):
                recommendation = await recommend(text, context, self.catalog, recorder)
            context.add_bot_message(recommendation.message, recommendation.kind, recommendation.properties)
            context.state = DialogueState.IDLE
        elif intent == Intent.CHECK_AVAILABILITY:
            prompt = await self.scripted.generate(intent, context)
            context.add_bot_message(prompt, ContentKind.AVAILABILITY_PROMPT)
            context.state = DialogueState.AWAITING_AVAILABILITY_INPUT
        elif intent == Intent.REFERRAL_CODE:
            prompt = await self.scripted.generate(intent, context)
            context.add_bot_message(prompt, ContentKind.REFERRAL_CODE_PROMPT)
            context.state = DialogueState.AWAITING_REFERRAL_INPUT

    def _reprompt(self, context: SessionContext, problem: str, intent: Intent) -> ConversationMessage:
        if intent == Intent.REFERRAL_CODE:
            kind, state = ContentKind.REFERRAL_CODE_PROMPT, DialogueState.AWAITING_REFERRAL_INPUT
        else:
            kind, state = ContentKind.AVAILABILITY_PROMPT, DialogueState.AWAITING_AVAILABILITY_INPUT
        prompt = self.scripted.prompt_for(intent)
        message = context.add_bot_message(f"{problem} {prompt}", kind)
        context.state = state
        self.store.set(context)
        return message

    async def _typing(self) -> None:
        if self.typing_delay > 0:
            await asyncio.sleep(self.typing_delay)


def _is_date(value: str) -> bool:
    try:
        parse_stay_date(value)
    except SubmissionError:
        return False
    return True
