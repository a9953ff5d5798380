"""Reply strategies: scripted quick replies, remote completion and the local rule table."""

from __future__ import annotations

import os
import re
from typing import Dict, Optional, Protocol, Sequence, Tuple

import logging

from luxebot.models.chat import Intent
from luxebot.services.llm import CompletionClient
from luxebot.services.session_store import SessionContext

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are LuxeBot, the AI booking assistant for Luxe Living, a short-let luxury property booking platform "
    "in Lagos, Nigeria. You help users find and book short-let apartments. Be helpful and conversational, and "
    "guide users to share their preferences: location, dates, number of guests and budget. Our properties range "
    "from ₦35,000 to ₦120,000 per night. Keep responses concise (under a few sentences) and focused on helping "
    "the user book a property. If asked about specific property details you don't know, suggest browsing the "
    "available properties on the website. Bookings are completed on the property page with the 'Book Now' "
    "button, where a referral code can also be entered."
)

APOLOGY = "I'm sorry, I'm having trouble connecting right now. Please try again later."

FIND_PROPERTY_QUICK_REPLY = "Find a property"
CHECK_AVAILABILITY_QUICK_REPLY = "Check availability"
REFERRAL_QUICK_REPLY = "Enter referral code"

QUICK_REPLIES: Dict[str, Intent] = {
    FIND_PROPERTY_QUICK_REPLY: Intent.FIND_PROPERTY,
    CHECK_AVAILABILITY_QUICK_REPLY: Intent.CHECK_AVAILABILITY,
    REFERRAL_QUICK_REPLY: Intent.REFERRAL_CODE,
}

REFERRAL_PROMPT = "Please enter your referral code below:"
AVAILABILITY_PROMPT = "Please provide the details to check availability:"

GREETING_REPLY = (
    "Hello! I'm LuxeBot, your AI booking assistant. How can I help you find the perfect short-let apartment today?"
)
CLARIFY_REPLY = (
    "Thanks for your message. To help you better, could you provide more details about what you're looking for? "
    "(location, dates, budget, number of guests)"
)

# First matching rule wins. A keyword matches at the start of a word, so "booking" hits "book".
LOCAL_RULES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("hi", "hello", "hey"), GREETING_REPLY),
    (
        ("property", "properties", "apartment", "apartments", "find"),
        "I can help you find a property! Could you tell me your preferred location, budget, and dates?",
    ),
    (
        ("availability", "check", "available"),
        "I'd be happy to check availability for you. Which property are you interested in, and when would you "
        "like to stay?",
    ),
    (
        ("referral", "code", "agent"),
        "Great! Please enter your referral code, and I'll make sure the referring agent gets credited for your "
        "booking.",
    ),
    (
        ("lagos", "lekki", "ikoyi", "victoria island"),
        "We have several properties in that area! What's your budget and how many bedrooms do you need?",
    ),
    (
        ("weekend", "holiday", "vacation"),
        "Looking for a weekend getaway? I can show you our available luxury properties. What area are you "
        "interested in?",
    ),
    (
        ("bedroom", "bedrooms", "bed", "sleep", "guest", "guests"),
        "I can find you a place with the perfect number of bedrooms. What's your preferred location and price "
        "range?",
    ),
    (
        ("price", "cost", "budget", "expensive", "cheap"),
        "Our luxury properties range from ₦35,000 to ₦120,000 per night. What's your budget range so I can find "
        "the best options for you?",
    ),
    (
        ("book", "reserv", "confirm"),
        "To book a property, simply select your preferred dates and number of guests, then click the 'Book Now' "
        "button. You can also include a referral code if you have one!",
    ),
)


class Responder(Protocol):
    name: str

    async def generate(self, intent: Intent, context: SessionContext) -> str:
        ...


class ScriptedQuickReply:
    """Handles the three quick-reply buttons without consulting a model."""

    name = "scripted"

    def __init__(self, quick_replies: Optional[Dict[str, Intent]] = None) -> None:
        self.quick_replies = dict(quick_replies or QUICK_REPLIES)

    def match(self, text: str) -> Optional[Intent]:
        return self.quick_replies.get(text)

    def prompt_for(self, intent: Intent) -> str:
        if intent == Intent.REFERRAL_CODE:
            return REFERRAL_PROMPT
        if intent == Intent.CHECK_AVAILABILITY:
            return AVAILABILITY_PROMPT
        return ""

    async def generate(self, intent: Intent, context: SessionContext) -> str:
        return self.prompt_for(intent)


class RemoteCompletion:
    name = "remote"

    def __init__(self, client: CompletionClient, system_prompt: str = SYSTEM_PROMPT) -> None:
        self.client = client
        self.system_prompt = system_prompt

    def build_messages(self, context: SessionContext) -> list[dict[str, str]]:
        system = self.system_prompt
        slots = context.slot_summary()
        if slots:
            system = f"{system}\nKnown guest preferences: {slots}."
        return context.bounded_history(system)

    async def generate(self, intent: Intent, context: SessionContext) -> str:
        messages = self.build_messages(context)
        logger.info("responder.remote intent=%s turns=%d", intent.value, len(messages) - 1)
        return await self.client.complete(messages)


class LocalRuleTable:
    name = "local"

    def __init__(self, rules: Sequence[Tuple[Tuple[str, ...], str]] = LOCAL_RULES, default: str = CLARIFY_REPLY) -> None:
        self.rules = [(_keyword_pattern(keywords), reply) for keywords, reply in rules]
        self.default = default

    def reply_for(self, text: str) -> str:
        low = text.lower()
        for pattern, reply in self.rules:
            if pattern.search(low):
                return reply
        return self.default

    async def generate(self, intent: Intent, context: SessionContext) -> str:
        return self.reply_for(context.last_query or "")


def _keyword_pattern(keywords: Tuple[str, ...]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf"\b(?:{alternation})")


def choose_responder(api_key: Optional[str] = None, client: Optional[CompletionClient] = None) -> Responder:
    """Remote completion when a credential is configured, otherwise the local rule table."""
    if client is None:
        key = api_key or os.getenv("OPENAI_API_KEY")
        if not key:
            logger.info("responder.selected name=local reason=no_api_key")
            return LocalRuleTable()
        client = CompletionClient(api_key=key)
    if not client.configured:
        logger.info("responder.selected name=local reason=client_unconfigured")
        return LocalRuleTable()
    logger.info("responder.selected name=remote model=%s", client.model)
    return RemoteCompletion(client)
