"""Keyword intent classification and slot extraction for inbound chat text."""

from __future__ import annotations

import re
from typing import Optional, Sequence, Tuple

import logging
from word2number import w2n

from luxebot.models.chat import Intent
from luxebot.services.session_store import SessionContext

logger = logging.getLogger(__name__)

# Checked in order; the first family with a substring hit wins.
INTENT_KEYWORDS: Sequence[Tuple[Intent, Tuple[str, ...]]] = (
    (Intent.FIND_PROPERTY, ("find", "property", "apartment", "place")),
    (Intent.CHECK_AVAILABILITY, ("available", "check", "book")),
    (Intent.REFERRAL_CODE, ("referral", "code")),
)

# Scan order matters: "lagos" is found before "lekki" in "Lekki, Lagos".
LOCATION_GAZETTEER: Tuple[str, ...] = ("lagos", "lekki", "ikoyi", "victoria island", "ikeja", "ajah")

_GUEST_PATTERN = re.compile(r"(\d+)\s*(guests?|people|persons?)", re.IGNORECASE)
_SPELLED_GUEST_PATTERN = re.compile(
    r"\b((?:[a-z]+[\s-]+){0,2}[a-z]+)\s+(?:guests?|people|persons?)\b", re.IGNORECASE
)

MAX_GUESTS = 50

_BUDGET_PATTERNS = (
    re.compile(r"(?:₦|\bngn\s?|\bn(?=\d))(\d[\d,]*)(k)?\b", re.IGNORECASE),
    re.compile(r"\bbudget\s+(?:of\s+|is\s+)?(?:₦|ngn\s?|n)?(\d[\d,]*)(k)?\b", re.IGNORECASE),
    re.compile(r"\b(\d[\d,]*)(k)?\s*(?:naira|budget)\b", re.IGNORECASE),
)


def classify(text: str) -> Intent:
    low = text.lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in low for keyword in keywords):
            return intent
    return Intent.GENERAL


def extract_location(text: str) -> Optional[str]:
    low = text.lower()
    for term in LOCATION_GAZETTEER:
        if term in low:
            return term
    return None


def extract_guest_count(text: str) -> Optional[int]:
    """Guest count from "3 guests" or "four people"; None when absent or outside 1..MAX_GUESTS."""
    match = _GUEST_PATTERN.search(text)
    if match:
        count = int(match.group(1))
    else:
        spelled = _SPELLED_GUEST_PATTERN.search(text)
        if not spelled:
            return None
        try:
            count = w2n.word_to_num(spelled.group(1).lower())
        except ValueError:
            return None
    # w2n returns floats for "point five"
    if not isinstance(count, int) or not 1 <= count <= MAX_GUESTS:
        logger.debug("slots.guest_count_rejected value=%s", count)
        return None
    return count


def extract_budget(text: str) -> Optional[int]:
    for pattern in _BUDGET_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        digits = match.group(1).replace(",", "")
        if not digits:
            continue
        amount = int(digits)
        if match.group(2):
            amount *= 1000
        return amount
    return None


def extract_slots(text: str, context: SessionContext) -> SessionContext:
    """Merge any slots found in ``text`` into ``context``; absent slots keep their value."""
    location = extract_location(text)
    if location:
        context.preferred_location = location

    guests = extract_guest_count(text)
    if guests:
        context.guest_count = guests

    budget = extract_budget(text)
    if budget:
        context.budget = budget

    logger.debug(
        "slots.updated location=%s guests=%s budget=%s",
        context.preferred_location,
        context.guest_count,
        context.budget,
    )
    return context
