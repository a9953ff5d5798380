from luxebot.models.chat import Intent
from luxebot.services.intents import (
    classify,
    extract_budget,
    extract_guest_count,
    extract_location,
    extract_slots,
)
from luxebot.services.session_store import SessionContext


def test_classify_keyword_families_in_priority_order():
    assert classify("Can you find me somewhere nice?") == Intent.FIND_PROPERTY
    assert classify("Is it available next weekend?") == Intent.CHECK_AVAILABILITY
    assert classify("I got a referral from a friend") == Intent.REFERRAL_CODE
    # "place" outranks "book"
    assert classify("I want to book a place") == Intent.FIND_PROPERTY
    assert classify("thanks so much") == Intent.GENERAL


def test_classify_is_total_and_pure():
    for text in ["", "   ", "🙂", "CHECK", "x" * 5000]:
        first = classify(text)
        assert isinstance(first, Intent)
        assert classify(text) == first
    assert classify("") == Intent.GENERAL


def test_classify_uses_substrings():
    # "code" inside "decoder" still counts
    assert classify("my decoder broke") == Intent.REFERRAL_CODE


def test_extract_location_first_gazetteer_match_wins():
    assert extract_location("somewhere in Lekki please") == "lekki"
    assert extract_location("Victoria Island or Ikeja") == "victoria island"
    assert extract_location("Lekki, Lagos") == "lagos"
    assert extract_location("Abuja") is None


def test_extract_guest_count_digits_and_words():
    assert extract_guest_count("for 3 guests") == 3
    assert extract_guest_count("1 guest only") == 1
    assert extract_guest_count("we are 6 people") == 6
    assert extract_guest_count("for four people") == 4
    assert extract_guest_count("twelve guests") == 12
    assert extract_guest_count("many guests") is None
    assert extract_guest_count("a quiet apartment") is None


def test_extract_budget_formats():
    assert extract_budget("around ₦50,000 a night") == 50000
    assert extract_budget("my budget is 80k") == 80000
    assert extract_budget("60000 naira max") == 60000
    assert extract_budget("NGN 45000") == 45000
    assert extract_budget("3 bedrooms") is None


def test_extract_slots_are_sticky():
    context = SessionContext.start("sticky")
    extract_slots("a place in Ikoyi for 2 guests", context)
    assert context.preferred_location == "ikoyi"
    assert context.guest_count == 2

    extract_slots("what about the price?", context)
    assert context.preferred_location == "ikoyi"
    assert context.guest_count == 2

    extract_slots("actually Lekki for 5 people", context)
    assert context.preferred_location == "lekki"
    assert context.guest_count == 5


def test_extract_guest_count_rejects_implausible_values():
    assert extract_guest_count("million guests") is None
    assert extract_guest_count("a hundred people") is None
    assert extract_guest_count("point five guests") is None
    assert extract_guest_count("0 guests") is None
    assert extract_guest_count("500 people") is None
    assert extract_guest_count("twenty five guests") == 25
    assert extract_guest_count("two bedrooms for four guests") == 4


def test_implausible_guest_count_leaves_slot_unchanged():
    context = SessionContext.start("guests")
    extract_slots("for 2 guests", context)
    extract_slots("a million people would love it", context)

    assert context.guest_count == 2
