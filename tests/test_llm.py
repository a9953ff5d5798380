import json

import httpx
import pytest

from luxebot.services.llm import CompletionClient, EmptyResponse, ServiceUnavailable
from luxebot.services.responders import LocalRuleTable, RemoteCompletion, choose_responder


def _completion(content):
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-3.5-turbo",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }


def _client(handler, captured=None):
    def wrapped(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(json.loads(request.content))
        return handler(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(wrapped))
    return CompletionClient(api_key="sk-test", max_retries=0, http_client=http_client)


@pytest.mark.asyncio
async def test_complete_returns_stripped_reply_and_sends_history():
    captured = []
    client = _client(lambda request: httpx.Response(200, json=_completion("  Welcome to Luxe Living!  ")), captured)
    messages = [{"role": "system", "content": "be nice"}, {"role": "user", "content": "hi"}]

    reply = await client.complete(messages)

    assert reply == "Welcome to Luxe Living!"
    assert captured[0]["messages"] == messages
    assert captured[0]["model"] == "gpt-3.5-turbo"
    assert captured[0]["max_tokens"] == 150


@pytest.mark.asyncio
async def test_empty_content_raises_empty_response():
    client = _client(lambda request: httpx.Response(200, json=_completion("   ")))

    with pytest.raises(EmptyResponse):
        await client.complete([{"role": "system", "content": "x"}])


@pytest.mark.asyncio
async def test_auth_failure_raises_service_unavailable():
    client = _client(lambda request: httpx.Response(401, json={"error": {"message": "bad key"}}))

    with pytest.raises(ServiceUnavailable):
        await client.complete([{"role": "system", "content": "x"}])


@pytest.mark.asyncio
async def test_unconfigured_client_raises_service_unavailable():
    client = CompletionClient()

    assert not client.configured
    with pytest.raises(ServiceUnavailable):
        await client.complete([{"role": "system", "content": "x"}])


def test_choose_responder_without_key_uses_local_rules():
    assert isinstance(choose_responder(), LocalRuleTable)


def test_choose_responder_with_key_uses_remote_completion(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert isinstance(choose_responder(), RemoteCompletion)


def test_model_comes_from_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o-mini")
    assert CompletionClient(api_key="sk-test").model == "gpt-4o-mini"


def test_local_rules_match_whole_words():
    rules = LocalRuleTable()
    assert rules.reply_for("hey!").startswith("Hello! I'm LuxeBot")
    # "hi" inside "something" is not a greeting
    assert not rules.reply_for("something about Ikoyi").startswith("Hello!")
    assert "₦35,000 to ₦120,000" in rules.reply_for("is it expensive?")
    assert rules.reply_for("qwerty").startswith("Thanks for your message.")


@pytest.mark.parametrize(
    "text, expected_start",
    [
        ("Can I make a reservation?", "To book a property"),
        ("I'd like booking for Friday", "To book a property"),
        ("checking dates", "I'd be happy to check availability"),
        ("any holidays deals", "Looking for a weekend getaway?"),
        ("cheaper options?", "Our luxury properties range"),
        ("referrals?", "Great! Please enter your referral code"),
    ],
)
def test_local_rules_match_word_forms(text, expected_start):
    assert LocalRuleTable().reply_for(text).startswith(expected_start)
