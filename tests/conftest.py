"""Shared fixtures: an assistant wired to the local rule table and zero typing delay."""

from typing import Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from luxebot.main import create_app
from luxebot.models.catalog import PropertySummary
from luxebot.services.assistant import BookingAssistant
from luxebot.services.catalog import FixturePropertyCatalog
from luxebot.services.responders import LocalRuleTable, Responder
from luxebot.services.whatsapp import WhatsAppClient

_ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "LUXEBOT_CATALOG_URL",
    "LUXEBOT_TYPING_DELAY",
    "WHATSAPP_ACCESS_TOKEN",
    "WHATSAPP_PHONE_NUMBER_ID",
    "WHATSAPP_API_VERSION",
    "WHATSAPP_VERIFY_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's .env from leaking credentials into tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def make_property(property_id: int, location: str, featured: bool = True, **overrides) -> PropertySummary:
    data = {
        "id": property_id,
        "name": f"Test Property {property_id}",
        "location": location,
        "pricePerNight": 50000,
        "bedrooms": 2,
        "bathrooms": 2,
        "maxGuests": 4,
        "featured": featured,
    }
    data.update(overrides)
    return PropertySummary.model_validate(data)


class FakeCompletionClient:
    """Stands in for CompletionClient; records every message list it is sent."""

    configured = True
    model = "fake-model"

    def __init__(self, reply: str = "Happy to help with your stay!", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[List[Dict[str, str]]] = []

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def catalog() -> FixturePropertyCatalog:
    return FixturePropertyCatalog()


@pytest.fixture
def make_assistant(catalog) -> Callable[..., BookingAssistant]:
    def _make(responder: Optional[Responder] = None, catalog_override=None, typing_delay: float = 0.0):
        return BookingAssistant(
            catalog=catalog_override or catalog,
            responder=responder or LocalRuleTable(),
            typing_delay=typing_delay,
        )

    return _make


@pytest.fixture
def assistant(make_assistant) -> BookingAssistant:
    return make_assistant()


@pytest.fixture
def sent_messages() -> List[httpx.Request]:
    return []


@pytest.fixture
def whatsapp_client(sent_messages) -> WhatsAppClient:
    def handler(request: httpx.Request) -> httpx.Response:
        sent_messages.append(request)
        return httpx.Response(200, json={"messages": [{"id": f"wamid.{len(sent_messages)}"}]})

    return WhatsAppClient(
        access_token="test-token",
        phone_number_id="1234567890",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def client(assistant, whatsapp_client) -> TestClient:
    app = create_app(assistant=assistant, whatsapp_client=whatsapp_client)
    return TestClient(app)


def webhook_payload(message=None, statuses=None):
    value = {
        "messaging_product": "whatsapp",
        "metadata": {"display_phone_number": "15550000000", "phone_number_id": "1234567890"},
        "contacts": [{"profile": {"name": "Ada"}, "wa_id": "2348012345678"}],
    }
    if message is not None:
        value["messages"] = [message]
    if statuses is not None:
        value["statuses"] = statuses
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA", "changes": [{"field": "messages", "value": value}]}],
    }


def text_message(body, sender="2348012345678"):
    return {"from": sender, "id": "wamid.in", "timestamp": "1700000000", "type": "text", "text": {"body": body}}
