from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from luxebot.logging.flight_recorder import register_log_middleware
from luxebot.routes import chat, health, properties, whatsapp
from luxebot.services.assistant import BookingAssistant
from luxebot.services.catalog import PropertyCatalog, build_catalog
from luxebot.services.whatsapp import WhatsAppChannel, WhatsAppClient


def create_app(
    assistant: Optional[BookingAssistant] = None,
    catalog: Optional[PropertyCatalog] = None,
    whatsapp_client: Optional[WhatsAppClient] = None,
) -> FastAPI:
    app = FastAPI(title="LuxeBot", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_log_middleware(app)

    if catalog is None:
        catalog = assistant.catalog if assistant is not None else build_catalog()
    app.state.catalog = catalog
    app.state.assistant = assistant or BookingAssistant(catalog=catalog)
    app.state.whatsapp_channel = WhatsAppChannel(whatsapp_client or WhatsAppClient())

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
    app.include_router(properties.router, prefix="/api/properties", tags=["properties"])
    app.include_router(whatsapp.router, prefix="/whatsapp", tags=["whatsapp"])

    return app


app = create_app()
