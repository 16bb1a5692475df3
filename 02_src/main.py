"""Main entry point for the chat core API."""

import os
from dataclasses import replace
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from chat_core import Application
from chat_core.api import create_fastapi_app
from chat_core.config import MessagingSettings
from chat_core.logging_config import setup_logging
from chat_core.transport import InMemoryAttachmentStorage, InMemoryRoster
from sim import DEMO_CONTACTS, Sim, SimulatedSignaling


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))
    api_url = f"http://{api_host}:{api_port}"

    settings = MessagingSettings.from_env()
    roster = InMemoryRoster(
        {settings.current_user_id: [replace(c) for c in DEMO_CONTACTS]}
    )
    application = Application(
        settings=settings,
        signaling=SimulatedSignaling(),
        roster=roster,
        attachment_storage=InMemoryAttachmentStorage(),
    )

    from chat_core.api.routes import control
    control.set_sim_instance(Sim(api_url=api_url))

    app = create_fastapi_app(application)

    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
