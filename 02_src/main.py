"""Main entry point for the chat server."""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from chatroom.api import create_fastapi_app
from chatroom.app import Application
from chatroom.config import Settings
from chatroom.logging_config import setup_logging


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")

    setup_logging()
    settings = Settings.from_env()

    app = create_fastapi_app(Application(settings))

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
