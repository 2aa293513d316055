"""Main application entry point.

Runs FastAPI (port 8000) with NiceGUI mounted for the chat interface.
Environment variables are loaded from .env file.
"""

import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def run_integrated() -> None:
    """Run FastAPI with NiceGUI mounted on the same server.

    FastAPI handles the /api routes, NiceGUI serves the chat page at /.
    """
    import uvicorn
    from nicegui import ui

    from ollama_ui.api.app import create_app
    from ollama_ui.config import get_app_config
    from ollama_ui.ui.chat_page import chat_page  # noqa: F401 - Registers the page

    config = get_app_config()
    app = create_app()

    # Mount NiceGUI onto FastAPI
    ui.run_with(
        app,
        title="Ollama Chat",
        favicon="🦙",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "ollama-chat-secret"),
    )

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Starting integrated server on http://{host}:{port}")
    logger.info(f"Using Ollama at {config.ollama_host}, data in {config.data_dir}")
    logger.info(f"API docs available at http://{host}:{port}/docs")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


def run_api() -> None:
    """Run only the HTTP API, for clients that bring their own front-end."""
    import uvicorn

    uvicorn.run(
        "ollama_ui.api.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


def main() -> None:
    """Application entry point.

    Set RUN_MODE=api to serve the HTTP API without the chat page.
    Default is integrated mode (API and page on one server).
    """
    mode = os.getenv("RUN_MODE", "integrated").lower()

    logger.info(f"Starting Ollama Chat in {mode} mode")

    if mode == "api":
        run_api()
    else:
        run_integrated()


if __name__ == "__main__":
    main()
