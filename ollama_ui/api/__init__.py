"""HTTP API for the chat front-end.

Endpoints:
    - GET /health: Service health status
    - GET /api/models: Installed Ollama models
    - POST /api/modeldetails: Details for one model
    - POST /api/chat: Streamed plain text reply
    - POST /api/parse-pdf: Text extraction from a raw PDF body
"""

from ollama_ui.api.app import app, create_app

__all__ = ["app", "create_app"]
