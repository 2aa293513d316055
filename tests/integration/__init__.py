"""Integration tests for the HTTP API.

Requests go through ASGITransport into the app built by create_app, with
the Ollama client dependency wired to a fake server.

Coverage:
    - /api/chat streaming and error bodies
    - /api/models and /api/modeldetails
    - /api/parse-pdf validation and extraction
"""
