"""Test package for Ollama Chat.

Structure:
    - unit/: Transport, stream consumer, store, attachments and service tests
    - integration/: HTTP API tests through the real FastAPI app
    - helpers.py: In-memory PDF builder and scriptable Ollama server

No test needs a running Ollama server. Uses pytest with pytest-check for
soft assertions.
"""
