"""Ollama Chat - chat front-end for a local Ollama server.

Combines FastAPI for the HTTP API, httpx for the Ollama transport,
NiceGUI for the web interface, pypdf for document text extraction,
and Pydantic for data validation.

Components:
    - api: HTTP endpoints and streaming responses
    - client: Ollama transport with deadlines and typed errors
    - chat: Conversation store, stream consumer and send pipeline
    - attachments: Document and image upload processing
    - ui: Web interface for chat interactions
    - models: Domain models and request/response schemas
"""

__version__ = "0.1.0"
