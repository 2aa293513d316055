"""Pydantic models for conversation state and API payloads.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - Message / Attachment: Individual messages and their uploads
    - Conversation, Folder, Prompt: Persisted chat state
    - OllamaModel: Model descriptor from the Ollama server
    - ChatBody: Outgoing generate request payload
    - ErrorResponse: Structured error body
    - PDFParseResponse: Extracted PDF text and metadata
"""

from ollama_ui.models.chat import (
    DEFAULT_CONVERSATION_NAME,
    Attachment,
    AttachmentKind,
    Conversation,
    Folder,
    ImageAttachment,
    MarkdownAttachment,
    Message,
    OllamaModel,
    OtherAttachment,
    PdfAttachment,
    Prompt,
    TextAttachment,
)
from ollama_ui.models.schemas import (
    ChatBody,
    ChatOptions,
    ErrorResponse,
    ModelDetailRequest,
    PDFInfo,
    PDFParseResponse,
)

__all__ = [
    "DEFAULT_CONVERSATION_NAME",
    "Attachment",
    "AttachmentKind",
    "ChatBody",
    "ChatOptions",
    "Conversation",
    "ErrorResponse",
    "Folder",
    "ImageAttachment",
    "MarkdownAttachment",
    "Message",
    "ModelDetailRequest",
    "OllamaModel",
    "OtherAttachment",
    "PDFInfo",
    "PDFParseResponse",
    "PdfAttachment",
    "Prompt",
    "TextAttachment",
]
