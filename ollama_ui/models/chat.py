"""Conversation domain models.

Messages and attachments are frozen: updates always produce a new object,
which keeps the reducer's identity rules simple.
"""

import uuid
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CONVERSATION_NAME = "New Conversation"

Role = Literal["user", "assistant"]


class AttachmentKind(str, Enum):
    """Kinds of uploaded content."""

    PDF = "pdf"
    TEXT = "text"
    MARKDOWN = "markdown"
    IMAGE = "image"
    OTHER = "other"


class _DocumentAttachment(BaseModel):
    """Fields shared by every attachment that carries extracted text.

    Attributes:
        name: Original file name.
        byte_size: Size of the uploaded file in bytes.
        mime_type: Declared MIME type (may be empty).
        extracted_text: Text included in the outgoing prompt, possibly truncated.
        preview: Short snippet for display.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    byte_size: int = Field(ge=0)
    mime_type: str = ""
    extracted_text: str
    preview: str


class PdfAttachment(_DocumentAttachment):
    kind: Literal[AttachmentKind.PDF] = AttachmentKind.PDF
    page_count: int = Field(ge=1)
    title: str | None = None
    author: str | None = None


class TextAttachment(_DocumentAttachment):
    kind: Literal[AttachmentKind.TEXT] = AttachmentKind.TEXT


class MarkdownAttachment(_DocumentAttachment):
    kind: Literal[AttachmentKind.MARKDOWN] = AttachmentKind.MARKDOWN


class OtherAttachment(_DocumentAttachment):
    kind: Literal[AttachmentKind.OTHER] = AttachmentKind.OTHER


class ImageAttachment(BaseModel):
    """An image sent to a multimodal model.

    The pixels travel base64-encoded in the request's ``images`` list and are
    not persisted with the message.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal[AttachmentKind.IMAGE] = AttachmentKind.IMAGE
    name: str
    byte_size: int = Field(ge=0)
    mime_type: str


Attachment = Annotated[
    PdfAttachment | TextAttachment | MarkdownAttachment | OtherAttachment | ImageAttachment,
    Field(discriminator="kind"),
]


class Message(BaseModel):
    """A single chat message in a conversation.

    Attributes:
        role: The speaker (user or assistant).
        content: The message text.
        attachment: Optional document or image uploaded with the message.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    attachment: Attachment | None = None


class OllamaModel(BaseModel):
    """A model installed on the Ollama server. Read-only."""

    name: str = Field(..., min_length=1)
    modified_at: str | None = None
    size: int = Field(0, ge=0)


class Conversation(BaseModel):
    """An ordered sequence of messages sharing one model configuration.

    Attributes:
        id: Unique identifier, stable for the conversation's lifetime.
        name: Display name.
        messages: Append-only message history.
        model: Model the conversation talks to.
        prompt: System prompt.
        temperature: Sampling temperature.
        folder_id: Weak reference to a chat folder.
        custom_name: Set once the user renames the conversation.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = DEFAULT_CONVERSATION_NAME
    messages: list[Message] = Field(default_factory=list)
    model: OllamaModel
    prompt: str = ""
    temperature: float = Field(1.0, ge=0.0, le=2.0)
    folder_id: str | None = None
    custom_name: bool = False


FolderType = Literal["chat", "prompt"]


class Folder(BaseModel):
    """Grouping for conversations or prompts. Does not own its members."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    type: FolderType


class Prompt(BaseModel):
    """Reusable prompt template with ``{{variable}}`` placeholders."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    content: str = ""
    model: OllamaModel | None = None
    folder_id: str | None = None
