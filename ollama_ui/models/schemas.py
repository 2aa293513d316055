from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatOptions(BaseModel):
    """Model options forwarded to Ollama."""

    temperature: float | None = Field(None, ge=0.0, le=2.0)


class ChatBody(BaseModel):
    """Request payload for the generate endpoint.

    Attributes:
        model: Ollama model name.
        system: System prompt (config default when empty).
        prompt: Full transcript to complete.
        images: Base64-encoded images for multimodal models.
        options: Sampling options.
    """

    model: str = Field(..., min_length=1)
    system: str = ""
    prompt: str
    images: list[str] | None = None
    options: ChatOptions | None = None

    @field_validator("model", mode="before")
    @classmethod
    def strip_model(cls, v: str) -> str:
        """Strip whitespace from model name before validation."""
        if isinstance(v, str):
            return v.strip()
        return v


class ModelDetailRequest(BaseModel):
    """Request payload for the model detail endpoint."""

    name: str | None = None


class ErrorResponse(BaseModel):
    """Structured error body returned by every endpoint.

    Attributes:
        error: Short error title.
        message: Human readable detail.
        suggestion: Optional remediation hint.
        type: Optional machine readable category.
    """

    error: str
    message: str
    suggestion: str | None = None
    type: str | None = None


class PDFInfo(BaseModel):
    """Document metadata reported by the PDF endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    author: str | None = None
    subject: str | None = None
    creator: str | None = None
    producer: str | None = None
    creation_date: str | None = Field(None, alias="creationDate")
    mod_date: str | None = Field(None, alias="modDate")


class PDFParseResponse(BaseModel):
    """Response after PDF text extraction.

    Attributes:
        file_name: Name of the uploaded file.
        text: Extracted text, truncated when too long.
        pages: Number of pages in the document.
        info: Document metadata.
    """

    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    text: str
    pages: int = Field(..., ge=1)
    info: PDFInfo
