"""Chat pipeline: append, send, stream, persist.

One ``send`` handles one user action:

1. Append the user message to the selected conversation (dropping
   ``delete_count`` tail messages first, for edit-and-resend and retries).
2. Build the transcript prompt and stream the reply from Ollama.
3. Apply fragments to the pending assistant message as they arrive.
4. Write the finished conversation back to the list and persist it once.

Failures come back as an ``ErrorNotice`` with a retry bound to the original
message. A user stop is not a failure and returns nothing.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ollama_ui.attachments import (
    AttachmentError,
    FileInput,
    attachment_message,
    build_document_attachment,
    build_image_attachment,
    format_pdf_content,
)
from ollama_ui.chat.errors import ErrorNotice, notice_from_error
from ollama_ui.chat.store import (
    AddConversation,
    AppendMessage,
    ChatStore,
    SetField,
    SetModels,
    UpdateConversation,
    edit_and_resend_count,
    new_conversation,
)
from ollama_ui.chat.streaming import CancellationToken, StreamConsumer
from ollama_ui.client import OllamaClient, OllamaError, get_ollama_client
from ollama_ui.models.chat import (
    Conversation,
    Message,
    OllamaModel,
    PdfAttachment,
)
from ollama_ui.models.schemas import ChatBody, ChatOptions

logger = logging.getLogger(__name__)

OnlineCheck = Callable[[], Awaitable[bool]]


def build_prompt_from_messages(messages: list[Message]) -> str:
    """Render the conversation as a role-labelled transcript.

    User attachments are inlined after the message that carries them.
    """
    lines: list[str] = []
    for message in messages:
        role = "Assistant" if message.role == "assistant" else "User"
        text = message.content.strip()
        if text:
            lines.append(f"{role}: {text}")

        attachment = message.attachment
        if message.role != "user" or not hasattr(attachment, "extracted_text"):
            continue
        content = attachment.extracted_text
        if isinstance(attachment, PdfAttachment):
            content = format_pdf_content(
                content, attachment.page_count, attachment.title, attachment.author
            )
        if content:
            lines.append(f"[Attachment: {attachment.name}]\n{content}")
    return "\n\n".join(lines)


class ChatService:
    """Runs sends against the selected conversation of a store."""

    def __init__(
        self,
        store: ChatStore,
        client: OllamaClient | None = None,
        is_online: OnlineCheck | None = None,
    ) -> None:
        """Initialize the chat service.

        Args:
            store: State container to read and update.
            client: Ollama client. Uses the global client if not provided.
            is_online: Optional connectivity probe used to annotate errors.
        """
        self._store = store
        self._client = client or get_ollama_client()
        self._is_online = is_online
        self._token = CancellationToken()

    @property
    def store(self) -> ChatStore:
        return self._store

    @property
    def is_streaming(self) -> bool:
        return self._store.state.message_is_streaming

    def stop(self) -> None:
        """Stop the response currently streaming, keeping what arrived."""
        self._token.cancel()

    def default_model(self) -> OllamaModel:
        state = self._store.state
        for model in state.models:
            if model.name == state.default_model_id:
                return model
        if state.models:
            return state.models[0]
        return OllamaModel(name=state.default_model_id or self._client.config.default_model)

    def new_conversation(self, folder_id: str | None = None) -> Conversation:
        state = self._store.state
        conversation = new_conversation(
            model=self.default_model(),
            prompt=self._client.config.default_system_prompt,
            temperature=state.temperature,
            folder_id=folder_id,
        )
        self._store.dispatch(AddConversation(conversation))
        return conversation

    async def _offline(self) -> bool:
        if self._is_online is None:
            return False
        return not await self._is_online()

    def _show_progress(self, conversation: Conversation) -> None:
        if self._store.state.loading:
            self._store.dispatch(SetField("loading", False))
        self._store.dispatch(SetField("selected_conversation", conversation))

    def _finish(self) -> None:
        self._store.dispatch(SetField("loading", False))
        self._store.dispatch(SetField("message_is_streaming", False))

    async def send(
        self,
        message: Message,
        delete_count: int = 0,
        images: list[str] | None = None,
    ) -> ErrorNotice | None:
        """Send a message on the selected conversation and stream the reply.

        Args:
            message: The user message.
            delete_count: Tail messages to discard before appending.
            images: Base64-encoded images for multimodal models.

        Returns:
            An ErrorNotice when the send failed, otherwise None.
        """
        if self._store.state.selected_conversation is None:
            logger.warning("Send requested without a selected conversation")
            return None

        token = CancellationToken()
        self._token = token

        state = self._store.dispatch(AppendMessage(message, delete_count))
        conversation = state.selected_conversation
        self._store.dispatch(SetField("loading", True))
        self._store.dispatch(SetField("message_is_streaming", True))

        body = ChatBody(
            model=conversation.model.name,
            system=conversation.prompt,
            prompt=build_prompt_from_messages(conversation.messages),
            images=images or None,
            options=ChatOptions(temperature=conversation.temperature),
        )
        consumer = StreamConsumer(token, on_update=self._show_progress)

        try:
            result = await consumer.consume(conversation, self._client.stream_generate(body))
        except asyncio.CancelledError:
            self._finish()
            raise
        except Exception as e:
            self._finish()
            if isinstance(e, OllamaError):
                logger.error(f"Send failed: {e}")
            else:
                logger.exception("Send failed with unexpected error")

            # Also discard any partial reply applied before the failure
            current = self._store.state.selected_conversation
            applied = len(current.messages) - len(conversation.messages) if current else 0
            discard = 1 + max(applied, 0)

            async def retry() -> ErrorNotice | None:
                return await self.send(message, discard, images)

            return notice_from_error(e, offline=await self._offline(), retry=retry)

        self._store.dispatch(UpdateConversation(result.conversation))
        self._finish()

        if result.cancelled:
            logger.info(f"Response stopped by user in conversation {result.conversation.id}")
        else:
            logger.info(
                f"Response complete in conversation {result.conversation.id} "
                f"({result.fragments} fragments)"
            )
        return None

    async def edit_and_resend(self, index: int, content: str) -> ErrorNotice | None:
        """Replace message ``index`` and everything after it, then resend.

        Raises:
            IndexError: If ``index`` is not a message position.
        """
        conversation = self._store.state.selected_conversation
        if conversation is None:
            return None
        count = edit_and_resend_count(conversation, index)
        original = conversation.messages[index]
        edited = Message(role="user", content=content, attachment=original.attachment)
        return await self.send(edited, count)

    async def regenerate(self) -> ErrorNotice | None:
        """Resend the last user message, replacing it and the reply."""
        conversation = self._store.state.selected_conversation
        if conversation is None:
            return None
        for index in range(len(conversation.messages) - 1, -1, -1):
            message = conversation.messages[index]
            if message.role == "user":
                return await self.send(message, len(conversation.messages) - index)
        return None

    async def send_document(self, file: FileInput, text: str = "") -> ErrorNotice | None:
        try:
            attachment = build_document_attachment(file)
        except AttachmentError as e:
            logger.warning(f"Rejected attachment {file.name}: {e}")
            return notice_from_error(e)
        return await self.send(attachment_message(attachment, text))

    async def send_image(self, file: FileInput, text: str = "") -> ErrorNotice | None:
        try:
            attachment, encoded = build_image_attachment(file)
        except AttachmentError as e:
            logger.warning(f"Rejected image {file.name}: {e}")
            return notice_from_error(e)
        return await self.send(attachment_message(attachment, text), images=[encoded])

    async def refresh_models(self) -> list[OllamaModel]:
        """Replace the model list with the server's current one.

        Returns:
            The new model list (empty on failure, with ``model_error`` set).
        """
        try:
            models = await self._client.list_models()
        except OllamaError as e:
            self._store.dispatch(
                SetField("model_error", notice_from_error(e, offline=await self._offline()))
            )
            return []

        self._store.dispatch(SetModels(models))
        self._store.dispatch(SetField("model_error", None))
        return models
