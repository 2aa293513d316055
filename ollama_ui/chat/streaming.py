"""Incremental consumption of a generate stream into a conversation."""

import codecs
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

from ollama_ui.chat.store import auto_name
from ollama_ui.models.chat import Conversation, Message

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[Conversation], Awaitable[None] | None]


class CancellationToken:
    """Cooperative stop flag, polled before every stream read."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False


@dataclass
class StreamResult:
    """Outcome of consuming one stream.

    Attributes:
        conversation: Conversation including the (possibly partial) reply.
        cancelled: Whether the token stopped consumption early.
        fragments: Number of fragments applied.
    """

    conversation: Conversation
    cancelled: bool
    fragments: int


def apply_fragment(conversation: Conversation, text: str, first: bool) -> Conversation:
    """Apply the cumulative reply text to a conversation.

    The first fragment appends a new assistant message (and names the
    conversation if it is still unnamed); later fragments replace that
    message's content with ``text``.
    """
    if first:
        named = auto_name(conversation)
        return named.model_copy(
            update={"messages": [*named.messages, Message(role="assistant", content=text)]}
        )

    messages = list(conversation.messages)
    messages[-1] = messages[-1].model_copy(update={"content": text})
    return conversation.model_copy(update={"messages": messages})


class StreamConsumer:
    """Reads a byte stream and applies it to the pending assistant message."""

    def __init__(
        self,
        token: CancellationToken | None = None,
        on_update: UpdateCallback | None = None,
    ) -> None:
        self._token = token or CancellationToken()
        self._on_update = on_update

    async def _notify(self, conversation: Conversation) -> None:
        if self._on_update is None:
            return
        result = self._on_update(conversation)
        if inspect.isawaitable(result):
            await result

    async def consume(
        self, conversation: Conversation, stream: AsyncIterator[bytes]
    ) -> StreamResult:
        """Consume ``stream`` until it ends or the token is cancelled.

        The stream is always closed on exit, which aborts the HTTP request
        when consumption stops early. Fragments already applied are kept.

        Args:
            conversation: Conversation ending with the user message being answered.
            stream: UTF-8 encoded text fragments.

        Returns:
            StreamResult with the updated conversation.
        """
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        text = ""
        fragments = 0
        cancelled = False

        try:
            while True:
                if self._token.cancelled:
                    cancelled = True
                    break
                try:
                    chunk = await anext(stream)
                except StopAsyncIteration:
                    break

                piece = decoder.decode(chunk)
                if not piece:
                    # Incomplete multi-byte sequence, wait for the rest
                    continue
                text += piece
                conversation = apply_fragment(conversation, text, first=fragments == 0)
                fragments += 1
                await self._notify(conversation)

            if not cancelled:
                tail = decoder.decode(b"", final=True)
                if tail:
                    text += tail
                    conversation = apply_fragment(conversation, text, first=fragments == 0)
                    fragments += 1
                    await self._notify(conversation)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if cancelled:
            logger.info(f"Stream cancelled after {fragments} fragments")
        return StreamResult(conversation=conversation, cancelled=cancelled, fragments=fragments)
