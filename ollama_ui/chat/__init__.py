"""Conversation state and the send pipeline.

Modules:
    - store: Reducer-driven state container with persistence
    - streaming: Stream consumer and cancellation token
    - service: Chat pipeline tying store, client and attachments together
    - prompts: Prompt template variables and slash commands
    - quiz: Topic quizzes graded by the model
    - errors: User-facing error notices
    - persistence: JSON file key-value storage
"""

from ollama_ui.chat.errors import ErrorNotice, notice_from_error
from ollama_ui.chat.persistence import LocalStorage
from ollama_ui.chat.quiz import QuizSession
from ollama_ui.chat.service import ChatService, build_prompt_from_messages
from ollama_ui.chat.store import ChatStore, HomeState, reduce
from ollama_ui.chat.streaming import CancellationToken, StreamConsumer, StreamResult

__all__ = [
    "CancellationToken",
    "ChatService",
    "ChatStore",
    "ErrorNotice",
    "HomeState",
    "LocalStorage",
    "QuizSession",
    "StreamConsumer",
    "StreamResult",
    "build_prompt_from_messages",
    "notice_from_error",
    "reduce",
]
