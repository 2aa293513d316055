"""Conversation state store.

All state changes go through ``reduce``, a pure function from
``(state, action)`` to a new state. ``ChatStore`` wraps it with listeners and
persistence: every persistent action rewrites the affected entries whole.

Identity rules:
    - Updating one conversation never moves or copies the others.
    - Messages are only appended; editing history means truncate then append.
    - Deleting a folder unfiles its members instead of deleting them.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, Field

from ollama_ui.chat.errors import ErrorNotice
from ollama_ui.chat.persistence import (
    CONVERSATION_HISTORY,
    FOLDERS,
    PROMPTS,
    SELECTED_CONVERSATION,
    SETTINGS,
    SHOW_CHATBAR,
    SHOW_PROMPTBAR,
    LocalStorage,
    dump_models,
    load_model,
    load_models,
)
from ollama_ui.config import AppConfig
from ollama_ui.models.chat import Conversation, Folder, Message, OllamaModel, Prompt

logger = logging.getLogger(__name__)

NAME_LENGTH = 30


class HomeState(BaseModel):
    """Everything the chat page renders."""

    loading: bool = False
    light_mode: Literal["light", "dark"] = "dark"
    message_is_streaming: bool = False
    model_error: ErrorNotice | None = None
    models: list[OllamaModel] = Field(default_factory=list)
    folders: list[Folder] = Field(default_factory=list)
    conversations: list[Conversation] = Field(default_factory=list)
    selected_conversation: Conversation | None = None
    prompts: list[Prompt] = Field(default_factory=list)
    temperature: float = 1.0
    show_chatbar: bool = True
    show_promptbar: bool = True
    search_term: str = ""
    default_model_id: str | None = None


# === Actions ===


@dataclass(frozen=True)
class SetField:
    field: str
    value: Any


@dataclass(frozen=True)
class AppendMessage:
    """Append to the selected conversation, dropping ``delete_count`` tail messages first."""

    message: Message
    delete_count: int = 0


@dataclass(frozen=True)
class SelectConversation:
    conversation: Conversation | None


@dataclass(frozen=True)
class UpdateConversation:
    conversation: Conversation


@dataclass(frozen=True)
class AddConversation:
    conversation: Conversation


@dataclass(frozen=True)
class RenameConversation:
    conversation_id: str
    name: str


@dataclass(frozen=True)
class DeleteConversation:
    conversation_id: str


@dataclass(frozen=True)
class ClearConversations:
    pass


@dataclass(frozen=True)
class MoveConversation:
    conversation_id: str
    folder_id: str | None


@dataclass(frozen=True)
class SetModels:
    models: list[OllamaModel]


@dataclass(frozen=True)
class AddFolder:
    folder: Folder


@dataclass(frozen=True)
class RenameFolder:
    folder_id: str
    name: str


@dataclass(frozen=True)
class DeleteFolder:
    folder_id: str


@dataclass(frozen=True)
class AddPrompt:
    prompt: Prompt


@dataclass(frozen=True)
class UpdatePrompt:
    prompt: Prompt


@dataclass(frozen=True)
class DeletePrompt:
    prompt_id: str


Action = (
    SetField
    | AppendMessage
    | SelectConversation
    | UpdateConversation
    | AddConversation
    | RenameConversation
    | DeleteConversation
    | ClearConversations
    | MoveConversation
    | SetModels
    | AddFolder
    | RenameFolder
    | DeleteFolder
    | AddPrompt
    | UpdatePrompt
    | DeletePrompt
)


# === Conversation helpers ===

ItemT = TypeVar("ItemT", Conversation, Folder, Prompt)


def truncate_messages(conversation: Conversation, count: int) -> Conversation:
    """Drop the last ``count`` messages."""
    if count <= 0:
        return conversation
    keep = max(len(conversation.messages) - count, 0)
    return conversation.model_copy(update={"messages": conversation.messages[:keep]})


def append_message(
    conversation: Conversation, message: Message, delete_count: int = 0
) -> Conversation:
    truncated = truncate_messages(conversation, delete_count)
    return truncated.model_copy(update={"messages": [*truncated.messages, message]})


def edit_and_resend_count(conversation: Conversation, index: int) -> int:
    """Number of messages to discard so that message ``index`` can be replaced.

    Raises:
        IndexError: If ``index`` is not a message position.
    """
    if not 0 <= index < len(conversation.messages):
        raise IndexError(f"No message at position {index}")
    return len(conversation.messages) - index


def derive_name(content: str) -> str:
    content = content.strip()
    return content[:NAME_LENGTH] + "..." if len(content) > NAME_LENGTH else content


def auto_name(conversation: Conversation) -> Conversation:
    """Name a conversation after its first user message.

    Applies only while the conversation holds exactly that one message and
    the user has not renamed it.
    """
    if conversation.custom_name or len(conversation.messages) != 1:
        return conversation
    first = conversation.messages[0]
    if first.role != "user" or not first.content.strip():
        return conversation
    return conversation.model_copy(update={"name": derive_name(first.content)})


def update_in_list(items: list[ItemT], item: ItemT) -> list[ItemT]:
    """Replace the entry with ``item.id``, keeping every other entry in place.

    Appends when no entry matches.
    """
    found = False
    updated: list[ItemT] = []
    for existing in items:
        if existing.id == item.id:
            updated.append(item)
            found = True
        else:
            updated.append(existing)
    if not found:
        updated.append(item)
    return updated


def _map_matching(
    items: list[ItemT], item_id: str, change: Callable[[ItemT], ItemT]
) -> list[ItemT]:
    return [change(item) if item.id == item_id else item for item in items]


def new_conversation(
    model: OllamaModel,
    prompt: str = "",
    temperature: float = 1.0,
    folder_id: str | None = None,
) -> Conversation:
    return Conversation(model=model, prompt=prompt, temperature=temperature, folder_id=folder_id)


# === Reducer ===


def _with_conversation(state: HomeState, conversation: Conversation) -> dict[str, Any]:
    """State update replacing ``conversation`` in the list and the selection."""
    update: dict[str, Any] = {
        "conversations": update_in_list(state.conversations, conversation),
    }
    selected = state.selected_conversation
    if selected is not None and selected.id == conversation.id:
        update["selected_conversation"] = conversation
    return update


def _change_conversation(
    state: HomeState, conversation_id: str, change: Callable[[Conversation], Conversation]
) -> dict[str, Any]:
    update: dict[str, Any] = {
        "conversations": _map_matching(state.conversations, conversation_id, change),
    }
    selected = state.selected_conversation
    if selected is not None and selected.id == conversation_id:
        update["selected_conversation"] = change(selected)
    return update


def reduce(state: HomeState, action: Action) -> HomeState:
    """Apply one action.

    Args:
        state: Current state (not modified).
        action: The change to apply.

    Returns:
        The new state.

    Raises:
        ValueError: For unknown fields or actions.
    """
    match action:
        case SetField(field=field, value=value):
            if field not in HomeState.model_fields:
                raise ValueError(f"Unknown state field: {field}")
            update = {field: value}

        case AppendMessage(message=message, delete_count=delete_count):
            if state.selected_conversation is None:
                raise ValueError("No conversation selected")
            update = {
                "selected_conversation": append_message(
                    state.selected_conversation, message, delete_count
                )
            }

        case SelectConversation(conversation=conversation):
            update = {"selected_conversation": conversation}

        case UpdateConversation(conversation=conversation):
            update = _with_conversation(state, conversation)

        case AddConversation(conversation=conversation):
            update = {
                "conversations": [*state.conversations, conversation],
                "selected_conversation": conversation,
            }

        case RenameConversation(conversation_id=conversation_id, name=name):
            update = _change_conversation(
                state,
                conversation_id,
                lambda c: c.model_copy(
                    update={"name": name.strip() or c.name, "custom_name": True}
                ),
            )

        case DeleteConversation(conversation_id=conversation_id):
            remaining = [c for c in state.conversations if c.id != conversation_id]
            update = {"conversations": remaining}
            selected = state.selected_conversation
            if selected is not None and selected.id == conversation_id:
                update["selected_conversation"] = remaining[-1] if remaining else None

        case ClearConversations():
            update = {
                "conversations": [],
                "selected_conversation": None,
                "folders": [f for f in state.folders if f.type != "chat"],
            }

        case MoveConversation(conversation_id=conversation_id, folder_id=folder_id):
            update = _change_conversation(
                state, conversation_id, lambda c: c.model_copy(update={"folder_id": folder_id})
            )

        case SetModels(models=models):
            update = {"models": list(models)}

        case AddFolder(folder=folder):
            update = {"folders": [*state.folders, folder]}

        case RenameFolder(folder_id=folder_id, name=name):
            update = {
                "folders": _map_matching(
                    state.folders, folder_id, lambda f: f.model_copy(update={"name": name})
                )
            }

        case DeleteFolder(folder_id=folder_id):

            def unfile(item: ItemT) -> ItemT:
                return item.model_copy(update={"folder_id": None})

            update = {
                "folders": [f for f in state.folders if f.id != folder_id],
                "conversations": [
                    unfile(c) if c.folder_id == folder_id else c for c in state.conversations
                ],
                "prompts": [unfile(p) if p.folder_id == folder_id else p for p in state.prompts],
            }
            selected = state.selected_conversation
            if selected is not None and selected.folder_id == folder_id:
                update["selected_conversation"] = unfile(selected)

        case AddPrompt(prompt=prompt):
            update = {"prompts": [*state.prompts, prompt]}

        case UpdatePrompt(prompt=prompt):
            update = {"prompts": update_in_list(state.prompts, prompt)}

        case DeletePrompt(prompt_id=prompt_id):
            update = {"prompts": [p for p in state.prompts if p.id != prompt_id]}

        case _:
            raise ValueError(f"Unknown action: {action!r}")

    return state.model_copy(update=update)


# Entries rewritten after each action type
_PERSISTED_ENTRIES: dict[type, tuple[str, ...]] = {
    SelectConversation: (SELECTED_CONVERSATION,),
    UpdateConversation: (CONVERSATION_HISTORY, SELECTED_CONVERSATION),
    AddConversation: (CONVERSATION_HISTORY, SELECTED_CONVERSATION),
    RenameConversation: (CONVERSATION_HISTORY, SELECTED_CONVERSATION),
    DeleteConversation: (CONVERSATION_HISTORY, SELECTED_CONVERSATION),
    ClearConversations: (CONVERSATION_HISTORY, SELECTED_CONVERSATION, FOLDERS),
    MoveConversation: (CONVERSATION_HISTORY, SELECTED_CONVERSATION),
    AddFolder: (FOLDERS,),
    RenameFolder: (FOLDERS,),
    DeleteFolder: (FOLDERS, CONVERSATION_HISTORY, SELECTED_CONVERSATION, PROMPTS),
    AddPrompt: (PROMPTS,),
    UpdatePrompt: (PROMPTS,),
    DeletePrompt: (PROMPTS,),
}

_PERSISTED_FIELDS: dict[str, str] = {
    "light_mode": SETTINGS,
    "temperature": SETTINGS,
    "show_chatbar": SHOW_CHATBAR,
    "show_promptbar": SHOW_PROMPTBAR,
}


class ChatStore:
    """Explicit state container shared by the page and the chat service."""

    def __init__(self, state: HomeState | None = None, storage: LocalStorage | None = None) -> None:
        self._state = state or HomeState()
        self._storage = storage
        self._listeners: list[Callable[[HomeState], None]] = []

    @classmethod
    def load(cls, storage: LocalStorage, config: AppConfig) -> "ChatStore":
        """Restore the persisted state.

        Args:
            storage: Storage holding previously saved entries.
            config: Supplies defaults for missing settings.

        Returns:
            A store bound to ``storage``.
        """
        settings = storage.get(SETTINGS)
        if not isinstance(settings, dict):
            settings = {}

        conversations = load_models(storage, CONVERSATION_HISTORY, Conversation)
        selected = load_model(storage, SELECTED_CONVERSATION, Conversation)
        if selected is not None:
            # Prefer the list copy so both references agree
            selected = next((c for c in conversations if c.id == selected.id), selected)
        elif conversations:
            selected = conversations[-1]

        theme = settings.get("theme")
        temperature = settings.get("temperature")
        if not isinstance(temperature, int | float):
            temperature = config.default_temperature

        state = HomeState(
            light_mode=theme if theme in ("light", "dark") else "dark",
            temperature=temperature,
            conversations=conversations,
            selected_conversation=selected,
            folders=load_models(storage, FOLDERS, Folder),
            prompts=load_models(storage, PROMPTS, Prompt),
            show_chatbar=storage.get(SHOW_CHATBAR) is not False,
            show_promptbar=storage.get(SHOW_PROMPTBAR) is not False,
            default_model_id=config.default_model,
        )
        logger.info(
            f"Restored {len(conversations)} conversations, "
            f"{len(state.folders)} folders, {len(state.prompts)} prompts"
        )
        return cls(state, storage)

    @property
    def state(self) -> HomeState:
        return self._state

    def subscribe(self, listener: Callable[[HomeState], None]) -> Callable[[], None]:
        """Register a listener called after every dispatch.

        Returns:
            Function removing the listener.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action: Action) -> HomeState:
        self._state = reduce(self._state, action)
        self._persist(action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def _persist(self, action: Action) -> None:
        if self._storage is None:
            return

        entries = _PERSISTED_ENTRIES.get(type(action), ())
        if isinstance(action, SetField) and action.field in _PERSISTED_FIELDS:
            entries = (_PERSISTED_FIELDS[action.field],)

        for entry in entries:
            self._storage.set(entry, self._entry_value(entry))

    def _entry_value(self, entry: str) -> Any:
        state = self._state
        if entry == CONVERSATION_HISTORY:
            return dump_models(state.conversations)
        if entry == SELECTED_CONVERSATION:
            selected = state.selected_conversation
            return selected.model_dump(mode="json") if selected is not None else None
        if entry == FOLDERS:
            return dump_models(state.folders)
        if entry == PROMPTS:
            return dump_models(state.prompts)
        if entry == SETTINGS:
            return {"theme": state.light_mode, "temperature": state.temperature}
        if entry == SHOW_CHATBAR:
            return state.show_chatbar
        if entry == SHOW_PROMPTBAR:
            return state.show_promptbar
        raise ValueError(f"Unknown storage entry: {entry}")
