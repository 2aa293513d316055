"""Unit tests for the conversation state store."""

import json
from pathlib import Path

import pytest
import pytest_check as check

from ollama_ui.chat import ChatStore, HomeState, LocalStorage, reduce
from ollama_ui.chat.persistence import CONVERSATION_HISTORY, SELECTED_CONVERSATION, SETTINGS
from ollama_ui.chat.store import (
    AddConversation,
    AddFolder,
    AddPrompt,
    AppendMessage,
    ClearConversations,
    DeleteConversation,
    DeleteFolder,
    MoveConversation,
    RenameConversation,
    SetField,
    UpdateConversation,
    auto_name,
    derive_name,
    edit_and_resend_count,
    truncate_messages,
    update_in_list,
)
from ollama_ui.config import AppConfig
from ollama_ui.models.chat import Conversation, Folder, Message, OllamaModel, Prompt

MODEL = OllamaModel(name="llama3:latest")


def conversation(name: str = "New Conversation", count: int = 0, **fields: object) -> Conversation:
    messages = [
        Message(role="user" if i % 2 == 0 else "assistant", content=f"message {i}")
        for i in range(count)
    ]
    return Conversation(model=MODEL, name=name, messages=messages, **fields)


def state_with(*conversations: Conversation, selected: int = 0, **fields: object) -> HomeState:
    return HomeState(
        conversations=list(conversations),
        selected_conversation=conversations[selected] if conversations else None,
        **fields,
    )


class TestMessageHistory:
    """Tests for append-only history with truncate-and-resend."""

    def test_truncate_and_resend(self) -> None:
        """Editing message 2 of 5 leaves 2 messages, then 3 after appending."""
        conv = conversation(count=5)
        count = edit_and_resend_count(conv, 2)

        truncated = truncate_messages(conv, count)
        state = reduce(
            state_with(conv),
            AppendMessage(Message(role="user", content="edited"), delete_count=count),
        )

        check.equal(len(truncated.messages), 2)
        check.equal(len(state.selected_conversation.messages), 3)
        check.equal(state.selected_conversation.messages[-1].content, "edited")
        check.equal(state.selected_conversation.messages[:2], conv.messages[:2])

    def test_edit_index_out_of_range(self) -> None:
        """Editing a position that does not exist is rejected."""
        with pytest.raises(IndexError):
            edit_and_resend_count(conversation(count=2), 2)

    def test_append_requires_selection(self) -> None:
        """Appending with nothing selected is an error."""
        with pytest.raises(ValueError, match="No conversation selected"):
            reduce(HomeState(), AppendMessage(Message(role="user", content="hi")))

    def test_append_touches_only_selection(self) -> None:
        """Appending changes the selected conversation, not the list entry."""
        conv = conversation(count=1)
        state = reduce(state_with(conv), AppendMessage(Message(role="user", content="more")))

        check.equal(len(state.selected_conversation.messages), 2)
        check.is_(state.conversations[0], conv)


class TestConversationList:
    """Tests for list identity and ordering."""

    def test_update_keeps_others_in_place(self) -> None:
        """Updating one conversation leaves the others untouched and in order."""
        first, second, third = conversation("a"), conversation("b"), conversation("c")
        updated = second.model_copy(update={"name": "b2"})

        state = reduce(state_with(first, second, third, selected=1), UpdateConversation(updated))

        check.equal([c.name for c in state.conversations], ["a", "b2", "c"])
        check.is_(state.conversations[0], first)
        check.is_(state.conversations[2], third)
        check.equal(state.selected_conversation.name, "b2")

    def test_update_unknown_appends(self) -> None:
        """Updating a conversation missing from the list appends it."""
        items = update_in_list([conversation("a")], conversation("z"))

        assert [c.name for c in items] == ["a", "z"]

    def test_add_selects(self) -> None:
        """Added conversations go last and become selected."""
        new = conversation("new")
        state = reduce(state_with(conversation("old")), AddConversation(new))

        check.equal(state.conversations[-1], new)
        check.equal(state.selected_conversation, new)

    def test_delete_selected_selects_last_remaining(self) -> None:
        """Deleting the selected conversation selects the last one left."""
        a, b, c = conversation("a"), conversation("b"), conversation("c")
        state = reduce(state_with(a, b, c, selected=0), DeleteConversation(a.id))

        check.equal([x.name for x in state.conversations], ["b", "c"])
        check.equal(state.selected_conversation, c)

    def test_delete_last_conversation(self) -> None:
        """Deleting the only conversation clears the selection."""
        a = conversation("a")
        state = reduce(state_with(a), DeleteConversation(a.id))

        check.equal(state.conversations, [])
        check.is_none(state.selected_conversation)

    def test_clear_removes_chat_folders_only(self) -> None:
        """Clearing drops conversations and chat folders, keeps prompt folders."""
        folders = [Folder(name="work", type="chat"), Folder(name="snippets", type="prompt")]
        state = reduce(state_with(conversation("a"), folders=folders), ClearConversations())

        check.equal(state.conversations, [])
        check.is_none(state.selected_conversation)
        check.equal([f.name for f in state.folders], ["snippets"])


class TestNaming:
    """Tests for automatic and manual conversation names."""

    def test_derive_name_truncates(self) -> None:
        """Names longer than 30 characters are cut and marked."""
        check.equal(derive_name("short question"), "short question")
        check.equal(derive_name("x" * 31), "x" * 30 + "...")

    def test_auto_name_only_for_first_message(self) -> None:
        """Only a conversation holding just the first user message is renamed."""
        fresh = Conversation(model=MODEL, messages=[Message(role="user", content="What is Rust?")])
        longer = conversation(count=3)

        check.equal(auto_name(fresh).name, "What is Rust?")
        check.equal(auto_name(longer).name, "New Conversation")

    def test_rename_is_kept(self) -> None:
        """A user rename marks the name custom so it is never replaced."""
        conv = conversation()
        state = reduce(state_with(conv), RenameConversation(conv.id, "Trip planning"))
        renamed = state.selected_conversation.model_copy(
            update={"messages": [Message(role="user", content="Hello there")]}
        )

        check.equal(state.conversations[0].name, "Trip planning")
        check.is_true(state.conversations[0].custom_name)
        check.equal(auto_name(renamed).name, "Trip planning")


class TestFolders:
    """Tests for folder membership."""

    def test_move_conversation(self) -> None:
        """Moving sets the folder on both the list entry and the selection."""
        folder = Folder(name="work", type="chat")
        conv = conversation()
        state = reduce(state_with(conv, folders=[folder]), MoveConversation(conv.id, folder.id))

        check.equal(state.conversations[0].folder_id, folder.id)
        check.equal(state.selected_conversation.folder_id, folder.id)

    def test_delete_folder_unfiles_members(self) -> None:
        """Deleting a folder keeps its conversations and prompts, unfiled."""
        folder = Folder(name="work", type="chat")
        conv = conversation(folder_id=folder.id)
        prompt = Prompt(name="p", folder_id=folder.id)
        state = state_with(conv, folders=[folder], prompts=[prompt])

        state = reduce(state, DeleteFolder(folder.id))

        check.equal(state.folders, [])
        check.equal(len(state.conversations), 1)
        check.is_none(state.conversations[0].folder_id)
        check.is_none(state.selected_conversation.folder_id)
        check.is_none(state.prompts[0].folder_id)


class TestSetField:
    """Tests for plain field updates."""

    def test_unknown_field(self) -> None:
        """Setting a field that does not exist is an error."""
        with pytest.raises(ValueError, match="Unknown state field"):
            reduce(HomeState(), SetField("no_such_field", 1))


class TestChatStore:
    """Tests for listeners and persistence."""

    def test_listeners_see_new_state(self, store: ChatStore) -> None:
        """Listeners are called after each dispatch until unsubscribed."""
        seen: list[bool] = []
        unsubscribe = store.subscribe(lambda state: seen.append(state.loading))

        store.dispatch(SetField("loading", True))
        unsubscribe()
        store.dispatch(SetField("loading", False))

        assert seen == [True]

    def test_persists_conversations(self, store: ChatStore, storage: LocalStorage) -> None:
        """Conversation changes rewrite the history and selection entries."""
        conv = conversation("saved", count=2)
        store.dispatch(AddConversation(conv))

        history = storage.get(CONVERSATION_HISTORY)
        check.equal([c["name"] for c in history], ["saved"])
        check.equal(storage.get(SELECTED_CONVERSATION)["id"], conv.id)

    def test_streaming_flags_not_persisted(self, store: ChatStore, storage: LocalStorage) -> None:
        """Transient fields never reach storage."""
        store.dispatch(SetField("message_is_streaming", True))

        assert not (storage.directory / f"{SETTINGS}.json").exists()

    def test_restores_state(
        self, store: ChatStore, storage: LocalStorage, app_config: AppConfig
    ) -> None:
        """A new store loads what the previous one saved."""
        first, second = conversation("first"), conversation("second")
        store.dispatch(AddConversation(first))
        store.dispatch(AddConversation(second))
        store.dispatch(AddFolder(Folder(name="work", type="chat")))
        store.dispatch(AddPrompt(Prompt(name="Summarize", content="Summarize {{text}}")))
        store.dispatch(SetField("light_mode", "light"))
        store.dispatch(SetField("temperature", 0.4))
        store.dispatch(SetField("show_promptbar", False))

        restored = ChatStore.load(storage, app_config).state

        check.equal([c.name for c in restored.conversations], ["first", "second"])
        check.equal(restored.selected_conversation.id, second.id)
        check.equal([f.name for f in restored.folders], ["work"])
        check.equal([p.name for p in restored.prompts], ["Summarize"])
        check.equal(restored.light_mode, "light")
        check.equal(restored.temperature, 0.4)
        check.is_false(restored.show_promptbar)
        check.is_true(restored.show_chatbar)

    def test_load_skips_invalid_entries(self, tmp_path: Path, app_config: AppConfig) -> None:
        """Corrupt entries are ignored instead of failing the load."""
        storage = LocalStorage(tmp_path)
        good = conversation("good").model_dump(mode="json")
        (tmp_path / f"{CONVERSATION_HISTORY}.json").write_text(
            json.dumps([good, {"name": "missing model"}]), encoding="utf-8"
        )
        (tmp_path / f"{SETTINGS}.json").write_text("{broken", encoding="utf-8")

        state = ChatStore.load(storage, app_config).state

        check.equal([c.name for c in state.conversations], ["good"])
        check.equal(state.selected_conversation.name, "good")
        check.equal(state.temperature, app_config.default_temperature)
        check.equal(state.light_mode, "dark")

    def test_storage_rejects_bad_keys(self, storage: LocalStorage) -> None:
        """Keys cannot escape the storage directory."""
        with pytest.raises(ValueError):
            storage.set("../outside", 1)
