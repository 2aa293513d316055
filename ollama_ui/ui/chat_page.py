"""NiceGUI chat page.

One ChatStore per browser tab, restored from the shared on-disk storage.
All state changes are dispatched to the store and every send goes through
the ChatService; this module only renders state and forwards user input.
"""

import io
import logging
from collections.abc import Awaitable
from typing import Any

from nicegui import events, ui

from ollama_ui.attachments import FileInput, is_image
from ollama_ui.attachments.pipeline import MAX_DOCUMENT_SIZE
from ollama_ui.chat import (
    ChatService,
    ChatStore,
    ErrorNotice,
    HomeState,
    LocalStorage,
    QuizSession,
)
from ollama_ui.chat.quiz import QUIZ_LENGTH
from ollama_ui.chat.prompts import (
    apply_prompt,
    fill_variables,
    filter_prompts,
    match_prompt_command,
    unique_variables,
)
from ollama_ui.chat.store import (
    AddFolder,
    AddPrompt,
    ClearConversations,
    DeleteConversation,
    DeleteFolder,
    DeletePrompt,
    MoveConversation,
    RenameConversation,
    RenameFolder,
    SelectConversation,
    SetField,
    UpdateConversation,
    UpdatePrompt,
)
from ollama_ui.client import get_ollama_client
from ollama_ui.models.chat import Conversation, Folder, FolderType, Message, Prompt
from ollama_ui.ui.components import (
    CUSTOM_CSS,
    ask_text,
    ask_variables,
    confirm,
    edit_prompt,
    render_message,
    render_typing_indicator,
    show_notice,
)

logger = logging.getLogger(__name__)

MAX_COMMAND_MATCHES = 8


async def is_online() -> bool:
    """Ask the browser whether it has network connectivity."""
    try:
        return bool(await ui.run_javascript("navigator.onLine", timeout=2.0))
    except TimeoutError:
        return True


def _selected_id(state: HomeState) -> str | None:
    return state.selected_conversation.id if state.selected_conversation else None


def _matches_search(conversation: Conversation, term: str) -> bool:
    if not term:
        return True
    if term in conversation.name.lower():
        return True
    return any(term in message.content.lower() for message in conversation.messages)


@ui.page("/")
async def chat_page() -> None:
    """Main chat page."""
    client = get_ollama_client()
    store = ChatStore.load(LocalStorage(client.config.data_dir), client.config)
    service = ChatService(store, client, is_online=is_online)
    quiz = QuizSession(service, on_change=lambda: quiz_panel.refresh())
    if store.state.selected_conversation is None:
        service.new_conversation()

    ui.add_head_html(CUSTOM_CSS)
    dark = ui.dark_mode(store.state.light_mode == "dark")
    dialog_host = ui.element("div")

    streaming_body: ui.markdown | None = None
    rendered_key: tuple[str | None, int] = (None, 0)
    command_query: str | None = None
    answer_fields: list[ui.input] = []

    async def run(operation: Awaitable[ErrorNotice | None]) -> None:
        notice = await operation
        if notice is not None:
            show_notice(dialog_host, notice)

    # === Conversations ===

    def select(conversation: Conversation) -> None:
        if service.is_streaming:
            ui.notify("Wait for the current response to finish", type="warning")
            return
        store.dispatch(SelectConversation(conversation))

    def new_chat(folder_id: str | None = None) -> None:
        if service.is_streaming:
            return
        service.new_conversation(folder_id)

    async def rename_conversation(conversation: Conversation) -> None:
        name = await ask_text(dialog_host, "Rename conversation", conversation.name, "Name")
        if name and name.strip():
            store.dispatch(RenameConversation(conversation.id, name))

    def delete_conversation(conversation: Conversation) -> None:
        if service.is_streaming:
            return
        store.dispatch(DeleteConversation(conversation.id))
        if store.state.selected_conversation is None:
            service.new_conversation()

    async def clear_conversations() -> None:
        if service.is_streaming:
            return
        if await confirm(dialog_host, "Delete all conversations and chat folders?"):
            store.dispatch(ClearConversations())
            service.new_conversation()

    # === Folders ===

    async def add_folder(folder_type: FolderType) -> None:
        name = await ask_text(dialog_host, "New folder", "New folder", "Name")
        if name and name.strip():
            store.dispatch(AddFolder(Folder(name=name.strip(), type=folder_type)))

    async def rename_folder(folder: Folder) -> None:
        name = await ask_text(dialog_host, "Rename folder", folder.name, "Name")
        if name and name.strip():
            store.dispatch(RenameFolder(folder.id, name.strip()))

    # === Prompts ===

    async def add_prompt() -> None:
        prompt = Prompt(name=f"Prompt {len(store.state.prompts) + 1}")
        edited = await edit_prompt(dialog_host, prompt)
        if edited is not None:
            store.dispatch(AddPrompt(edited))

    async def change_prompt(prompt: Prompt) -> None:
        edited = await edit_prompt(dialog_host, prompt)
        if edited is not None:
            store.dispatch(UpdatePrompt(edited))

    async def use_prompt(prompt: Prompt) -> None:
        nonlocal command_query
        content = prompt.content
        variables = unique_variables(content)
        if variables:
            values = await ask_variables(dialog_host, prompt.name, variables)
            if values is None:
                return
            content = fill_variables(content, values)

        filled = prompt.model_copy(update={"content": content})
        input_field.value = apply_prompt(input_field.value or "", filled)
        command_query = None
        command_list.refresh()
        input_field.run_method("focus")

    # === Settings ===

    def update_selected(**changes: Any) -> None:
        conversation = store.state.selected_conversation
        if conversation is not None:
            store.dispatch(UpdateConversation(conversation.model_copy(update=changes)))

    def choose_model(name: str | None) -> None:
        model = next((m for m in store.state.models if m.name == name), None)
        if model is not None:
            update_selected(model=model)

    def set_temperature(value: float) -> None:
        update_selected(temperature=value)
        store.dispatch(SetField("temperature", value))

    def toggle_theme() -> None:
        theme = "light" if store.state.light_mode == "dark" else "dark"
        store.dispatch(SetField("light_mode", theme))

    def toggle_chatbar() -> None:
        store.dispatch(SetField("show_chatbar", not store.state.show_chatbar))

    def toggle_promptbar() -> None:
        store.dispatch(SetField("show_promptbar", not store.state.show_promptbar))

    # === Sending ===

    async def send() -> None:
        text = (input_field.value or "").strip()
        if command_query is not None:
            matches = filter_prompts(store.state.prompts, command_query)
            if matches:
                await use_prompt(matches[0])
                return
        if not text or service.is_streaming:
            return
        input_field.value = ""
        await run(service.send(Message(role="user", content=text)))

    async def regenerate() -> None:
        if not service.is_streaming:
            await run(service.regenerate())

    async def edit_message(index: int, message: Message) -> None:
        content = await ask_text(dialog_host, "Edit message", message.content, multiline=True)
        if content and content.strip() and not service.is_streaming:
            await run(service.edit_and_resend(index, content.strip()))

    async def handle_upload(e: events.UploadEventArguments) -> None:
        upload.reset()
        if service.is_streaming:
            ui.notify("Wait for the current response to finish", type="warning")
            return

        file = FileInput(
            name=e.file.name,
            size=e.file.size(),
            mime_type=e.file.content_type or "",
            content=io.BytesIO(await e.file.read()),
        )
        text = input_field.value or ""
        input_field.value = ""
        if is_image(file):
            await run(service.send_image(file, text))
        else:
            await run(service.send_document(file, text))

    def on_input(e: events.ValueChangeEventArguments) -> None:
        nonlocal command_query
        query = match_prompt_command(e.value or "")
        if query != command_query:
            command_query = query
            command_list.refresh()

    # === Quiz ===

    async def generate_quiz() -> None:
        if service.is_streaming:
            ui.notify("Wait for the current response to finish", type="warning")
            return
        await run(quiz.generate(quiz_topic.value or ""))

    async def check_quiz() -> None:
        if service.is_streaming:
            ui.notify("Wait for the current response to finish", type="warning")
            return
        await run(quiz.check_answers([field.value or "" for field in answer_fields]))

    # === Rendering ===

    def render_conversation_row(conversation: Conversation, folders: list[Folder]) -> None:
        active = conversation.id == _selected_id(store.state)
        with ui.row().classes(
            f"w-full items-center no-wrap gap-1 {'conversation-active' if active else ''}"
        ):
            ui.button(
                conversation.name,
                icon="chat_bubble_outline",
                on_click=lambda c=conversation: select(c),
            ).props("flat no-caps align=left dense").classes("flex-grow min-w-0 truncate")
            with ui.button(icon="more_vert").props("flat dense round size=sm"):
                with ui.menu():
                    ui.menu_item("Rename", on_click=lambda c=conversation: rename_conversation(c))
                    for folder in folders:
                        if folder.id != conversation.folder_id:
                            ui.menu_item(
                                f"Move to {folder.name}",
                                on_click=lambda c=conversation, f=folder: store.dispatch(
                                    MoveConversation(c.id, f.id)
                                ),
                            )
                    if conversation.folder_id is not None:
                        ui.menu_item(
                            "Remove from folder",
                            on_click=lambda c=conversation: store.dispatch(
                                MoveConversation(c.id, None)
                            ),
                        )
                    ui.menu_item("Delete", on_click=lambda c=conversation: delete_conversation(c))

    def render_folder_header(folder: Folder) -> None:
        with ui.row().classes("w-full justify-end gap-0"):
            ui.button(icon="edit", on_click=lambda f=folder: rename_folder(f)).props(
                "flat dense round size=sm"
            )
            ui.button(
                icon="delete", on_click=lambda f=folder: store.dispatch(DeleteFolder(f.id))
            ).props("flat dense round size=sm")

    @ui.refreshable
    def chatbar() -> None:
        state = store.state
        folders = [f for f in state.folders if f.type == "chat"]
        term = state.search_term.strip().lower()
        conversations = [c for c in state.conversations if _matches_search(c, term)]

        for folder in folders:
            with ui.expansion(folder.name, icon="folder").classes("w-full"):
                render_folder_header(folder)
                for conversation in conversations:
                    if conversation.folder_id == folder.id:
                        render_conversation_row(conversation, folders)

        # Conversations pointing at a deleted folder are shown unfiled
        folder_ids = {f.id for f in folders}
        unfiled = [c for c in conversations if c.folder_id not in folder_ids]
        for conversation in reversed(unfiled):
            render_conversation_row(conversation, folders)

        if not conversations:
            ui.label("No conversations").classes("text-sm text-gray-400 p-2")

    def render_prompt_row(prompt: Prompt, folders: list[Folder]) -> None:
        with ui.row().classes("w-full items-center no-wrap gap-1"):
            ui.button(prompt.name, icon="bolt", on_click=lambda p=prompt: change_prompt(p)).props(
                "flat no-caps align=left dense"
            ).classes("flex-grow min-w-0 truncate").tooltip(
                prompt.description or prompt.content[:120]
            )
            with ui.button(icon="more_vert").props("flat dense round size=sm"):
                with ui.menu():
                    ui.menu_item("Use", on_click=lambda p=prompt: use_prompt(p))
                    for folder in folders:
                        if folder.id != prompt.folder_id:
                            ui.menu_item(
                                f"Move to {folder.name}",
                                on_click=lambda p=prompt, f=folder: store.dispatch(
                                    UpdatePrompt(p.model_copy(update={"folder_id": f.id}))
                                ),
                            )
                    if prompt.folder_id is not None:
                        ui.menu_item(
                            "Remove from folder",
                            on_click=lambda p=prompt: store.dispatch(
                                UpdatePrompt(p.model_copy(update={"folder_id": None}))
                            ),
                        )
                    ui.menu_item(
                        "Delete", on_click=lambda p=prompt: store.dispatch(DeletePrompt(p.id))
                    )

    @ui.refreshable
    def promptbar() -> None:
        state = store.state
        folders = [f for f in state.folders if f.type == "prompt"]
        for folder in folders:
            with ui.expansion(folder.name, icon="folder").classes("w-full"):
                render_folder_header(folder)
                for prompt in state.prompts:
                    if prompt.folder_id == folder.id:
                        render_prompt_row(prompt, folders)

        folder_ids = {f.id for f in folders}
        for prompt in state.prompts:
            if prompt.folder_id not in folder_ids:
                render_prompt_row(prompt, folders)

        if not state.prompts:
            ui.label("No prompts").classes("text-sm text-gray-400 p-2")

    @ui.refreshable
    def settings_panel() -> None:
        state = store.state
        conversation = state.selected_conversation

        if state.model_error is not None:
            with ui.row().classes("w-full items-center gap-2 text-negative text-sm"):
                ui.icon("error_outline")
                ui.label(state.model_error.title).tooltip(state.model_error.detail or "")
                ui.button("Retry", on_click=service.refresh_models).props("flat dense size=sm")

        if conversation is None:
            return

        names = [m.name for m in state.models]
        if conversation.model.name not in names:
            names.append(conversation.model.name)

        with ui.row().classes("w-full items-center gap-6"):
            ui.select(
                names,
                value=conversation.model.name,
                label="Model",
                on_change=lambda e: choose_model(e.value),
            ).classes("w-64")
            with ui.column().classes("gap-0 w-48"):
                slider = ui.slider(min=0, max=2, step=0.1, value=conversation.temperature)
                slider.on("change", lambda: set_temperature(slider.value))
                ui.label().bind_text_from(
                    slider, "value", lambda v: f"Temperature: {v:.1f}"
                ).classes("text-xs text-gray-500")
        with ui.expansion("System prompt", icon="tune").classes("w-full"):
            system = ui.textarea(value=conversation.prompt).props("autogrow").classes("w-full")
            system.on("blur", lambda: update_selected(prompt=system.value or ""))

    @ui.refreshable
    def messages_view() -> None:
        nonlocal streaming_body, rendered_key
        state = store.state
        conversation = state.selected_conversation
        streaming_body = None
        rendered_key = (_selected_id(state), len(conversation.messages) if conversation else 0)

        if conversation is None or not conversation.messages:
            with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                ui.icon("forum").classes("text-5xl text-gray-300")
                ui.label("Start a conversation").classes("text-lg text-gray-400")
            return

        for index, message in enumerate(conversation.messages):
            on_edit = None
            if message.role == "user" and not state.message_is_streaming:
                on_edit = lambda i=index, m=message: edit_message(i, m)  # noqa: E731
            body = render_message(message, on_edit)
            if body is not None:
                streaming_body = body

        if state.loading:
            render_typing_indicator()

    @ui.refreshable
    def quiz_panel() -> None:
        answer_fields.clear()
        grade = quiz.grade
        for index, question in enumerate(quiz.questions):
            with ui.column().classes("w-full gap-1"):
                ui.label(f"Question {index + 1}: {question.question}").classes("font-medium")
                field = ui.input(placeholder="Type your answer here...", value=question.answer)
                field.classes("w-full")
                answer_fields.append(field)
                if grade is None:
                    continue
                field.disable()
                if index < len(grade.feedback):
                    feedback = grade.feedback[index]
                    color = "text-positive" if feedback.correct else "text-negative"
                    ui.label(feedback.text).classes(f"text-sm {color}")

        if quiz.questions and grade is None:
            ui.button("Check My Answers", icon="fact_check", on_click=check_quiz).classes("w-full")
        if grade is not None and grade.score is not None:
            ui.label(f"Your Score: {grade.score}/{QUIZ_LENGTH}").classes("text-lg font-semibold")

    @ui.refreshable
    def command_list() -> None:
        if command_query is None:
            return
        matches = filter_prompts(store.state.prompts, command_query)
        if not matches:
            return
        with ui.card().classes("w-full p-1 gap-0"):
            for prompt in matches[:MAX_COMMAND_MATCHES]:
                with ui.item(on_click=lambda p=prompt: use_prompt(p)):
                    with ui.item_section():
                        ui.item_label(prompt.name)
                        if prompt.description:
                            ui.item_label(prompt.description).props("caption")

    # === Layout ===

    with ui.header().classes("items-center justify-between px-4 py-2"):
        with ui.row().classes("items-center gap-3"):
            ui.button(icon="menu", on_click=toggle_chatbar).props("flat round color=white")
            ui.icon("smart_toy").classes("text-white text-3xl")
            ui.label("Ollama Chat").classes("text-lg font-semibold text-white")
        with ui.row().classes("items-center gap-1"):
            ui.button(icon="dark_mode", on_click=toggle_theme).props(
                "flat round color=white"
            ).tooltip("Toggle theme")
            ui.button(icon="bolt", on_click=toggle_promptbar).props(
                "flat round color=white"
            ).tooltip("Prompts")

    with ui.left_drawer(value=store.state.show_chatbar).classes("p-2") as left_drawer:
        with ui.row().classes("w-full gap-1 no-wrap"):
            ui.button("New chat", icon="add", on_click=lambda: new_chat()).classes("flex-grow")
            ui.button(icon="create_new_folder", on_click=lambda: add_folder("chat")).props(
                "outline"
            ).tooltip("New folder")
        ui.input(
            placeholder="Search conversations",
            value=store.state.search_term,
            on_change=lambda e: store.dispatch(SetField("search_term", e.value or "")),
        ).props("dense clearable").classes("w-full")
        with ui.scroll_area().classes("w-full flex-grow"):
            chatbar()
        ui.button("Clear conversations", icon="delete_sweep", on_click=clear_conversations).props(
            "flat"
        ).classes("w-full")

    with ui.right_drawer(value=store.state.show_promptbar).classes("p-2") as right_drawer:
        with ui.row().classes("w-full gap-1 no-wrap"):
            ui.button("New prompt", icon="add", on_click=add_prompt).classes("flex-grow")
            ui.button(icon="create_new_folder", on_click=lambda: add_folder("prompt")).props(
                "outline"
            ).tooltip("New folder")
        with ui.scroll_area().classes("w-full flex-grow"):
            promptbar()

    with ui.column().classes("w-full max-w-4xl mx-auto h-full gap-2"):
        settings_panel()
        with ui.expansion("Quiz", icon="quiz").classes("w-full"):
            with ui.row().classes("w-full items-center gap-2 no-wrap"):
                quiz_topic = ui.input(placeholder="Enter a topic (e.g., Photosynthesis)").classes(
                    "flex-grow"
                )
                ui.button("Generate Quiz", icon="quiz", on_click=generate_quiz)
            with ui.column().classes("w-full gap-3"):
                quiz_panel()
        scroll = ui.scroll_area().classes("w-full flex-grow")
        with scroll.style("height: calc(100vh - 18rem)"):
            with ui.column().classes("w-full gap-4 p-2"):
                messages_view()

    with ui.footer().classes("bg-transparent"):
        with ui.column().classes("w-full max-w-4xl mx-auto gap-1"):
            command_list()
            with ui.row().classes("w-full justify-center gap-2"):
                stop_btn = ui.button("Stop generating", icon="stop", on_click=service.stop).props(
                    "outline"
                )
                regenerate_btn = ui.button("Regenerate", icon="refresh", on_click=regenerate).props(
                    "outline"
                )
            with ui.row().classes("w-full items-end gap-2 no-wrap"):
                upload = (
                    ui.upload(
                        on_upload=handle_upload,
                        on_rejected=lambda: ui.notify("File is too large", type="negative"),
                        auto_upload=True,
                        max_files=1,
                        max_file_size=MAX_DOCUMENT_SIZE,
                    )
                    .props("flat dense hide-upload-btn")
                    .classes("w-40")
                    .tooltip("Attach a document or image")
                )
                input_field = (
                    ui.textarea(
                        placeholder="Type a message or / for prompts...", on_change=on_input
                    )
                    .props("autogrow outlined dense rows=1")
                    .classes("flex-grow")
                    .on("keydown.enter.prevent", send)
                )
                send_btn = ui.button(icon="send", on_click=send).props("round unelevated")

    def update_controls(state: HomeState) -> None:
        streaming = state.message_is_streaming
        conversation = state.selected_conversation
        stop_btn.set_visibility(streaming)
        regenerate_btn.set_visibility(
            not streaming and conversation is not None and bool(conversation.messages)
        )
        send_btn.set_enabled(not streaming)
        upload.set_enabled(not streaming)

    previous = store.state

    def on_state(state: HomeState) -> None:
        nonlocal previous
        old, previous = previous, state
        selected_changed = _selected_id(state) != _selected_id(old)

        if (
            state.conversations is not old.conversations
            or state.folders is not old.folders
            or state.search_term != old.search_term
            or selected_changed
        ):
            chatbar.refresh()
        if state.prompts is not old.prompts or state.folders is not old.folders:
            promptbar.refresh()
            if command_query is not None:
                command_list.refresh()
        if (
            state.models is not old.models
            or state.model_error is not old.model_error
            or selected_changed
        ):
            settings_panel.refresh()

        if (
            state.selected_conversation is not old.selected_conversation
            or state.loading != old.loading
            or state.message_is_streaming != old.message_is_streaming
        ):
            conversation = state.selected_conversation
            key = (_selected_id(state), len(conversation.messages) if conversation else 0)
            if (
                key == rendered_key
                and streaming_body is not None
                and state.loading == old.loading
                and state.message_is_streaming == old.message_is_streaming
            ):
                # Same message list, only the reply text grew
                streaming_body.set_content(conversation.messages[-1].content)
            else:
                messages_view.refresh()
            scroll.scroll_to(percent=1.0)

        if state.light_mode != old.light_mode:
            dark.set_value(state.light_mode == "dark")
        if state.show_chatbar != old.show_chatbar:
            left_drawer.set_value(state.show_chatbar)
        if state.show_promptbar != old.show_promptbar:
            right_drawer.set_value(state.show_promptbar)
        update_controls(state)

    store.subscribe(on_state)
    update_controls(store.state)

    # Stop generating into a tab that is gone
    ui.context.client.on_disconnect(service.stop)

    await ui.context.client.connected()
    await service.refresh_models()


def main() -> None:
    """Run the chat page on its own, without the HTTP API."""
    client = get_ollama_client()
    logger.info(f"Starting chat UI against Ollama at {client.host}")
    ui.run(title="Ollama Chat", port=8080, reload=False)


if __name__ == "__main__":
    main()
