"""Building blocks of the chat page: message bubbles, dialogs and notices."""

from collections.abc import Callable
from typing import Any

from nicegui import ui

from ollama_ui.chat import ErrorNotice
from ollama_ui.models.chat import AttachmentKind, Message, Prompt

CUSTOM_CSS = """
<style>
    .message-user {
        background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
        color: white;
        border-radius: 18px 18px 4px 18px;
    }

    .message-assistant {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }
    .body--dark .message-assistant { background: #2d2f36; color: #e5e7eb; }

    .avatar-user { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); }
    .avatar-assistant { background: #6b7280; }

    .typing-dot {
        width: 8px; height: 8px;
        background: #667eea;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.2s; }
    .typing-dot:nth-child(3) { animation-delay: 0.4s; }

    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }

    .conversation-active { background: rgba(102, 126, 234, 0.15); border-radius: 8px; }

    .message-assistant pre { margin: 0.5rem 0; overflow-x: auto; }
    .message-assistant code { font-family: 'Menlo', 'Monaco', monospace; }
</style>
"""

ATTACHMENT_ICONS = {
    AttachmentKind.PDF: "picture_as_pdf",
    AttachmentKind.TEXT: "description",
    AttachmentKind.MARKDOWN: "article",
    AttachmentKind.IMAGE: "image",
    AttachmentKind.OTHER: "attach_file",
}


def render_avatar(is_user: bool) -> None:
    css = "avatar-user" if is_user else "avatar-assistant"
    icon = "person" if is_user else "smart_toy"
    with ui.element("div").classes(f"w-9 h-9 rounded-full flex items-center justify-center {css}"):
        ui.icon(icon).classes("text-white text-lg")


def render_attachment(message: Message) -> None:
    attachment = message.attachment
    if attachment is None:
        return
    icon = ATTACHMENT_ICONS.get(AttachmentKind(attachment.kind), "attach_file")
    with ui.row().classes("items-center gap-1 text-xs opacity-80 mt-1"):
        ui.icon(icon).classes("text-sm")
        ui.label(attachment.name)
        preview = getattr(attachment, "preview", "")
        if preview:
            ui.tooltip(preview).classes("max-w-sm whitespace-pre-wrap")


def render_message(
    message: Message, on_edit: Callable[[], Any] | None = None
) -> ui.markdown | None:
    """Render one message bubble.

    Args:
        message: The message to show.
        on_edit: Handler for the edit button (user messages only).

    Returns:
        The markdown element of an assistant message, so a streaming reply
        can be updated in place. None for user messages.
    """
    is_user = message.role == "user"
    align = "justify-end" if is_user else "justify-start"
    bubble = "message-user" if is_user else "message-assistant"
    body = None

    with ui.row().classes(f"w-full {align} gap-3 items-end no-wrap"):
        if not is_user:
            render_avatar(False)
        with ui.column().classes("max-w-[75%] gap-1"):
            with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                if is_user:
                    ui.label(message.content).classes("text-sm whitespace-pre-wrap")
                    render_attachment(message)
                else:
                    body = ui.markdown(message.content).classes("text-sm leading-relaxed")
            if on_edit is not None:
                ui.button(icon="edit", on_click=on_edit).props("flat dense round size=sm").classes(
                    "self-end text-gray-400"
                ).tooltip("Edit and resend")
        if is_user:
            render_avatar(True)

    return body


def render_typing_indicator() -> None:
    with ui.row().classes("w-full justify-start gap-3 items-end"):
        render_avatar(False)
        with ui.element("div").classes("message-assistant px-4 py-3"):
            with ui.row().classes("gap-1"):
                for _ in range(3):
                    ui.element("div").classes("typing-dot")


# === Dialogs ===
# Dialogs are created inside a long-lived host element so that refreshing the
# part of the page that opened them does not delete them while awaited.


async def ask_text(
    host: ui.element,
    title: str,
    value: str = "",
    label: str = "",
    multiline: bool = False,
) -> str | None:
    """Ask for one line (or block) of text.

    Returns:
        The entered text, or None when cancelled.
    """
    with host, ui.dialog() as dialog, ui.card().classes("w-[32rem] max-w-full"):
        ui.label(title).classes("text-lg font-semibold")
        if multiline:
            field = ui.textarea(label=label, value=value).props("autogrow").classes("w-full")
        else:
            field = ui.input(label=label, value=value).classes("w-full")
            field.on("keydown.enter", lambda: dialog.submit(field.value))
        with ui.row().classes("w-full justify-end"):
            ui.button("Cancel", on_click=lambda: dialog.submit(None)).props("flat")
            ui.button("Save", on_click=lambda: dialog.submit(field.value))

    result = await dialog
    dialog.delete()
    return result


async def confirm(host: ui.element, message: str) -> bool:
    with host, ui.dialog() as dialog, ui.card():
        ui.label(message)
        with ui.row().classes("w-full justify-end"):
            ui.button("Cancel", on_click=lambda: dialog.submit(False)).props("flat")
            ui.button("Confirm", on_click=lambda: dialog.submit(True)).props("color=negative")

    result = await dialog
    dialog.delete()
    return bool(result)


async def ask_variables(
    host: ui.element, title: str, variables: list[str]
) -> dict[str, str] | None:
    """Ask for a value per template variable.

    Returns:
        Mapping of variable name to value, or None when cancelled.
    """
    with host, ui.dialog() as dialog, ui.card().classes("w-[32rem] max-w-full"):
        ui.label(title).classes("text-lg font-semibold")
        fields = {
            name: ui.textarea(label=name).props("autogrow").classes("w-full") for name in variables
        }
        with ui.row().classes("w-full justify-end"):
            ui.button("Cancel", on_click=lambda: dialog.submit(None)).props("flat")
            ui.button(
                "Submit",
                on_click=lambda: dialog.submit({name: f.value or "" for name, f in fields.items()}),
            )

    result = await dialog
    dialog.delete()
    return result


async def edit_prompt(host: ui.element, prompt: Prompt) -> Prompt | None:
    """Edit the name, description and content of a prompt template.

    Returns:
        The updated prompt, or None when cancelled.
    """
    with host, ui.dialog() as dialog, ui.card().classes("w-[36rem] max-w-full"):
        ui.label("Edit prompt").classes("text-lg font-semibold")
        name = ui.input("Name", value=prompt.name).classes("w-full")
        description = ui.input("Description", value=prompt.description).classes("w-full")
        content = (
            ui.textarea("Prompt", value=prompt.content)
            .props("autogrow")
            .classes("w-full")
            .tooltip("Use {{variable}} for values asked when the prompt is used")
        )
        with ui.row().classes("w-full justify-end"):
            ui.button("Cancel", on_click=lambda: dialog.submit(None)).props("flat")
            ui.button("Save", on_click=lambda: dialog.submit(True))

    saved = await dialog
    update = {
        "name": (name.value or "").strip() or prompt.name,
        "description": description.value or "",
        "content": content.value or "",
    }
    dialog.delete()
    return prompt.model_copy(update=update) if saved else None


def show_notice(host: ui.element, notice: ErrorNotice) -> None:
    """Show a failure. Notices with a retry action open a dialog offering it."""
    message = notice.title if not notice.detail else f"{notice.title}: {notice.detail}"
    ui.notify(message, type="negative", multi_line=True)

    if notice.retry is None:
        return

    with host, ui.dialog() as dialog, ui.card().classes("w-[28rem] max-w-full"):
        ui.label(notice.title).classes("text-lg font-semibold text-negative")
        if notice.detail:
            ui.label(notice.detail).classes("text-sm whitespace-pre-wrap")

        def dismiss() -> None:
            dialog.close()
            dialog.delete()

        async def retry() -> None:
            dialog.close()
            result = await notice.retry()
            dialog.delete()
            if isinstance(result, ErrorNotice):
                show_notice(host, result)

        with ui.row().classes("w-full justify-end"):
            ui.button("Dismiss", on_click=dismiss).props("flat")
            ui.button("Retry", icon="refresh", on_click=retry)

    dialog.open()
