"""Prompt template helpers.

Templates contain ``{{variable}}`` placeholders. Typing ``/name`` at the end of
the chat input offers matching templates.
"""

import re
from collections.abc import Mapping

from ollama_ui.models.chat import Prompt

VARIABLE_PATTERN = re.compile(r"{{(.*?)}}")
COMMAND_PATTERN = re.compile(r"/\w*$")


def parse_variables(content: str) -> list[str]:
    """Return placeholder names in order of appearance (duplicates kept)."""
    return VARIABLE_PATTERN.findall(content)


def unique_variables(content: str) -> list[str]:
    return list(dict.fromkeys(parse_variables(content)))


def fill_variables(content: str, values: Mapping[str, str]) -> str:
    """Substitute placeholders. Unknown placeholders are left as written."""
    return VARIABLE_PATTERN.sub(lambda m: values.get(m.group(1), m.group(0)), content)


def match_prompt_command(text: str) -> str | None:
    """Return the partial name after a trailing ``/``, or None."""
    match = COMMAND_PATTERN.search(text)
    return match.group(0)[1:] if match else None


def filter_prompts(prompts: list[Prompt], query: str) -> list[Prompt]:
    query = query.lower()
    return [p for p in prompts if query in p.name.lower()]


def apply_prompt(text: str, prompt: Prompt) -> str:
    """Replace the trailing ``/command`` in ``text`` with the template content."""
    if COMMAND_PATTERN.search(text) is None:
        return text + prompt.content
    return COMMAND_PATTERN.sub(lambda _: prompt.content, text, count=1)
