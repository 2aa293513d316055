"""Best-effort local persistence for chat state.

Each entry (conversation list, folders, prompts, settings, ...) is stored as
an independent JSON file named after its key. Writes replace the whole entry.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

CONVERSATION_HISTORY = "conversationHistory"
SELECTED_CONVERSATION = "selectedConversation"
FOLDERS = "folders"
PROMPTS = "prompts"
SETTINGS = "settings"
SHOW_CHATBAR = "showChatbar"
SHOW_PROMPTBAR = "showPromptbar"

_KEY_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

ModelT = TypeVar("ModelT", bound=BaseModel)


class LocalStorage:
    """Key/value store backed by one JSON file per key."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.fullmatch(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Any | None:
        """Read an entry.

        Returns:
            The decoded value, or None when missing or unreadable.
        """
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable storage entry {key}: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        """Replace an entry with a JSON-serializable value.

        Failures are logged, not raised: persistence is best effort.
        """
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(value, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Failed to persist {key}: {e}")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def dump_models(items: list[ModelT]) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json") for item in items]


def load_models(storage: LocalStorage, key: str, model_cls: type[ModelT]) -> list[ModelT]:
    """Restore a list entry, dropping items that no longer validate.

    Args:
        storage: Storage to read from.
        key: Entry name.
        model_cls: Pydantic model for each item.

    Returns:
        Valid items in stored order.
    """
    raw = storage.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(f"Ignoring storage entry {key}: expected a list")
        return []

    items: list[ModelT] = []
    for index, entry in enumerate(raw):
        try:
            items.append(model_cls.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Dropping invalid {key} item {index}: {e.error_count()} errors")
    return items


def load_model(storage: LocalStorage, key: str, model_cls: type[ModelT]) -> ModelT | None:
    raw = storage.get(key)
    if raw is None:
        return None
    try:
        return model_cls.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring invalid storage entry {key}: {e.error_count()} errors")
        return None
