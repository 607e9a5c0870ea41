"""In-memory template cache with an active template pointer."""

import logging
import threading
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from receiptable.models.template import Template

logger = logging.getLogger(__name__)


class TemplateEntry(BaseModel):
    """A cached template."""

    model_config = ConfigDict(frozen=True)

    template: Template
    cached_at: datetime = Field(default_factory=datetime.now)


class TemplateStore:
    """Keyed cache of validated templates.

    ``put`` upserts a template and makes it active (last write wins).
    ``clear`` removes everything and unsets the active template.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TemplateEntry] = {}
        self._active_id: str | None = None
        self._lock = threading.RLock()

    def put(self, template: Template) -> TemplateEntry:
        with self._lock:
            replaced = template.id in self._entries
            entry = TemplateEntry(template=template)
            self._entries[template.id] = entry
            self._active_id = template.id
        logger.info(f"Template '{template.id}' {'replaced' if replaced else 'cached'} and set as active")
        return entry

    def get(self, template_id: str) -> TemplateEntry | None:
        with self._lock:
            return self._entries.get(template_id)

    def entries(self) -> list[TemplateEntry]:
        """Entries sorted by template id."""
        with self._lock:
            return [self._entries[key] for key in sorted(self._entries)]

    @property
    def active_id(self) -> str | None:
        return self._active_id

    def active(self) -> Template | None:
        with self._lock:
            if self._active_id is None:
                return None
            entry = self._entries.get(self._active_id)
            return entry.template if entry else None

    def activate(self, template_id: str) -> Template | None:
        """Make a cached template active; returns None if it is not cached."""
        with self._lock:
            entry = self._entries.get(template_id)
            if entry is None:
                return None
            self._active_id = template_id
            return entry.template

    def remove(self, template_id: str) -> bool:
        with self._lock:
            if self._entries.pop(template_id, None) is None:
                return False
            if self._active_id == template_id:
                self._active_id = None
            return True

    def clear(self) -> int:
        """Remove all entries; returns how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._active_id = None
        logger.info(f"Template cache cleared ({count} removed)")
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._entries
