"""Edit session and flush result models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from prospector.core.types import Prospect


class EditSession(BaseModel):
    """Association between the selected prospect and its pending patch.

    ``baseline`` is the last canonical copy (as loaded or as returned by a
    successful flush); ``draft`` is the optimistic view model the UI shows,
    i.e. the baseline with every queued edit already applied; ``pending``
    holds the field edits not yet sent to the backend.
    """

    entity_id: str
    baseline: Prospect
    draft: Prospect
    pending: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def start(cls, entity: Prospect) -> EditSession:
        return cls(entity_id=entity.id, baseline=entity, draft=entity)

    def take_pending(self) -> dict[str, Any]:
        """Return the pending patch and reset the buffer."""
        patch, self.pending = self.pending, {}
        return patch


class FlushResult(BaseModel):
    """Outcome of sending one patch to the backend."""

    entity_id: str
    patch: dict[str, Any]
    ok: bool
    entity: Prospect | None = None
    error: str | None = None
