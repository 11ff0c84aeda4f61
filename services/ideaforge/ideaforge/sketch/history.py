import time
import logging
from typing import List, Optional
from pydantic import BaseModel, Field

from .surface import SurfaceManager

logger = logging.getLogger("ideaforge.history")

MAX_HISTORY_SIZE = 50


class HistoryEntry(BaseModel):
    data: bytes  # PNG-encoded full buffer
    created_at: float = Field(default_factory=time.time)


class HistoryStack:
    """
    Linear undo history of full-surface snapshots.

    `index` points at the entry that matches the surface as currently shown.
    There is no redo: a push after an undo drops everything past `index`.
    """

    def __init__(self, capacity: int = MAX_HISTORY_SIZE):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self.entries: List[HistoryEntry] = []
        self.index = -1

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def current(self) -> Optional[HistoryEntry]:
        if self.index < 0:
            return None
        return self.entries[self.index]

    @property
    def can_undo(self) -> bool:
        return self.index > 0

    def push(self, snapshot: bytes) -> HistoryEntry:
        entry = HistoryEntry(data=snapshot)
        del self.entries[self.index + 1:]
        self.entries.append(entry)
        self.index = len(self.entries) - 1
        if len(self.entries) > self.capacity:
            self.entries.pop(0)
            self.index -= 1
        return entry

    def undo(self) -> Optional[HistoryEntry]:
        if self.index <= 0:
            return None
        self.index -= 1
        return self.entries[self.index]

    def revert_undo(self, entry: HistoryEntry) -> None:
        """Steps forward again after an undo whose restore never landed."""
        if self.current is entry and self.index + 1 < len(self.entries):
            self.index += 1

    def reset(self) -> None:
        self.entries = []
        self.index = -1


async def restore(entry: HistoryEntry, manager: SurfaceManager) -> None:
    """
    Decodes a snapshot and writes it over the whole surface. Input that lands
    while the decode is pending is overwritten once it completes.
    """
    surface = manager.require_surface()
    pixels = await surface.decode_image(entry.data)
    manager.replace_pixels(pixels)
    logger.debug("Restored snapshot from %.3f", entry.created_at)
