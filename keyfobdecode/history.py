"""Bounded history of decoded signals."""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass
from typing import Iterator, Optional

from .base import DecoderBase, FlipperFormat, RadioPreset

HISTORY_MAX = 50
DUPLICATE_WINDOW_MS = 500
_TICK_MASK = 0xFFFFFFFF


def _now_ms() -> int:
    return int(time.monotonic() * 1000) & _TICK_MASK


@dataclass
class HistoryItem:
    """One decoded signal kept in the history."""

    text: str
    flipper_format: FlipperFormat
    preset: RadioPreset
    type: int = 0


class History:
    """The most recent decoded signals, oldest first."""

    def __init__(self, max_items: int = HISTORY_MAX) -> None:
        self.max_items = max_items
        self._items: list[HistoryItem] = []
        self.last_index = 0
        self._last_hash: Optional[int] = None
        self._last_update = 0

    def add(
        self, decoder: DecoderBase, preset: RadioPreset, now: Optional[int] = None
    ) -> bool:
        """Record a decoded signal; False if it repeats the last one too soon."""
        if now is None:
            now = _now_ms()
        hash_data = decoder.get_hash_data()
        if (
            self._last_hash == hash_data
            and ((now - self._last_update) & _TICK_MASK) < DUPLICATE_WINDOW_MS
        ):
            self._last_update = now
            return False

        if len(self._items) >= self.max_items:
            del self._items[0]

        self._last_hash = hash_data
        self._last_update = now

        self._items.append(
            HistoryItem(
                text=decoder.get_string(),
                flipper_format=decoder.serialize(preset),
                preset=dataclasses.replace(preset),
            )
        )
        self.last_index += 1
        return True

    def reset(self) -> None:
        self._items.clear()
        self.last_index = 0

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[HistoryItem]:
        return iter(self._items)

    def _get(self, idx: int) -> Optional[HistoryItem]:
        if 0 <= idx < len(self._items):
            return self._items[idx]
        return None

    def get_text_item_menu(self, idx: int) -> str:
        """Numbered first line of an entry, or "---" when there is none."""
        item = self._get(idx)
        if item is None:
            return "---"
        text = item.text
        if "\r" in text:
            first = text.split("\r", 1)[0]
        else:
            first = text.split("\n", 1)[0]
        return f"{idx + 1}. {first}"

    def get_text_item(self, idx: int) -> str:
        item = self._get(idx)
        return "---" if item is None else item.text

    def get_raw_data(self, idx: int) -> Optional[FlipperFormat]:
        item = self._get(idx)
        return None if item is None else item.flipper_format