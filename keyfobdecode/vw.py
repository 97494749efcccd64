"""Decoder for Volkswagen key fobs."""

from __future__ import annotations

import enum
from typing import Callable, Optional

from .base import (
    DecoderBase,
    FlipperFormat,
    ProtocolFlag,
    RadioPreset,
    duration_diff,
    get_hash_data,
)

VW_PROTOCOL_NAME = "VW"

_BUTTON_NAMES = {
    0x1: "UNLOCK",
    0x2: "LOCK",
    0x3: "Un+Lk",
    0x4: "TRUNK",
    0x5: "Un+Tr",
    0x6: "Lk+Tr",
    0x7: "Un+Lk+Tr",
    0x8: "PANIC",
}


class ManchesterState(enum.IntEnum):
    """Position inside a Manchester-coded bit."""

    START1 = 0
    MID1 = 1
    MID0 = 2
    START0 = 3


class ManchesterEvent(enum.IntEnum):
    """Classified pulse fed to the Manchester state machine."""

    SHORT_LOW = 0
    SHORT_HIGH = 2
    LONG_LOW = 4
    LONG_HIGH = 6
    RESET = 8


class _Step(enum.IntEnum):
    RESET = 0
    FOUND_SYNC = 1
    FOUND_START1 = 2
    FOUND_START2 = 3
    FOUND_START3 = 4
    FOUND_DATA = 5


def manchester_advance(
    state: ManchesterState, event: ManchesterEvent
) -> tuple[ManchesterState, Optional[bool]]:
    """Advance the Manchester decoder; return the new state and any completed bit."""
    if event == ManchesterEvent.RESET:
        return ManchesterState.MID1, None

    if state in (ManchesterState.MID0, ManchesterState.MID1):
        if event == ManchesterEvent.SHORT_HIGH:
            return ManchesterState.START1, None
        if event == ManchesterEvent.SHORT_LOW:
            return ManchesterState.START0, None
        return ManchesterState.MID1, None

    if state == ManchesterState.START1:
        if event == ManchesterEvent.SHORT_LOW:
            return ManchesterState.MID1, True
        if event == ManchesterEvent.LONG_LOW:
            return ManchesterState.START0, True
        return ManchesterState.MID1, None

    # START0
    if event == ManchesterEvent.SHORT_HIGH:
        return ManchesterState.MID0, False
    if event == ManchesterEvent.LONG_HIGH:
        return ManchesterState.START1, False
    return ManchesterState.MID1, None


def bit_index(bit: int) -> tuple[bool, int]:
    """Map a frame bit position to (stored in the extra word, index in that word).

    Bits 8..71 form the 64-bit key; the top byte (type) and the bottom byte
    (check) are kept together in a separate 16-bit word.
    """
    if 8 <= bit < 72:
        return False, bit - 8
    if bit >= 72:
        return True, bit - 64
    return True, bit


def button_name(btn: int) -> str:
    """Name of a VW button code."""
    return _BUTTON_NAMES.get(btn, "Unknown")


class VwDecoder(DecoderBase):
    """Manchester decoder for 80-bit VW transmissions."""

    name = VW_PROTOCOL_NAME
    flags = (
        ProtocolFlag.FREQ_433
        | ProtocolFlag.AM
        | ProtocolFlag.FM
        | ProtocolFlag.DECODABLE
    )
    te_short = 500
    te_long = 1000
    te_delta = 120
    min_count_bit = 80

    def __init__(self, callback: Optional[Callable[[DecoderBase], None]] = None):
        self.data_2 = 0
        self.manchester_state = ManchesterState.MID1
        super().__init__(callback)

    @property
    def type(self) -> int:
        return (self.data_2 >> 8) & 0xFF

    @property
    def check(self) -> int:
        return self.data_2 & 0xFF

    @property
    def button(self) -> int:
        return (self.check >> 4) & 0xF

    def reset(self) -> None:
        self.parser_step = _Step.RESET
        self.generic.data_count_bit = 0
        self.generic.data = 0
        self.data_2 = 0
        self.manchester_state = ManchesterState.MID1

    def _near(self, duration: int, target: int) -> bool:
        return duration_diff(duration, target) < self.te_delta

    def _add_bit(self, level: bool) -> None:
        if self.generic.data_count_bit >= self.min_count_bit:
            return
        in_extra, index = bit_index(self.min_count_bit - 1 - self.generic.data_count_bit)
        mask = 1 << index
        if in_extra:
            self.data_2 = self.data_2 | mask if level else self.data_2 & ~mask
        else:
            g = self.generic
            g.data = g.data | mask if level else g.data & ~mask
        self.generic.data_count_bit += 1
        if self.generic.data_count_bit >= self.min_count_bit:
            self._emit()

    def feed(self, level: bool, duration: int) -> None:
        te_med = (self.te_long + self.te_short) // 2
        te_end = self.te_long * 5
        step = self.parser_step

        if step == _Step.RESET:
            if self._near(duration, self.te_short):
                self.parser_step = _Step.FOUND_SYNC

        elif step == _Step.FOUND_SYNC:
            if self._near(duration, self.te_short):
                return  # the sync pattern repeats many times
            if level and self._near(duration, self.te_long):
                self.parser_step = _Step.FOUND_START1
            else:
                self.parser_step = _Step.RESET

        elif step == _Step.FOUND_START1:
            if not level and self._near(duration, self.te_short):
                self.parser_step = _Step.FOUND_START2
            else:
                self.parser_step = _Step.RESET

        elif step == _Step.FOUND_START2:
            if level and self._near(duration, te_med):
                self.parser_step = _Step.FOUND_START3
            else:
                self.parser_step = _Step.RESET

        elif step == _Step.FOUND_START3:
            if self._near(duration, te_med):
                return
            if level and self._near(duration, self.te_short):
                state, _ = manchester_advance(self.manchester_state, ManchesterEvent.RESET)
                state, _ = manchester_advance(state, ManchesterEvent.SHORT_HIGH)
                self.manchester_state = state
                self.generic.data_count_bit = 0
                self.generic.data = 0
                self.data_2 = 0
                self.parser_step = _Step.FOUND_DATA
            else:
                self.parser_step = _Step.RESET

        elif step == _Step.FOUND_DATA:
            event = ManchesterEvent.RESET
            if self._near(duration, self.te_short):
                event = ManchesterEvent.SHORT_HIGH if level else ManchesterEvent.SHORT_LOW
            if self._near(duration, self.te_long):
                event = ManchesterEvent.LONG_HIGH if level else ManchesterEvent.LONG_LOW
            # The final bit may be closed by an arbitrarily long low.
            if (
                self.generic.data_count_bit == self.min_count_bit - 1
                and not level
                and duration > te_end
            ):
                event = ManchesterEvent.SHORT_LOW

            if event == ManchesterEvent.RESET:
                self.reset()
            else:
                self.manchester_state, bit = manchester_advance(self.manchester_state, event)
                if bit is not None:
                    self._add_bit(bit)

    def get_hash_data(self) -> int:
        return get_hash_data(self.decode_data, self.decode_count_bit // 8 + 1)

    def serialize(self, preset: RadioPreset) -> FlipperFormat:
        flipper_format = super().serialize(preset)
        flipper_format.write_uint32("Type", self.type)
        flipper_format.write_uint32("Check", self.check)
        flipper_format.write_uint32("Btn", self.button)
        return flipper_format

    def deserialize(self, flipper_format: FlipperFormat) -> None:
        self.generic.deserialize(flipper_format, self.min_count_bit)

    def get_string(self) -> str:
        g = self.generic
        key_high = (g.data >> 32) & 0xFFFFFFFF
        key_low = g.data & 0xFFFFFFFF
        return (
            f"{g.protocol_name} {g.data_count_bit}bit\r\n"
            f"Key:{self.type:02X}{key_high:08X}{key_low:08X}{self.check:02X}\r\n"
            f"Type:{self.type:02X} Btn:{self.button:X} {button_name(self.button)}\r\n"
        )