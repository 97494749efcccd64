"""Decoder for Suzuki key fobs."""

from __future__ import annotations

import enum
from typing import Callable, Optional

from .base import (
    UINT64_MASK,
    DecoderBase,
    FlipperFormat,
    ProtocolFlag,
    RadioPreset,
    duration_diff,
    get_hash_data,
)

SUZUKI_PROTOCOL_NAME = "Suzuki"

GAP_TIME = 2000
GAP_DELTA = 399
PREAMBLE_MIN = 300

_BUTTON_NAMES = {
    1: "PANIC",
    2: "TRUNK",
    3: "LOCK",
    4: "UNLOCK",
}


class _Step(enum.IntEnum):
    RESET = 0
    COUNT_PREAMBLE = 1
    DECODE_DATA = 2


def button_name(btn: int) -> str:
    """Name of a Suzuki button code."""
    return _BUTTON_NAMES.get(btn, "Unknown")


class SuzukiDecoder(DecoderBase):
    """Pulse-width decoder for 64-bit Suzuki transmissions."""

    name = SUZUKI_PROTOCOL_NAME
    flags = (
        ProtocolFlag.FREQ_315
        | ProtocolFlag.FREQ_433
        | ProtocolFlag.AM
        | ProtocolFlag.FM
        | ProtocolFlag.DECODABLE
    )
    te_short = 250
    te_long = 500
    te_delta = 99
    min_count_bit = 64

    def __init__(self, callback: Optional[Callable[[DecoderBase], None]] = None):
        self.header_count = 0
        super().__init__(callback)

    def reset(self) -> None:
        self.parser_step = _Step.RESET

    def _add_bit(self, bit: int) -> None:
        self.decode_data = ((self.decode_data << 1) | bit) & UINT64_MASK
        self.decode_count_bit += 1

    def _finish(self) -> None:
        if self.decode_count_bit == 64:
            data = self.decode_data
            data_high = (data >> 32) & 0xFFFFFFFF
            data_low = data & 0xFFFFFFFF
            self.generic.data = data
            self.generic.data_count_bit = 64
            self.generic.serial = ((data_high & 0xFFF) << 16) | (data_low >> 16)
            self.generic.btn = (data_low >> 12) & 0xF
            self.generic.cnt = ((data_high << 4) & 0xFFFFFFFF) >> 16
            self._emit()
        self.decode_data = 0
        self.decode_count_bit = 0
        self.parser_step = _Step.RESET

    def feed(self, level: bool, duration: int) -> None:
        step = self.parser_step
        if step == _Step.RESET:
            if not level or duration_diff(duration, self.te_short) > self.te_delta:
                return
            self.decode_data = 0
            self.decode_count_bit = 0
            self.parser_step = _Step.COUNT_PREAMBLE
            self.header_count = 0

        elif step == _Step.COUNT_PREAMBLE:
            if level:
                if (
                    self.header_count >= PREAMBLE_MIN
                    and duration_diff(duration, self.te_long) <= self.te_delta
                ):
                    self.parser_step = _Step.DECODE_DATA
                    self._add_bit(1)
            elif duration_diff(duration, self.te_short) <= self.te_delta:
                self.te_last = duration
                self.header_count += 1
            else:
                self.parser_step = _Step.RESET

        elif step == _Step.DECODE_DATA:
            if level:
                # The length of the high pulse carries the bit.
                if duration_diff(duration, self.te_long) <= self.te_delta:
                    self._add_bit(1)
                elif duration_diff(duration, self.te_short) <= self.te_delta:
                    self._add_bit(0)
            elif duration_diff(duration, GAP_TIME) <= GAP_DELTA:
                self._finish()

    def get_hash_data(self) -> int:
        return get_hash_data(self.decode_data, self.generic.data_count_bit // 8 + 1)

    def serialize(self, preset: RadioPreset) -> FlipperFormat:
        flipper_format = super().serialize(preset)
        flipper_format.write_uint32("CRC", (self.generic.data >> 4) & 0xFF)
        flipper_format.write_uint32("Serial", self.generic.serial)
        flipper_format.write_uint32("Btn", self.generic.btn)
        flipper_format.write_uint32("Cnt", self.generic.cnt)
        return flipper_format

    def deserialize(self, flipper_format: FlipperFormat) -> None:
        self.generic.deserialize(flipper_format)

    def get_string(self) -> str:
        g = self.generic
        key_high = (g.data >> 32) & 0xFFFFFFFF
        key_low = g.data & 0xFFFFFFFF
        crc = (g.data >> 4) & 0xFF
        return (
            f"{g.protocol_name} {g.data_count_bit}bit\r\n"
            f"Key:{key_high:08X}{key_low:08X}\r\n"
            f"Sn:{g.serial:07X} Btn:{g.btn:X} {button_name(g.btn)}\r\n"
            f"Cnt:{g.cnt:04X} CRC:{crc:02X}\r\n"
        )