"""Decoder for Subaru key fobs."""

from __future__ import annotations

import enum
from typing import Callable, Optional

from .base import DecoderBase, FlipperFormat, ProtocolFlag, RadioPreset, duration_diff

SUBARU_PROTOCOL_NAME = "Subaru"


class _Step(enum.IntEnum):
    RESET = 0
    CHECK_PREAMBLE = 1
    FOUND_GAP = 2
    FOUND_SYNC = 3
    SAVE_DURATION = 4
    CHECK_DURATION = 5


def decode_count(data: bytes) -> int:
    """Recover the rolling counter from the eight key bytes."""
    kb = bytes(data)
    if len(kb) != 8:
        raise ValueError("Subaru key needs exactly 8 bytes")

    lo = 0
    for byte_idx, mask, bit in (
        (4, 0x40, 0x01),
        (4, 0x80, 0x02),
        (5, 0x01, 0x04),
        (5, 0x02, 0x08),
        (6, 0x01, 0x10),
        (6, 0x02, 0x20),
        (5, 0x40, 0x40),
        (5, 0x80, 0x80),
    ):
        if not kb[byte_idx] & mask:
            lo |= bit

    reg_sh1 = (kb[7] << 4) & 0xF0
    if kb[5] & 0x04:
        reg_sh1 |= 0x04
    if kb[5] & 0x08:
        reg_sh1 |= 0x08
    if kb[6] & 0x80:
        reg_sh1 |= 0x02
    if kb[6] & 0x40:
        reg_sh1 |= 0x01

    reg_sh2 = ((kb[6] << 2) & 0xF0) | ((kb[7] >> 4) & 0x0F)

    ser0, ser1, ser2 = kb[3], kb[1], kb[2]
    for _ in range((4 + lo) & 0xFF):
        t_bit = (ser0 >> 7) & 1
        ser0 = ((ser0 << 1) & 0xFE) | ((ser1 >> 7) & 1)
        ser1 = ((ser1 << 1) & 0xFE) | ((ser2 >> 7) & 1)
        ser2 = ((ser2 << 1) & 0xFE) | t_bit

    t1 = ser1 ^ reg_sh1
    t2 = ser2 ^ reg_sh2

    hi = 0
    for value, mask, bit in (
        (t1, 0x10, 0x04),
        (t1, 0x20, 0x08),
        (t2, 0x80, 0x02),
        (t2, 0x40, 0x01),
        (t1, 0x01, 0x40),
        (t1, 0x02, 0x80),
        (t2, 0x08, 0x20),
        (t2, 0x04, 0x10),
    ):
        if not value & mask:
            hi |= bit

    return ((hi << 8) | lo) & 0xFFFF


class SubaruDecoder(DecoderBase):
    """Pulse-width decoder for 64-bit Subaru transmissions."""

    name = SUBARU_PROTOCOL_NAME
    flags = (
        ProtocolFlag.FREQ_315
        | ProtocolFlag.FREQ_433
        | ProtocolFlag.AM
        | ProtocolFlag.FM
        | ProtocolFlag.DECODABLE
    )
    te_short = 800
    te_long = 1600
    te_delta = 200
    min_count_bit = 64

    def __init__(self, callback: Optional[Callable[[DecoderBase], None]] = None):
        self.key = 0
        self.serial = 0
        self.button = 0
        self.count = 0
        self.header_count = 0
        self.bit_count = 0
        self.data = bytearray(8)
        super().__init__(callback)

    def reset(self) -> None:
        self.parser_step = _Step.RESET
        self.te_last = 0
        self.header_count = 0
        self.bit_count = 0
        self.data = bytearray(8)

    def get_hash_data(self) -> int:
        """Hash of the raw decoder shift register, used to drop repeats."""
        return super().get_hash_data()

    def _near(self, duration: int, target: int) -> bool:
        return duration_diff(duration, target) < self.te_delta

    def _add_bit(self, bit: bool) -> None:
        if self.bit_count >= 64:
            return
        byte_idx, offset = divmod(self.bit_count, 8)
        mask = 1 << (7 - offset)
        if bit:
            self.data[byte_idx] |= mask
        else:
            self.data[byte_idx] &= ~mask & 0xFF
        self.bit_count += 1

    def _process_data(self) -> bool:
        if self.bit_count < 64:
            return False
        b = bytes(self.data)
        self.key = int.from_bytes(b, "big")
        self.serial = int.from_bytes(b[1:4], "big")
        self.button = b[0] & 0x0F
        self.count = decode_count(b)
        return True

    def _finish(self) -> None:
        if self.bit_count >= 64 and self._process_data():
            self.generic.data = self.key
            self.generic.data_count_bit = 64
            self.generic.serial = self.serial
            self.generic.btn = self.button
            self.generic.cnt = self.count
            self._emit()
        self.parser_step = _Step.RESET

    def feed(self, level: bool, duration: int) -> None:
        step = self.parser_step
        if step == _Step.RESET:
            if level and self._near(duration, self.te_long):
                self.parser_step = _Step.CHECK_PREAMBLE
                self.te_last = duration
                self.header_count = 1

        elif step == _Step.CHECK_PREAMBLE:
            if not level:
                if self._near(duration, self.te_long):
                    self.header_count += 1
                elif 2000 < duration < 3500:
                    self.parser_step = (
                        _Step.FOUND_GAP if self.header_count > 20 else _Step.RESET
                    )
                else:
                    self.parser_step = _Step.RESET
            elif self._near(duration, self.te_long):
                self.te_last = duration
                self.header_count += 1
            else:
                self.parser_step = _Step.RESET

        elif step == _Step.FOUND_GAP:
            if level and 2000 < duration < 3500:
                self.parser_step = _Step.FOUND_SYNC
            else:
                self.parser_step = _Step.RESET

        elif step == _Step.FOUND_SYNC:
            if not level and self._near(duration, self.te_long):
                self.parser_step = _Step.SAVE_DURATION
                self.bit_count = 0
                self.data = bytearray(8)
            else:
                self.parser_step = _Step.RESET

        elif step == _Step.SAVE_DURATION:
            if not level:
                self.parser_step = _Step.RESET
            elif self._near(duration, self.te_short):
                # A short high pulse carries a one, a long one a zero.
                self._add_bit(True)
                self.te_last = duration
                self.parser_step = _Step.CHECK_DURATION
            elif self._near(duration, self.te_long):
                self._add_bit(False)
                self.te_last = duration
                self.parser_step = _Step.CHECK_DURATION
            elif duration > 3000:
                self._finish()
            else:
                self.parser_step = _Step.RESET

        elif step == _Step.CHECK_DURATION:
            if level:
                self.parser_step = _Step.RESET
            elif self._near(duration, self.te_short) or self._near(duration, self.te_long):
                self.parser_step = _Step.SAVE_DURATION
            elif duration > 3000:
                self._finish()
            else:
                self.parser_step = _Step.RESET

    def serialize(self, preset: RadioPreset) -> FlipperFormat:
        flipper_format = super().serialize(preset)
        flipper_format.write_uint32("Serial", self.serial)
        flipper_format.write_uint32("Btn", self.button)
        flipper_format.write_uint32("Cnt", self.count)
        flipper_format.write_uint32("DataHi", self.key >> 32)
        flipper_format.write_uint32("DataLo", self.key & 0xFFFFFFFF)
        return flipper_format

    def deserialize(self, flipper_format: FlipperFormat) -> None:
        self.generic.deserialize(flipper_format, self.min_count_bit)

    def get_string(self) -> str:
        key_hi = self.key >> 32
        key_lo = self.key & 0xFFFFFFFF
        return (
            f"{self.generic.protocol_name} {self.generic.data_count_bit}bit\r\n"
            f"Key:{key_hi:08X}{key_lo:08X}\r\n"
            f"Sn:{self.serial:06X} Btn:{self.button:X} Cnt:{self.count:04X}\r\n"
        )