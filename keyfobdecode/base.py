"""Shared building blocks for the key-fob protocol decoders."""

from __future__ import annotations

import abc
import enum
from dataclasses import dataclass
from typing import Callable, Optional, Union

UINT32_MAX = 0xFFFFFFFF
UINT64_MASK = 0xFFFFFFFFFFFFFFFF


class ProtocolFlag(enum.IntFlag):
    """Capabilities a protocol advertises."""

    RAW = 1 << 0
    DECODABLE = 1 << 1
    FREQ_315 = 1 << 2
    FREQ_433 = 1 << 3
    FREQ_868 = 1 << 4
    AM = 1 << 5
    FM = 1 << 6
    SAVE = 1 << 7
    LOAD = 1 << 8
    SEND = 1 << 9


@dataclass
class RadioPreset:
    """Radio configuration a signal was received with."""

    name: str = ""
    frequency: int = 0
    data: bytes = b""

    @property
    def data_size(self) -> int:
        return len(self.data)


def duration_diff(a: int, b: int) -> int:
    """Absolute difference between two pulse durations."""
    return abs(a - b)


def get_hash_data(data: int, size: int) -> int:
    """XOR of the first ``size`` little-endian bytes of a 64-bit value."""
    raw = (data & UINT64_MASK).to_bytes(8, "little")
    result = 0
    for byte in raw[: max(0, size)]:
        result ^= byte
    return result


class FlipperFormat:
    """Ordered key/value record of decoded signal fields."""

    def __init__(self) -> None:
        self._entries: list[tuple[str, Union[int, str]]] = []

    def write_uint32(self, key: str, value: int) -> None:
        value = int(value)
        if not 0 <= value <= UINT32_MAX:
            raise ValueError(f"{key}: {value} does not fit in 32 bits")
        self._entries.append((key, value))

    def write_string(self, key: str, value: str) -> None:
        self._entries.append((key, str(value)))

    def _read(self, key: str, kind: type) -> Union[int, str]:
        for name, value in self._entries:
            if name == key:
                if not isinstance(value, kind):
                    raise ValueError(f"{key} is not of type {kind.__name__}")
                return value
        raise KeyError(key)

    def read_uint32(self, key: str) -> int:
        return self._read(key, int)

    def read_string(self, key: str) -> str:
        return self._read(key, str)

    def __contains__(self, key: object) -> bool:
        return any(name == key for name, _ in self._entries)

    def to_text(self) -> str:
        return "".join(f"{name}: {value}\n" for name, value in self._entries)


@dataclass
class GenericBlock:
    """Fields common to every decoded key."""

    protocol_name: str = ""
    data: int = 0
    data_count_bit: int = 0
    serial: int = 0
    btn: int = 0
    cnt: int = 0

    def serialize(self, flipper_format: FlipperFormat, preset: RadioPreset) -> None:
        flipper_format.write_uint32("Frequency", preset.frequency)
        flipper_format.write_string("Preset", preset.name)
        flipper_format.write_string("Protocol", self.protocol_name)
        flipper_format.write_uint32("Bit", self.data_count_bit)
        key = (self.data & UINT64_MASK).to_bytes(8, "big")
        flipper_format.write_string("Key", " ".join(f"{b:02X}" for b in key))

    def deserialize(
        self, flipper_format: FlipperFormat, min_count_bit: Optional[int] = None
    ) -> None:
        try:
            bits = flipper_format.read_uint32("Bit")
            key_text = flipper_format.read_string("Key")
        except KeyError as exc:
            raise ValueError(f"missing field {exc}") from exc
        if min_count_bit is not None and bits != min_count_bit:
            raise ValueError(f"wrong number of bits: {bits}, expected {min_count_bit}")
        raw = bytes.fromhex(key_text)
        if len(raw) != 8:
            raise ValueError("key must hold 8 bytes")
        self.data_count_bit = bits
        self.data = int.from_bytes(raw, "big")


class DecoderBase(abc.ABC):
    """A pulse-stream decoder for one protocol."""

    name: str = ""
    flags: ProtocolFlag = ProtocolFlag(0)
    te_short: int = 0
    te_long: int = 0
    te_delta: int = 0
    min_count_bit: int = 0

    def __init__(self, callback: Optional[Callable[["DecoderBase"], None]] = None):
        self.callback = callback
        self.generic = GenericBlock(protocol_name=self.name)
        self.parser_step = 0
        self.te_last = 0
        self.decode_data = 0
        self.decode_count_bit = 0
        self.reset()

    def _emit(self) -> None:
        if self.callback is not None:
            self.callback(self)

    @abc.abstractmethod
    def feed(self, level: bool, duration: int) -> None:
        """Process one pulse of the given level and duration in microseconds."""

    @abc.abstractmethod
    def reset(self) -> None:
        """Return the parser to its initial state."""

    def get_hash_data(self) -> int:
        return get_hash_data(self.decode_data, self.decode_count_bit // 8 + 1)

    def serialize(self, preset: RadioPreset) -> FlipperFormat:
        flipper_format = FlipperFormat()
        self.generic.serialize(flipper_format, preset)
        return flipper_format

    def deserialize(self, flipper_format: FlipperFormat) -> None:
        self.generic.deserialize(flipper_format, self.min_count_bit)

    @abc.abstractmethod
    def get_string(self) -> str:
        """Human-readable description of the last decoded key."""