"""Radio receive/transmit control, frequency hopping and saved settings."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from .base import DecoderBase, ProtocolFlag, RadioPreset
from .history import History
from .subaru import SubaruDecoder
from .suzuki import SuzukiDecoder
from .vw import VwDecoder

RSSI_THRESHOLD = -90.0
RSSI_TIMEOUT_TICKS = 10

CC1101_BANDS = (
    (299_999_755, 348_000_335),
    (386_999_938, 464_000_000),
    (778_999_847, 928_000_000),
)

_PRESET_NAMES = {
    "FuriHalSubGhzPresetOok270Async": "AM270",
    "FuriHalSubGhzPresetOok650Async": "AM650",
    "FuriHalSubGhzPreset2FSKDev238Async": "FM238",
    "FuriHalSubGhzPreset2FSKDev476Async": "FM476",
    "FuriHalSubGhzPresetCustom": "CUSTOM",
}


class RadioStateError(RuntimeError):
    """The radio was asked to do something its current state does not allow."""


class TxRxState(enum.Enum):
    IDLE = "idle"
    RX = "rx"
    TX = "tx"
    SLEEP = "sleep"


class HopperState(enum.Enum):
    OFF = "off"
    RUNNING = "running"
    PAUSE = "pause"
    RSSI_TIMEOUT = "rssi_timeout"


def preset_name_for(preset: str) -> str:
    """Short display name of a radio preset identifier."""
    try:
        return _PRESET_NAMES[preset]
    except KeyError:
        raise ValueError(f"unknown preset: {preset}") from None


class RadioDevice:
    """A sub-GHz transceiver; pulses it receives go to the registered callback."""

    def __init__(
        self,
        name: str = "cc1101_int",
        bands: Iterable[tuple[int, int]] = CC1101_BANDS,
        rssi: float = -127.0,
    ) -> None:
        self.name = name
        self.bands = tuple(bands)
        self.rssi = rssi
        self.frequency = 0
        self.mode = "idle"
        self.preset_data = b""
        self._rx_callback: Optional[Callable[[bool, int], None]] = None

    @property
    def is_external(self) -> bool:
        return "ext" in self.name

    def is_frequency_valid(self, frequency: int) -> bool:
        return any(low <= frequency <= high for low, high in self.bands)

    def reset(self) -> None:
        self._rx_callback = None
        self.mode = "idle"

    def idle(self) -> None:
        self.mode = "idle"

    def sleep(self) -> None:
        self.mode = "sleep"

    def load_preset(self, preset_data: bytes) -> None:
        self.preset_data = bytes(preset_data)

    def set_frequency(self, frequency: int) -> int:
        if not self.is_frequency_valid(frequency):
            raise ValueError(f"frequency {frequency} is outside the radio's bands")
        self.frequency = frequency
        return frequency

    def set_rx(self) -> None:
        self.mode = "rx"

    def set_tx(self) -> None:
        self.mode = "tx"

    def start_async_rx(self, callback: Callable[[bool, int], None]) -> None:
        self._rx_callback = callback

    def stop_async_rx(self) -> None:
        self._rx_callback = None

    def get_rssi(self) -> float:
        return self.rssi

    def emit(self, level: bool, duration: int) -> None:
        """Deliver one received pulse, if the radio is receiving."""
        if self.mode == "rx" and self._rx_callback is not None:
            self._rx_callback(level, duration)


def _default_presets() -> dict[str, bytes]:
    return {"AM270": b"", "AM650": b"", "FM238": b"", "FM476": b""}


@dataclass
class RadioSetting:
    """Frequencies and presets the radio may use."""

    frequencies: list[int] = field(
        default_factory=lambda: [315_000_000, 390_000_000, 433_920_000, 868_350_000]
    )
    hopper_frequencies: list[int] = field(
        default_factory=lambda: [310_000_000, 315_000_000, 318_000_000, 390_000_000, 433_920_000]
    )
    presets: dict[str, bytes] = field(default_factory=_default_presets)
    default_frequency: int = 433_920_000

    @property
    def preset_names(self) -> list[str]:
        return list(self.presets)


@dataclass
class Settings:
    """Persisted user choices."""

    frequency: int = 433_920_000
    preset_index: int = 0
    auto_save: bool = False
    hopping_enabled: bool = False


class TxRx:
    """Drives the radio, feeds received pulses to the decoders and hops frequencies."""

    def __init__(
        self,
        device: Optional[RadioDevice] = None,
        setting: Optional[RadioSetting] = None,
        decoders: Optional[Iterable[DecoderBase]] = None,
        on_decode: Optional[Callable[[DecoderBase], None]] = None,
    ) -> None:
        self.device = device if device is not None else RadioDevice()
        self.setting = setting if setting is not None else RadioSetting()
        self.on_decode = on_decode
        if decoders is None:
            decoders = [
                SubaruDecoder(self._decoded),
                SuzukiDecoder(self._decoded),
                VwDecoder(self._decoded),
            ]
        self.receivers = [d for d in decoders if d.flags & ProtocolFlag.DECODABLE]
        self.preset = RadioPreset()
        self.history = History()
        self.state = TxRxState.IDLE
        self.hopper_state = HopperState.OFF
        self.hopper_idx_frequency = 0
        self.hopper_timeout = 0
        self.auto_save = False
        self.worker_running = False
        self.device.reset()
        self.device.idle()

    def __enter__(self) -> "TxRx":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Stop receiving and put the radio to sleep."""
        if self.state == TxRxState.RX:
            self.worker_running = False
            self.device.stop_async_rx()
        self.sleep()

    def _decoded(self, decoder: DecoderBase) -> None:
        if self.on_decode is not None:
            self.on_decode(decoder)

    def _on_pulse(self, level: bool, duration: int) -> None:
        if not self.worker_running:
            return
        for decoder in self.receivers:
            decoder.feed(level, duration)

    def reset_receiver(self) -> None:
        for decoder in self.receivers:
            decoder.reset()

    def preset_init(self, preset_name: str, frequency: int, preset_data: bytes) -> None:
        self.preset = RadioPreset(name=preset_name, frequency=frequency, data=bytes(preset_data))

    def set_preset(self, preset: str) -> None:
        self.preset.name = preset_name_for(preset)

    def get_frequency_modulation(self) -> tuple[str, str]:
        """Frequency as "MHz.xx" and the first two letters of the preset name."""
        freq = self.preset.frequency
        frequency = f"{freq // 1_000_000 % 1000:03d}.{freq // 10_000 % 100:02d}"
        return frequency, self.preset.name[:2]

    def begin(self, preset_data: bytes) -> None:
        self.device.reset()
        self.device.idle()
        self.device.load_preset(preset_data)
        self.state = TxRxState.IDLE

    def rx(self, frequency: int) -> int:
        if not self.device.is_frequency_valid(frequency):
            raise ValueError(f"incorrect RX frequency: {frequency}")
        if self.state in (TxRxState.RX, TxRxState.SLEEP):
            raise RadioStateError(f"cannot start receiving while {self.state.value}")
        self.device.idle()
        value = self.device.set_frequency(frequency)
        self.device.set_rx()
        self.device.start_async_rx(self._on_pulse)
        self.worker_running = True
        self.state = TxRxState.RX
        return value

    def idle(self) -> None:
        if self.state == TxRxState.SLEEP:
            raise RadioStateError("radio is asleep")
        self.device.idle()
        self.state = TxRxState.IDLE

    def rx_end(self) -> None:
        if self.state != TxRxState.RX:
            raise RadioStateError("radio is not receiving")
        if self.worker_running:
            self.worker_running = False
            self.device.stop_async_rx()
        self.device.idle()
        self.state = TxRxState.IDLE

    def sleep(self) -> None:
        self.device.sleep()
        self.state = TxRxState.SLEEP

    def hopper_update(self) -> None:
        """One hopper tick: stay put while a signal is present, else hop on."""
        if self.hopper_state in (HopperState.OFF, HopperState.PAUSE):
            return
        if self.hopper_state == HopperState.RSSI_TIMEOUT and self.hopper_timeout:
            self.hopper_timeout -= 1
            return

        if self.hopper_state != HopperState.RSSI_TIMEOUT:
            if self.device.get_rssi() > RSSI_THRESHOLD:
                self.hopper_timeout = RSSI_TIMEOUT_TICKS
                self.hopper_state = HopperState.RSSI_TIMEOUT
                return
        else:
            self.hopper_state = HopperState.RUNNING

        count = len(self.setting.hopper_frequencies)
        if self.hopper_idx_frequency < count - 1:
            self.hopper_idx_frequency += 1
        else:
            self.hopper_idx_frequency = 0

        if self.state == TxRxState.RX:
            self.rx_end()
        if self.state == TxRxState.IDLE:
            self.reset_receiver()
            self.preset.frequency = self.setting.hopper_frequencies[self.hopper_idx_frequency]
            self.rx(self.preset.frequency)

    def tx(self, frequency: int) -> bool:
        """Switch to transmit; False if the frequency is not usable."""
        if not self.device.is_frequency_valid(frequency):
            return False
        if self.state != TxRxState.IDLE:
            raise RadioStateError("radio must be idle to transmit")
        self.device.idle()
        self.device.set_frequency(frequency)
        self.device.set_tx()
        self.state = TxRxState.TX
        return True

    def tx_stop(self) -> None:
        if self.state != TxRxState.TX:
            raise RadioStateError("radio is not transmitting")
        self.device.idle()
        self.state = TxRxState.IDLE

    def apply_settings(self, settings: Settings) -> None:
        """Adopt saved settings, falling back to defaults where they are invalid."""
        frequency = settings.frequency
        if frequency not in self.setting.frequencies:
            frequency = self.setting.default_frequency
        names = self.setting.preset_names
        index = settings.preset_index
        if not 0 <= index < len(names):
            index = 0
        name = names[index]
        self.preset_init(name, frequency, self.setting.presets[name])
        self.auto_save = settings.auto_save
        self.hopper_state = (
            HopperState.RUNNING if settings.hopping_enabled else HopperState.OFF
        )
        self.hopper_idx_frequency = 0
        self.hopper_timeout = 0

    def capture_settings(self, auto_save: bool) -> Settings:
        """Current choices in the form they are saved."""
        names = self.setting.preset_names
        index = names.index(self.preset.name) if self.preset.name in names else 0
        return Settings(
            frequency=self.preset.frequency,
            preset_index=index,
            auto_save=auto_save,
            hopping_enabled=self.hopper_state != HopperState.OFF,
        )