# keyfobdecode

Decoders for the pulse trains that car key fobs send on the sub-GHz bands.
You feed a decoder one pulse at a time. Each pulse is a signal level (`True`
for high) and a duration in microseconds. When the decoder has a complete
packet, it calls the callback you gave it. You can then serialize the packet
into an ordered key/value record or get a short text summary of it.

The package has no runtime dependencies.

## Modules

- `keyfobdecode.base` holds the shared parts:
  - `DecoderBase`, the abstract decoder. It provides `feed`, `reset`,
    `get_hash_data`, `serialize`, `deserialize` and `get_string`.
  - `GenericBlock`, which holds the common decoded fields: `data`,
    `data_count_bit`, `serial`, `btn` and `cnt`.
  - `FlipperFormat`, the key/value record.
  - `RadioPreset`, which holds a preset name, a frequency and preset data.
  - `ProtocolFlag`.
  - the helpers `duration_diff` and `get_hash_data`.
- `keyfobdecode.subaru` provides `SubaruDecoder` for 64-bit packets. It
  decodes the serial, the button and the rolling counter. The counter comes
  from `decode_count(data)`, which takes the eight key bytes.
- `keyfobdecode.suzuki` provides `SuzukiDecoder` for 64-bit packets. It
  decodes a serial, a button, a counter and a CRC byte. `button_name(btn)`
  returns the name of a button code.
- `keyfobdecode.vw` provides `VwDecoder` for 80-bit Manchester-coded packets.
  These carry a type byte and a check byte, which the decoder exposes as
  `type`, `check` and `button`. The module also has:
  - `manchester_advance(state, event)`, the Manchester state machine.
  - `bit_index(bit)`.
  - `button_name(btn)`.
- `keyfobdecode.history` provides `History`, a bounded list of
  `HistoryItem` captures. It holds at most 50 by default and keeps them oldest
  first.
- `keyfobdecode.txrx` provides `TxRx`, the receive/transmit state machine.
  It also defines `RadioDevice`, `RadioSetting`, `Settings`, `TxRxState`,
  `HopperState`, `RadioStateError` and `preset_name_for`.

## Installation

```
pip install .
```

To install with the test tools:

```
pip install ".[test]"
```

## Decoding pulses

```python
from keyfobdecode.base import RadioPreset
from keyfobdecode.subaru import SubaruDecoder

preset = RadioPreset(name="AM650", frequency=433_920_000)

def on_packet(dec):
    print(dec.get_string())
    print(dec.serialize(preset).to_text())

decoder = SubaruDecoder(on_packet)

for level, duration in pulses:   # pulses: iterable of (bool, int microseconds)
    decoder.feed(level, duration)
```

- `reset()` returns a decoder to its idle state.
- `serialize(preset)` returns a new `FlipperFormat`. It holds the fields
  `Frequency`, `Preset`, `Protocol`, `Bit` and `Key`, followed by the fields
  of the protocol:
  - Subaru: `Serial`, `Btn`, `Cnt`, `DataHi`, `DataLo`
  - Suzuki: `CRC`, `Serial`, `Btn`, `Cnt`
  - VW: `Type`, `Check`, `Btn`
- `deserialize(flipper_format)` restores only the key and the bit count. It
  raises `ValueError` if a field is missing or the key is malformed. It also
  raises `ValueError` when the bit count is wrong: Subaru and VW check it,
  Suzuki does not.

`FlipperFormat` has these methods:

- `write_uint32` and `write_string` write a value. `write_uint32` raises
  `ValueError` for a value that does not fit in 32 bits.
- `read_uint32` and `read_string` read a value. They raise `KeyError` for a
  missing key and `ValueError` for a value of the wrong type.
- `key in flipper_format` tests whether a key is present.
- `to_text()` renders one `Key: value` line per entry.

### Hashes of repeated packets

`get_hash_data()` returns a one-byte XOR hash of the decoder's shift register
(`decode_data`). Only `SuzukiDecoder` fills that register. `SubaruDecoder` and
`VwDecoder` build their packets elsewhere, so their hash is always the same.

## Keeping a history of captures

```python
from keyfobdecode.history import History

history = History()
if history.add(decoder, preset, now=timestamp_ms):
    print(history.get_text_item_menu(len(history) - 1))
```

`add` stores a capture and returns `True`. It stores nothing and returns
`False` in one case: the decoder's hash equals that of the last capture and
less than 500 ms have passed. In that case it still moves the timestamp
forward. If you leave out `now`, a monotonic millisecond clock is used. When
the history is full, the oldest entry is dropped.

The other methods:

- `get_text_item_menu(idx)` gives the first line of an entry with a number
  in front, such as `"1. Subaru 64bit"`.
- `get_text_item(idx)` gives the full text of an entry.
- `get_raw_data(idx)` gives the serialized `FlipperFormat` of an entry.
- An index out of range gives `"---"` from the text methods and `None` from
  `get_raw_data`.
- `reset()` empties the history and sets `last_index` back to zero.

## Radio control

`TxRx` drives a `RadioDevice` and sends every received pulse to its decoders.
By default these are one each of Subaru, Suzuki and VW. A decoded packet is
passed to `on_decode`.

```python
from keyfobdecode.base import RadioPreset
from keyfobdecode.txrx import RadioDevice, TxRx

device = RadioDevice()

def on_decode(dec):
    txrx.history.add(dec, txrx.preset)

with TxRx(device=device, on_decode=on_decode) as txrx:
    txrx.rx(433_920_000)
    for level, duration in pulses:
        device.emit(level, duration)
```

### The state machine

- `rx`, `rx_end`, `idle`, `sleep`, `tx` and `tx_stop` move the radio between
  the `TxRxState` values.
- A call that the current state does not allow raises `RadioStateError`.
- `rx` raises `ValueError` for a frequency outside the device's bands.
- `tx` returns `False` for such a frequency.
- Closing the object, or leaving the `with` block, stops receiving and puts
  the radio to sleep.

### Presets

- `preset_init(name, frequency, data)` sets the current preset.
- `set_preset(identifier)` maps a preset identifier to its short name, for
  example `"FuriHalSubGhzPresetOok650Async"` to `"AM650"`.
- `get_frequency_modulation()` returns a tuple such as `("433.92", "AM")`.

### Frequency hopping

`hopper_update()` performs one hopping tick. While the RSSI is above -90 dBm
it stays on the current frequency for 10 ticks. Otherwise it moves on to the
next entry of `RadioSetting.hopper_frequencies`.

### Settings

`apply_settings(settings)` adopts a `Settings` object. An unknown frequency
falls back to the default and an out-of-range preset index falls back to 0.
`capture_settings(auto_save)` returns the current choices as `Settings`.

## What the package does not do

- `RadioDevice` is a software model of a transceiver. It does not talk to any
  radio hardware. Pulses reach the decoders only through `RadioDevice.emit`,
  or through an object of your own that offers the same methods.
- The decoders only receive. There are no encoders, and `tx` changes radio
  state without sending any signal.
- `Settings` is not stored anywhere and captures are not written to files.
  Persisting them is up to the caller.
- There is no command-line program and no user interface.

## Running the tests

```
pytest
```