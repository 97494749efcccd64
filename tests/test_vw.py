import itertools

import pytest

from keyfobdecode.base import FlipperFormat, RadioPreset
from keyfobdecode.vw import (
    ManchesterEvent,
    ManchesterState,
    VwDecoder,
    bit_index,
    button_name,
    manchester_advance,
)

PRESET = RadioPreset(name="AM650", frequency=433920000)

FRAME_TYPE = 0xA5
FRAME_DATA = 0x0123456789ABCDEF
FRAME_CHECK = 0x2B


def _frame_bits(type_byte, data, check):
    value = (type_byte << 72) | (data << 8) | check
    return [bool((value >> i) & 1) for i in range(79, -1, -1)]


def _runs(bits):
    halves = []
    for bit in bits:
        halves.extend((True, False) if bit else (False, True))
    return [(level, 500 * len(list(group))) for level, group in itertools.groupby(halves)]


def _preamble():
    pulses = []
    for _ in range(10):
        pulses += [(True, 500), (False, 500)]
    pulses += [(True, 1000), (False, 500), (True, 750), (False, 750)]
    return pulses


def _feed(decoder, pulses):
    for level, duration in pulses:
        decoder.feed(level, duration)


def _capturing_decoder():
    captured = []

    def on_decode(dec):
        captured.append(
            {
                "text": dec.get_string(),
                "data": dec.generic.data,
                "data_2": dec.data_2,
                "bits": dec.generic.data_count_bit,
                "ff": dec.serialize(PRESET),
            }
        )

    return VwDecoder(on_decode), captured


def _full_frame():
    return _preamble() + _runs(_frame_bits(FRAME_TYPE, FRAME_DATA, FRAME_CHECK))


@pytest.mark.parametrize(
    "state, event, expected",
    [
        (ManchesterState.START0, ManchesterEvent.RESET, (ManchesterState.MID1, None)),
        (ManchesterState.START1, ManchesterEvent.SHORT_LOW, (ManchesterState.MID1, True)),
        (ManchesterState.START1, ManchesterEvent.LONG_LOW, (ManchesterState.START0, True)),
        (ManchesterState.START0, ManchesterEvent.SHORT_HIGH, (ManchesterState.MID0, False)),
        (ManchesterState.START0, ManchesterEvent.LONG_HIGH, (ManchesterState.START1, False)),
        (ManchesterState.MID0, ManchesterEvent.SHORT_HIGH, (ManchesterState.START1, None)),
        (ManchesterState.MID1, ManchesterEvent.SHORT_LOW, (ManchesterState.START0, None)),
        (ManchesterState.MID1, ManchesterEvent.LONG_HIGH, (ManchesterState.MID1, None)),
        (ManchesterState.START1, ManchesterEvent.SHORT_HIGH, (ManchesterState.MID1, None)),
    ],
)
def test_manchester_advance(state, event, expected):
    assert manchester_advance(state, event) == expected


@pytest.mark.parametrize(
    "bit, expected",
    [
        (79, (True, 15)),
        (72, (True, 8)),
        (71, (False, 63)),
        (8, (False, 0)),
        (7, (True, 7)),
        (0, (True, 0)),
    ],
)
def test_bit_index(bit, expected):
    assert bit_index(bit) == expected


@pytest.mark.parametrize(
    "btn, name",
    [(1, "UNLOCK"), (2, "LOCK"), (7, "Un+Lk+Tr"), (8, "PANIC"), (0, "Unknown"), (9, "Unknown")],
)
def test_button_name(btn, name):
    assert button_name(btn) == name


def test_decodes_full_frame():
    decoder, captured = _capturing_decoder()
    _feed(decoder, _full_frame())
    assert len(captured) == 1
    result = captured[0]
    assert result["data"] == FRAME_DATA
    assert result["data_2"] == (FRAME_TYPE << 8) | FRAME_CHECK
    assert result["bits"] == 80
    assert result["text"] == (
        "VW 80bit\r\n"
        "Key:A50123456789ABCDEF2B\r\n"
        "Type:A5 Btn:2 LOCK\r\n"
    )


def test_decoded_properties():
    decoder, captured = _capturing_decoder()
    _feed(decoder, _full_frame())
    assert len(captured) == 1
    assert decoder.type == FRAME_TYPE
    assert decoder.check == FRAME_CHECK
    assert decoder.button == FRAME_CHECK >> 4


def test_extra_pulses_after_frame_do_not_emit_again():
    decoder, captured = _capturing_decoder()
    _feed(decoder, _full_frame())
    _feed(decoder, [(True, 500), (False, 500), (True, 500), (False, 500)])
    assert len(captured) == 1


def test_long_final_low_closes_last_bit():
    bits = _frame_bits(FRAME_TYPE, FRAME_DATA, 0x81)
    runs = _runs(bits)
    assert runs[-1][0] is False
    runs[-1] = (False, 20000)
    decoder, captured = _capturing_decoder()
    _feed(decoder, _preamble() + runs)
    assert len(captured) == 1
    assert captured[0]["data_2"] & 0xFF == 0x81


def test_bad_pulse_in_data_resets():
    decoder, captured = _capturing_decoder()
    runs = _runs(_frame_bits(FRAME_TYPE, FRAME_DATA, FRAME_CHECK))
    _feed(decoder, _preamble() + runs[:20])
    assert decoder.generic.data_count_bit > 0
    decoder.feed(True, 300)
    assert captured == []
    assert decoder.generic.data_count_bit == 0
    assert decoder.generic.data == 0
    assert decoder.data_2 == 0
    assert decoder.manchester_state == ManchesterState.MID1


def test_frame_without_preamble_is_ignored():
    decoder, captured = _capturing_decoder()
    _feed(decoder, [(True, 2000), (False, 3000)] + _runs(_frame_bits(FRAME_TYPE, FRAME_DATA, FRAME_CHECK)))
    assert captured == []


def test_serialize_fields():
    decoder, captured = _capturing_decoder()
    _feed(decoder, _full_frame())
    ff = captured[0]["ff"]
    assert ff.read_string("Protocol") == "VW"
    assert ff.read_uint32("Bit") == 80
    assert ff.read_string("Key") == "01 23 45 67 89 AB CD EF"
    assert ff.read_uint32("Type") == FRAME_TYPE
    assert ff.read_uint32("Check") == FRAME_CHECK
    assert ff.read_uint32("Btn") == FRAME_CHECK >> 4
    assert ff.read_uint32("Frequency") == PRESET.frequency


def test_deserialize_round_trip():
    decoder, captured = _capturing_decoder()
    _feed(decoder, _full_frame())
    other = VwDecoder()
    other.deserialize(captured[0]["ff"])
    assert other.generic.data == FRAME_DATA
    assert other.generic.data_count_bit == 80


def test_deserialize_rejects_wrong_bit_count():
    ff = FlipperFormat()
    ff.write_uint32("Bit", 64)
    ff.write_string("Key", "01 23 45 67 89 AB CD EF")
    with pytest.raises(ValueError):
        VwDecoder().deserialize(ff)


def test_deserialize_rejects_missing_key():
    ff = FlipperFormat()
    ff.write_uint32("Bit", 80)
    with pytest.raises(ValueError):
        VwDecoder().deserialize(ff)


def test_hash_uses_unused_shift_register():
    decoder, captured = _capturing_decoder()
    _feed(decoder, _full_frame())
    assert len(captured) == 1
    assert decoder.get_hash_data() == 0


def test_reset_clears_state():
    decoder, _ = _capturing_decoder()
    _feed(decoder, _full_frame())
    decoder.reset()
    assert decoder.generic.data == 0
    assert decoder.data_2 == 0
    assert decoder.generic.data_count_bit == 0