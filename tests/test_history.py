import pytest

from keyfobdecode.base import FlipperFormat, RadioPreset
from keyfobdecode.history import HISTORY_MAX, History
from keyfobdecode.suzuki import SuzukiDecoder


class _StubDecoder:
    def __init__(self, hash_value, text="Stub 64bit\r\nKey:00\r\n"):
        self.hash_value = hash_value
        self.text = text

    def get_hash_data(self):
        return self.hash_value

    def get_string(self):
        return self.text

    def serialize(self, preset):
        ff = FlipperFormat()
        ff.write_uint32("Frequency", preset.frequency)
        ff.write_string("Protocol", "Stub")
        ff.write_uint32("Bit", 64)
        return ff


@pytest.fixture
def preset():
    return RadioPreset(name="AM650", frequency=433920000, data=b"\x01\x02")


def test_add_counts(preset):
    history = History()
    assert history.add(_StubDecoder(1), preset, now=0) is True
    assert len(history) == 1
    assert history.last_index == 1


def test_duplicate_within_window_rejected(preset):
    history = History()
    history.add(_StubDecoder(7), preset, now=1000)
    assert history.add(_StubDecoder(7), preset, now=1400) is False
    assert len(history) == 1


def test_duplicate_refreshes_timestamp(preset):
    history = History()
    history.add(_StubDecoder(7), preset, now=0)
    assert history.add(_StubDecoder(7), preset, now=400) is False
    assert history.add(_StubDecoder(7), preset, now=800) is False
    assert history.add(_StubDecoder(7), preset, now=1300) is True
    assert len(history) == 2


def test_different_hash_accepted(preset):
    history = History()
    history.add(_StubDecoder(1), preset, now=0)
    assert history.add(_StubDecoder(2), preset, now=10) is True
    assert len(history) == 2


def test_full_history_drops_oldest(preset):
    history = History()
    for i in range(HISTORY_MAX + 10):
        history.add(_StubDecoder(i % 256, text=f"item {i}"), preset, now=i)
    assert len(history) == HISTORY_MAX
    assert history.last_index == HISTORY_MAX + 10
    assert history.get_text_item(0) == "item 10"
    assert history.get_text_item(HISTORY_MAX - 1) == f"item {HISTORY_MAX + 9}"


def test_menu_text_first_line(preset):
    history = History()
    history.add(_StubDecoder(1, text="Stub 64bit\r\nKey:00\r\n"), preset, now=0)
    history.add(_StubDecoder(2, text="Other\nsecond line"), preset, now=0)
    history.add(_StubDecoder(3, text="single"), preset, now=0)
    assert history.get_text_item_menu(0) == "1. Stub 64bit"
    assert history.get_text_item_menu(1) == "2. Other"
    assert history.get_text_item_menu(2) == "3. single"


def test_out_of_range(preset):
    history = History()
    history.add(_StubDecoder(1), preset, now=0)
    assert history.get_text_item_menu(5) == "---"
    assert history.get_text_item(5) == "---"
    assert history.get_raw_data(5) is None


def test_raw_data(preset):
    history = History()
    history.add(_StubDecoder(1), preset, now=0)
    ff = history.get_raw_data(0)
    assert ff.read_string("Protocol") == "Stub"
    assert ff.read_uint32("Frequency") == 433920000


def test_preset_is_copied(preset):
    history = History()
    history.add(_StubDecoder(1), preset, now=0)
    preset.name = "FM238"
    preset.frequency = 315000000
    item = next(iter(history))
    assert item.preset.name == "AM650"
    assert item.preset.frequency == 433920000
    assert item.preset.data == b"\x01\x02"


def test_reset(preset):
    history = History()
    history.add(_StubDecoder(1), preset, now=0)
    history.add(_StubDecoder(2), preset, now=0)
    history.reset()
    assert len(history) == 0
    assert history.last_index == 0
    assert history.get_text_item(0) == "---"


def test_with_suzuki_decoder(preset):
    ff = FlipperFormat()
    ff.write_uint32("Bit", 64)
    ff.write_string("Key", "80 12 34 56 78 9A BC DE")
    decoder = SuzukiDecoder()
    decoder.deserialize(ff)
    history = History()
    assert history.add(decoder, preset, now=0) is True
    assert history.get_text_item_menu(0) == "1. Suzuki 64bit"
    assert history.get_raw_data(0).read_string("Protocol") == "Suzuki"
    assert history.get_text_item(0) == decoder.get_string()