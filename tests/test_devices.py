import pytest

from anymon.devices import UnnamedDevices, major, makedev, minor


@pytest.mark.parametrize("maj,mi", [(0, 0), (8, 1), (259, 3), (4095, 1048575)])
def test_makedev_round_trip(maj, mi):
    dev = makedev(maj, mi)
    assert (major(dev), minor(dev)) == (maj, mi)


def test_makedev_rejects_out_of_range():
    with pytest.raises(ValueError):
        makedev(-1, 0)
    with pytest.raises(ValueError):
        makedev(0, 1 << 20)


def test_major_rejects_negative():
    with pytest.raises(ValueError):
        major(-5)


def test_show_empty():
    assert UnnamedDevices().show() == "\n"


def test_add_and_show_sorted():
    devices = UnnamedDevices()
    devices.store("a8")
    devices.store("a3")
    assert devices.show() == "3,8\n"


def test_remove_and_clear():
    devices = UnnamedDevices()
    devices.store("a3")
    devices.store("a8")
    devices.store("r3")
    assert devices.show() == "8\n"
    devices.store("e0")
    assert devices.show() == "\n"


def test_minor_wraps_as_byte():
    devices = UnnamedDevices()
    devices.store("a256")
    assert devices.show() == "0\n"


@pytest.mark.parametrize("command", ["x1", "a", "", "e"])
def test_bad_commands(command):
    with pytest.raises(ValueError):
        UnnamedDevices().store(command)


def test_is_invalid():
    devices = UnnamedDevices()
    assert devices.is_invalid(makedev(8, 1)) is False
    assert devices.is_invalid(makedev(0, 5)) is True
    devices.store("a5")
    assert devices.is_invalid(makedev(0, 5)) is False
    assert devices.is_invalid(makedev(0, 500)) is True