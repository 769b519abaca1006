import pytest

from anymon.blockdevices import (
    ROOT,
    BlockDevice,
    BlockDeviceModel,
    CheckState,
    parse_lsblk,
)
from anymon.mountinfo import MountInfo

LSBLK = (
    "NAME MAJ:MIN RM SIZE RO TYPE MOUNTPOINTS\n"
    "sda 8:0 0 64G 0 disk\n"
    "sda1 8:1 0 32G 0 part /\n"
    "sda2 8:2 0 32G 0 part /home\n"
    "sr0 11:0 1 50.5M 0 rom /media/user/VBox_GAs_7.0.4\n"
)


@pytest.fixture
def model():
    m = BlockDeviceModel()
    m.load(LSBLK, is_update=False)
    return m


def by_name(model, name):
    for root in model.devices:
        if root.name == name:
            return root
        for child in root.children:
            if child.name == name:
                return child
    raise KeyError(name)


def test_parse_lsblk_fields():
    devices = parse_lsblk(LSBLK)
    assert [d.name for d in devices] == ["sda", "sda1", "sda2", "sr0"]
    assert (devices[1].major, devices[1].minor) == (8, 1)
    assert devices[3].removable == 1
    assert devices[3].size == "50.5M"
    assert devices[0].mount_points == ""
    assert devices[2].mount_points == "/home"
    assert devices[1].type == "part"


def test_parse_lsblk_rejects_short_line():
    with pytest.raises(ValueError):
        parse_lsblk("NAME\nsda 8:0 0\n")


def test_parse_lsblk_rejects_bad_maj_min():
    with pytest.raises(ValueError):
        parse_lsblk("NAME\nsda 8 0 64G 0 disk\n")


def test_tree_structure(model):
    assert [d.name for d in model.devices] == ["sda", "sr0"]
    sda = by_name(model, "sda")
    assert [c.name for c in sda.children] == ["sda1", "sda2"]
    assert sda.child(1).name == "sda2"
    assert sda.child(0).parent is sda
    assert sda.parent is model.root
    assert model.root.name == ROOT


def test_rows_and_partitions(model):
    sda = by_name(model, "sda")
    assert sda.child(0).row() == 0
    assert sda.child(1).row() == 1
    assert sda.child(0).is_partition()
    assert not sda.is_partition()
    assert not BlockDevice("loose").is_partition()


def test_first_load_checks_everything(model):
    assert len(model.checked()) == 4
    assert model.check_state(by_name(model, "sda")) is CheckState.CHECKED
    assert model.check_state(by_name(model, "sda1")) is CheckState.CHECKED


def test_partial_check(model):
    sda = by_name(model, "sda")
    assert model.check(by_name(model, "sda1"), False) is True
    assert model.check_state(sda) is CheckState.PARTIALLY_CHECKED
    assert model.check_state(by_name(model, "sda1")) is CheckState.UNCHECKED
    model.check(by_name(model, "sda2"), False)
    assert model.check_state(sda) is CheckState.UNCHECKED


def test_disk_check_propagates(model):
    sda = by_name(model, "sda")
    model.check(sda, False)
    assert sda not in model.checked()
    assert model.check_state(by_name(model, "sda2")) is CheckState.UNCHECKED
    model.check(sda, True)
    assert model.check_state(sda) is CheckState.CHECKED
    assert by_name(model, "sda1") in model.checked()


def test_disk_without_partitions_counts_checked(model):
    assert model.check_state(by_name(model, "sr0")) is CheckState.CHECKED


def test_device_name(model):
    assert model.device_name("8:1") == "sda1"
    assert model.device_name("8:0") == "Unknown"
    assert model.device_name("nonsense") == "Unknown"


def test_mount_point_from_lsblk(model):
    assert model.mount_point(8, 2) == "/home"
    assert model.mount_point(11, 0) == "/media/user/VBox_GAs_7.0.4"
    assert model.mount_point(9, 9) == ""


def test_mount_point_prefers_mount_table(tmp_path):
    table = tmp_path / "mountinfo"
    table.write_text("30 1 8:2 / /srv/data rw - ext4 /dev/sda2 rw\n")
    m = BlockDeviceModel(MountInfo(table))
    m.load(LSBLK, is_update=False)
    assert m.mount_point(8, 2) == "/srv/data"
    assert m.mount_point(8, 1) == "/"


def test_root_mount_point_takes_shortest():
    dev = BlockDevice("sdb1", mount_points="/mnt/longer\\x0a/m\\x0a/mm")
    assert dev.root_mount_point() == "/m"
    assert BlockDevice(ROOT).root_mount_point() == ""


def test_update_replaces_tree_and_checks_all(model):
    model.check(by_name(model, "sda"), False)
    model.load(LSBLK, is_update=True)
    assert [d.name for d in model.devices] == ["sda", "sr0"]
    assert len(model.checked()) == 4
    assert model.check_state(by_name(model, "sda")) is CheckState.CHECKED