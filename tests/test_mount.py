import os

import pytest

from ndmtools.mount import (
    DeviceMountAttr,
    DiskMountUtil,
    MountError,
    device_basic_mount_info,
    get_parent_block_device,
)

LINE_SDA4_ROOT = "/dev/sda4 / ext4 rw,relatime,errors=remount-ro,data=ordered 0 0"
LINE_SDA3_HOME = "/dev/sda3 /home ext4 rw,relatime,errors=remount-ro,data=ordered 0 0"
LINE_SYSFS = "sysfs /sys sysfs rw,nosuid,nodev,noexec,relatime 0 0"
LINE_SDA4_HOME = "/dev/sda4 /home ext4 rw,relatime,errors=remount-ro,data=ordered 0 0"


def test_new_mount_util_with_dev_path():
    util = DiskMountUtil("/host/proc/1/mounts", "/dev/sda", "")
    assert util == DiskMountUtil(file_path="/host/proc/1/mounts", dev_path="/dev/sda")
    assert util.mount_point == ""


def test_new_mount_util_with_mount_point():
    util = DiskMountUtil("/host/proc/1/mounts", "", "/home")
    assert util == DiskMountUtil(file_path="/host/proc/1/mounts", mount_point="/home")
    assert util.dev_path == ""


@pytest.mark.parametrize(
    "dev_path, content, expected",
    [
        ("/dev/sda4", LINE_SDA4_ROOT, DeviceMountAttr(mount_point="/", file_system="ext4")),
        ("/dev/sda3", LINE_SDA3_HOME, DeviceMountAttr(mount_point="/home", file_system="ext4")),
    ],
)
def test_device_mount_attr(tmp_path, dev_path, content, expected):
    mounts = tmp_path / "data"
    mounts.write_text(content)
    util = DiskMountUtil(str(mounts), dev_path, "")
    assert util.device_mount_attr(util.mount_name) == expected


def test_device_mount_attr_not_mounted(tmp_path):
    mounts = tmp_path / "data"
    mounts.write_text(LINE_SYSFS)
    util = DiskMountUtil(str(mounts), "/dev/sda3", "")
    with pytest.raises(MountError, match="Path/MountPoint not present in mounts file"):
        util.device_mount_attr(util.mount_name)


def test_device_mount_attr_missing_file(tmp_path):
    util = DiskMountUtil(str(tmp_path / "data"), "/dev/sda3", "")
    with pytest.raises(OSError):
        util.device_mount_attr(util.mount_name)


def test_device_mount_attr_with_partition_name(tmp_path):
    mounts = tmp_path / "data"
    mounts.write_text("\n".join([LINE_SYSFS, LINE_SDA4_ROOT, LINE_SDA3_HOME]) + "\n")
    util = DiskMountUtil(str(mounts), "", "/home")
    assert util.device_mount_attr(util.partition_name) == DeviceMountAttr(dev_path="sda3")


@pytest.mark.parametrize(
    "mount_point, line, expected",
    [
        ("/home", LINE_SDA4_HOME, DeviceMountAttr(dev_path="sda4")),
        ("/", LINE_SDA4_HOME, None),
        ("/", "", None),
    ],
)
def test_partition_name(mount_point, line, expected):
    assert DiskMountUtil("", "", mount_point).partition_name(line) == expected


@pytest.mark.parametrize(
    "dev_path, line, expected",
    [
        ("/dev/sda4", LINE_SDA4_HOME, DeviceMountAttr(mount_point="/home", file_system="ext4")),
        ("/dev/sda3", LINE_SDA4_HOME, None),
        ("/dev/sda3", "", None),
    ],
)
def test_mount_name(dev_path, line, expected):
    assert DiskMountUtil("", dev_path, "").mount_name(line) == expected


@pytest.mark.parametrize(
    "sys_path, expected",
    [
        ("/sys/devices/pci0000:00/0000:00:0d.0/ata1/host0/target0:0:0/0:0:0:0/block/sda", "sda"),
        (
            "/sys/devices/pci0000:00/0000:00:0d.0/ata1/host0/target0:0:0/0:0:0:0/block/sda/sda1",
            "sda",
        ),
        ("/sys/devices/pci0000:00/0000:00:0e.0/nvme/nvme0/nvme0n1", "nvme0n1"),
        ("/sys/devices/pci0000:00/0000:00:0e.0/nvme/nvme0/nvme0n1/nvme0n1p1", "nvme0n1"),
        ("/sys/devices/pci0000:00/0000:00:0e.0/nvme/nvme0", None),
        ("/sys/devices/pci0000:00/0000:00:0e.0", None),
    ],
)
def test_get_parent_block_device(sys_path, expected):
    assert get_parent_block_device(sys_path) == expected


@pytest.fixture
def fake_system(tmp_path):
    sysfs = tmp_path / "sys"
    disk = sysfs / "devices" / "pci0000:00" / "host0" / "block" / "sda"
    (disk / "sda4").mkdir(parents=True)
    links = sysfs / "class" / "block"
    links.mkdir(parents=True)
    os.symlink(disk / "sda4", links / "sda4")
    dev = tmp_path / "dev"
    dev.mkdir()
    (dev / "sda").touch()
    mounts = tmp_path / "mounts"
    mounts.write_text("\n".join([LINE_SYSFS, LINE_SDA4_ROOT]) + "\n")
    return tmp_path


def test_get_disk_path(fake_system):
    util = DiskMountUtil(
        str(fake_system / "mounts"),
        mount_point="/",
        sysfs_root=str(fake_system / "sys"),
        dev_root=str(fake_system / "dev"),
    )
    assert util.get_disk_path() == str(fake_system / "dev" / "sda")


def test_get_disk_path_unknown_mount_point(fake_system):
    util = DiskMountUtil(
        str(fake_system / "mounts"),
        mount_point="/data",
        sysfs_root=str(fake_system / "sys"),
        dev_root=str(fake_system / "dev"),
    )
    with pytest.raises(MountError):
        util.get_disk_path()


def test_get_disk_path_missing_device_node(fake_system):
    (fake_system / "dev" / "sda").unlink()
    util = DiskMountUtil(
        str(fake_system / "mounts"),
        mount_point="/",
        sysfs_root=str(fake_system / "sys"),
        dev_root=str(fake_system / "dev"),
    )
    with pytest.raises(OSError):
        util.get_disk_path()


def test_device_basic_mount_info(tmp_path):
    mounts = tmp_path / "mounts"
    mounts.write_text("\n".join([LINE_SYSFS, LINE_SDA3_HOME]) + "\n")
    assert device_basic_mount_info("/dev/sda3", str(mounts)) == DeviceMountAttr(
        mount_point="/home", file_system="ext4"
    )
    with pytest.raises(MountError):
        device_basic_mount_info("/dev/sdb1", str(mounts))