"""Mount information of block devices read from a mounts file."""

from __future__ import annotations

import os
from dataclasses import dataclass

HOST_MOUNT_FILE_PATH = "/host/proc/1/mounts"

_NOT_FOUND = "could not get device mount attributes, Path/MountPoint not present in mounts file"


class MountError(LookupError):
    """Raised when mount information for a device cannot be found."""


@dataclass
class DeviceMountAttr:
    """Mount related attributes of a device or partition."""

    dev_path: str = ""
    mount_point: str = ""
    file_system: str = ""


def get_parent_block_device(sys_path):
    """Parent block device named in a sysfs path, or None if there is none.

    For the block subsystem the device follows ``block``; for NVMe the
    namespace two levels below ``nvme`` is the device.
    """
    parts = sys_path.split("/")
    for index, part in enumerate(parts):
        if part == "block" and index + 1 < len(parts):
            return parts[index + 1]
    for index, part in enumerate(parts):
        if part == "nvme" and index + 2 < len(parts):
            return parts[index + 2]
    return None


@dataclass
class DiskMountUtil:
    """Looks up devices and mount points in the mounts file at ``file_path``."""

    file_path: str
    dev_path: str = ""
    mount_point: str = ""
    sysfs_root: str = "/sys"
    dev_root: str = "/dev"

    def device_mount_attr(self, matcher):
        """Return the first attributes ``matcher`` finds among ``/dev`` lines.

        Raises OSError if the file can't be read and MountError if no line matches.
        """
        with open(self.file_path, encoding="utf-8") as mounts:
            for raw_line in mounts:
                line = raw_line.rstrip("\n")
                if not line.startswith("/dev"):
                    continue
                attr = matcher(line)
                if attr is not None:
                    return attr
        raise MountError(_NOT_FOUND)

    def partition_name(self, mount_line):
        """Partition name of a mounts line whose mount point matches, else None."""
        parts = mount_line.split(" ")
        if len(parts) < 2 or parts[1] != self.mount_point:
            return None
        return DeviceMountAttr(dev_path=parts[0].replace("/dev/", "", 1))

    def mount_name(self, mount_line):
        """Mount point and filesystem of a mounts line for this device, else None."""
        parts = mount_line.split(" ")
        if len(parts) < 3 or parts[0] != self.dev_path:
            return None
        return DeviceMountAttr(mount_point=parts[1], file_system=parts[2])

    def _disk_dev_path(self, partition):
        link = os.path.realpath(
            os.path.join(self.sysfs_root, "class", "block", partition), strict=True
        )
        parent = get_parent_block_device(link)
        if parent is None:
            raise MountError(f"could not find parent device for {link}")
        return os.path.join(self.dev_root, parent)

    def get_disk_path(self):
        """Path of the disk holding the partition mounted at ``mount_point``."""
        attr = self.device_mount_attr(self.partition_name)
        dev_path = self._disk_dev_path(attr.dev_path)
        os.path.realpath(dev_path, strict=True)
        return dev_path


def device_basic_mount_info(dev_path, mounts_file=HOST_MOUNT_FILE_PATH):
    """Mount point and filesystem of a mounted device; MountError if not mounted."""
    util = DiskMountUtil(mounts_file, dev_path=dev_path)
    return util.device_mount_attr(util.mount_name)