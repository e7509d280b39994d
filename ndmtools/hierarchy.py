"""Discovery of the parent, partitions, holders and slaves of a block device."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

SYSFS_ROOT = "/sys"

BLOCK_SUBSYSTEM = "block"
NVME_SUBSYSTEM = "nvme"


@dataclass
class DependentDevices:
    """Devices related to a block device, each given as a ``/dev`` path."""

    parent: str = ""
    partitions: list[str] = field(default_factory=list)
    holders: list[str] = field(default_factory=list)
    slaves: list[str] = field(default_factory=list)


def _list_dir(path):
    try:
        return sorted(os.listdir(path))
    except OSError:
        return None


@dataclass(frozen=True)
class DeviceSysPath:
    """A device name together with its resolved path in sysfs."""

    device_name: str
    sys_path: str

    def parent(self):
        """Name of the parent device, or None if this device has none."""
        parts = self.sys_path.split("/")
        if BLOCK_SUBSYSTEM in parts:
            index = parts.index(BLOCK_SUBSYSTEM)
            if index + 1 < len(parts) and parts[index + 1] != self.device_name:
                return parts[index + 1]
            return None
        if NVME_SUBSYSTEM in parts:
            index = parts.index(NVME_SUBSYSTEM)
            if index + 2 < len(parts) and parts[index + 2] != self.device_name:
                return parts[index + 2]
            return None
        return None

    def partitions(self):
        """Names of the partitions of this device, or None if sysfs can't be read."""
        entries = _list_dir(self.sys_path)
        if entries is None:
            return None
        return [name for name in entries if name.startswith(self.device_name)]

    def _related(self, subdirectory):
        path = os.path.join(self.sys_path, subdirectory)
        if not os.path.exists(path):
            return None
        return _list_dir(path)

    def holders(self):
        """Names of the devices holding this device, or None if unavailable."""
        return self._related("holders")

    def slaves(self):
        """Names of the devices this device is built on, or None if unavailable."""
        return self._related("slaves")


def get_device_sys_path(device_path, sysfs_root=SYSFS_ROOT):
    """Resolve the sysfs path of a device through ``class/block``.

    Raises OSError if the device has no entry in sysfs.
    """
    device_name = device_path.replace("/dev/", "", 1)
    link = os.path.join(sysfs_root, "class", "block", device_name)
    sys_path = os.path.realpath(link, strict=True)
    return DeviceSysPath(device_name=device_name, sys_path=sys_path)


def _with_dev_prefix(names):
    return ["/dev/" + name for name in names or ()]


@dataclass
class Device:
    """A block device identified by its path, such as ``/dev/sda``."""

    path: str
    sysfs_root: str = SYSFS_ROOT

    def get_dependents(self):
        """Collect the related devices; raises OSError if the device is unknown."""
        sys_path = get_device_sys_path(self.path, self.sysfs_root)
        parent = sys_path.parent()
        return DependentDevices(
            parent="/dev/" + parent if parent else "",
            partitions=_with_dev_prefix(sys_path.partitions()),
            holders=_with_dev_prefix(sys_path.holders()),
            slaves=_with_dev_prefix(sys_path.slaves()),
        )