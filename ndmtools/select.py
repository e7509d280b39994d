"""Selection of a block device that satisfies a block device claim."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ndmtools.metrics import ACTIVE, SPARSE_BLOCK_DEVICE_TYPE
from ndmtools.verify import CapacityError, get_requested_capacity

log = logging.getLogger(__name__)

BLOCK_DEVICE_TAG_LABEL = "openebs.io/block-device-tag"
KUBERNETES_HOST_NAME_LABEL = "kubernetes.io/hostname"

BLOCK_DEVICE_UNCLAIMED = "Unclaimed"
BLOCK_DEVICE_CLAIMED = "Claimed"

VOLUME_MODE_BLOCK = "BlockVolumeMode"
VOLUME_MODE_FILE_SYSTEM = "FileSystem"

FILTER_ACTIVE = "filterActive"
FILTER_UNCLAIMED = "filterUnclaimed"
FILTER_DEVICE_TYPE = "filterDeviceType"
FILTER_VOLUME_MODE = "filterVolumeMode"
FILTER_BLOCK_DEVICE_NAME = "filterBlockDeviceName"
FILTER_RESOURCE_STORAGE = "filterResourceStorage"
FILTER_OUT_SPARSE_BLOCK_DEVICES = "filterSparseBlockDevice"
FILTER_NODE_NAME = "filterNodeName"
FILTER_BLOCK_DEVICE_TAG = "filterBlockDeviceTag"


class SelectionError(LookupError):
    """Raised when no block device satisfies a claim."""


@dataclass
class SelectorRequirement:
    """One expression of a label selector, such as ``key In (a, b)``."""

    key: str
    operator: str = "Exists"
    values: list[str] = field(default_factory=list)


@dataclass
class LabelSelector:
    """Labels and expressions a block device has to match."""

    match_labels: dict[str, str] = field(default_factory=dict)
    match_expressions: list[SelectorRequirement] = field(default_factory=list)


@dataclass
class BlockDevice:
    """The parts of a block device resource that selection looks at."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)
    state: str = ""
    claim_state: str = ""
    device_type: str = ""
    fs_type: str = ""
    mount_point: str = ""
    capacity: int = 0
    node_name: str = ""


@dataclass
class DeviceClaimSpec:
    """What a block device claim asks for."""

    block_device_name: str = ""
    device_type: str = ""
    block_volume_mode: str = ""
    device_format: str = ""
    requests: dict = field(default_factory=dict)
    node_name: str = ""
    selector: LabelSelector | None = None


def filter_active(devices, spec):
    """Devices whose state is active."""
    return [device for device in devices if device.state == ACTIVE]


def filter_unclaimed(devices, spec):
    """Devices that are not claimed yet."""
    return [device for device in devices if device.claim_state == BLOCK_DEVICE_UNCLAIMED]


def filter_device_type(devices, spec):
    """Devices of the requested type; all of them if no type is requested."""
    if not spec.device_type:
        return list(devices)
    return [device for device in devices if device.device_type == spec.device_type]


def _matches_volume_mode(device, spec):
    mode = spec.block_volume_mode
    if mode == VOLUME_MODE_BLOCK:
        return not device.fs_type and not device.mount_point
    if mode == VOLUME_MODE_FILE_SYSTEM:
        if not device.fs_type or not device.mount_point:
            return False
        return not spec.device_format or device.fs_type == spec.device_format
    return True


def filter_volume_mode(devices, spec):
    """Devices usable in the requested volume mode; all if no mode is requested."""
    if not spec.block_volume_mode:
        return list(devices)
    return [device for device in devices if _matches_volume_mode(device, spec)]


def filter_block_device_name(devices, spec):
    """The first device named in the claim, as a list of at most one."""
    for device in devices:
        if device.name == spec.block_device_name:
            return [device]
    return []


def filter_resource_storage(devices, spec):
    """The first device large enough for the request, as a list of at most one.

    An invalid request counts as a request for zero bytes.
    """
    try:
        capacity = get_requested_capacity(spec.requests)
    except CapacityError:
        capacity = 0
    for device in devices:
        if device.capacity >= capacity:
            return [device]
    return []


def filter_out_sparse_block_devices(devices, spec):
    """Devices that are not sparse."""
    return [device for device in devices if device.device_type != SPARSE_BLOCK_DEVICE_TYPE]


def filter_node_name(devices, spec):
    """Devices on the requested node; all of them if no node is requested."""
    if not spec.node_name:
        return list(devices)
    return [device for device in devices if device.node_name == spec.node_name]


def is_tag_selector_required(selector):
    """Whether devices carrying the tag label must be filtered out.

    Not needed when the claim's selector already mentions the tag label.
    """
    if selector is None:
        return True
    if BLOCK_DEVICE_TAG_LABEL in selector.match_labels:
        return False
    return all(req.key != BLOCK_DEVICE_TAG_LABEL for req in selector.match_expressions)


def filter_block_device_tag(devices, spec):
    """Drop tagged devices unless the claim's selector asks for the tag."""
    if not is_tag_selector_required(spec.selector):
        return list(devices)
    return [device for device in devices if BLOCK_DEVICE_TAG_LABEL not in device.labels]


_FILTERS = {
    FILTER_ACTIVE: filter_active,
    FILTER_UNCLAIMED: filter_unclaimed,
    FILTER_DEVICE_TYPE: filter_device_type,
    FILTER_VOLUME_MODE: filter_volume_mode,
    FILTER_BLOCK_DEVICE_NAME: filter_block_device_name,
    FILTER_RESOURCE_STORAGE: filter_resource_storage,
    FILTER_OUT_SPARSE_BLOCK_DEVICES: filter_out_sparse_block_devices,
    FILTER_NODE_NAME: filter_node_name,
    FILTER_BLOCK_DEVICE_TAG: filter_block_device_tag,
}


class SelectConfig:
    """Selects one block device for a claim.

    Selection is manual when the claim names a device, automatic otherwise.
    """

    def __init__(self, claim_spec, client=None):
        self.claim_spec = claim_spec
        self.client = client
        self.manual_selection = bool(claim_spec.block_device_name)

    def apply_filters(self, devices, *args):
        """Apply the named filters in order; KeyError for an unknown name."""
        filtered = list(devices)
        for key in args:
            filtered = _FILTERS[key](filtered, self.claim_spec)
        return filtered

    def _candidate_devices(self, devices):
        keys = [FILTER_ACTIVE, FILTER_UNCLAIMED]
        if self.manual_selection:
            keys.append(FILTER_BLOCK_DEVICE_NAME)
        else:
            # Sparse devices can only be claimed by name.
            keys += [
                FILTER_OUT_SPARSE_BLOCK_DEVICES,
                FILTER_BLOCK_DEVICE_TAG,
                FILTER_DEVICE_TYPE,
                FILTER_VOLUME_MODE,
                FILTER_NODE_NAME,
            ]
        candidates = self.apply_filters(devices, *keys)
        if not candidates:
            raise SelectionError("no devices found matching the criteria")
        return candidates

    def _selected_device(self, candidates):
        if self.manual_selection:
            return candidates[0]
        selected = self.apply_filters(candidates, FILTER_RESOURCE_STORAGE)
        if not selected:
            raise SelectionError("could not find a device with matching resource requirements")
        return selected[0]

    def filter(self, devices):
        """The device chosen for the claim; :class:`SelectionError` if none fits."""
        devices = list(devices)
        if not devices:
            raise SelectionError("no blockdevices found")
        return self._selected_device(self._candidate_devices(devices))