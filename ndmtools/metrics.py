"""Exporter metrics for block devices in the Prometheus text format."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

NODE_NAMESPACE = "node"

ACTIVE = "Active"
INACTIVE = "Inactive"
UNKNOWN = "Unknown"
SPARSE_BLOCK_DEVICE_TYPE = "sparse"

DEVICE_LABELS = ("blockdevicename", "path", "hostname", "nodename")


def _full_name(namespace, name):
    return f"{namespace}_{name}" if namespace else name


def _format_value(value):
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == int(value):
        return str(int(value))
    return repr(value)


def _escape_help(text):
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label(text):
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class Counter:
    """A monotonically increasing metric."""

    kind = "counter"

    def __init__(self, namespace, name, help):
        self.name = _full_name(namespace, name)
        self.help = help
        self.value = 0.0

    def inc(self):
        self.value += 1

    def expose(self):
        """The metric in the Prometheus text exposition format."""
        return (
            f"# HELP {self.name} {_escape_help(self.help)}\n"
            f"# TYPE {self.name} {self.kind}\n"
            f"{self.name} {_format_value(self.value)}\n"
        )


class GaugeVec:
    """A gauge with one value per combination of label values."""

    kind = "gauge"

    def __init__(self, namespace, name, help, label_names):
        self.name = _full_name(namespace, name)
        self.help = help
        self.label_names = tuple(label_names)
        self._values: dict[tuple[str, ...], float] = {}

    def _key(self, labels):
        key = tuple(labels)
        if len(key) != len(self.label_names):
            raise ValueError(
                f"{self.name}: expected {len(self.label_names)} label values, got {len(key)}"
            )
        return key

    def set(self, labels, value):
        """Set the value for the given label values, in label-name order."""
        self._values[self._key(labels)] = float(value)

    def get(self, labels):
        """The value for the given label values; KeyError if never set."""
        return self._values[self._key(labels)]

    def expose(self):
        """The metric in the Prometheus text exposition format."""
        lines = [
            f"# HELP {self.name} {_escape_help(self.help)}",
            f"# TYPE {self.name} {self.kind}",
        ]
        for key in sorted(self._values):
            pairs = ",".join(
                f'{name}="{_escape_label(value)}"' for name, value in zip(self.label_names, key)
            )
            lines.append(f"{self.name}{{{pairs}}} {_format_value(self._values[key])}")
        return "\n".join(lines) + "\n"


def render(collectors):
    """Concatenated exposition text of the given collectors."""
    return "".join(collector.expose() for collector in collectors)


@dataclass
class MetricsLabels:
    """Label values attached to per-device metrics."""

    uuid: str = ""
    path: str = ""
    host_name: str = ""
    node_name: str = ""

    def with_block_device_uuid(self, uuid):
        self.uuid = uuid
        return self

    def with_block_device_path(self, path):
        # Drop /dev/ so the path matches the one node exporter reports.
        self.path = path.replace("/dev/", "")
        return self

    def with_block_device_host_name(self, host_name):
        self.host_name = host_name
        return self

    def with_block_device_node_name(self, node_name):
        self.node_name = node_name
        return self

    def values(self):
        return (self.uuid, self.path, self.host_name, self.node_name)


def _declared(metric, name):
    if metric is None:
        raise RuntimeError(f"metric {name} has not been declared")
    return metric


class SmartMetrics:
    """SMART metrics for one block device, declared one by one."""

    def __init__(self, collector_type):
        self.collector_type = collector_type
        self.labels = MetricsLabels()
        self.block_device_current_temperature_valid: GaugeVec | None = None
        self.block_device_current_temperature: GaugeVec | None = None
        self.reject_request_count: Counter | None = None
        self.error_request_count: Counter | None = None

    def with_block_device_current_temperature(self):
        self.block_device_current_temperature = GaugeVec(
            self.collector_type,
            "block_device_current_temperature_celsius",
            "Current reported temperature of the blockdevice. -1 if not reported",
            DEVICE_LABELS,
        )
        return self

    def with_block_device_current_temperature_valid(self):
        self.block_device_current_temperature_valid = GaugeVec(
            self.collector_type,
            "block_device_current_temperature_valid",
            "Validity of the current temperature data reported. 0 means not valid, 1 means valid",
            DEVICE_LABELS,
        )
        return self

    def with_reject_request(self):
        self.reject_request_count = Counter(
            self.collector_type, "reject_request_count", "No. of requests rejected by the exporter"
        )
        return self

    def with_error_request(self):
        self.error_request_count = Counter(
            self.collector_type, "error_request_count", "No. of requests errored out by the exporter"
        )
        return self

    def collectors(self):
        """All declared collectors."""
        metrics = (
            self.block_device_current_temperature_valid,
            self.block_device_current_temperature,
            self.reject_request_count,
            self.error_request_count,
        )
        return [metric for metric in metrics if metric is not None]

    def error_collectors(self):
        """The declared collectors that count failed requests."""
        metrics = (self.reject_request_count, self.error_request_count)
        return [metric for metric in metrics if metric is not None]

    def inc_reject_request_counter(self):
        _declared(self.reject_request_count, "reject_request_count").inc()

    def inc_error_request_counter(self):
        _declared(self.error_request_count, "error_request_count").inc()

    def set_block_device_current_temperature(self, current_temp):
        gauge = _declared(self.block_device_current_temperature, "current temperature")
        gauge.set(self.labels.values(), float(current_temp))
        return self

    def set_block_device_current_temperature_valid(self, valid):
        gauge = _declared(self.block_device_current_temperature_valid, "temperature validity")
        gauge.set(self.labels.values(), 1.0 if valid else 0.0)
        return self


@dataclass
class DeviceInfo:
    """The parts of a block device that the static metrics report."""

    uuid: str
    dev_path: str
    state: str = UNKNOWN
    device_type: str = ""
    host_name: str = ""
    node_name: str = ""


def state_value(state):
    """Numeric value of a device state: Active 0, Inactive 1, anything else 2."""
    return {ACTIVE: 0.0, INACTIVE: 1.0}.get(state, 2.0)


@dataclass
class StaticMetrics:
    """Node-level metrics describing the state of every block device."""

    block_device_state: GaugeVec = field(
        default_factory=lambda: GaugeVec(
            NODE_NAMESPACE,
            "block_device_state",
            "State of BlockDevice (0,1,2) = {Active, Inactive, Unknown}",
            DEVICE_LABELS,
        )
    )
    reject_request_count: Counter = field(
        default_factory=lambda: Counter(
            NODE_NAMESPACE, "reject_request_count", "No. of requests rejected by the exporter"
        )
    )
    error_request_count: Counter = field(
        default_factory=lambda: Counter(
            NODE_NAMESPACE, "error_request_count", "No. of requests errored out by the exporter"
        )
    )

    def collectors(self):
        return [self.block_device_state, self.reject_request_count, self.error_request_count]

    def error_collectors(self):
        return [self.reject_request_count, self.error_request_count]

    def inc_reject_request_counter(self):
        self.reject_request_count.inc()

    def inc_error_request_counter(self):
        self.error_request_count.inc()

    def set_metrics(self, block_devices):
        """Record the state of each device; sparse devices are not reported."""
        for device in block_devices:
            if device.device_type == SPARSE_BLOCK_DEVICE_TYPE:
                continue
            self.block_device_state.set(
                (
                    device.uuid,
                    device.dev_path.replace("/dev/", ""),
                    device.host_name,
                    device.node_name,
                ),
                state_value(device.state),
            )