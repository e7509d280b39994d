# ndmtools

This package has helpers for managing the block devices on a Linux node. It
can:

- read the device hierarchy from sysfs,
- find mount points and filesystems in a mounts file,
- lay out a single GPT partition across a disk,
- choose a block device that matches a claim,
- keep device state and request counters as gauges and counters and render
  them in the Prometheus text format,
- serve those metrics over HTTP.

It uses only the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `ndmtools.crds`

`CRDBuilder` builds a `CustomResourceDefinition` dataclass.

- Every `with_*` method checks its argument and returns the builder, so the
  calls can be chained. The methods are `with_name`, `with_group`,
  `with_version`, `with_kind`, `with_list_kind`, `with_plural`,
  `with_short_names`, `with_scope`, `with_printer_columns` and
  `with_priority_printer_columns`.
- An empty value is recorded as an error. `build()` then raises
  `CRDBuildError`, and its `errors` attribute lists every problem found.
- If nothing went wrong, `build()` returns the definition.
- The scope is a `ResourceScope`, either `NAMESPACED` or `CLUSTER`.
- Printer columns are `PrinterColumn` entries.

### `ndmtools.env`

- `is_install_crd_enabled(environ=None)` reads `OPENEBS_IO_INSTALL_CRD` from
  `environ`, or from `os.environ` when no mapping is given. It returns `True`
  when the variable is unset or empty. Otherwise it returns what
  `parse_bool()` gives for the value.
- `parse_bool()` accepts `1`, `t`, `T`, `TRUE`, `true` and `True` as true.
  Any other value is false.

### `ndmtools.features`

`FeatureGate` is a read-only mapping from a feature name to whether it is
enabled.

- `new_feature_gate()` returns a gate that holds the defaults, with
  `GPTBasedUUID` disabled. The module-level `feature_gates` is one such gate.
- `set_feature_flags(["GPTBasedUUID", "Other=false"])` applies the flags in
  order. A bare name means enabled.
- An unknown name, or an entry with more than one `=`, raises `FeatureError`.
  Flags applied before the bad entry stay applied.
- `is_enabled(feature)` returns `False` for features the gate does not hold.

### `ndmtools.server`

`MetricsServer(listen_port, metrics_path, handler)` serves GET, HEAD and POST
requests for `metrics_path`.

- `listen_port` is an address such as `":9090"` or `"localhost:9090"`.
- `handler` is called with the request handler instance and writes the
  response itself.
- Any other path gets a 404.
- `start()` blocks until `stop()` is called from another thread. It raises
  `OSError` if the address cannot be bound.
- `started` is an event that is set once the server is listening.
  `server_address` holds the bound host and port.

### `ndmtools.hierarchy`

- `Device(path).get_dependents()` returns a `DependentDevices` with the
  device's `parent`, `partitions`, `holders` and `slaves`, each given as a
  `/dev` path. It raises `OSError` when the device has no sysfs entry.
- `get_device_sys_path()` resolves `class/block/<name>` under the sysfs root
  to a `DeviceSysPath`.
- The sysfs root defaults to `/sys` and can be changed through the
  `sysfs_root` arguments.

### `ndmtools.mount`

`DiskMountUtil(file_path, dev_path=..., mount_point=...)` reads a mounts file.
Only lines that start with `/dev` are considered.

- `device_mount_attr(matcher)` returns the first match. It raises
  `MountError` when no line matches.
- `mount_name` finds the mount point and filesystem of `dev_path`.
- `partition_name` finds the partition mounted at `mount_point`.
- `get_disk_path()` returns the `/dev` path of the disk holding the partition
  mounted at `mount_point`.
- `device_basic_mount_info(dev_path, mounts_file)` is a shortcut for the
  mount point and filesystem of a device. `mounts_file` defaults to
  `/host/proc/1/mounts`.
- `get_parent_block_device(sys_path)` returns the disk named in a sysfs path,
  after `block`, or two levels below `nvme`. It returns `None` if there is no
  such disk.

### `ndmtools.partition`

- `Disk(dev_path, disk_size, logical_block_size).create_single_partition()`
  refuses a disk that already has an MBR or GPT signature.
- Otherwise it writes a protective MBR, a primary GPT and a backup GPT. The
  table holds one Linux filesystem partition that starts at 1 MiB.
- Failures raise `PartitionError`.
- A logical block size of 0 falls back to 512 bytes.
- The steps can also be run one at a time: `create_partition_table()`,
  `add_partition()` and `apply_partition_table()`.
- `PartitionTable.to_bytes(disk_size)` returns the primary on-disk region.
- `has_partition_table(data)` checks the leading bytes of a disk for a
  partition table signature.

### `ndmtools.metrics`

- `Counter` and `GaugeVec` are small in-memory metrics. `render(collectors)`
  joins their output in the Prometheus text exposition format.
- `SmartMetrics(collector_type)` declares its metrics through `with_*` calls.
  Its temperature gauges use the label values held in `labels`, which is a
  `MetricsLabels`.
- `StaticMetrics()` reports the state of each device in a `DeviceInfo` list
  through `set_metrics()`. The values are Active 0, Inactive 1 and anything
  else 2. Sparse devices are skipped.

### `ndmtools.verify`

- `parse_quantity()` parses quantities such as `10Gi`, `500M` or `1e3`
  exactly.
- `get_requested_capacity(requests)` returns the `storage` request in bytes.
  It raises `CapacityError` unless the request is a positive whole number
  that fits in 64 bits.

### `ndmtools.select`

`SelectConfig(claim_spec).filter(devices)` picks one `BlockDevice` for a
`DeviceClaimSpec`. It raises `SelectionError` when none fits.

- A claim that names a device selects that device, provided it is active
  and unclaimed.
- Otherwise the selection keeps active, unclaimed devices that are not
  sparse. It drops devices carrying the block-device-tag label unless the
  claim's `LabelSelector` mentions that label. It then applies the device
  type, volume mode and node name filters, and returns the first device that
  is large enough for the request.
- Each filter is also available as a function, for example
  `filter_block_device_tag(devices, spec)`.

## Example

```python
from ndmtools.crds import CRDBuilder, ResourceScope

crd = (
    CRDBuilder()
    .with_name("blockdevices.storage.example.com")
    .with_group("storage.example.com")
    .with_version("v1alpha1")
    .with_scope(ResourceScope.NAMESPACED)
    .with_kind("BlockDevice")
    .with_list_kind("BlockDeviceList")
    .with_plural("blockdevices")
    .with_short_names(["bd"])
    .with_printer_columns("NodeName", "string", ".spec.nodeAttributes.nodeName")
    .build()
)
```

## What this package does not do

- It has no command-line programs.
- It does not talk to a cluster. Custom resource definitions are built as
  dataclasses but are never installed, patched or deleted anywhere.
  `SelectConfig` keeps the `client` it is given but never uses it.
- It does not read SMART data or temperatures from the drives themselves.
  `SmartMetrics` only records the values passed to it.