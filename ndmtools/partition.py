"""Creation of a single GPT partition spanning a whole disk."""

from __future__ import annotations

import logging
import struct
import uuid
import zlib
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

# 128 entries of 128 bytes each.
BYTES_REQUIRED_FOR_GPT_PARTITION_ENTRIES = 16384
# Partitions start at 1 MiB so that they line up with physical blocks.
GPT_PARTITION_START_BYTE = 1048576
NO_OF_LOGICAL_BLOCKS_FOR_GPT_HEADER = 1

GPT_ENTRY_SIZE = 128
GPT_MAX_ENTRIES = BYTES_REQUIRED_FOR_GPT_PARTITION_ENTRIES // GPT_ENTRY_SIZE
GPT_SIGNATURE = b"EFI PART"
GPT_REVISION = 0x00010000
GPT_HEADER_SIZE = 92

LINUX_FILESYSTEM = uuid.UUID("0FC63DAF-8483-4772-8E79-3D69D8477DE4")

_HEADER_FORMAT = "<8sIIIIQQQQ16sQIII"
_ENTRY_FORMAT = "<16s16sQQQ72s"
_MBR_SIGNATURE = b"\x55\xaa"
_PROTECTIVE_MBR_TYPE = 0xEE


class PartitionError(Exception):
    """Raised when a disk cannot be partitioned."""


@dataclass
class GPTPartition:
    """One entry of a GPT partition table, bounds given in logical sectors."""

    start: int
    end: int
    type: uuid.UUID = LINUX_FILESYSTEM
    name: str = ""
    attributes: int = 0
    guid: uuid.UUID = field(default_factory=uuid.uuid4, compare=False)

    def _entry_bytes(self):
        name = self.name.encode("utf-16-le")[:72].ljust(72, b"\0")
        return struct.pack(
            _ENTRY_FORMAT,
            self.type.bytes_le,
            self.guid.bytes_le,
            self.start,
            self.end,
            self.attributes,
            name,
        )


@dataclass
class PartitionTable:
    """A GPT partition table, optionally preceded by a protective MBR."""

    logical_sector_size: int = 512
    protective_mbr: bool = False
    partitions: list[GPTPartition] = field(default_factory=list)
    disk_guid: uuid.UUID = field(default_factory=uuid.uuid4, compare=False)

    def _layout(self, disk_size):
        sector_size = self.logical_sector_size
        if sector_size <= 0:
            raise PartitionError("logical sector size must be positive")
        total = disk_size // sector_size
        entry_sectors = -(-BYTES_REQUIRED_FOR_GPT_PARTITION_ENTRIES // sector_size)
        first_usable = 2 + entry_sectors
        last_usable = total - 2 - entry_sectors
        if last_usable < first_usable:
            raise PartitionError(f"disk of {disk_size} bytes is too small for a GPT")
        return total, entry_sectors, first_usable, last_usable

    def _entries(self, entry_sectors):
        if len(self.partitions) > GPT_MAX_ENTRIES:
            raise PartitionError(f"at most {GPT_MAX_ENTRIES} partitions are supported")
        data = b"".join(p._entry_bytes() for p in self.partitions)
        return data.ljust(entry_sectors * self.logical_sector_size, b"\0")

    def _header(self, current, backup, entries_lba, first_usable, last_usable, entries_crc):
        def pack(crc):
            return struct.pack(
                _HEADER_FORMAT,
                GPT_SIGNATURE,
                GPT_REVISION,
                GPT_HEADER_SIZE,
                crc,
                0,
                current,
                backup,
                first_usable,
                last_usable,
                self.disk_guid.bytes_le,
                entries_lba,
                GPT_MAX_ENTRIES,
                GPT_ENTRY_SIZE,
                entries_crc,
            )

        header = pack(zlib.crc32(pack(0)))
        return header.ljust(self.logical_sector_size, b"\0")

    def _mbr(self, total):
        mbr = bytearray(self.logical_sector_size)
        if self.protective_mbr:
            size = min(total - 1, 0xFFFFFFFF)
            mbr[446:462] = struct.pack(
                "<B3sB3sII", 0, b"\x00\x02\x00", _PROTECTIVE_MBR_TYPE, b"\xff\xff\xff", 1, size
            )
            mbr[510:512] = _MBR_SIGNATURE
        return bytes(mbr)

    def to_bytes(self, disk_size):
        """The primary region: MBR sector, GPT header and partition entries."""
        total, entry_sectors, first_usable, last_usable = self._layout(disk_size)
        entries = self._entries(entry_sectors)
        header = self._header(
            1, total - 1, 2, first_usable, last_usable,
            zlib.crc32(entries[:BYTES_REQUIRED_FOR_GPT_PARTITION_ENTRIES]),
        )
        return self._mbr(total) + header + entries

    def _backup_bytes(self, disk_size):
        """Offset and data of the backup entries and header at the end of the disk."""
        total, entry_sectors, first_usable, last_usable = self._layout(disk_size)
        entries = self._entries(entry_sectors)
        entries_lba = total - 1 - entry_sectors
        header = self._header(
            total - 1, 1, entries_lba, first_usable, last_usable,
            zlib.crc32(entries[:BYTES_REQUIRED_FOR_GPT_PARTITION_ENTRIES]),
        )
        return entries_lba * self.logical_sector_size, entries + header


def has_partition_table(data):
    """Whether the leading bytes of a disk hold a known MBR or GPT table."""
    if len(data) >= 512 and data[510:512] == _MBR_SIGNATURE:
        return True
    return any(data[offset:offset + 8] == GPT_SIGNATURE for offset in (512, 4096))


@dataclass
class Disk:
    """A disk to be partitioned; sizes are in bytes."""

    dev_path: str
    disk_size: int = 0
    logical_block_size: int = 0
    table: PartitionTable | None = None

    def create_partition_table(self):
        """Start an empty GPT table with a protective MBR."""
        if self.disk_size == 0:
            log.error("disk %s has size zero", self.dev_path)
            raise PartitionError("disk size is zero, unable to initialize partition table")
        if self.logical_block_size == 0:
            log.warning(
                "logical block size of %s not set, falling back to 512 bytes", self.dev_path
            )
            log.warning("partitioning may fail.")
            self.logical_block_size = 512
        self.table = PartitionTable(
            logical_sector_size=self.logical_block_size, protective_mbr=True
        )

    def add_partition(self):
        """Add a Linux filesystem partition reaching to the last usable sector."""
        if self.table is None:
            raise PartitionError("partition table is not initialized")
        start = 0
        if not self.table.partitions:
            start = GPT_PARTITION_START_BYTE // self.logical_block_size
        primary_table_size = (
            BYTES_REQUIRED_FOR_GPT_PARTITION_ENTRIES // self.logical_block_size
            + NO_OF_LOGICAL_BLOCKS_FOR_GPT_HEADER
        )
        end = self.disk_size // self.logical_block_size - primary_table_size - 1
        self.table.partitions.append(GPTPartition(start=start, end=end))

    def apply_partition_table(self):
        """Write the primary and backup tables to the device."""
        if self.table is None or not self.table.partitions:
            raise PartitionError("no partitions specified in partition table")
        primary = self.table.to_bytes(self.disk_size)
        backup_offset, backup = self.table._backup_bytes(self.disk_size)
        try:
            with open(self.dev_path, "r+b") as device:
                device.write(primary)
                device.seek(backup_offset)
                device.write(backup)
        except OSError as err:
            raise PartitionError(f"unable to create/write partition table. {err}") from err

    def create_single_partition(self):
        """Create one GPT partition spanning the disk; refuses disks already partitioned."""
        try:
            with open(self.dev_path, "rb") as device:
                head = device.read(8192)
        except OSError as err:
            raise PartitionError(
                f"error opening disk fd for disk {self.dev_path}: {err}"
            ) from err
        if has_partition_table(head):
            log.error("disk %s already contains a known partition table", self.dev_path)
            log.error("partitioning will be aborted")
            raise PartitionError(
                f"disk {self.dev_path} contains a partition table, "
                "cannot create a single partition"
            )
        try:
            self.create_partition_table()
        except PartitionError:
            log.error("partition table initialization failed")
            raise
        try:
            self.add_partition()
        except PartitionError:
            log.error("could not add a partition to partition table")
            raise
        try:
            self.apply_partition_table()
        except PartitionError:
            log.error("writing partition table to disk failed")
            raise
        log.info("created a single partition on disk %s", self.dev_path)