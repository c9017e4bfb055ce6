"""Master boot record partition tables."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from hydrafs.blockdev import BlockDevice, BlockDeviceError, VirtualBlockDevice

MBR_SIZE = 512
MBR_MAGIC = 0xAA55
PARTITION_COUNT = 4

_ENTRY = struct.Struct("<BBHBBHII")
_HEADER = struct.Struct("<440sIH")
_MAGIC = struct.Struct("<H")
_TABLE_OFFSET = _HEADER.size
_MAGIC_OFFSET = _TABLE_OFFSET + PARTITION_COUNT * _ENTRY.size


class PartitionError(Exception):
    """Raised when a partition table or entry cannot be used."""


@dataclass(frozen=True)
class PartitionEntry:
    """One primary partition table entry."""

    bootable: int
    start_head: int
    start_sector: int
    start_cylinder: int
    partition_type: int
    end_head: int
    end_sector: int
    end_cylinder: int
    start_lba: int
    length: int

    @classmethod
    def from_bytes(cls, data):
        if len(data) < _ENTRY.size:
            raise PartitionError("partition entry is too short")
        (bootable, start_head, start_chs, ptype,
         end_head, end_chs, start_lba, length) = _ENTRY.unpack_from(data)
        return cls(
            bootable=bootable,
            start_head=start_head,
            start_sector=start_chs & 0x3F,
            start_cylinder=start_chs >> 6,
            partition_type=ptype,
            end_head=end_head,
            end_sector=end_chs & 0x3F,
            end_cylinder=end_chs >> 6,
            start_lba=start_lba,
            length=length,
        )


@dataclass(frozen=True)
class MasterBootRecord:
    """A parsed master boot record."""

    bootloader: bytes
    signature: int
    partitions: tuple
    magic_number: int

    @classmethod
    def from_bytes(cls, data):
        if len(data) < MBR_SIZE:
            raise PartitionError("master boot record is too short")
        bootloader, signature, _unused = _HEADER.unpack_from(data)
        partitions = tuple(
            PartitionEntry.from_bytes(data[offset:offset + _ENTRY.size])
            for offset in range(_TABLE_OFFSET, _MAGIC_OFFSET, _ENTRY.size)
        )
        (magic,) = _MAGIC.unpack_from(data, _MAGIC_OFFSET)
        return cls(bootloader, signature, partitions, magic)

    def partition(self, index, device):
        """Return a view of primary partition ``index`` on ``device``."""
        if not 0 <= index < PARTITION_COUNT:
            raise PartitionError(f"no primary partition {index}")
        entry = self.partitions[index]
        if entry.partition_type == 0:
            raise PartitionError(f"partition {index} is unused")
        return VirtualBlockDevice(
            device=device,
            lba_offset=entry.start_lba,
            partition_type=entry.partition_type,
            index=index,
        )


def _first_block(device: BlockDevice) -> bytes:
    try:
        return device.read_block(0)
    except BlockDeviceError as exc:
        raise PartitionError("cannot read the master boot record") from exc


def mbr_init(device):
    """Read and parse the master boot record of ``device``."""
    return MasterBootRecord.from_bytes(_first_block(device))


def mbr_test(device):
    """Tell whether ``device`` starts with a master boot record."""
    try:
        block = _first_block(device)
    except PartitionError:
        return False
    if len(block) < MBR_SIZE:
        return False
    (magic,) = _MAGIC.unpack_from(block, _MAGIC_OFFSET)
    return magic == MBR_MAGIC