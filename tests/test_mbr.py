import struct

import pytest

from hydrafs.blockdev import BlockDevice, VirtualBlockDevice
from hydrafs.mbr import (
    MasterBootRecord,
    PartitionEntry,
    PartitionError,
    mbr_init,
    mbr_test,
)


def entry_bytes(ptype=0x0C, start_lba=2048, length=4096, sector=5, cylinder=300):
    chs = sector | (cylinder << 6)
    return struct.pack("<BBHBBHII", 0x80, 1, chs, ptype, 2, chs, start_lba, length)


def mbr_bytes(entries=None, magic=0xAA55):
    entries = entries or [entry_bytes()]
    table = b"".join(entries).ljust(64, b"\0")
    return bytes(440) + struct.pack("<IH", 0x1234, 0) + table + struct.pack("<H", magic)


def device_with(first_block, blocks=8):
    return BlockDevice(first_block + bytes(512 * (blocks - 1)), 512)


def test_entry_decodes_chs_bitfields():
    entry = PartitionEntry.from_bytes(entry_bytes(sector=5, cylinder=300))
    assert entry.start_sector == 5
    assert entry.start_cylinder == 300
    assert entry.end_sector == 5
    assert entry.end_cylinder == 300
    assert entry.bootable == 0x80


def test_entry_too_short():
    with pytest.raises(PartitionError):
        PartitionEntry.from_bytes(b"\0" * 10)


def test_mbr_parses_partitions():
    record = MasterBootRecord.from_bytes(mbr_bytes())
    assert record.magic_number == 0xAA55
    assert record.signature == 0x1234
    assert len(record.partitions) == 4
    assert record.partitions[0].start_lba == 2048
    assert record.partitions[1].partition_type == 0


def test_mbr_too_short():
    with pytest.raises(PartitionError):
        MasterBootRecord.from_bytes(bytes(100))


def test_partition_view():
    dev = device_with(mbr_bytes())
    record = mbr_init(dev)
    view = record.partition(0, dev)
    assert isinstance(view, VirtualBlockDevice)
    assert view.lba_offset == 2048
    assert view.partition_type == 0x0C
    assert view.index == 0
    assert view.device is dev


@pytest.mark.parametrize("index", [1, 3, 4, -1])
def test_partition_unused_or_out_of_range(index):
    dev = device_with(mbr_bytes())
    record = mbr_init(dev)
    with pytest.raises(PartitionError):
        record.partition(index, dev)


def test_mbr_test_checks_magic():
    assert mbr_test(device_with(mbr_bytes())) is True
    assert mbr_test(device_with(mbr_bytes(magic=0))) is False


def test_mbr_test_on_empty_device():
    assert mbr_test(BlockDevice(b"", 512)) is False


def test_mbr_init_on_empty_device_raises():
    with pytest.raises(PartitionError):
        mbr_init(BlockDevice(b"", 512))