import struct

import pytest

from hydrafs.blockdev import BlockDevice, VirtualBlockDevice
from hydrafs.fat32.filesystem import (
    Fat32FileSystem,
    FileKind,
    FileMask,
    OpenAction,
    probe,
)
from hydrafs.fat32.volume import END_OF_CHAIN, Fat32Error

SECTOR = 512
RESERVED = 32
FAT_SECTORS = 1
DATA_CLUSTERS = 126
TOTAL = RESERVED + FAT_SECTORS + DATA_CLUSTERS

_BOOT = struct.Struct("<3s8sHBHBHHBHHHIIIHHIHH12sBBBI11s8s420sH")


def _boot_sector():
    return _BOOT.pack(
        b"\xEB\x58\x90", b"MSWIN4.1", SECTOR, 1, RESERVED, 1, 0, 0, 0xF8, 0,
        32, 2, 0, TOTAL, FAT_SECTORS, 0, 0, 2, 1, 6, b"\0" * 12, 0x80, 0,
        0x29, 0x1234, b"NO NAME    ", b"FAT32   ", b"\0" * 420, 0xAA55,
    )


def make_device():
    image = bytearray(TOTAL * SECTOR)
    image[:SECTOR] = _boot_sector()
    fat = struct.pack("<III", 0x0FFFFFF8, 0x0FFFFFFF, 0x0FFFFFF8)
    start = RESERVED * SECTOR
    image[start:start + len(fat)] = fat
    return VirtualBlockDevice(BlockDevice(bytes(image), SECTOR))


@pytest.fixture
def fs():
    return Fat32FileSystem.mount(make_device())


def test_probe_recognises_volume():
    assert probe(make_device()) is True


def test_probe_rejects_blank_device():
    assert probe(VirtualBlockDevice(BlockDevice(bytes(8 * SECTOR), SECTOR))) is False


def test_mount_blank_device_fails():
    with pytest.raises(Fat32Error):
        Fat32FileSystem.mount(VirtualBlockDevice(BlockDevice(bytes(8 * SECTOR), SECTOR)))


def test_stat_root(fs):
    info = fs.stat("/")
    assert info.kind == FileKind.DIRECTORY
    assert info.mask == FileMask.SYSTEM


def test_create_and_stat(fs):
    fs.create("/a.txt", FileMask.NONE, FileKind.FILE)
    info = fs.stat("/a.txt")
    assert info.kind == FileKind.FILE
    assert info.filesize == 0
    assert info.mask == FileMask.NONE


def test_create_twice_fails(fs):
    fs.create("/a.txt", FileMask.NONE, FileKind.FILE)
    with pytest.raises(Fat32Error):
        fs.create("/a.txt", FileMask.NONE, FileKind.FILE)


def test_create_invalid_name_fails(fs):
    with pytest.raises(Fat32Error):
        fs.create("/bad name.txt", FileMask.NONE, FileKind.FILE)


def test_stat_missing_fails(fs):
    with pytest.raises(Fat32Error):
        fs.stat("/missing.txt")


def test_write_read_round_trip(fs):
    fs.create("/a.txt", FileMask.NONE, FileKind.FILE)
    fs.write("/a.txt", b"hello ")
    fs.write("/a.txt", b"world")
    assert fs.read("/a.txt", 0, 11) == b"hello world"
    assert fs.stat("/a.txt").filesize == len(b"hello world")


def test_write_across_clusters(fs):
    data = bytes(range(256)) * 3
    fs.create("/big.bin", FileMask.NONE, FileKind.FILE)
    fs.write("/big.bin", data)
    assert fs.read("/big.bin", 0, len(data)) == data
    assert fs.read("/big.bin", 500, 100) == data[500:600]
    first = fs.tree.entry_from_path("/big.bin").first_cluster
    assert len(list(fs.volume.cluster_chain(first))) == 2


def test_append_after_full_cluster(fs):
    head = bytes([7]) * SECTOR
    fs.create("/f.bin", FileMask.NONE, FileKind.FILE)
    fs.write("/f.bin", head)
    fs.write("/f.bin", b"tail")
    assert fs.read("/f.bin", 0, SECTOR + 4) == head + b"tail"


def test_clear_frees_chain(fs):
    fs.create("/a.txt", FileMask.NONE, FileKind.FILE)
    fs.write("/a.txt", bytes(SECTOR * 2 + 10))
    first = fs.tree.entry_from_path("/a.txt").first_cluster
    chain = list(fs.volume.cluster_chain(first))
    fs.clear("/a.txt")
    assert fs.stat("/a.txt").filesize == 0
    assert fs.volume.read_fat_entry(first) == END_OF_CHAIN
    assert all(fs.volume.read_fat_entry(cluster) == 0 for cluster in chain[1:])
    fs.write("/a.txt", b"again")
    assert fs.read("/a.txt", 0, 5) == b"again"


def test_delete_removes_file(fs):
    fs.create("/a.txt", FileMask.NONE, FileKind.FILE)
    fs.create("/b.txt", FileMask.NONE, FileKind.FILE)
    first = fs.tree.entry_from_path("/a.txt").first_cluster
    fs.delete("/a.txt")
    with pytest.raises(Fat32Error):
        fs.stat("/a.txt")
    assert fs.listdir("/") == ["b.txt"]
    assert fs.volume.read_fat_entry(first) == 0


def test_delete_root_and_directory_fail(fs):
    fs.create("/docs", FileMask.NONE, FileKind.DIRECTORY)
    with pytest.raises(Fat32Error):
        fs.delete("/")
    with pytest.raises(Fat32Error):
        fs.delete("/docs")


def test_listdir_and_readdir(fs):
    fs.create("/a.txt", FileMask.NONE, FileKind.FILE)
    fs.create("/b.txt", FileMask.NONE, FileKind.FILE)
    assert fs.listdir("/") == ["a.txt", "b.txt"]
    assert fs.readdir("/", 1) == "b.txt"
    assert fs.readdir("/", 2) is None


def test_directory_grows_past_one_cluster(fs):
    names = [f"f{number}.txt" for number in range(20)]
    for name in names:
        fs.create("/" + name, FileMask.NONE, FileKind.FILE)
    assert fs.listdir("/") == names


def test_set_mask(fs):
    fs.create("/a.txt", FileMask.NONE, FileKind.FILE)
    fs.set_mask("/a.txt", FileMask.READONLY | FileMask.HIDDEN)
    assert fs.stat("/a.txt").mask == FileMask.READONLY | FileMask.HIDDEN


def test_set_mask_on_root_fails(fs):
    with pytest.raises(Fat32Error):
        fs.set_mask("/", FileMask.HIDDEN)


def test_create_with_mask(fs):
    fs.create("/s.txt", FileMask.SYSTEM, FileKind.FILE)
    assert fs.stat("/s.txt").mask == FileMask.SYSTEM


def test_subdirectory_file(fs):
    fs.create("/docs", FileMask.NONE, FileKind.DIRECTORY)
    assert fs.stat("/docs").kind == FileKind.DIRECTORY
    fs.create("/docs/note.txt", FileMask.NONE, FileKind.FILE)
    fs.write("/docs/note.txt", b"note")
    assert fs.read("/docs/note.txt", 0, 4) == b"note"
    with pytest.raises(Fat32Error):
        fs.read("/docs", 0, 1)


def test_open_create_and_nodes(fs):
    node = fs.open("/n.txt", OpenAction.CREATE)
    assert node.filesize == 0
    assert node.local_path == "/n.txt"
    fs.write_node(node, b"abcdef")
    assert node.offset == 6
    reader = fs.open("/n.txt", OpenAction.READ)
    assert reader.filesize == 6
    assert fs.read_node(reader, 3) == b"abc"
    assert fs.read_node(reader, 3) == b"def"
    assert reader.offset == 6


def test_open_clear(fs):
    fs.create("/n.txt", FileMask.NONE, FileKind.FILE)
    fs.write("/n.txt", b"data")
    node = fs.open("/n.txt", OpenAction.CLEAR)
    assert node.filesize == 0


def test_open_missing_fails(fs):
    with pytest.raises(Fat32Error):
        fs.open("/nothere.txt", OpenAction.READ)


def test_readdir_node_and_delete_node(fs):
    fs.create("/a.txt", FileMask.NONE, FileKind.FILE)
    root = fs.open("/")
    assert fs.readdir_node(root, 0) == "/a.txt"
    with pytest.raises(Fat32Error):
        fs.readdir_node(root, 1)
    fs.delete_node(fs.open("/a.txt"))
    assert fs.listdir("/") == []