import struct

import pytest

from hydrafs.blockdev import BlockDevice, VirtualBlockDevice
from hydrafs.fat32.directory import DirectoryTree
from hydrafs.fat32.names import name_to_nameext
from hydrafs.fat32.structures import Attribute, DirectoryEntry
from hydrafs.fat32.volume import END_OF_CHAIN, Fat32Error, Fat32Volume

SECTOR = 512
RESERVED = 4
ROOT = 2
_BOOT = struct.Struct("<3s8sHBHBHHBHHHIIIHHIHH12sBBBI11s8s420sH")
_LFN = struct.Struct("<B5HBBB6HH2H")


def make_tree(data_clusters=32):
    total = RESERVED + 1 + data_clusters
    boot = _BOOT.pack(
        b"\xEB\x58\x90", b"HYDRAFS ", SECTOR, 1, RESERVED, 1,
        0, 0, 0xF8, 0, 0, 0, 0, total, 1, 0, 0, ROOT, 1, 6,
        bytes(12), 0x80, 0, 0x29, 0, b"NO NAME    ", b"FAT32   ", bytes(420), 0xAA55,
    )
    image = bytearray(total * SECTOR)
    image[:SECTOR] = boot
    struct.pack_into("<III", image, RESERVED * SECTOR, END_OF_CHAIN, 0x0FFFFFFF, END_OF_CHAIN)
    volume = Fat32Volume.scan(VirtualBlockDevice(BlockDevice(bytes(image), SECTOR)))
    return DirectoryTree(volume)


def file_entry(name, size=0):
    return DirectoryEntry(nameext=name_to_nameext(name), file_size=size)


def make_subdirectory(tree, name):
    cluster = tree.volume.allocate_cluster(None)
    entry = DirectoryEntry(nameext=name_to_nameext(name), attr=int(Attribute.DIRECTORY))
    entry.first_cluster = cluster
    tree.add_entry("/", entry)
    return cluster


def test_add_and_find_entry():
    tree = make_tree()
    tree.add_entry("/", file_entry("hello.txt", size=5))
    found = tree.find_entry("hello.txt", ROOT)
    assert found.file_size == 5
    assert found.name == "hello.txt"


def test_find_missing_entry():
    tree = make_tree()
    tree.add_entry("/", file_entry("hello.txt"))
    assert tree.find_entry("other.txt", ROOT) is None


def test_entry_at_lists_in_order():
    tree = make_tree()
    for name in ("a.txt", "b.txt", "c.txt"):
        tree.add_entry("/", file_entry(name))
    assert tree.entry_at(0, ROOT)[0] == "a.txt"
    assert tree.entry_at(2, ROOT)[0] == "c.txt"
    assert tree.entry_at(3, ROOT) is None


def test_entry_at_skips_deleted():
    tree = make_tree()
    for name in ("a.txt", "b.txt", "c.txt"):
        tree.add_entry("/", file_entry(name))
    tree.replace_entry("b.txt", ROOT, DirectoryEntry(nameext=b"\xe5" + b" " * 10))
    assert tree.entry_at(1, ROOT)[0] == "c.txt"
    assert tree.find_entry("b.txt", ROOT) is None


def test_add_reuses_deleted_slot():
    tree = make_tree()
    for name in ("a.txt", "b.txt"):
        tree.add_entry("/", file_entry(name))
    tree.replace_entry("a.txt", ROOT, DirectoryEntry(nameext=b"\xe5" + b" " * 10))
    tree.add_entry("/", file_entry("d.txt"))
    assert tree.entry_at(0, ROOT)[0] == "d.txt"
    assert tree.entry_at(1, ROOT)[0] == "b.txt"


def test_replace_missing_entry_raises():
    tree = make_tree()
    with pytest.raises(Fat32Error):
        tree.replace_entry("nope.txt", ROOT, file_entry("nope.txt"))


def test_long_name_lookup():
    tree = make_tree()
    codes = [ord(char) for char in "notes"] + [0] + [0xFFFF] * 7
    lfn = _LFN.pack(0x41, *codes[:5], int(Attribute.LONG_NAME), 0, 0, *codes[5:11], 0, *codes[11:13])
    short = file_entry("notes1.txt", size=9).to_bytes()
    cluster = bytearray(SECTOR)
    cluster[:64] = lfn + short
    tree.volume.write_cluster(ROOT, cluster)
    found = tree.find_entry("notes", ROOT)
    assert found.file_size == 9
    assert tree.entry_at(0, ROOT)[0] == "notes"


def test_full_directory_grows_a_cluster():
    tree = make_tree()
    names = [f"f{number}.txt" for number in range(SECTOR // 32 + 1)]
    for name in names:
        tree.add_entry("/", file_entry(name))
    chain = list(tree.volume.cluster_chain(ROOT))
    assert len(chain) == 2
    assert tree.find_entry(names[-1], ROOT).name == names[-1]
    assert tree.entry_at(len(names) - 1, ROOT)[0] == names[-1]


def test_paths_through_subdirectory():
    tree = make_tree()
    sub = make_subdirectory(tree, "sub")
    tree.add_entry("/sub", file_entry("file.txt", size=3))
    assert tree.first_cluster_of("/sub") == sub
    assert tree.first_cluster_of("/") == ROOT
    assert tree.entry_from_path("/sub/file.txt").file_size == 3
    assert tree.find_entry("file.txt", ROOT) is None


def test_root_path_has_no_entry():
    tree = make_tree()
    assert tree.entry_from_path("/") is None
    assert tree.first_cluster_of("") == ROOT


def test_missing_path_raises():
    tree = make_tree()
    with pytest.raises(Fat32Error):
        tree.entry_from_path("/missing/file.txt")
    with pytest.raises(Fat32Error):
        tree.first_cluster_of("/missing")


def test_modify_entry_by_path():
    tree = make_tree()
    make_subdirectory(tree, "sub")
    tree.add_entry("/sub", file_entry("file.txt"))
    updated = tree.entry_from_path("/sub/file.txt")
    updated.file_size = 42
    tree.modify_entry("/sub/file.txt", updated)
    assert tree.entry_from_path("/sub/file.txt").file_size == 42


def test_modify_entry_missing_parent():
    tree = make_tree()
    with pytest.raises(Fat32Error):
        tree.modify_entry("/none/file.txt", file_entry("file.txt"))