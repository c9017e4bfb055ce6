"""File-level operations on a FAT32 volume: read, append, create, delete, list."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace

from hydrafs.blockdev import BlockDeviceError
from hydrafs.fat32.directory import DirectoryTree
from hydrafs.fat32.names import filename_of, name_to_nameext, parent_directory
from hydrafs.fat32.structures import DELETED_MARKER, Attribute, DirectoryEntry
from hydrafs.fat32.volume import END_OF_CHAIN, Fat32Error, Fat32Volume

# Timestamps are not tracked; every date and time field is written as zero.
_TIMESTAMP = 0


class FileKind(enum.IntEnum):
    """What a path refers to."""

    FILE = 0x01
    DIRECTORY = 0x02
    SYMLINK = 0x03


class FileMask(enum.IntFlag):
    """Permission-like bits reported for a file."""

    NONE = 0
    READONLY = 1 << 1
    HIDDEN = 1 << 2
    SYSTEM = 1 << 3


class OpenAction(enum.IntEnum):
    """What opening a file does before it is inspected."""

    READ = 0
    WRITE = 1
    CLEAR = 2
    CREATE = 3


@dataclass
class FileInfo:
    """The metadata of a file or directory."""

    kind: FileKind
    mask: FileMask = FileMask.NONE
    filesize: int = 0
    creation_time: int = 0
    creation_date: int = 0
    write_time: int = 0
    write_date: int = 0
    last_access_date: int = 0


@dataclass
class FileNode:
    """An open file: its path, metadata and current position."""

    local_path: str
    kind: FileKind
    mask: FileMask = FileMask.NONE
    filesize: int = 0
    creation_time: int = 0
    creation_date: int = 0
    write_time: int = 0
    write_date: int = 0
    last_access_date: int = 0
    offset: int = 0


def _mask_to_attr(mask) -> int:
    mask = FileMask(mask)
    attr = Attribute.NONE
    if mask & FileMask.READONLY:
        attr |= Attribute.READ_ONLY
    if mask & FileMask.HIDDEN:
        attr |= Attribute.HIDDEN
    if mask & FileMask.SYSTEM:
        attr |= Attribute.SYSTEM
    return int(attr)


def _attr_to_mask(attr: int) -> FileMask:
    mask = FileMask.NONE
    if attr & Attribute.READ_ONLY:
        mask |= FileMask.READONLY
    if attr & Attribute.HIDDEN:
        mask |= FileMask.HIDDEN
    if attr & Attribute.SYSTEM:
        mask |= FileMask.SYSTEM
    return mask


class Fat32FileSystem:
    """Path-based access to the files of a mounted FAT32 volume."""

    def __init__(self, volume):
        self.volume = volume
        self.tree = DirectoryTree(volume)

    @classmethod
    def mount(cls, device):
        """Check the boot sector of ``device`` and return a file system over it."""
        return cls(Fat32Volume.scan(device))

    def _file_entry(self, path: str) -> DirectoryEntry:
        entry = self.tree.entry_from_path(path)
        if entry is None:
            raise Fat32Error(f"{path!r} is the root directory")
        if entry.is_directory:
            raise Fat32Error(f"{path!r} is a directory")
        return entry

    def _touch(self, path: str, entry: DirectoryEntry) -> None:
        entry.last_access_date = _TIMESTAMP
        self.tree.modify_entry(path, entry)

    def _release_chain(self, first: int, head_value: int) -> None:
        chain = list(self.volume.cluster_chain(first))
        for cluster in chain[1:]:
            self.volume.write_fat_entry(cluster, 0)
        self.volume.write_fat_entry(first, head_value)

    def read(self, path, offset, size):
        """Read ``size`` bytes of the file at ``path`` starting at ``offset``.

        Reading stops early when the cluster chain ends.
        """
        entry = self._file_entry(path)
        self._touch(path, entry)
        if size <= 0:
            return b""

        per_cluster = self.volume.bytes_per_cluster
        end = offset + size
        out = bytearray()
        for number, cluster in enumerate(self.volume.cluster_chain(entry.first_cluster)):
            start = number * per_cluster
            if start + per_cluster <= offset:
                continue
            if start >= end:
                break
            data = self.volume.read_cluster(cluster)
            out += data[max(offset - start, 0):min(end - start, per_cluster)]
            if start + per_cluster >= end:
                break
        return bytes(out)

    def write(self, path, data):
        """Append ``data`` to the end of the file at ``path``."""
        entry = self._file_entry(path)
        data = bytes(data)
        per_cluster = self.volume.bytes_per_cluster
        last = self.volume.find_last_cluster(entry.first_cluster)

        used = entry.file_size % per_cluster
        if entry.file_size and not used:
            used = per_cluster

        position = 0
        if data and used < per_cluster:
            buffer = bytearray(self.volume.read_cluster(last))
            chunk = data[:per_cluster - used]
            buffer[used:used + len(chunk)] = chunk
            self.volume.write_cluster(last, buffer)
            position = len(chunk)

        while position < len(data):
            last = self.volume.allocate_cluster(last)
            chunk = data[position:position + per_cluster]
            self.volume.write_cluster(last, chunk.ljust(per_cluster, b"\0"))
            position += len(chunk)

        entry.file_size = (entry.file_size + len(data)) & 0xFFFFFFFF
        entry.write_date = _TIMESTAMP
        entry.write_time = _TIMESTAMP
        entry.last_access_date = _TIMESTAMP
        self.tree.modify_entry(path, entry)

    def clear(self, path):
        """Truncate the file at ``path`` to nothing, keeping its first cluster."""
        entry = self._file_entry(path)
        self._release_chain(entry.first_cluster, END_OF_CHAIN)
        entry.file_size = 0
        entry.write_date = _TIMESTAMP
        entry.write_time = _TIMESTAMP
        entry.last_access_date = _TIMESTAMP
        self.tree.modify_entry(path, entry)

    def stat(self, path):
        """Return the metadata of ``path``; raises :class:`Fat32Error` if it is missing."""
        entry = self.tree.entry_from_path(path)
        if entry is None:
            return FileInfo(kind=FileKind.DIRECTORY, mask=FileMask.SYSTEM)

        self._touch(path, entry)
        info = FileInfo(
            kind=FileKind.DIRECTORY if entry.is_directory else FileKind.FILE,
            mask=_attr_to_mask(entry.attr),
            creation_time=entry.creation_time,
            creation_date=entry.creation_date,
            write_time=entry.write_time,
            write_date=entry.write_date,
            last_access_date=entry.last_access_date,
        )
        if not entry.is_directory:
            info.filesize = entry.file_size
        return info

    def readdir(self, path, index):
        """The name of the ``index``-th entry of the directory at ``path``, or ``None``.

        Outside the root directory the first two entries (``.`` and ``..``)
        are skipped.
        """
        cluster = self.tree.first_cluster_of(path)
        if cluster != self.volume.root_cluster:
            index += 2

        if path != "/":
            entry = self.tree.entry_from_path(path)
            if entry is not None:
                self._touch(path, entry)

        found = self.tree.entry_at(index, cluster)
        if found is None:
            return None
        return found[0]

    def listdir(self, path):
        """All entry names of the directory at ``path`` in on-disk order."""
        names = []
        while (name := self.readdir(path, len(names))) is not None:
            names.append(name)
        return names

    def create(self, path, mask=FileMask.NONE, kind=FileKind.FILE):
        """Create an empty file or directory at ``path`` with a short name."""
        try:
            self.stat(path)
        except Fat32Error:
            pass
        else:
            raise Fat32Error(f"{path!r} already exists")

        try:
            nameext = name_to_nameext(filename_of(path))
        except ValueError as exc:
            raise Fat32Error(str(exc)) from exc

        attr = _mask_to_attr(mask)
        if kind == FileKind.DIRECTORY:
            attr |= Attribute.DIRECTORY

        first_cluster = self.volume.allocate_cluster(None)
        entry = DirectoryEntry(
            nameext=nameext,
            attr=int(attr),
            creation_time_tenth=_TIMESTAMP,
            creation_time=_TIMESTAMP,
            creation_date=_TIMESTAMP,
            last_access_date=_TIMESTAMP,
            write_time=_TIMESTAMP,
            write_date=_TIMESTAMP,
            file_size=0,
        )
        entry.first_cluster = first_cluster
        self.tree.add_entry(parent_directory(path), entry)

    def delete(self, path):
        """Remove the file at ``path`` and free its clusters."""
        entry = self._file_entry(path)
        self._release_chain(entry.first_cluster, 0)

        directory_cluster = self.tree.first_cluster_of(parent_directory(path))
        marker = replace(entry, nameext=bytes((DELETED_MARKER,)) + bytes(entry.nameext[1:]))
        self.tree.replace_entry(filename_of(path), directory_cluster, marker)

    def set_mask(self, path, mask):
        """Replace the attribute bits of ``path`` with those of ``mask``."""
        entry = self.tree.entry_from_path(path)
        if entry is None:
            raise Fat32Error("the root directory has no attributes to change")
        attr = _mask_to_attr(mask)
        if entry.attr == attr:
            return
        entry.attr = attr
        self.tree.modify_entry(path, entry)

    def open(self, path, action=OpenAction.READ):
        """Open ``path``, creating or clearing it first as ``action`` asks."""
        action = OpenAction(action)
        if action == OpenAction.CREATE:
            self.create(path, FileMask.NONE, FileKind.FILE)
        elif action == OpenAction.CLEAR:
            self.clear(path)

        info = self.stat(path)
        return FileNode(
            local_path=path,
            kind=info.kind,
            mask=info.mask,
            filesize=info.filesize,
            creation_time=info.creation_time,
            creation_date=info.creation_date,
            write_time=info.write_time,
            write_date=info.write_date,
            last_access_date=info.last_access_date,
        )

    def read_node(self, node, size):
        """Read ``size`` bytes at the node's position and advance it."""
        data = self.read(node.local_path, node.offset, size)
        node.offset += size
        return data

    def write_node(self, node, data):
        """Append ``data`` to the node's file and advance its position."""
        self.write(node.local_path, data)
        node.offset += len(data)

    def readdir_node(self, node, index):
        """The path of the ``index``-th entry in the node's directory."""
        name = self.readdir(node.local_path, index)
        if name is None:
            raise Fat32Error(f"no entry {index} in {node.local_path!r}")
        return node.local_path + name

    def delete_node(self, node):
        """Delete the node's file."""
        self.delete(node.local_path)


def probe(device):
    """Tell whether ``device`` holds a FAT32 volume."""
    try:
        Fat32Volume.scan(device)
    except (Fat32Error, BlockDeviceError):
        return False
    return True