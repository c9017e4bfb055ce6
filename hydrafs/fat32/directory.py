"""Directory lookups and updates on a FAT32 volume."""

from __future__ import annotations

from hydrafs.cstring import strncmp
from hydrafs.fat32.names import filename_of, parent_directory, split_path
from hydrafs.fat32.structures import DIRENTRY_SIZE, DirectoryEntry, LongNameEntry
from hydrafs.fat32.volume import Fat32Error

_NAME_COMPARE_LENGTH = 11


def _encode(name: str) -> bytes:
    return name.encode("latin-1", errors="replace")


def _names_match(candidate: str, name: str) -> bool:
    return strncmp(_encode(candidate), _encode(name), _NAME_COMPARE_LENGTH) == 0


def _slot(data, position: int) -> bytes:
    return data[position * DIRENTRY_SIZE:(position + 1) * DIRENTRY_SIZE]


class DirectoryTree:
    """Finds, lists and rewrites directory entries by name and path."""

    def __init__(self, volume):
        self.volume = volume

    def _entries(self, data) -> list:
        return [DirectoryEntry.from_bytes(_slot(data, position))
                for position in range(len(data) // DIRENTRY_SIZE)]

    @staticmethod
    def _name_at(data, entries, position):
        """The long name gathered from preceding entries, else the short name."""
        if position >= 1 and entries[position - 1].is_long_name:
            pieces = []
            previous = position
            while previous >= 1 and entries[previous - 1].is_long_name:
                previous -= 1
                pieces.append(LongNameEntry.from_bytes(_slot(data, previous)).text())
            return "".join(pieces).partition("\0")[0]
        return entries[position].name

    def _locate(self, name, directory_cluster):
        for cluster in self.volume.cluster_chain(directory_cluster):
            data = self.volume.read_cluster(cluster)
            entries = self._entries(data)
            for position, entry in enumerate(entries):
                if entry.is_end:
                    return None
                if entry.is_deleted or entry.is_long_name:
                    continue
                candidate = self._name_at(data, entries, position)
                if candidate is not None and _names_match(candidate, name):
                    return cluster, data, position, entry
        return None

    def find_entry(self, name, directory_cluster):
        """The entry called ``name`` in the directory at ``directory_cluster``, or ``None``."""
        found = self._locate(name, directory_cluster)
        return None if found is None else found[3]

    def entry_at(self, index, directory_cluster):
        """The ``index``-th visible entry as ``(name, entry)``, or ``None``."""
        base = 0
        for cluster in self.volume.cluster_chain(directory_cluster):
            data = self.volume.read_cluster(cluster)
            entries = self._entries(data)
            for position, entry in enumerate(entries):
                if entry.is_end:
                    return None
                if entry.is_deleted or entry.is_long_name:
                    index += 1
                    continue
                if index == base + position:
                    return self._name_at(data, entries, position) or "", entry
            base += len(entries)
        return None

    def replace_entry(self, name, directory_cluster, entry):
        """Overwrite the entry called ``name`` in the directory with ``entry``."""
        found = self._locate(name, directory_cluster)
        if found is None:
            raise Fat32Error(f"no entry named {name!r} in the directory")
        cluster, data, position, _old = found
        buffer = bytearray(data)
        start = position * DIRENTRY_SIZE
        buffer[start:start + DIRENTRY_SIZE] = entry.to_bytes()
        self.volume.write_cluster(cluster, buffer)

    def _walk(self, components):
        """Follow ``components`` from the root; return the last entry or ``None``."""
        cluster = self.volume.root_cluster
        entry = None
        for component in components:
            entry = self.find_entry(component, cluster)
            if entry is None:
                raise Fat32Error(f"no such file or directory: {component!r}")
            cluster = entry.first_cluster
        return entry

    def entry_from_path(self, path):
        """The entry at ``path``; ``None`` stands for the root directory."""
        return self._walk(split_path(path))

    def first_cluster_of(self, path):
        """The first cluster of the file or directory at ``path``."""
        if path == "/":
            return self.volume.root_cluster
        entry = self.entry_from_path(path)
        return self.volume.root_cluster if entry is None else entry.first_cluster

    def modify_entry(self, path, entry):
        """Replace the entry describing ``path`` with ``entry``."""
        parent = self._walk(split_path(parent_directory(path)))
        cluster = self.volume.root_cluster if parent is None else parent.first_cluster
        self.replace_entry(filename_of(path), cluster, entry)

    def add_entry(self, dir_path, entry):
        """Put ``entry`` in the first free slot of the directory at ``dir_path``.

        A new cluster is chained onto the directory when every slot is taken.
        """
        first = self.first_cluster_of(dir_path)
        last = first
        for cluster in self.volume.cluster_chain(first):
            last = cluster
            data = self.volume.read_cluster(cluster)
            for position, existing in enumerate(self._entries(data)):
                if existing.is_end or existing.is_deleted:
                    buffer = bytearray(data)
                    start = position * DIRENTRY_SIZE
                    buffer[start:start + DIRENTRY_SIZE] = entry.to_bytes()
                    self.volume.write_cluster(cluster, buffer)
                    return

        new_cluster = self.volume.allocate_cluster(last)
        buffer = bytearray(self.volume.bytes_per_cluster)
        buffer[:DIRENTRY_SIZE] = entry.to_bytes()
        self.volume.write_cluster(new_cluster, buffer)