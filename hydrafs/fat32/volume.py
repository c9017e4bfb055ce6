"""Cluster and allocation-table access for a FAT32 volume."""

from __future__ import annotations

import struct

from hydrafs.fat32.structures import BootSector, BootSectorError

END_OF_CHAIN = 0x0FFFFFF8
FIRST_DATA_CLUSTER = 2
_FAT_ENTRY = struct.Struct("<I")


class Fat32Error(Exception):
    """Raised when a FAT32 volume cannot carry out a request."""


class Fat32Volume:
    """A FAT32 volume on a virtual block device, described by its boot sector."""

    def __init__(self, device, boot_sector):
        self.device = device
        self.boot_sector = boot_sector

    @classmethod
    def scan(cls, device):
        """Read and check the boot sector of ``device`` and return the volume."""
        try:
            boot_sector = BootSector.from_bytes(device.read(0, 1))
            boot_sector.verify(device.block_size)
        except BootSectorError as exc:
            raise Fat32Error(f"not a FAT32 volume: {exc}") from exc
        return cls(device, boot_sector)

    @property
    def bytes_per_cluster(self) -> int:
        return self.boot_sector.bytes_per_cluster

    @property
    def root_cluster(self) -> int:
        return self.boot_sector.root_cluster

    def _cluster_lba(self, cluster: int) -> int:
        if cluster < FIRST_DATA_CLUSTER:
            raise Fat32Error(f"cluster {cluster} is not a data cluster")
        return self.boot_sector.data_start + cluster - FIRST_DATA_CLUSTER

    def read_cluster(self, cluster):
        """Return the contents of data cluster ``cluster``."""
        return self.device.read(self._cluster_lba(cluster), self.boot_sector.sectors_per_cluster)

    def write_cluster(self, cluster, data):
        """Replace data cluster ``cluster`` with ``data``, exactly one cluster long."""
        if len(data) != self.bytes_per_cluster:
            raise ValueError("data must be exactly one cluster long")
        self.device.write(self._cluster_lba(cluster), bytes(data))

    def _fat_position(self, cluster: int) -> tuple[int, int]:
        offset = cluster * _FAT_ENTRY.size
        sector_size = self.boot_sector.bytes_per_sector
        lba = self.boot_sector.reserved_sector_count + offset // sector_size
        return lba, offset % sector_size

    def read_fat_entry(self, cluster):
        """The allocation-table value stored for ``cluster``."""
        lba, within = self._fat_position(cluster)
        (value,) = _FAT_ENTRY.unpack_from(self.device.read(lba, 1), within)
        return value

    def write_fat_entry(self, cluster, value):
        """Store ``value`` in the allocation table for ``cluster``."""
        lba, within = self._fat_position(cluster)
        sector = bytearray(self.device.read(lba, 1))
        _FAT_ENTRY.pack_into(sector, within, value)
        self.device.write(lba, sector)

    def cluster_chain(self, start):
        """Yield the clusters of the chain beginning at ``start``."""
        seen = set()
        current = start
        while current < END_OF_CHAIN:
            if current in seen:
                raise Fat32Error(f"cluster chain loops back to cluster {current}")
            seen.add(current)
            yield current
            current = self.read_fat_entry(current)

    def find_last_cluster(self, start):
        """The final cluster of the chain beginning at ``start``."""
        last = start
        for last in self.cluster_chain(start):
            pass
        return last

    def allocate_cluster(self, last_cluster):
        """Claim the first free cluster and link it after ``last_cluster``.

        Pass ``None`` or ``END_OF_CHAIN`` to start a new chain.
        """
        start = self.boot_sector.reserved_sector_count
        fat_sectors = self.boot_sector.fat_size
        table = bytearray(self.device.read(start, fat_sectors))
        count = len(table) // _FAT_ENTRY.size

        for cluster in range(FIRST_DATA_CLUSTER, count):
            if _FAT_ENTRY.unpack_from(table, cluster * _FAT_ENTRY.size)[0] == 0:
                _FAT_ENTRY.pack_into(table, cluster * _FAT_ENTRY.size, END_OF_CHAIN)
                break
        else:
            raise Fat32Error("no free cluster left")

        if last_cluster is not None and last_cluster != END_OF_CHAIN:
            if not 0 <= last_cluster < count:
                raise Fat32Error(f"cluster {last_cluster} is outside the table")
            _FAT_ENTRY.pack_into(table, last_cluster * _FAT_ENTRY.size, cluster)

        self.device.write(start, table)
        return cluster