"""On-disk FAT32 structures: boot sector and directory entries."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from hydrafs.cstring import strncmp
from hydrafs.fat32.names import nameext_to_name, utf16_to_ascii

DIRENTRY_SIZE = 32
DELETED_MARKER = 0xE5
END_MARKER = 0x00
BOOT_SIGNATURE = 0xAA55
VALID_SECTOR_SIZES = (512, 1024, 2048, 4096)

_BOOT = struct.Struct("<3s8sHBHBHHBHHHIIIHHIHH12sBBBI11s8s420sH")
_DIRENTRY = struct.Struct("<11sBBBHHHHHHHI")
_LFN = struct.Struct("<B5HBBB6HH2H")
BOOT_SECTOR_SIZE = _BOOT.size


class Attribute(enum.IntFlag):
    """Directory entry attribute bits."""

    NONE = 0
    READ_ONLY = 0x01
    HIDDEN = 0x02
    SYSTEM = 0x04
    VOLUME_ID = 0x08
    DIRECTORY = 0x10
    ARCHIVE = 0x20
    LONG_NAME = 0x0F


class BootSectorError(ValueError):
    """Raised when a boot sector is malformed; ``code`` tells which check failed."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class BootSector:
    """The FAT32 boot sector with its BIOS parameter block."""

    jmp_boot: bytes
    oem_name: bytes
    bytes_per_sector: int
    sectors_per_cluster: int
    reserved_sector_count: int
    num_fats: int
    root_entry_count: int
    total_sectors_16: int
    media: int
    fat_size_16: int
    sectors_per_track: int
    num_heads: int
    hidden_sectors: int
    total_sectors_32: int
    fat_size_32: int
    ext_flags: int
    filesystem_version: int
    root_cluster: int
    filesystem_info: int
    backup_boot_sector: int
    zero1: bytes
    drive_num: int
    reserved: int
    boot_signature: int
    volume_id: int
    volume_label: bytes
    filesystem_type: bytes
    zero2: bytes
    signature: int

    @classmethod
    def from_bytes(cls, data):
        if len(data) < BOOT_SECTOR_SIZE:
            raise BootSectorError("boot sector is too short")
        return cls(*_BOOT.unpack_from(bytes(data)))

    @property
    def fat_size(self) -> int:
        """Sectors per FAT."""
        return self.fat_size_16 or self.fat_size_32

    @property
    def data_start(self) -> int:
        """First sector of the data region."""
        return self.reserved_sector_count + self.num_fats * self.fat_size

    @property
    def bytes_per_cluster(self) -> int:
        return self.sectors_per_cluster * self.bytes_per_sector

    def verify(self, bytes_per_sector):
        """Check that this is a usable FAT32 boot sector for the given sector size."""
        jmp = self.jmp_boot
        if not (jmp[0] == 0xEB and jmp[2] == 0x90) and jmp[0] != 0xE9:
            raise BootSectorError("no jump instruction", 1)
        if self.bytes_per_sector != bytes_per_sector:
            if self.bytes_per_sector in VALID_SECTOR_SIZES:
                raise BootSectorError("sector size differs from the device", 2)
            raise BootSectorError("invalid sector size", 3)
        spc = self.sectors_per_cluster
        if spc == 0 or spc & (spc - 1):
            raise BootSectorError("sectors per cluster is not a power of two", 4)
        if self.reserved_sector_count == 0:
            raise BootSectorError("no reserved sectors", 5)
        if self.root_entry_count != 0:
            raise BootSectorError("root entry count must be zero", 6)
        if self.total_sectors_16 == 0 and self.total_sectors_32 == 0:
            raise BootSectorError("total sector count is zero", 7)
        if self.media != 0xF0 and self.media < 0xF8:
            raise BootSectorError("invalid media descriptor", 8)
        if self.fat_size_16 != 0:
            raise BootSectorError("16-bit FAT size must be zero", 9)
        if self.filesystem_version != 0:
            raise BootSectorError("unsupported filesystem version", 12)
        if self.root_cluster < 2:
            raise BootSectorError("invalid root cluster", 13)
        if self.backup_boot_sector not in (0, 6):
            raise BootSectorError("invalid backup boot sector", 14)
        if self.reserved != 0:
            raise BootSectorError("reserved byte is not zero", 15)
        if strncmp(self.filesystem_type, b"FAT32", 5) != 0:
            raise BootSectorError("filesystem type is not FAT32", 16)
        if self.signature != BOOT_SIGNATURE:
            raise BootSectorError("missing boot signature", 17)


@dataclass
class DirectoryEntry:
    """A 32-byte short-name directory entry."""

    nameext: bytes = b" " * 11
    attr: int = 0
    reserved: int = 0
    creation_time_tenth: int = 0
    creation_time: int = 0
    creation_date: int = 0
    last_access_date: int = 0
    first_cluster_hi: int = 0
    write_time: int = 0
    write_date: int = 0
    first_cluster_low: int = 0
    file_size: int = 0

    @classmethod
    def from_bytes(cls, data):
        if len(data) < DIRENTRY_SIZE:
            raise ValueError("directory entry is too short")
        return cls(*_DIRENTRY.unpack_from(bytes(data)))

    def to_bytes(self):
        nameext = bytes(self.nameext)
        if len(nameext) != 11:
            raise ValueError("short name must be 11 bytes")
        return _DIRENTRY.pack(
            nameext, self.attr, self.reserved, self.creation_time_tenth,
            self.creation_time, self.creation_date, self.last_access_date,
            self.first_cluster_hi, self.write_time, self.write_date,
            self.first_cluster_low, self.file_size,
        )

    @property
    def first_cluster(self) -> int:
        return (self.first_cluster_hi << 16) | self.first_cluster_low

    @first_cluster.setter
    def first_cluster(self, cluster: int) -> None:
        self.first_cluster_hi = (cluster >> 16) & 0xFFFF
        self.first_cluster_low = cluster & 0xFFFF

    @property
    def is_end(self) -> bool:
        """True for the entry that ends a directory listing."""
        return self.nameext[0] == END_MARKER

    @property
    def is_deleted(self) -> bool:
        return self.nameext[0] == DELETED_MARKER

    @property
    def is_long_name(self) -> bool:
        return self.attr & Attribute.LONG_NAME == Attribute.LONG_NAME

    @property
    def is_directory(self) -> bool:
        return bool(self.attr & Attribute.DIRECTORY)

    @property
    def name(self):
        """The lower-case file name, or ``None`` for a blank short name."""
        return nameext_to_name(self.nameext)


@dataclass(frozen=True)
class LongNameEntry:
    """A long-file-name directory entry holding 13 UTF-16 code units."""

    ord: int
    name1: tuple
    attr: int
    type: int
    checksum: int
    name2: tuple
    first_cluster_low: int
    name3: tuple

    @classmethod
    def from_bytes(cls, data):
        if len(data) < DIRENTRY_SIZE:
            raise ValueError("long name entry is too short")
        fields = _LFN.unpack_from(bytes(data))
        return cls(
            ord=fields[0],
            name1=tuple(fields[1:6]),
            attr=fields[6],
            type=fields[7],
            checksum=fields[8],
            name2=tuple(fields[9:15]),
            first_cluster_low=fields[15],
            name3=tuple(fields[16:18]),
        )

    def text(self):
        """All 13 characters, terminator and padding included, as ASCII."""
        return "".join(utf16_to_ascii(code) for code in self.name1 + self.name2 + self.name3)