"""FAT32 and MBR access on byte-backed block devices, with C-style string, formatting and allocator helpers."""

__version__ = "0.1.0"