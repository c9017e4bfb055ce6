"""FAT32 short names, on-disk structures, volume access, directories and the file-level API."""