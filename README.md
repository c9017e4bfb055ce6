# hydrafs

`hydrafs` reads and writes FAT32 volumes and MBR partition tables held on
block devices backed by ordinary byte buffers. It also carries a small set
of C-style helpers: NUL-terminated string routines, `strerror` messages, a
`printf`-style formatter and a buddy allocator model.

## Installation

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Block devices and partitions

`hydrafs.blockdev.BlockDevice` holds a buffer split into fixed-size blocks;
`read_block` and `write_block` raise `BlockDeviceError` for blocks outside
the device. `VirtualBlockDevice` is a view starting at an `lba_offset`, read
and written a whole number of blocks at a time.

```python
from hydrafs.blockdev import BlockDevice
from hydrafs.mbr import mbr_init, mbr_test

disk = BlockDevice(bytearray(image_bytes), 512)
if mbr_test(disk):                          # True when the 0xAA55 magic is present
    record = mbr_init(disk)                 # a MasterBootRecord
    partition = record.partition(0, disk)   # a VirtualBlockDevice
```

`MasterBootRecord.partition` raises `PartitionError` when the index is not
0 to 3 or the slot's partition type is zero.

## FAT32

```python
from hydrafs.fat32.filesystem import Fat32FileSystem, FileKind, FileMask, probe

if probe(partition):
    fs = Fat32FileSystem.mount(partition)
    fs.create("/notes.txt", FileMask.NONE, FileKind.FILE)
    fs.write("/notes.txt", b"hello")        # appends to the end of the file
    print(fs.read("/notes.txt", 0, 5))
    print(fs.stat("/notes.txt"))            # a FileInfo
    print(fs.listdir("/"))
    fs.delete("/notes.txt")
```

Other operations are `clear` (truncate to zero length), `readdir(path,
index)` and `set_mask`. Failures raise `Fat32Error`; `Fat32FileSystem.mount`
also raises it when the boot sector fails the checks of
`BootSector.verify`, which raises `BootSectorError` with a numeric `code`
naming the failed check.

Node-based access mirrors a driver interface: `open(path, action)` with an
`OpenAction` (`READ`, `WRITE`, `CLEAR`, `CREATE`) returns a `FileNode` that
`read_node`, `write_node`, `readdir_node` and `delete_node` work on,
advancing the node's offset.

Lower layers are usable on their own: `hydrafs.fat32.volume.Fat32Volume`
reads and writes clusters and allocation-table entries,
`hydrafs.fat32.directory.DirectoryTree` finds and rewrites directory
entries, `hydrafs.fat32.structures` parses the on-disk records and
`hydrafs.fat32.names` converts 8.3 short names and splits paths.

### Limits

- New entries get 8.3 short names only; long names are read but never
  created.
- Directories cannot be deleted, and freed directory slots do not release
  clusters.
- Dates and times are not tracked; every timestamp field is written as zero.
- There is no formatter for creating a new volume, and no command-line tool:
  the package is a library only.

## Helpers

```python
from hydrafs.printf import cformat, snformat
from hydrafs.strerror import strerror
from hydrafs.cstring import strtok, strspn
from hydrafs.allocator import BuddyAllocator

cformat("%-8s|%#06x|%.3f", "id", 255, 3.14159)
snformat(5, "%d", 123456)           # ('1234', 6)
strerror(2)                         # 'No such file or directory'
list(strtok(b"a,,b", b","))         # [b'a', b'b']
heap = BuddyAllocator(4096, 16, 0x10000)
address = heap.alloc(100)
heap.free(address)
heap.free_blocks()                  # [(address, size), ...]
```

`printf` and `fprintf` write the formatted text to standard output or to a
stream. `strerror` raises `ValueError` for unknown numbers, and the
allocator raises `AllocatorError` on bad parameters or bad frees.