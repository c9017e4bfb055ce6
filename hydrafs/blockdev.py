"""Memory-backed block devices and partition views over them."""

from __future__ import annotations

from dataclasses import dataclass


class BlockDeviceError(Exception):
    """Raised when a block lies outside the device."""


class BlockDevice:
    """A device of fixed-size blocks held in memory."""

    def __init__(self, data, block_size):
        if block_size <= 0:
            raise ValueError("block size must be positive")
        if len(data) % block_size:
            raise ValueError("device size must be a multiple of the block size")
        self._data = bytearray(data)
        self.block_size = block_size

    @property
    def num_blocks(self) -> int:
        return len(self._data) // self.block_size

    @property
    def data(self) -> bytes:
        """A copy of the whole device contents."""
        return bytes(self._data)

    def _span(self, lba: int) -> slice:
        if not 0 <= lba < self.num_blocks:
            raise BlockDeviceError(f"block {lba} is outside the device")
        start = lba * self.block_size
        return slice(start, start + self.block_size)

    def read_block(self, lba) -> bytes:
        """Return the contents of block ``lba``."""
        return bytes(self._data[self._span(lba)])

    def write_block(self, lba, data) -> None:
        """Replace block ``lba`` with ``data``, which must fill one block."""
        span = self._span(lba)
        if len(data) != self.block_size:
            raise ValueError("data must be exactly one block long")
        self._data[span] = data


@dataclass
class VirtualBlockDevice:
    """A view of a block device starting at ``lba_offset``, such as a partition."""

    device: BlockDevice
    lba_offset: int = 0
    partition_type: int = 0
    index: int = 0

    @property
    def block_size(self) -> int:
        return self.device.block_size

    def _absolute(self, lba: int, count: int):
        first = lba + self.lba_offset
        for current in range(first, first + count):
            if current + 1 > self.device.num_blocks:
                raise BlockDeviceError(f"block {current} is outside the device")
            yield current

    def read(self, lba, count) -> bytes:
        """Read ``count`` consecutive blocks starting at ``lba``."""
        return b"".join(self.device.read_block(block) for block in self._absolute(lba, count))

    def write(self, lba, data) -> None:
        """Write whole blocks of ``data`` starting at ``lba``."""
        size = self.block_size
        if len(data) % size:
            raise ValueError("data must be a whole number of blocks")
        view = memoryview(bytes(data))
        for number, block in enumerate(self._absolute(lba, len(data) // size)):
            self.device.write_block(block, view[number * size:(number + 1) * size])