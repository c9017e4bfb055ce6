"""A buddy allocator over a simulated, page-backed address range."""

from __future__ import annotations

from dataclasses import dataclass

PAGE_SIZE = 4096
MIN_BLOCK_SIZE = 64
MAX_ORDER = 16
HEADER_SIZE = 32


class AllocatorError(Exception):
    """Raised on bad allocator parameters, bad frees or exhausted memory."""


def _is_power_of_two(value: int) -> bool:
    return value & (value - 1) == 0


def size_to_order(size):
    """Smallest order whose block holds ``size`` bytes, capped at the top order."""
    normalized = max(size, MIN_BLOCK_SIZE)
    order = 0
    while (MIN_BLOCK_SIZE << order) < normalized and order < MAX_ORDER - 1:
        order += 1
    return order


def order_to_size(order):
    """Size in bytes of a block of ``order``."""
    if order < 0:
        raise ValueError("order must not be negative")
    return MIN_BLOCK_SIZE << order


def align_forward(value, alignment):
    """Round ``value`` up to a multiple of ``alignment``, a power of two."""
    if alignment <= 0 or not _is_power_of_two(alignment):
        raise ValueError("alignment must be a positive power of two")
    modulo = value & (alignment - 1)
    if modulo:
        value += alignment - modulo
    return value


@dataclass
class _Block:
    size: int
    used: bool = False


class BuddyAllocator:
    """Hands out addresses from a region that grows a page at a time.

    Every block starts with a header of ``alignment`` bytes; the address
    returned by :meth:`alloc` points just past it.
    """

    def __init__(self, initial_size=8, alignment=16, base=0):
        if initial_size <= 0 or not _is_power_of_two(initial_size):
            raise AllocatorError("initial size must be a power of two")
        if alignment < 0 or not _is_power_of_two(alignment):
            raise AllocatorError("alignment must be a power of two")
        alignment = max(alignment, HEADER_SIZE)
        if base % alignment:
            raise AllocatorError("base address is not aligned")

        size = align_forward(initial_size, PAGE_SIZE)
        self.alignment = alignment
        self.base = base
        self.pages = max(1, size // PAGE_SIZE)
        self.tail = base + size
        self._blocks = {base: _Block(size)}
        self._free_lists = [[] for _ in range(MAX_ORDER)]
        self._listed = {}
        self._insert_free(base)

    def _insert_free(self, address: int) -> None:
        order = size_to_order(self._blocks[address].size)
        self._free_lists[order].insert(0, address)
        self._listed[address] = order

    def _remove_free(self, address: int) -> None:
        order = self._listed.pop(address)
        self._free_lists[order].remove(address)

    def _split(self, address: int, target_size: int) -> None:
        block = self._blocks[address]
        while block.size // 2 >= target_size and block.size // 2 >= MIN_BLOCK_SIZE:
            half = block.size // 2
            block.size = half
            self._blocks[address + half] = _Block(half)
            self._insert_free(address + half)

    def _coalesce(self, address: int) -> None:
        block = self._blocks[address]
        listed = address in self._listed
        if listed:
            self._remove_free(address)
        while True:
            following = address + block.size
            if following == self.tail:
                break
            neighbour = self._blocks.get(following)
            if neighbour is None:
                break
            if neighbour.size == block.size and not block.used and not neighbour.used:
                self._remove_free(following)
                del self._blocks[following]
                block.size *= 2
            else:
                break
        if listed:
            self._insert_free(address)

    def _allocate(self, size: int):
        target = size_to_order(size)
        for order in range(target, MAX_ORDER):
            if self._free_lists[order]:
                address = self._free_lists[order][0]
                self._remove_free(address)
                self._split(address, order_to_size(target))
                self._blocks[address].used = True
                return address
        return None

    def expand(self, size):
        """Grow the region by ``size`` bytes rounded up to whole pages."""
        size = align_forward(size, PAGE_SIZE)
        if size <= 0:
            raise ValueError("expansion size must be positive")
        self.pages += size // PAGE_SIZE
        address = self.tail
        self._blocks[address] = _Block(size)
        self.tail += size
        self._insert_free(address)
        self._coalesce(self.base)

    def alloc(self, size):
        """Return the address of a fresh block holding at least ``size`` bytes."""
        if size < 0:
            raise ValueError("size must not be negative")
        adjusted = size + self.alignment
        address = self._allocate(adjusted)
        if address is None:
            self.expand(adjusted)
            address = self._allocate(adjusted)
            if address is None:
                raise AllocatorError("out of memory")
        return address + self.alignment

    def free(self, address):
        """Release the block at ``address``; ``None`` is ignored."""
        if address is None:
            return
        header = address - self.alignment
        block = self._blocks.get(header)
        if block is None or not block.used:
            raise AllocatorError(f"address {address:#x} is not an allocated block")
        block.used = False
        self._coalesce(header)
        self._insert_free(header)

    def free_blocks(self):
        """The free blocks as ``(address, size)`` pairs in address order."""
        return sorted((address, self._blocks[address].size) for address in self._listed)