"""NUL-terminated byte string helpers.

Strings are bytes-like values; anything after the first NUL byte is ignored.
Functions that locate a byte return its index, or ``None`` when absent.
"""

from __future__ import annotations

from itertools import islice


def _cstr(s) -> bytes:
    data = bytes(s)
    end = data.find(0)
    return data if end < 0 else data[:end]


def strlen(s):
    """Number of bytes before the first NUL."""
    return len(_cstr(s))


def strcmp(a, b):
    """Compare two strings; the sign of the result orders them."""
    for x, y in zip(_cstr(a) + b"\0", _cstr(b) + b"\0"):
        if x != y:
            return x - y
    return 0


def strncmp(a, b, n):
    """Compare at most ``n`` bytes of two strings."""
    for x, y in islice(zip(_cstr(a) + b"\0", _cstr(b) + b"\0"), n):
        if x != y:
            return x - y
        if x == 0:
            return 0
    return 0


def strchr(s, c):
    """Index of the first ``c`` before the terminator."""
    index = _cstr(s).find(c)
    return None if index < 0 else index


def strrchr(s, c):
    """Index of the last ``c`` before the terminator."""
    index = _cstr(s).rfind(c)
    return None if index < 0 else index


def strspn(s, accept):
    """Length of the leading run of bytes found in ``accept``."""
    allowed = set(_cstr(accept))
    text = _cstr(s)
    return next((i for i, byte in enumerate(text) if byte not in allowed), len(text))


def strcspn(s, reject):
    """Length of the leading run of bytes not found in ``reject``."""
    stops = set(_cstr(reject))
    text = _cstr(s)
    return next((i for i, byte in enumerate(text) if byte in stops), len(text))


def strpbrk(s, accept):
    """Index of the first byte found in ``accept``."""
    wanted = set(_cstr(accept))
    return next((i for i, byte in enumerate(_cstr(s)) if byte in wanted), None)


def strstr(haystack, needle):
    """Index of the first occurrence of ``needle``; an empty needle matches at 0."""
    index = _cstr(haystack).find(_cstr(needle))
    return None if index < 0 else index


def memchr(s, c, n):
    """Index of the first ``c`` within the first ``n`` bytes, NULs included."""
    data = bytes(s)
    if n > len(data):
        raise ValueError("n exceeds the buffer length")
    index = data.find(c, 0, n)
    return None if index < 0 else index


def memcmp(a, b, n):
    """Compare the first ``n`` bytes: -1, 0 or 1."""
    left, right = bytes(a), bytes(b)
    if n > len(left) or n > len(right):
        raise ValueError("n exceeds the buffer length")
    for x, y in zip(left[:n], right[:n]):
        if x != y:
            return -1 if x < y else 1
    return 0


def memmove(buffer, dest, src, n):
    """Copy ``n`` bytes inside ``buffer`` from ``src`` to ``dest``; overlap is safe."""
    if n == 0 or dest == src:
        return buffer
    for offset in (dest, src):
        if offset < 0 or offset + n > len(buffer):
            raise ValueError("range lies outside the buffer")
    buffer[dest:dest + n] = buffer[src:src + n]
    return buffer


def strtok(s, delimiters):
    """Yield the non-empty tokens of ``s`` separated by bytes in ``delimiters``."""
    stops = set(_cstr(delimiters))
    token = bytearray()
    for byte in _cstr(s):
        if byte in stops:
            if token:
                yield bytes(token)
                token.clear()
        else:
            token.append(byte)
    if token:
        yield bytes(token)


def strncat(dest, src, n):
    """Return ``dest`` followed by at most ``n`` bytes of ``src``."""
    return _cstr(dest) + _cstr(src)[:n]