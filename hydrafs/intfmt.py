"""Integer conversion for printf-style formatting."""

from __future__ import annotations

import enum

NTOA_BUFFER_SIZE = 32


class FormatFlags(enum.IntFlag):
    """Flags gathered from a conversion specification."""

    NONE = 0
    ZEROPAD = 1 << 0
    LEFT = 1 << 1
    PLUS = 1 << 2
    SPACE = 1 << 3
    HASH = 1 << 4
    UPPERCASE = 1 << 5
    CHAR = 1 << 6
    SHORT = 1 << 7
    LONG = 1 << 8
    LONG_LONG = 1 << 9
    PRECISION = 1 << 10
    ADAPT_EXP = 1 << 11


def pad_reversed(digits, width, flags):
    """Reverse ``digits`` (built least significant first) and pad to ``width``.

    Spaces go in front unless the LEFT or ZEROPAD flag is set; with LEFT they
    go behind.
    """
    flags = FormatFlags(flags)
    text = "".join(reversed(digits))
    if flags & FormatFlags.LEFT:
        return text.ljust(width)
    if flags & FormatFlags.ZEROPAD:
        return text
    return text.rjust(width)


def _sign_and_pad(buf, negative, base, precision, width, flags):
    if not flags & FormatFlags.LEFT:
        if width and flags & FormatFlags.ZEROPAD and (
            negative or flags & (FormatFlags.PLUS | FormatFlags.SPACE)
        ):
            width -= 1
        while len(buf) < precision and len(buf) < NTOA_BUFFER_SIZE:
            buf.append("0")
        while flags & FormatFlags.ZEROPAD and len(buf) < width and len(buf) < NTOA_BUFFER_SIZE:
            buf.append("0")

    if flags & FormatFlags.HASH:
        if not flags & FormatFlags.PRECISION and buf and len(buf) in (precision, width):
            buf.pop()
            if buf and base == 16:
                buf.pop()
        room = len(buf) < NTOA_BUFFER_SIZE
        if base == 16 and room:
            buf.append("X" if flags & FormatFlags.UPPERCASE else "x")
        elif base == 2 and room:
            buf.append("b")
        if len(buf) < NTOA_BUFFER_SIZE:
            buf.append("0")

    if len(buf) < NTOA_BUFFER_SIZE:
        if negative:
            buf.append("-")
        elif flags & FormatFlags.PLUS:
            buf.append("+")
        elif flags & FormatFlags.SPACE:
            buf.append(" ")

    return pad_reversed(buf, width, flags)


def format_integer(value, base, precision, width, flags):
    """Render ``value`` in ``base`` with the given precision, width and flags."""
    if base < 2 or base > 36:
        raise ValueError("base must lie between 2 and 36")
    flags = FormatFlags(flags)
    negative = value < 0
    magnitude = -value if negative else value

    if not magnitude:
        flags &= ~FormatFlags.HASH

    letter = ord("A" if flags & FormatFlags.UPPERCASE else "a")
    buf = []
    if not flags & FormatFlags.PRECISION or magnitude:
        while True:
            digit = magnitude % base
            buf.append(chr(ord("0") + digit) if digit < 10 else chr(letter + digit - 10))
            magnitude //= base
            if not magnitude or len(buf) >= NTOA_BUFFER_SIZE:
                break

    return _sign_and_pad(buf, negative, base, precision, width, flags)