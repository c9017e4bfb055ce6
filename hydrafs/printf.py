"""printf-style formatting with C conversion rules.

Integers are wrapped to the C type chosen by the length modifier
(``int`` by default, ``char`` for ``hh``, ``short`` for ``h`` and a
64-bit type for ``l``, ``ll``, ``t``, ``j`` and ``z``).
"""

from __future__ import annotations

import re
import sys

from hydrafs.floatfmt import format_exponential, format_fixed
from hydrafs.intfmt import FormatFlags, format_integer

_SPEC = re.compile(
    r"%(?P<flags>[-+ #0]*)(?P<width>\d+|\*)?"
    r"(?P<dot>\.(?P<precision>\d+|\*)?)?"
    r"(?P<length>hh|h|ll|l|t|j|z)?(?P<conv>.)?",
    re.DOTALL,
)

_FLAG_CHARS = {
    "0": FormatFlags.ZEROPAD,
    "-": FormatFlags.LEFT,
    "+": FormatFlags.PLUS,
    " ": FormatFlags.SPACE,
    "#": FormatFlags.HASH,
}

_LENGTH_BITS = {None: 32, "hh": 8, "h": 16, "l": 64, "ll": 64, "t": 64, "j": 64, "z": 64}
_LENGTH_FLAGS = {
    None: FormatFlags.NONE,
    "hh": FormatFlags.SHORT | FormatFlags.CHAR,
    "h": FormatFlags.SHORT,
    "l": FormatFlags.LONG,
    "ll": FormatFlags.LONG | FormatFlags.LONG_LONG,
    "t": FormatFlags.LONG,
    "j": FormatFlags.LONG,
    "z": FormatFlags.LONG,
}
_INTEGER_BASES = {"d": 10, "i": 10, "u": 10, "x": 16, "X": 16, "o": 8, "b": 2}
_POINTER_BITS = 64
_POINTER_WIDTH = _POINTER_BITS // 4


def _take(args):
    try:
        return next(args)
    except StopIteration:
        raise TypeError("not enough arguments for format string") from None


def _wrap(value, bits: int, signed: bool) -> int:
    value = int(value) & ((1 << bits) - 1)
    if signed and value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _text(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("latin-1")
    return str(value).partition("\0")[0]


def _pad(text: str, width: int, flags: FormatFlags) -> str:
    padding = " " * max(width - len(text), 0)
    return text + padding if flags & FormatFlags.LEFT else padding + text


def _convert(match, args) -> str:
    flags = FormatFlags.NONE
    for char in match["flags"]:
        flags |= _FLAG_CHARS[char]

    width = 0
    if match["width"] == "*":
        requested = int(_take(args))
        if requested < 0:
            flags |= FormatFlags.LEFT
            width = -requested
        else:
            width = requested
    elif match["width"]:
        width = int(match["width"])

    precision = 0
    if match["dot"]:
        flags |= FormatFlags.PRECISION
        if match["precision"] == "*":
            precision = max(int(_take(args)), 0)
        elif match["precision"]:
            precision = int(match["precision"])

    length = match["length"]
    flags |= _LENGTH_FLAGS[length]
    conv = match["conv"]
    if conv is None:
        return ""

    if conv in _INTEGER_BASES:
        base = _INTEGER_BASES[conv]
        if base == 10:
            flags &= ~FormatFlags.HASH
        if conv == "X":
            flags |= FormatFlags.UPPERCASE
        signed = conv in ("d", "i")
        if not signed:
            flags &= ~(FormatFlags.PLUS | FormatFlags.SPACE)
        if flags & FormatFlags.PRECISION:
            flags &= ~FormatFlags.ZEROPAD
        value = _wrap(_take(args), _LENGTH_BITS[length], signed)
        return format_integer(value, base, precision, width, flags)

    if conv in ("f", "F"):
        if conv == "F":
            flags |= FormatFlags.UPPERCASE
        return format_fixed(float(_take(args)), precision, width, flags)

    if conv in ("e", "E", "g", "G"):
        if conv in ("g", "G"):
            flags |= FormatFlags.ADAPT_EXP
        if conv in ("E", "G"):
            flags |= FormatFlags.UPPERCASE
        return format_exponential(float(_take(args)), precision, width, flags)

    if conv == "c":
        value = _take(args)
        if isinstance(value, str):
            char = value[:1] or "\0"
        else:
            char = chr(int(value) & 0xFF)
        return _pad(char, width, flags)

    if conv == "s":
        text = _text(_take(args))
        if flags & FormatFlags.PRECISION:
            text = text[:precision]
        return _pad(text, width, flags)

    if conv == "p":
        flags |= FormatFlags.ZEROPAD | FormatFlags.UPPERCASE
        address = _wrap(_take(args), _POINTER_BITS, False)
        return format_integer(address, 16, precision, _POINTER_WIDTH, flags)

    # "%%" and unknown conversions both emit the conversion character itself.
    return conv


def cformat(fmt, *args):
    """Format ``args`` according to the C-style format string ``fmt``."""
    fmt = fmt.partition("\0")[0]
    remaining = iter(args)
    return _SPEC.sub(lambda match: _convert(match, remaining), fmt)


def snformat(size, fmt, *args):
    """Format into a buffer of ``size`` characters.

    Returns ``(text, length)``: the text that fits, leaving room for the
    terminator, and the length the full output would have had.
    """
    text = cformat(fmt, *args)
    if size <= 0:
        return "", len(text)
    return text[:size - 1], len(text)


def fprintf(stream, fmt, *args):
    """Write formatted output to ``stream``; NUL characters are dropped.

    Returns the number of characters produced, NULs included.
    """
    text = cformat(fmt, *args)
    stream.write(text.replace("\0", ""))
    return len(text)


def printf(fmt, *args):
    """Write formatted output to standard output."""
    return fprintf(sys.stdout, fmt, *args)