"""Floating-point conversion for printf-style formatting.

Both functions follow the flag conventions of :mod:`hydrafs.intfmt`: unless
``FormatFlags.PRECISION`` is set, ``precision`` is ignored and six digits
are used.
"""

from __future__ import annotations

import math
import struct

from hydrafs.intfmt import FormatFlags, format_integer, pad_reversed

FTOA_BUFFER_SIZE = 32
DEFAULT_FLOAT_PRECISION = 6
MAX_FLOAT = 1e9

_POW10 = tuple(10.0 ** exponent for exponent in range(10))
_DOUBLE = struct.Struct("<d")
_WORD = struct.Struct("<Q")
_U64 = (1 << 64) - 1


def _bits(value: float) -> int:
    return _WORD.unpack(_DOUBLE.pack(value))[0]


def _from_bits(bits: int) -> float:
    return _DOUBLE.unpack(_WORD.pack(bits & _U64))[0]


def _add_sign(buf: list, negative: bool, flags: FormatFlags) -> None:
    if len(buf) >= FTOA_BUFFER_SIZE:
        return
    if negative:
        buf.append("-")
    elif flags & FormatFlags.PLUS:
        buf.append("+")
    elif flags & FormatFlags.SPACE:
        buf.append(" ")


def format_fixed(value, precision, width, flags):
    """Render ``value`` in fixed-point notation (``%f``).

    Values beyond 1e9 in magnitude switch to exponential notation.
    """
    flags = FormatFlags(flags)
    value = float(value)

    if math.isnan(value):
        return pad_reversed("nan", width, flags)
    if value == -math.inf:
        return pad_reversed("fni-", width, flags)
    if value == math.inf:
        return pad_reversed("fni+" if flags & FormatFlags.PLUS else "fni", width, flags)

    if value > MAX_FLOAT or value < -MAX_FLOAT:
        return format_exponential(value, precision, width, flags)

    negative = value < 0
    if negative:
        value = -value

    if not flags & FormatFlags.PRECISION:
        precision = DEFAULT_FLOAT_PRECISION

    buf: list[str] = []
    # Precision beyond nine digits would overflow the fraction; pad with zeros.
    while len(buf) < FTOA_BUFFER_SIZE and precision > 9:
        buf.append("0")
        precision -= 1

    whole = int(value)
    scaled = (value - whole) * _POW10[precision]
    frac = int(scaled)
    diff = scaled - frac

    if diff > 0.5:
        frac += 1
        if frac >= _POW10[precision]:
            frac = 0
            whole += 1
    elif diff == 0.5 and (frac == 0 or frac & 1):
        frac += 1

    if precision == 0:
        diff = value - whole
        if (not diff < 0.5 or diff > 0.5) and whole & 1:
            whole += 1
    else:
        count = precision
        while len(buf) < FTOA_BUFFER_SIZE:
            count = (count - 1) & 0xFFFFFFFF
            buf.append(chr(ord("0") + frac % 10))
            frac //= 10
            if not frac:
                break
        while len(buf) < FTOA_BUFFER_SIZE and count > 0:
            count -= 1
            buf.append("0")
        if len(buf) < FTOA_BUFFER_SIZE:
            buf.append(".")

    while len(buf) < FTOA_BUFFER_SIZE:
        buf.append(chr(ord("0") + whole % 10))
        whole //= 10
        if not whole:
            break

    if not flags & FormatFlags.LEFT and flags & FormatFlags.ZEROPAD:
        if width and (negative or flags & (FormatFlags.PLUS | FormatFlags.SPACE)):
            width -= 1
        while len(buf) < width and len(buf) < FTOA_BUFFER_SIZE:
            buf.append("0")

    _add_sign(buf, negative, flags)
    return pad_reversed(buf, width, flags)


def _decimal_exponent(value: float) -> tuple[int, float]:
    """Estimate the decimal exponent of ``value`` and the matching power of ten."""
    bits = _bits(value)
    exp2 = ((bits >> 52) & 0x7FF) - 1023
    mantissa = _from_bits((bits & ((1 << 52) - 1)) | (1023 << 52))
    expval = int(0.1760912590558 + exp2 * 0.301029995663981 + (mantissa - 1.5) * 0.289529654602168)

    exp2 = int(expval * 3.321928094887362 + 0.5)
    z = expval * 2.302585092994046 - exp2 * 0.6931471805599453
    z2 = z * z
    power = _from_bits(((exp2 + 1023) & _U64) << 52)
    power *= 1 + 2 * z / (2 - z + (z2 / (6 + (z2 / (10 + z2 / 14)))))

    if value < power:
        expval -= 1
        power /= 10
    return expval, power


def format_exponential(value, precision, width, flags):
    """Render ``value`` in exponential notation (``%e``, or ``%g`` with ADAPT_EXP)."""
    flags = FormatFlags(flags)
    value = float(value)

    if math.isnan(value) or math.isinf(value):
        return format_fixed(value, precision, width, flags)

    negative = value < 0
    if negative:
        value = -value

    if not flags & FormatFlags.PRECISION:
        precision = DEFAULT_FLOAT_PRECISION

    expval, power = _decimal_exponent(value)

    minwidth = 4 if -100 < expval < 100 else 5

    if flags & FormatFlags.ADAPT_EXP:
        if 1e-4 <= value < 1e6:
            precision = precision - expval - 1 if precision > expval else 0
            flags |= FormatFlags.PRECISION
            minwidth = 0
            expval = 0
        elif precision > 0 and flags & FormatFlags.PRECISION:
            precision -= 1

    fwidth = width - minwidth if width > minwidth else 0
    if flags & FormatFlags.LEFT and minwidth:
        fwidth = 0

    if expval:
        value /= power

    text = format_fixed(-value if negative else value, precision, fwidth,
                        flags & ~FormatFlags.ADAPT_EXP)

    if minwidth:
        text += "E" if flags & FormatFlags.UPPERCASE else "e"
        text += format_integer(expval, 10, 0, minwidth - 1,
                               FormatFlags.ZEROPAD | FormatFlags.PLUS)
        if flags & FormatFlags.LEFT:
            text = text.ljust(width)
    return text