"""FAT32 short names, long-name characters and path helpers."""

from __future__ import annotations

NAMEEXT_SIZE = 11
NAME_SIZE = 8
MAX_SHORT_NAME = 12
_SPACE = 0x20


def utf16_to_ascii(code):
    """Map one UTF-16 code unit to an ASCII character, or ``?`` beyond ASCII."""
    if code <= 0x7F:
        return chr(code & 0x7F)
    return "?"


def nameext_to_name(nameext):
    """Turn an 11-byte space-padded short name into a lower-case file name.

    Returns ``None`` for an entry whose first byte is a space.
    """
    raw = nameext.encode("latin-1") if isinstance(nameext, str) else bytes(nameext)
    raw = raw[:NAMEEXT_SIZE]
    if not raw or raw[0] == _SPACE:
        return None

    out = bytearray()
    before_extension = True
    in_spaces = False
    in_extension = False

    for position, byte in enumerate(raw):
        if before_extension:
            if byte == _SPACE:
                before_extension = False
                in_spaces = True
                out.append(ord("."))
            elif position == NAME_SIZE:
                before_extension = False
                in_spaces = True
                out += bytes((ord("."), byte))
                in_extension = True
            else:
                out.append(byte)
        elif in_spaces:
            if byte != _SPACE:
                in_spaces = False
                in_extension = True
                out.append(byte)
        elif in_extension:
            if byte == _SPACE:
                break
            out.append(byte)

    if out.endswith(b"."):
        del out[-1]
    return bytes(out).lower().decode("latin-1")


def is_valid_filename(filename):
    """Tell whether ``filename`` fits the 8.3 short-name rules."""
    if not 0 < len(filename) <= MAX_SHORT_NAME:
        return False
    dot_found = False
    last = len(filename) - 1
    for position, char in enumerate(filename):
        if char == ".":
            if dot_found or position in (0, last):
                return False
            dot_found = True
        elif not (char.isascii() and char.isalnum()):
            return False
    return True


def name_to_nameext(filename):
    """Encode ``filename`` as an 11-byte upper-case, space-padded short name."""
    if not is_valid_filename(filename):
        raise ValueError(f"invalid short file name: {filename!r}")

    nameext = bytearray(b" " * NAMEEXT_SIZE)
    position = 0
    length = len(filename)

    slot = 0
    while position < length and slot < NAME_SIZE and filename[position] != ".":
        nameext[slot] = ord(filename[position].upper())
        position += 1
        slot += 1

    if position < length and filename[position] == ".":
        position += 1

    slot = NAME_SIZE
    while position < length and slot < NAMEEXT_SIZE:
        nameext[slot] = ord(filename[position].upper())
        position += 1
        slot += 1

    return bytes(nameext)


def parent_directory(path):
    """The directory part of ``path``, keeping its trailing slash."""
    end = len(path.rstrip("/"))
    last_slash = path.rfind("/", 0, end)
    if last_slash < 0:
        return ""
    return path[:last_slash + 1]


def filename_of(path):
    """The part of ``path`` after its last slash."""
    return path[path.rfind("/") + 1:]


def split_path(path):
    """The non-empty components of ``path`` split on slashes."""
    return [part for part in path.split("/") if part]