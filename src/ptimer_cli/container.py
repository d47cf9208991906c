#!/usr/bin/env python3
"""
Container Format

Binary layout shared by the container writer and reader. All integers
are little-endian.

    header   : magic (8 bytes) | u32 schema version
    relation : tag (4 bytes) | u32 row count | u64 payload length | payload
    trailer  : sha256 of header and relations (32 bytes) | end marker (8 bytes)

Relations appear in the order META, STEP, LINK, ASET:

    META : str key | str value
    STEP : u32 ordinal | str id | str title | str body | u64 duration
           | u8 has_next | str next | u8 action code
    LINK : u32 step ordinal | u32 position | str asset id
    ASET : str id | str content type | u64 length | blob

Strings are stored as a u32 byte length followed by UTF-8 bytes.
"""

import hashlib
import struct
from typing import List, Tuple

from .errors import CorruptPackageError

MAGIC = b"PTIMER\x00\x00"
END_MARKER = b"PTIMREND"

SUPPORTED_SCHEMA_VERSIONS = (1,)

HEADER_FORMAT = "<8sI"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)

RELATION_FORMAT = "<4sIQ"

DIGEST_SIZE = hashlib.sha256().digest_size
TRAILER_SIZE = DIGEST_SIZE + len(END_MARKER)

META_TAG = b"META"
STEP_TAG = b"STEP"
LINK_TAG = b"LINK"
ASSET_TAG = b"ASET"


def checksum(content: bytes) -> bytes:
    return hashlib.sha256(content).digest()


def pack_header(version: int) -> bytes:
    return struct.pack(HEADER_FORMAT, MAGIC, version)


def pack_u8(value: int) -> bytes:
    return struct.pack("<B", value)


def pack_u32(value: int) -> bytes:
    return struct.pack("<I", value)


def pack_u64(value: int) -> bytes:
    return struct.pack("<Q", value)


def pack_str(value: str) -> bytes:
    encoded = value.encode("utf-8")
    return struct.pack("<I", len(encoded)) + encoded


def pack_blob(value: bytes) -> bytes:
    return struct.pack("<Q", len(value)) + value


def pack_relation(tag: bytes, rows: List[bytes]) -> bytes:
    """Frame encoded rows as one relation."""
    payload = b"".join(rows)
    return struct.pack(RELATION_FORMAT, tag, len(rows), len(payload)) + payload


def pack_trailer(content: bytes) -> bytes:
    return checksum(content) + END_MARKER


class Cursor:
    """
    Sequential reader over a byte buffer.

    Every read past the end of the buffer raises CorruptPackageError,
    which is how truncated relations are detected.
    """

    def __init__(self, data: bytes, context: str = "container"):
        self.data = data
        self.offset = 0
        self.context = context

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def take(self, size: int) -> bytes:
        if size < 0 or size > self.remaining:
            raise CorruptPackageError(
                f"Truncated {self.context}: needed {size} bytes at offset "
                f"{self.offset}, only {self.remaining} left"
            )
        chunk = self.data[self.offset:self.offset + size]
        self.offset += size
        return chunk

    def unpack(self, fmt: str) -> Tuple:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))

    def read_u8(self) -> int:
        return self.unpack("<B")[0]

    def read_u32(self) -> int:
        return self.unpack("<I")[0]

    def read_u64(self) -> int:
        return self.unpack("<Q")[0]

    def read_str(self) -> str:
        raw = self.take(self.read_u32())
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptPackageError(f"Invalid UTF-8 text in {self.context}: {e}") from e

    def read_blob(self) -> bytes:
        return self.take(self.read_u64())

    def expect_end(self):
        if self.remaining:
            raise CorruptPackageError(
                f"{self.remaining} unexpected trailing bytes in {self.context}"
            )


def read_relation(cursor: Cursor, tag: bytes) -> Tuple[int, Cursor]:
    """
    Read the next relation frame, which must carry ``tag``.

    Returns:
        Tuple of (row count, cursor over the relation payload)
    """
    found_tag, row_count, length = cursor.unpack(RELATION_FORMAT)
    if found_tag != tag:
        raise CorruptPackageError(
            f"Expected relation {tag.decode('ascii')}, found {found_tag!r}"
        )
    name = f"{tag.decode('ascii')} relation"
    return row_count, Cursor(cursor.take(length), name)
