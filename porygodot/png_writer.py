"""
Minimal RGBA PNG encoder.

Output is always 8-bit RGBA (color type 6), non-interlaced, with a single
IDAT chunk and no ancillary chunks, so the same pixels always produce the
same bytes. Scanlines use filter type 0 (None).
"""

import struct
import zlib
from itertools import accumulate
from typing import List

from .utils import PathLike, write_bytes

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
ZLIB_HEADER = b"\x78\x9c"
COMPRESSION_LEVEL = 6

CRC32_POLYNOMIAL = 0xEDB88320
ADLER_MOD = 65521
# zlib NMAX
ADLER_BLOCK = 5552


def _make_crc_table() -> List[int]:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            c = (CRC32_POLYNOMIAL ^ (c >> 1)) if c & 1 else (c >> 1)
        table.append(c)
    return table


_CRC_TABLE = _make_crc_table()


def crc32(data: bytes, crc: int = 0) -> int:
    """PNG/zlib CRC-32; pass a previous result as `crc` to continue it."""
    c = crc ^ 0xFFFFFFFF
    table = _CRC_TABLE
    for byte in data:
        c = table[(c ^ byte) & 0xFF] ^ (c >> 8)
    return c ^ 0xFFFFFFFF


def adler32(data: bytes) -> int:
    """zlib Adler-32 checksum."""
    a, b = 1, 0
    for start in range(0, len(data), ADLER_BLOCK):
        block = data[start:start + ADLER_BLOCK]
        # b gains a once per byte, plus the running sum of the block
        b += len(block) * a + sum(accumulate(block))
        a += sum(block)
        a %= ADLER_MOD
        b %= ADLER_MOD
    return (b << 16) | a


def _chunk(chunk_type: bytes, data: bytes) -> bytes:
    crc = crc32(data, crc32(chunk_type))
    return struct.pack(">I", len(data)) + chunk_type + data + struct.pack(">I", crc)


def _filter_scanlines(rgba: bytes, width: int, height: int) -> bytes:
    stride = width * 4
    out = bytearray()
    for y in range(height):
        out.append(0)
        out += rgba[y * stride:(y + 1) * stride]
    return bytes(out)


def _zlib_stream(raw: bytes) -> bytes:
    compressor = zlib.compressobj(COMPRESSION_LEVEL, zlib.DEFLATED, -15)
    deflated = compressor.compress(raw) + compressor.flush()
    return ZLIB_HEADER + deflated + struct.pack(">I", adler32(raw))


def encode_png(rgba: bytes, width: int, height: int) -> bytes:
    """
    Encode an RGBA buffer as PNG bytes.

    Args:
        rgba: Row-major pixels, 4 bytes each
        width: Image width in pixels
        height: Image height in pixels

    Raises:
        ValueError: If the buffer size does not match the dimensions
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid PNG size {width}x{height}")
    expected = width * height * 4
    if len(rgba) != expected:
        raise ValueError(
            f"RGBA buffer has {len(rgba)} bytes, expected {expected} for {width}x{height}"
        )

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    idat = _zlib_stream(_filter_scanlines(bytes(rgba), width, height))

    return (
        PNG_SIGNATURE
        + _chunk(b"IHDR", ihdr)
        + _chunk(b"IDAT", idat)
        + _chunk(b"IEND", b"")
    )


def write_png(rgba: bytes, width: int, height: int, output_path: PathLike) -> None:
    """
    Encode and write a PNG file, creating parent directories.

    Raises:
        ValueError: If the buffer size does not match the dimensions
        IOFailure: If the file cannot be written
    """
    write_bytes(output_path, encode_png(rgba, width, height))
