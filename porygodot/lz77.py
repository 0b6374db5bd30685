"""
GBA BIOS LZ77 (type 0x10) decompression.

Compressed tileset graphics in ROM start with a 4-byte header: the type
byte 0x10 followed by the 24-bit decompressed size. The body is a series
of flag bytes, each describing the next eight blocks MSB first:
- 0 bit: one literal byte
- 1 bit: two bytes encoding a back-reference
    length = (b0 >> 4) + 3
    distance = ((b0 & 0xF) << 8 | b1) + 1
"""

from .binary_reader import read_u8, read_u32
from .constants import LZ77_TYPE
from .errors import TruncatedData


def lz77_decompress(data: bytes, offset: int = 0) -> bytes:
    """
    Decompress an LZ77 stream starting at `offset`.

    Raises:
        ValueError: If the type byte is not 0x10, or a back-reference points
            before the start of the output
        TruncatedData: If the stream ends before the declared size is produced
    """
    header = read_u32(data, offset)
    if header & 0xFF != LZ77_TYPE:
        raise ValueError(f"Not LZ77 data at 0x{offset:X} (type 0x{header & 0xFF:02X})")

    size = header >> 8
    out = bytearray()
    pos = offset + 4

    while len(out) < size:
        flags = read_u8(data, pos)
        pos += 1
        for bit in range(8):
            if len(out) >= size:
                break
            if flags & (0x80 >> bit):
                if pos + 2 > len(data):
                    raise TruncatedData("LZ77 back-reference", pos, 2, len(data) - pos)
                b0, b1 = data[pos], data[pos + 1]
                pos += 2
                length = (b0 >> 4) + 3
                distance = (((b0 & 0x0F) << 8) | b1) + 1
                if distance > len(out):
                    raise ValueError(
                        f"LZ77 back-reference distance {distance} exceeds output size {len(out)}"
                    )
                start = len(out) - distance
                # Copies may overlap the bytes being written
                for i in range(length):
                    out.append(out[start + i])
            else:
                out.append(read_u8(data, pos))
                pos += 1

    return bytes(out[:size])
