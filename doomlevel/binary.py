"""
Sequential little-endian reader over an immutable byte buffer.

Every WAD structure is a packed run of fixed-width fields, so the cursor only
needs the handful of primitives below plus a fixed-length string reader for
the 8-byte lump/texture names.
"""

import struct
from typing import Callable, TypeVar

from doomlevel.errors import MalformedRecord, OutOfRangeRead

T = TypeVar("T")

_U8  = struct.Struct("<B")
_I16 = struct.Struct("<h")
_U16 = struct.Struct("<H")
_I32 = struct.Struct("<i")
_U32 = struct.Struct("<I")


class BinaryCursor:
    """
    Reads primitives from *data* starting at *offset*.

    The cursor never wraps or pads: any read that would cross the end of the
    buffer raises OutOfRangeRead and leaves the position untouched.
    """

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = data
        self.offset = offset

    def __len__(self) -> int:
        return len(self._data)

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def remaining(self) -> int:
        return len(self._data) - self.offset

    def at_end(self) -> bool:
        return self.offset >= len(self._data)

    def seek(self, offset: int) -> None:
        if offset < 0 or offset > len(self._data):
            raise OutOfRangeRead(
                f"seek to {offset} outside buffer of {len(self._data)} bytes"
            )
        self.offset = offset

    def _unpack(self, fmt: struct.Struct) -> int:
        end = self.offset + fmt.size
        if self.offset < 0 or end > len(self._data):
            raise OutOfRangeRead(
                f"read of {fmt.size} bytes at offset {self.offset} "
                f"past end of {len(self._data)}-byte buffer"
            )
        value, = fmt.unpack_from(self._data, self.offset)
        self.offset = end
        return value

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_i16(self) -> int:
        return self._unpack(_I16)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_bytes(self, n: int) -> bytes:
        end = self.offset + n
        if n < 0 or end > len(self._data):
            raise OutOfRangeRead(
                f"read of {n} bytes at offset {self.offset} "
                f"past end of {len(self._data)}-byte buffer"
            )
        raw = self._data[self.offset:end]
        self.offset = end
        return raw

    def read_fixed_string(self, n: int) -> str:
        """
        Read exactly *n* bytes as ASCII and cut at the first NUL.

        The cursor always advances by *n*, even when the name is shorter.
        """
        raw = self.read_bytes(n)
        return raw.split(b"\x00", 1)[0].decode("ascii", errors="replace")

    def read_all(self, decoder: Callable[["BinaryCursor", int], T]) -> list[T]:
        """
        Call ``decoder(cursor, i)`` until the cursor reaches the end.

        A trailing partial record makes the last decode run off the end and
        raise OutOfRangeRead.
        """
        result: list[T] = []
        i = 0
        while not self.at_end():
            result.append(decoder(self, i))
            i += 1
        return result


def read_records(
    data: bytes,
    record_size: int,
    decoder: Callable[[BinaryCursor, int], T],
    lump_name: str = "lump",
) -> list[T]:
    """
    Decode a lump made of fixed-size records.

    The size check happens before decoding so a truncated lump is reported as
    MalformedRecord rather than as a read past the end.
    """
    if len(data) % record_size != 0:
        raise MalformedRecord(
            f"{lump_name}: size {len(data)} is not a multiple of "
            f"record size {record_size}"
        )
    records = BinaryCursor(data).read_all(decoder)
    if len(records) != len(data) // record_size:
        raise MalformedRecord(
            f"{lump_name}: decoded {len(records)} records from "
            f"{len(data) // record_size} of {record_size} bytes"
        )
    return records
