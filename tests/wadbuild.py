"""Helpers that assemble small WADs in memory for the tests."""

from __future__ import annotations

import struct


def name8(name: str) -> bytes:
    return name.encode("ascii")[:8].ljust(8, b"\x00")


def build_wad(lumps: list[tuple[str, bytes]], magic: bytes = b"PWAD") -> bytes:
    """Header, then lump data in order, then the directory."""
    body = bytearray()
    entries = []
    pos = 12
    for name, data in lumps:
        entries.append((pos, len(data), name))
        body += data
        pos += len(data)
    directory = b"".join(struct.pack("<ii", p, s) + name8(n) for p, s, n in entries)
    return struct.pack("<4sii", magic, len(lumps), pos) + bytes(body) + directory


# ---------------------------------------------------------------------------
# Level lumps
# ---------------------------------------------------------------------------

def vertexes(points) -> bytes:
    return b"".join(struct.pack("<hh", x, y) for x, y in points)


def sectors(rows) -> bytes:
    """rows: (floor, ceil, floorpic, ceilpic, light, special, tag)"""
    return b"".join(
        struct.pack("<hh", f, c) + name8(fp) + name8(cp) + struct.pack("<hhh", l, s, t)
        for f, c, fp, cp, l, s, t in rows
    )


def sidedefs(rows) -> bytes:
    """rows: (xoff, yoff, upper, lower, middle, sector)"""
    return b"".join(
        struct.pack("<hh", xo, yo) + name8(up) + name8(lo) + name8(mid) + struct.pack("<h", sec)
        for xo, yo, up, lo, mid, sec in rows
    )


def linedefs(rows) -> bytes:
    """rows: (v1, v2, flags, special, tag, front, back)"""
    return b"".join(struct.pack("<hhHhhhh", *row) for row in rows)


def segs(rows) -> bytes:
    """rows: (v1, v2, angle, linedef, direction, offset)"""
    return b"".join(struct.pack("<hhhhhh", *row) for row in rows)


def ssectors(rows) -> bytes:
    """rows: (count, first)"""
    return b"".join(struct.pack("<HH", *row) for row in rows)


def nodes(rows) -> bytes:
    """rows: (x, y, dx, dy, right_bbox(t,b,l,r), left_bbox(t,b,l,r), right, left)"""
    return b"".join(
        struct.pack("<hhhh", x, y, dx, dy) + struct.pack("<4h", *rb)
        + struct.pack("<4h", *lb) + struct.pack("<HH", rc, lc)
        for x, y, dx, dy, rb, lb, rc, lc in rows
    )


# A 64x64 square room split down x=32 by a single node.
#
#   v3(0,64) --- v5(32,64) --- v2(64,64)
#      |              :             |
#   v0(0,0)  ---  v4(32,0)  ---  v1(64,0)
SQUARE_VERTICES = [(0, 0), (64, 0), (64, 64), (0, 64), (32, 0), (32, 64)]
SQUARE_SECTORS = [(0, 128, "NUKAGE1", "CEIL", 160, 0, 0)]
SQUARE_SIDEDEFS = [
    (0, 0, "-", "-", "SW1WALL", 0),
    (0, 0, "-", "-", "WALL", 0),
    (0, 0, "-", "-", "WALL", 0),
    (0, 0, "-", "-", "WALL", 0),
]
# Clockwise so the front (right-hand) side faces into the room
SQUARE_LINEDEFS = [
    (0, 3, 1, 0, 0, 0, -1),
    (3, 2, 1, 0, 0, 1, -1),
    (2, 1, 1, 0, 0, 2, -1),
    (1, 0, 1, 0, 0, 3, -1),
]
SQUARE_SEGS = [
    # right leaf, x >= 32
    (5, 2, 0, 1, 0, 32),
    (2, 1, 0, 2, 0, 0),
    (1, 4, 0, 3, 0, 0),
    # left leaf, x <= 32
    (4, 0, 0, 3, 0, 32),
    (0, 3, 0, 0, 0, 0),
    (3, 5, 0, 1, 0, 0),
]
SQUARE_SSECTORS = [(3, 0), (3, 3)]
SQUARE_NODES = [
    (32, 0, 0, 64, (64, 0, 32, 64), (64, 0, 0, 32), 0x8000, 0x8001),
]


def level_lumps(
    marker: str = "E1M1",
    *,
    vertices=SQUARE_VERTICES,
    sector_rows=SQUARE_SECTORS,
    sidedef_rows=SQUARE_SIDEDEFS,
    linedef_rows=SQUARE_LINEDEFS,
    seg_rows=SQUARE_SEGS,
    ssector_rows=SQUARE_SSECTORS,
    node_rows=SQUARE_NODES,
    names=("THINGS", "LINEDEFS", "SIDEDEFS", "VERTEXES", "SEGS",
           "SSECTORS", "NODES", "SECTORS", "REJECT", "BLOCKMAP"),
) -> list[tuple[str, bytes]]:
    data = [
        struct.pack("<hhhhh", 16, 16, 90, 1, 7),
        linedefs(linedef_rows),
        sidedefs(sidedef_rows),
        vertexes(vertices),
        segs(seg_rows),
        ssectors(ssector_rows),
        nodes(node_rows),
        sectors(sector_rows),
        b"\x00",
        b"",
    ]
    return [(marker, b"")] + list(zip(names, data))


# ---------------------------------------------------------------------------
# Graphics lumps
# ---------------------------------------------------------------------------

def playpal() -> bytes:
    """Palette entry i is (i, 255 - i, i // 2); 14 copies like the real lump."""
    first = b"".join(bytes((i, 255 - i, i // 2)) for i in range(256))
    return first * 14


def colormap() -> bytes:
    """Row 0 shifts every index up by one; the other 33 rows are zero."""
    return bytes((i + 1) % 256 for i in range(256)) + bytes(256 * 33)


def picture(columns: list[list[tuple[int, bytes]]], height: int,
            left: int = 0, top: int = 0) -> bytes:
    """columns: per column, a list of (topdelta, data) posts."""
    width = len(columns)
    header = struct.pack("<HHhh", width, height, left, top)
    offsets = []
    body = bytearray()
    base = len(header) + 4 * width
    for posts in columns:
        offsets.append(base + len(body))
        for topdelta, run in posts:
            body += bytes((topdelta, len(run), 0)) + run + b"\x00"
        body += b"\xff"
    return header + struct.pack(f"<{width}I", *offsets) + bytes(body)


def solid_picture(width: int, height: int, value: int) -> bytes:
    return picture([[(0, bytes([value]) * height)] for _ in range(width)], height)


def pnames(names: list[str]) -> bytes:
    return struct.pack("<i", len(names)) + b"".join(name8(n) for n in names)


def texture_lump(defs) -> bytes:
    """defs: (name, width, height, [(originx, originy, patch), ...])"""
    records = []
    for name, width, height, patches in defs:
        rec = name8(name) + struct.pack("<iHHiH", 0, width, height, 0, len(patches))
        rec += b"".join(struct.pack("<hhHHH", ox, oy, p, 1, 0) for ox, oy, p in patches)
        records.append(rec)
    header_size = 4 + 4 * len(records)
    offsets = []
    pos = header_size
    for rec in records:
        offsets.append(pos)
        pos += len(rec)
    return struct.pack("<i", len(records)) + struct.pack(f"<{len(records)}i", *offsets) + b"".join(records)


def flat(value: int) -> bytes:
    return bytes([value]) * 4096


WALL_TEXTURES = [
    ("WALL", 16, 8, [(0, 0, 0), (8, 0, 1)]),
    ("SW1WALL", 8, 8, [(0, 0, 0)]),
    ("SW2WALL", 8, 16, [(0, 0, 1), (0, 8, 0)]),
]


def graphics_lumps() -> list[tuple[str, bytes]]:
    return [
        ("PLAYPAL", playpal()),
        ("COLORMAP", colormap()),
        ("PNAMES", pnames(["PATCHA", "PATCHB"])),
        ("TEXTURE1", texture_lump(WALL_TEXTURES)),
        ("P_START", b""),
        ("PATCHA", solid_picture(8, 8, 10)),
        ("PATCHB", solid_picture(8, 8, 20)),
        ("P_END", b""),
        ("F_START", b""),
        ("NUKAGE1", flat(1)),
        ("NUKAGE2", flat(2)),
        ("NUKAGE3", flat(3)),
        ("CEIL", flat(4)),
        ("F_END", b""),
    ]


def square_wad(marker: str = "E1M1") -> bytes:
    return build_wad(level_lumps(marker) + graphics_lumps(), magic=b"IWAD")
