"""
WAD container reader and level graph loader.

On-disk formats follow doomdata.h from the id Software source release:
  WAD header / directory      - w_wad.h (wadinfo_t, filelump_t)
  VERTEXES/SECTORS/...        - mapvertex_t, mapsector_t, mapsidedef_t,
                                maplinedef_t, mapseg_t, mapsubsector_t,
                                mapnode_t
"""

import logging

from doomlevel.binary import BinaryCursor, read_records
from doomlevel.defs import (
    BBox, BSPNode, Child, LevelData, Linedef, Sector, Seg, Sidedef,
    Subsector, Vertex,
    LEVEL_LUMPS, ML_LINEDEFS, ML_NODES, ML_SECTORS, ML_SEGS, ML_SIDEDEFS,
    ML_SSECTORS, ML_VERTEXES,
)
from doomlevel.errors import MalformedRecord, MissingLump, OutOfRangeRead
from doomlevel.geometry import BSPPlane

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# WAD container
# ---------------------------------------------------------------------------

class Lump:
    __slots__ = ("filepos", "size", "name")

    def __init__(self, filepos: int, size: int, name: str) -> None:
        self.filepos = filepos
        self.size = size
        self.name = name

    def __repr__(self) -> str:
        return f"Lump({self.name!r}, filepos={self.filepos}, size={self.size})"


class WAD:
    """
    Parses a WAD held in memory and provides lump access by name or index.

    WAD header layout (12 bytes):
        4s  identification  "IWAD" or "PWAD"
        i   numlumps
        i   infotableofs

    Lump directory entry (16 bytes each):
        i   filepos
        i   size
        8s  name  (NUL-padded)
    """

    _MAGICS = ("IWAD", "PWAD")

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        br = BinaryCursor(self._data)

        self.ident = br.read_fixed_string(4)
        if self.ident not in self._MAGICS:
            raise MalformedRecord(
                f"Not a valid WAD: identification is {self.ident!r}"
            )
        numlumps = br.read_i32()
        infotableofs = br.read_i32()
        if numlumps < 0:
            raise MalformedRecord(f"Negative lump count {numlumps}")

        br.seek(infotableofs)
        self.lumps: list[Lump] = []
        for _ in range(numlumps):
            filepos = br.read_i32()
            size = br.read_i32()
            name = br.read_fixed_string(8)
            self.lumps.append(Lump(filepos, size, name))

        # First occurrence wins
        self._name_index: dict[str, int] = {}
        for i, lump in enumerate(self.lumps):
            self._name_index.setdefault(lump.name, i)

        log.debug("%s with %d lumps", self.ident, numlumps)

    @classmethod
    def from_file(cls, path: str) -> "WAD":
        with open(path, "rb") as f:
            return cls(f.read())

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.lumps)

    def has_lump(self, name: str) -> bool:
        return name in self._name_index

    def find_lump(self, name: str) -> int:
        """Index of the first lump called exactly *name*."""
        try:
            return self._name_index[name]
        except KeyError:
            raise MissingLump(f"Lump not found: {name!r}") from None

    def read_lump(self, name: str) -> bytes:
        return self.read_lump_index(self.find_lump(name))

    def read_lump_index(self, index: int) -> bytes:
        if index < 0 or index >= len(self.lumps):
            raise MissingLump(f"Lump index {index} outside directory of {len(self.lumps)}")
        lump = self.lumps[index]
        end = lump.filepos + lump.size
        if lump.filepos < 0 or lump.size < 0 or end > len(self._data):
            raise OutOfRangeRead(
                f"Lump {lump.name!r} spans {lump.filepos}..{end}, "
                f"past end of {len(self._data)}-byte WAD"
            )
        return self._data[lump.filepos:end]

    def cursor(self, name: str) -> BinaryCursor:
        return BinaryCursor(self.read_lump(name))

    def lumps_between(self, start: str, end: str) -> list[int]:
        """Indices of the non-empty lumps between two marker lumps."""
        first = self.find_lump(start)
        last = self.find_lump(end)
        return [i for i in range(first + 1, last) if self.lumps[i].size > 0]

    def level_lumps(self, marker: str) -> dict[str, bytes]:
        """
        Raw data of the ten lumps following *marker*, keyed by their role.

        Only position is trusted; the names of the following lumps are not
        checked.
        """
        marker_idx = self.find_lump(marker)
        if marker_idx + len(LEVEL_LUMPS) >= len(self.lumps):
            raise MissingLump(
                f"Level {marker!r} is not followed by {len(LEVEL_LUMPS)} lumps"
            )
        return {
            role: self.read_lump_index(marker_idx + 1 + i)
            for i, role in enumerate(LEVEL_LUMPS)
        }


# ---------------------------------------------------------------------------
# Palette / colormap loaders
# ---------------------------------------------------------------------------

def load_palette(wad: WAD) -> list:
    """
    Read PLAYPAL and return the first palette as 256 (r, g, b) tuples.
    PLAYPAL holds 14 palettes; only the first is used.
    """
    data = wad.read_lump("PLAYPAL")
    if len(data) < 768:
        raise MalformedRecord(f"PLAYPAL: {len(data)} bytes, need 768")
    return [(data[i * 3], data[i * 3 + 1], data[i * 3 + 2]) for i in range(256)]


def load_colormap(wad: WAD) -> bytes:
    """
    Read COLORMAP and return its first 256-entry row (full brightness).
    """
    data = wad.read_lump("COLORMAP")
    if len(data) < 256:
        raise MalformedRecord(f"COLORMAP: {len(data)} bytes, need 256")
    return bytes(data[:256])


# ---------------------------------------------------------------------------
# Level loader
# ---------------------------------------------------------------------------

# On-disk struct sizes (bytes)
_VERTEX_SIZE   = 4    # x:h, y:h
_SECTOR_SIZE   = 26   # floor:h, ceil:h, floorpic:8s, ceilpic:8s, light:h, special:h, tag:h
_SIDEDEF_SIZE  = 30   # textureoffset:h, rowoffset:h, top:8s, bot:8s, mid:8s, sector:h
_LINEDEF_SIZE  = 14   # v1:h, v2:h, flags:h, special:h, tag:h, sidenum[2]:2h
_SEG_SIZE      = 12   # v1:h, v2:h, angle:h, linedef:h, side:h, offset:h
_SSECTOR_SIZE  = 4    # numsegs:H, firstseg:H
_NODE_SIZE     = 28   # x:h, y:h, dx:h, dy:h, bbox[2][4]:8h, children[2]:2H


def _lookup(table: list, index: int, what: str, owner: str):
    if not 0 <= index < len(table):
        raise MalformedRecord(
            f"{owner} references {what} {index}, table has {len(table)}"
        )
    return table[index]


def _read_bbox(br: BinaryCursor) -> BBox:
    # Stored as top, bottom, left, right
    top = br.read_i16()
    bottom = br.read_i16()
    left = br.read_i16()
    right = br.read_i16()
    return BBox(Vertex(left, bottom), Vertex(right, top))


def load_level(wad: WAD, name: str) -> LevelData:
    """
    Load the level whose marker lump is *name* and return a fully
    cross-referenced LevelData.

    Tables are decoded in dependency order so every reference resolves
    against a table that already exists:
        VERTEXES, SECTORS, SIDEDEFS, LINEDEFS, SEGS, SSECTORS, NODES
    THINGS, REJECT and BLOCKMAP are located but not decoded.
    """
    lumps = wad.level_lumps(name)
    level = LevelData(name=name)

    def lump(ml: int) -> bytes:
        return lumps[LEVEL_LUMPS[ml - 1]]

    # ---- VERTEXES ----------------------------------------------------
    def read_vertex(br: BinaryCursor, i: int) -> Vertex:
        return Vertex(br.read_i16(), br.read_i16())

    level.vertices = read_records(lump(ML_VERTEXES), _VERTEX_SIZE, read_vertex, "VERTEXES")
    if level.vertices:
        xs = [v.x for v in level.vertices]
        ys = [v.y for v in level.vertices]
        level.bounds = BBox(Vertex(min(xs), min(ys)), Vertex(max(xs), max(ys)))

    # ---- SECTORS -----------------------------------------------------
    def read_sector(br: BinaryCursor, i: int) -> Sector:
        return Sector(
            index           = i,
            floor_height    = br.read_i16(),
            ceiling_height  = br.read_i16(),
            floor_texture   = br.read_fixed_string(8),
            ceiling_texture = br.read_fixed_string(8),
            brightness      = br.read_i16(),
            special_type    = br.read_i16(),
            tag             = br.read_i16(),
        )

    level.sectors = read_records(lump(ML_SECTORS), _SECTOR_SIZE, read_sector, "SECTORS")

    # ---- SIDEDEFS ----------------------------------------------------
    def read_sidedef(br: BinaryCursor, i: int) -> Sidedef:
        texoff = br.read_i16()
        rowoff = br.read_i16()
        upper = br.read_fixed_string(8)
        lower = br.read_fixed_string(8)
        middle = br.read_fixed_string(8)
        sector_idx = br.read_i16()
        return Sidedef(
            texture_offset_x = texoff,
            texture_offset_y = rowoff,
            upper_texture    = upper,
            lower_texture    = lower,
            middle_texture   = middle,
            sector           = _lookup(level.sectors, sector_idx, "sector", f"SIDEDEF {i}"),
        )

    level.sidedefs = read_records(lump(ML_SIDEDEFS), _SIDEDEF_SIZE, read_sidedef, "SIDEDEFS")

    # ---- LINEDEFS ----------------------------------------------------
    # sidenum is a signed short; -1 means "no back side"
    def read_linedef(br: BinaryCursor, i: int) -> Linedef:
        v1 = br.read_i16()
        v2 = br.read_i16()
        flags = br.read_u16()
        special = br.read_i16()
        tag = br.read_i16()
        front = br.read_i16()
        back = br.read_i16()
        owner = f"LINEDEF {i}"
        return Linedef(
            start         = _lookup(level.vertices, v1, "vertex", owner),
            end           = _lookup(level.vertices, v2, "vertex", owner),
            flags         = flags,
            special_type  = special,
            tag           = tag,
            front_sidedef = _lookup(level.sidedefs, front, "sidedef", owner),
            back_sidedef  = None if back == -1 else _lookup(level.sidedefs, back, "sidedef", owner),
        )

    level.linedefs = read_records(lump(ML_LINEDEFS), _LINEDEF_SIZE, read_linedef, "LINEDEFS")

    # ---- SEGS --------------------------------------------------------
    def read_seg(br: BinaryCursor, i: int) -> Seg:
        v1 = br.read_i16()
        v2 = br.read_i16()
        angle = br.read_i16()
        linedef_idx = br.read_i16()
        direction = br.read_i16()
        offset = br.read_i16()
        owner = f"SEG {i}"
        start = _lookup(level.vertices, v1, "vertex", owner)
        end = _lookup(level.vertices, v2, "vertex", owner)
        return Seg(
            start     = Vertex(start.x, start.y),
            end       = Vertex(end.x, end.y),
            angle     = angle,
            linedef   = _lookup(level.linedefs, linedef_idx, "linedef", owner),
            direction = direction,
            offset    = offset,
        )

    level.segs = read_records(lump(ML_SEGS), _SEG_SIZE, read_seg, "SEGS")

    # ---- SSECTORS ----------------------------------------------------
    # numsegs and firstseg are unsigned shorts
    def read_subsector(br: BinaryCursor, i: int) -> Subsector:
        count = br.read_u16()
        first = br.read_u16()
        owner = f"SSECTOR {i}"
        if count == 0:
            raise MalformedRecord(f"{owner} has no segs")
        if first + count > len(level.segs):
            raise MalformedRecord(
                f"{owner} spans segs {first}..{first + count}, table has {len(level.segs)}"
            )
        segs = level.segs[first:first + count]
        # Every seg must face the same sector
        facing = []
        for n, seg in enumerate(segs):
            sidedef = seg.sidedef
            if sidedef is None:
                raise MalformedRecord(f"{owner}: seg {first + n} faces a missing back sidedef")
            facing.append(sidedef.sector)
        sector = facing[0]
        if any(s is not sector for s in facing):
            raise MalformedRecord(
                f"{owner}: segs face sectors {[s.index for s in facing]}"
            )
        return Subsector(index=i, segs=segs, sector=sector)

    level.subsectors = read_records(lump(ML_SSECTORS), _SSECTOR_SIZE, read_subsector, "SSECTORS")

    # Back-pointers go to the owning sector only
    for subsector in level.subsectors:
        subsector.sector.subsectors.append(subsector)

    # ---- NODES -------------------------------------------------------
    # children are unsigned shorts; bit 15 set -> subsector
    def read_node(br: BinaryCursor, i: int) -> BSPNode:
        x = br.read_i16()
        y = br.read_i16()
        dx = br.read_i16()
        dy = br.read_i16()
        right_bbox = _read_bbox(br)
        left_bbox = _read_bbox(br)
        right_child = Child.from_raw(br.read_u16())
        left_child = Child.from_raw(br.read_u16())
        owner = f"NODE {i}"
        for child in (right_child, left_child):
            table = level.subsectors if child.is_leaf else range(n_nodes)
            _lookup(table, child.index, "subsector" if child.is_leaf else "node", owner)
        left_plane = BSPPlane(Vertex(x, y), dx, dy)
        return BSPNode(
            x           = x,
            y           = y,
            dx          = dx,
            dy          = dy,
            right_bbox  = right_bbox,
            left_bbox   = left_bbox,
            right_child = right_child,
            left_child  = left_child,
            right_plane = left_plane.flipped(),
            left_plane  = left_plane,
        )

    raw_nodes = lump(ML_NODES)
    n_nodes = len(raw_nodes) // _NODE_SIZE
    level.nodes = read_records(raw_nodes, _NODE_SIZE, read_node, "NODES")

    log.debug(
        "%s: %d vertices, %d sectors, %d sidedefs, %d linedefs, %d segs, "
        "%d subsectors, %d nodes",
        name, len(level.vertices), len(level.sectors), len(level.sidedefs),
        len(level.linedefs), len(level.segs), len(level.subsectors),
        len(level.nodes),
    )
    return level
