"""
Picture, composite texture and flat decoding to RGBA.

Lump formats (r_defs.h / r_data.c):
  patch_t    - width, height, leftoffset, topoffset, columnofs[width]
  post_t     - topdelta, length, pad, data[length], pad; 0xFF ends a column
  TEXTURE1/2 - maptexture_t records made of mappatch_t entries
  PNAMES     - count followed by 8-byte patch names
  flats      - 64x64 raw palette indices between F_START and F_END
"""

import logging
from dataclasses import dataclass, field
from typing import NamedTuple

from doomlevel.binary import BinaryCursor
from doomlevel.defs import FLAT_SIZE
from doomlevel.errors import MalformedRecord, MissingLump, UnknownTexture
from doomlevel.wad import WAD, load_colormap, load_palette

log = logging.getLogger(__name__)

_FLAT_BYTES = FLAT_SIZE * FLAT_SIZE


# ---------------------------------------------------------------------------
# Pictures (patches)
# ---------------------------------------------------------------------------

@dataclass
class Picture:
    width: int
    height: int
    left_offset: int
    top_offset: int
    # Row-major palette indices and a matching 0/1 coverage mask
    pixels: bytearray = field(repr=False)
    opaque: bytearray = field(repr=False)

    def column(self, x: int) -> list[int]:
        return [self.pixels[y * self.width + x] for y in range(self.height)]


def decode_picture(data: bytes, name: str = "picture") -> Picture:
    """
    Decode a column-based picture.

    Post bytes that would land below the picture's height are dropped rather
    than written out of bounds.
    """
    br = BinaryCursor(data)
    width = br.read_u16()
    height = br.read_u16()
    left_offset = br.read_i16()
    top_offset = br.read_i16()
    column_offsets = [br.read_u32() for _ in range(width)]

    pixels = bytearray(width * height)
    opaque = bytearray(width * height)
    dropped = 0

    for col, col_offset in enumerate(column_offsets):
        br.seek(col_offset)
        while True:
            topdelta = br.read_u8()
            if topdelta == 0xFF:
                break
            length = br.read_u8()
            br.read_u8()  # pad
            run = br.read_bytes(length)
            br.read_u8()  # pad
            for i, value in enumerate(run):
                row = topdelta + i
                if row >= height:
                    dropped += length - i
                    break
                pixels[row * width + col] = value
                opaque[row * width + col] = 1

    if dropped:
        log.debug("%s: dropped %d post bytes below height %d", name, dropped, height)
    return Picture(width, height, left_offset, top_offset, pixels, opaque)


# ---------------------------------------------------------------------------
# Composite texture directory
# ---------------------------------------------------------------------------

class PatchRef(NamedTuple):
    originx: int
    originy: int
    patch: int  # index into PNAMES


@dataclass
class TextureDef:
    name: str
    masked: bool
    width: int
    height: int
    patches: list = field(default_factory=list)


def parse_pnames(data: bytes) -> list[str]:
    br = BinaryCursor(data)
    count = br.read_i32()
    if count < 0:
        raise MalformedRecord(f"PNAMES: negative count {count}")
    return [br.read_fixed_string(8) for _ in range(count)]


def parse_texture_lump(data: bytes) -> list[TextureDef]:
    """
    Parse a TEXTURE1/TEXTURE2 lump.

    TEXTURE lump format:
        i     numtextures
        i[n]  offsets (from start of lump)

    Each texture record:
        8s  name
        i   masked
        H   width
        H   height
        i   columndirectory (obsolete)
        H   patchcount
        patchcount * (h originx, h originy, H patch, H stepdir, H colormap)
    """
    br = BinaryCursor(data)
    count = br.read_i32()
    offsets = [br.read_i32() for _ in range(count)]

    textures = []
    for offset in offsets:
        br.seek(offset)
        name = br.read_fixed_string(8)
        masked = br.read_i32()
        width = br.read_u16()
        height = br.read_u16()
        br.read_i32()  # columndirectory
        patchcount = br.read_u16()
        patches = []
        for _ in range(patchcount):
            originx = br.read_i16()
            originy = br.read_i16()
            patch = br.read_u16()
            br.read_u16()  # stepdir
            br.read_u16()  # colormap
            patches.append(PatchRef(originx, originy, patch))
        textures.append(TextureDef(name, bool(masked), width, height, patches))
    return textures


# ---------------------------------------------------------------------------
# RGBA output
# ---------------------------------------------------------------------------

@dataclass
class RGBAImage:
    name: str
    width: int
    height: int
    pixels: bytes = field(repr=False)  # width * height * 4, row-major


def build_color_lut(palette: list, colormap: bytes) -> list[bytes]:
    """Palette index -> RGBA bytes, through colormap row 0, alpha forced opaque."""
    return [bytes(palette[colormap[i]]) + b"\xff" for i in range(256)]


def indexed_to_rgba(indices: bytes, lut: list[bytes]) -> bytes:
    return b"".join(lut[i] for i in indices)


# ---------------------------------------------------------------------------
# Texture manager
# ---------------------------------------------------------------------------

class TextureManager:
    """
    Loads texture and flat directories from a WAD and decodes them on demand.

    Composite textures are built by blitting every patch at its origin;
    patch columns and rows that fall outside the texture are dropped.
    """

    def __init__(self, wad: WAD) -> None:
        self._wad = wad
        self._lut = build_color_lut(load_palette(wad), load_colormap(wad))

        self._patch_names: list[str] = []
        self._textures: dict[str, TextureDef] = {}
        self._flat_lumps: dict[str, int] = {}
        self._picture_cache: dict[int, Picture] = {}

        self._load_pnames()
        self._load_textures()
        self._load_flats()

        log.debug(
            "%d patch names, %d textures, %d flats",
            len(self._patch_names), len(self._textures), len(self._flat_lumps),
        )

    # ------------------------------------------------------------------
    # Internal loading helpers
    # ------------------------------------------------------------------

    def _load_pnames(self) -> None:
        if self._wad.has_lump("PNAMES"):
            self._patch_names = parse_pnames(self._wad.read_lump("PNAMES"))

    def _load_textures(self) -> None:
        for lump_name in ("TEXTURE1", "TEXTURE2"):
            if not self._wad.has_lump(lump_name):
                continue
            for tex in parse_texture_lump(self._wad.read_lump(lump_name)):
                # Last definition wins (PWAD override behaviour)
                self._textures[tex.name] = tex

    def _load_flats(self) -> None:
        for start, end in (("F_START", "F_END"), ("FF_START", "FF_END")):
            if self._wad.has_lump(start) and self._wad.has_lump(end):
                break
        else:
            return
        for lump_i in self._wad.lumps_between(start, end):
            self._flat_lumps[self._wad.lumps[lump_i].name] = lump_i

    def _patch_lump(self, patch: int, texture: str) -> int:
        if not 0 <= patch < len(self._patch_names):
            raise MalformedRecord(
                f"texture {texture!r} uses patch {patch}, PNAMES has {len(self._patch_names)}"
            )
        name = self._patch_names[patch]
        for candidate in (name, name.upper()):
            if self._wad.has_lump(candidate):
                return self._wad.find_lump(candidate)
        raise MissingLump(f"Patch lump not found: {name!r} (texture {texture!r})")

    def _picture(self, lump_idx: int) -> Picture:
        if lump_idx not in self._picture_cache:
            self._picture_cache[lump_idx] = decode_picture(
                self._wad.read_lump_index(lump_idx), self._wad.lumps[lump_idx].name,
            )
        return self._picture_cache[lump_idx]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def has_texture(self, name: str) -> bool:
        return name in self._textures

    def has_flat(self, name: str) -> bool:
        return name in self._flat_lumps

    def texture_def(self, name: str) -> TextureDef:
        try:
            return self._textures[name]
        except KeyError:
            raise UnknownTexture(f"Texture not found: {name!r}") from None

    def compose_texture(self, name: str) -> bytearray:
        """Row-major palette indices of the composite texture *name*."""
        tex = self.texture_def(name)
        width, height = tex.width, tex.height
        buf = bytearray(width * height)

        for originx, originy, patch in tex.patches:
            pic = self._picture(self._patch_lump(patch, name))
            for px in range(pic.width):
                dest_x = originx + px
                if dest_x < 0 or dest_x >= width:
                    continue
                for py in range(pic.height):
                    dest_y = originy + py
                    if dest_y < 0 or dest_y >= height:
                        continue
                    src = py * pic.width + px
                    if pic.opaque[src]:
                        buf[dest_y * width + dest_x] = pic.pixels[src]
        return buf

    def flat_pixels(self, name: str) -> bytes:
        """The 4096 palette indices of flat *name*."""
        try:
            lump_idx = self._flat_lumps[name]
        except KeyError:
            raise UnknownTexture(f"Flat not found: {name!r}") from None
        raw = self._wad.read_lump_index(lump_idx)
        if len(raw) < _FLAT_BYTES:
            raise MalformedRecord(f"Flat {name!r}: {len(raw)} bytes, need {_FLAT_BYTES}")
        return bytes(raw[:_FLAT_BYTES])

    def build_texture_rgba(self, name: str, is_flat: bool) -> RGBAImage:
        if is_flat:
            return RGBAImage(
                name, FLAT_SIZE, FLAT_SIZE,
                indexed_to_rgba(self.flat_pixels(name), self._lut),
            )
        tex = self.texture_def(name)
        return RGBAImage(
            name, tex.width, tex.height,
            indexed_to_rgba(self.compose_texture(name), self._lut),
        )
