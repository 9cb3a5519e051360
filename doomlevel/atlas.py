"""Gather a level's textures and shelf-pack them into one RGBA atlas."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, NamedTuple

from doomlevel.defs import NO_TEXTURE, LevelData
from doomlevel.errors import AtlasOverflow
from doomlevel.textures import RGBAImage, TextureManager

log = logging.getLogger(__name__)

DEFAULT_ATLAS_SIZE = 1024

# Switch textures: the "off" frame also needs its "on" frame
SWITCH_ALIASES = {
    "SW1": "SW2",
}

# Animated liquid flats: any flat starting with the base name is replaced by
# every frame of the animation
LIQUID_FLATS = {
    "NUKAGE": ("NUKAGE1", "NUKAGE2", "NUKAGE3"),
    "BLOOD":  ("BLOOD1", "BLOOD2", "BLOOD3"),
    "FWATER": ("FWATER1", "FWATER2", "FWATER3", "FWATER4"),
    "LAVA":   ("LAVA1", "LAVA2", "LAVA3", "LAVA4"),
}


class UVRect(NamedTuple):
    ofs_x: float
    ofs_y: float
    w: float
    h: float


@dataclass
class TextureAtlas:
    size: int
    pixels: bytearray = field(repr=False)  # size * size * 4, RGBA
    rects: dict = field(default_factory=dict)  # name -> UVRect

    def pixel_rect(self, name: str) -> tuple[int, int, int, int]:
        """(x, y, width, height) of *name* in atlas pixels."""
        r = self.rects[name]
        s = self.size
        return (round(r.ofs_x * s), round(r.ofs_y * s), round(r.w * s), round(r.h * s))

    def pixel(self, x: int, y: int) -> bytes:
        i = (y * self.size + x) * 4
        return bytes(self.pixels[i:i + 4])


def _wall_names(level: LevelData) -> list[str]:
    names: dict[str, None] = {}
    for sidedef in level.sidedefs:
        for name in sidedef.texture_names:
            if name == NO_TEXTURE:
                continue
            names[name] = None
            for before, after in SWITCH_ALIASES.items():
                if name.startswith(before):
                    names[after + name[len(before):]] = None
    return list(names)


def _flat_names(level: LevelData) -> list[str]:
    names: dict[str, None] = {}
    for sector in level.sectors:
        for name in (sector.floor_texture, sector.ceiling_texture):
            if name == NO_TEXTURE:
                continue
            for base, frames in LIQUID_FLATS.items():
                if name.startswith(base):
                    names.update(dict.fromkeys(frames))
                    break
            else:
                names[name] = None
    return list(names)


def gather_textures(level: LevelData) -> tuple[list[str], list[str]]:
    """
    (wall texture names, flat names) referenced by the level, aliases expanded.

    The atlas is keyed by name alone, so a name used both on a wall and on a
    sector is kept as a flat only.
    """
    flats = _flat_names(level)
    taken = set(flats)
    walls = [name for name in _wall_names(level) if name not in taken]
    return walls, flats


def pack_images(images: Iterable[RGBAImage], size: int = DEFAULT_ATLAS_SIZE) -> TextureAtlas:
    """
    Shelf-pack *images*, tallest first, into a size x size atlas.

    Raises AtlasOverflow when an image is wider than the atlas or the shelves
    run past its bottom edge.
    """
    ordered = sorted(images, key=lambda img: img.height, reverse=True)
    atlas = TextureAtlas(size, bytearray(size * size * 4))
    row_bytes = size * 4

    cur_x = 0
    cur_y = 0
    tallest = 0
    for image in ordered:
        if image.width > size:
            raise AtlasOverflow(
                f"{image.name!r} is {image.width} wide, atlas is {size}"
            )
        if cur_x + image.width > size:
            cur_x = 0
            cur_y += tallest
            tallest = 0
        if cur_y + image.height > size:
            raise AtlasOverflow(
                f"no room for {image.name!r} ({image.width}x{image.height}) "
                f"at row {cur_y} of a {size}x{size} atlas"
            )

        src_row = image.width * 4
        for y in range(image.height):
            dst = (cur_y + y) * row_bytes + cur_x * 4
            atlas.pixels[dst:dst + src_row] = image.pixels[y * src_row:(y + 1) * src_row]

        atlas.rects[image.name] = UVRect(
            cur_x / size, cur_y / size, image.width / size, image.height / size,
        )
        if image.height > tallest:
            tallest = image.height
        cur_x += image.width

    return atlas


def pack_textures(
    level: LevelData,
    textures: TextureManager,
    size: int = DEFAULT_ATLAS_SIZE,
) -> TextureAtlas:
    walls, flats = gather_textures(level)
    images = [textures.build_texture_rgba(name, False) for name in walls]
    images += [textures.build_texture_rgba(name, True) for name in flats]
    atlas = pack_images(images, size)
    log.debug(
        "%s: packed %d wall textures and %d flats into %dx%d atlas",
        level.name, len(walls), len(flats), size, size,
    )
    return atlas
