"""Rebuild renderable Doom levels from WAD bytes.

``build_level`` turns an in-memory WAD into the decoded level graph, the
per-sector floor/ceiling polygons and a packed texture atlas.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from doomlevel.atlas import TextureAtlas, pack_textures
from doomlevel.config import Settings
from doomlevel.defs import LevelData
from doomlevel.errors import (
    AtlasOverflow, DegenerateClip, MalformedRecord, MissingLump,
    OutOfRangeRead, UnknownTexture, WADError,
)
from doomlevel.perf import PerfLogger
from doomlevel.sectors import SubsectorPolygon, build_sectors
from doomlevel.textures import TextureManager
from doomlevel.wad import WAD, load_level

__version__ = "0.1.0"

__all__ = [
    "AtlasOverflow", "DegenerateClip", "Level", "LevelData", "MalformedRecord",
    "MissingLump", "OutOfRangeRead", "Settings", "SubsectorPolygon",
    "TextureAtlas", "UnknownTexture", "WAD", "WADError", "build_level",
]

log = logging.getLogger(__name__)


@dataclass
class Level:
    data: LevelData
    polygons: dict = field(repr=False)  # sector index -> [SubsectorPolygon]
    atlas: TextureAtlas = field(repr=False)


def build_level(
    data: bytes,
    name: str,
    settings: Optional[Settings] = None,
    perf: Optional[PerfLogger] = None,
) -> Level:
    """
    Decode level *name* from WAD bytes and build its polygons and atlas.

    Timings go to *perf* when given, otherwise to a logger local to this call.
    """
    settings = settings or Settings()
    perf = perf or PerfLogger()

    perf.stage("parse")
    with perf.timer("read_directory"):
        wad = WAD(data)
    with perf.timer("load_level", level=name):
        level = load_level(wad, name)

    perf.stage("sectors")
    with perf.timer("build_sectors", level=name):
        polygons = build_sectors(level, settings.clip_extent)

    perf.stage("atlas")
    with perf.timer("load_texture_directories"):
        textures = TextureManager(wad)
    with perf.timer("pack_textures", size=settings.atlas_size):
        atlas = pack_textures(level, textures, settings.atlas_size)
    perf.finish()

    log.info(
        "%s: %d sectors, %d leaf polygons, %d atlas entries",
        name, len(level.sectors), sum(len(p) for p in polygons.values()),
        len(atlas.rects),
    )
    return Level(level, polygons, atlas)
