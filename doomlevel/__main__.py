"""Entry point for `python -m doomlevel WAD LEVEL`.

Usage:
    python -m doomlevel doom1.wad E1M1
    python -m doomlevel doom1.wad E1M1 --atlas-png atlas.png --perf

Settings not given on the command line come from DOOMLEVEL_* environment
variables (a .env file is honoured).
"""
import argparse
import logging
import os
import sys
from dataclasses import replace

from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.table import Table

from doomlevel import TextureAtlas, WADError, build_level
from doomlevel.config import console, load_settings
from doomlevel.perf import perf


def parse_args(argv=None):
    p = argparse.ArgumentParser(prog="doomlevel", description="Rebuild a Doom level from a WAD")
    p.add_argument("wad", help="Path to an IWAD or PWAD")
    p.add_argument("level", help="Level marker lump, e.g. E1M1 or MAP01")
    p.add_argument("--atlas-size", type=int, help="Atlas side in pixels")
    p.add_argument("--atlas-png", help="Write the atlas image to this PNG path")
    p.add_argument("--perf", action="store_true", help="Print stage timings")
    p.add_argument("--perf-log", metavar="DIR", help="Write stage timings as JSONL into DIR")
    return p.parse_args(argv)


def save_atlas_png(atlas: TextureAtlas, path: str) -> None:
    import pygame

    surface = pygame.image.frombuffer(bytes(atlas.pixels), (atlas.size, atlas.size), "RGBA")
    pygame.image.save(surface, path)


def _summary(level) -> Table:
    data = level.data
    table = Table(title=f"{data.name}", title_justify="left")
    table.add_column("table")
    table.add_column("count", justify="right")
    for label, rows in (
        ("vertices", data.vertices), ("sectors", data.sectors),
        ("sidedefs", data.sidedefs), ("linedefs", data.linedefs),
        ("segs", data.segs), ("subsectors", data.subsectors),
        ("nodes", data.nodes),
    ):
        table.add_row(label, str(len(rows)))
    table.add_row("leaf polygons", str(sum(len(p) for p in level.polygons.values())))
    table.add_row("atlas entries", str(len(level.atlas.rects)))
    if data.bounds is not None:
        b = data.bounds
        table.add_row("bounds", f"({b.min.x}, {b.min.y}) .. ({b.max.x}, {b.max.y})")
    return table


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)
    settings = load_settings()
    if args.atlas_size:
        settings = replace(settings, atlas_size=args.atlas_size)

    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    if not os.path.exists(args.wad):
        console.print(f"Error: WAD file not found: {args.wad}", style="red")
        return 1

    with open(args.wad, "rb") as f:
        data = f.read()

    perf.start()
    try:
        level = build_level(data, args.level, settings, perf)
    except WADError as e:
        console.print(f"Error: {type(e).__name__}: {e}", style="red", highlight=False)
        return 1

    console.print(_summary(level))
    if args.atlas_png:
        save_atlas_png(level.atlas, args.atlas_png)
        console.print(f"  Atlas saved: {args.atlas_png}")
    if args.perf:
        perf.summary()
    if args.perf_log:
        path = perf.save(args.perf_log)
        console.print(f"  Perf log saved: {path} ({len(perf.events)} events)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
