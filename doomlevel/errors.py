"""Exception hierarchy for WAD decoding and level reconstruction.

Every failure is fail-fast: the build is a one-shot offline conversion, so
nothing is retried and no partial level is returned.
"""


class WADError(Exception):
    """Base class for everything raised while reading or rebuilding a level."""


class MissingLump(WADError, KeyError):
    """A lump (or level marker) was looked up by name and not found."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead
        return str(self.args[0]) if self.args else ""


class OutOfRangeRead(WADError, IndexError):
    """A read went past the end of its buffer."""


class MalformedRecord(WADError, ValueError):
    """A lump does not match its on-disk record layout."""


class DegenerateClip(WADError):
    """Polygon clipping hit a parallel edge or collapsed a leaf."""


class UnknownTexture(WADError, KeyError):
    """A texture or flat name is absent from the WAD's directories."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class AtlasOverflow(WADError):
    """The packed textures do not fit in the atlas."""
