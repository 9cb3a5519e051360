from __future__ import annotations

import pytest

from wadbuild import square_wad

from doomlevel.wad import WAD, load_level


@pytest.fixture
def square_bytes() -> bytes:
    return square_wad()


@pytest.fixture
def square_wad_obj(square_bytes) -> WAD:
    return WAD(square_bytes)


@pytest.fixture
def square_level(square_wad_obj):
    return load_level(square_wad_obj, "E1M1")
