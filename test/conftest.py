import pytest

from scenes import SKEWED_CORNERS, make_marked_page, place_page


@pytest.fixture
def skewed_photo():
    """300x400 photo of the marked page on SKEWED_CORNERS"""
    return place_page(make_marked_page(), SKEWED_CORNERS)
