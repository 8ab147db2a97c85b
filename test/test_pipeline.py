import dataclasses

import numpy as np
import pytest

from scenes import SKEWED_CORNERS, make_document_on_table
from quadlib.pipeline import PerspectiveCorrector, ScanResult, correct, scan_image
from quadlib.quadrilateral import CartesianQuadrilateral, Quadrilateral
from quadlib.warp import AdaptiveThreshold, DegenerateRegionError, OpenCVPerspectiveWarp, output_dimensions

SKEWED = Quadrilateral.from_points(SKEWED_CORNERS)


class RecordingWarp:
    """Warp stand-in that records the corners it was handed"""

    def __init__(self, result=None):
        self.calls = []
        self.result = np.zeros((5, 7, 3), np.uint8) if result is None else result

    def warp(self, image, top_left, top_right, bottom_left, bottom_right):
        self.calls.append(dict(top_left=top_left, top_right=top_right,
                               bottom_left=bottom_left, bottom_right=bottom_right))
        return self.result


class FailingThreshold:
    def threshold(self, image):
        raise ValueError("threshold unavailable")


def channel_means(region):
    return region.reshape(-1, 3).mean(axis=0)


def test_end_to_end_skewed_page(skewed_photo):
    result = correct(skewed_photo, SKEWED)

    scanned = result.scanned_image
    assert scanned is not None
    h, w = scanned.shape[:2]
    assert (h, w) == (320, 210)
    # not axis-aligned, so the output proportions differ from the photo's
    assert w / h != pytest.approx(300 / 400, abs=0.01)

    assert result.original_image is skewed_photo
    assert result.detected_rectangle == SKEWED
    assert not result.prefers_enhanced


def test_output_is_not_mirrored(skewed_photo):
    scanned = correct(skewed_photo, SKEWED, enhance=False).scanned_image

    top = channel_means(scanned[10:40, 40:-20])
    bottom = channel_means(scanned[-40:-10, 40:-20])
    left_middle = channel_means(scanned[130:190, 8:24])
    right_middle = channel_means(scanned[130:190, -40:-10])

    # red band on top, blue band at the bottom
    assert top[0] > 200 and top[2] < 60
    assert bottom[2] > 200 and bottom[0] < 60
    # green strip on the left, plain page on the right
    assert left_middle[1] > 200 and left_middle[0] < 60
    assert right_middle.min() > 200


def test_enhanced_image_is_binary_grayscale(skewed_photo):
    result = correct(skewed_photo, SKEWED)
    enhanced = result.enhanced_image
    assert enhanced is not None
    assert enhanced.ndim == 2
    assert enhanced.shape == result.scanned_image.shape[:2]
    assert enhanced.dtype == np.uint8
    assert set(np.unique(enhanced)) <= {0, 255}
    assert enhanced.flags['C_CONTIGUOUS']


def test_warp_receives_axis_flipped_corners(skewed_photo):
    warp = RecordingWarp()
    PerspectiveCorrector(warp=warp, enhance=False).correct(skewed_photo, SKEWED)

    (call,) = warp.calls
    # cartesian y = 400 - y; visual top-left goes to the warp's top-left
    assert call['top_left'] == (50, 350)
    assert call['top_right'] == (250, 340)
    assert call['bottom_left'] == (40, 30)
    assert call['bottom_right'] == (260, 20)


def test_degenerate_quad_gives_no_correction(skewed_photo):
    point = Quadrilateral((100, 100), (100, 100), (100, 100), (100, 100))
    result = correct(skewed_photo, point)

    assert result.scanned_image is None
    assert result.enhanced_image is None
    assert result.original_image is skewed_photo
    assert result.detected_rectangle == point
    assert not result.is_corrected


def test_quad_outside_image_gives_no_correction(skewed_photo):
    outside = Quadrilateral((1000, 1000), (1100, 1000), (1100, 1100), (1000, 1100))
    result = correct(skewed_photo, outside)

    assert result.scanned_image is None
    assert result.enhanced_image is None
    assert not result.is_corrected
    assert result.detected_rectangle == outside


def test_quad_partly_outside_image_is_still_corrected(skewed_photo):
    overhanging = Quadrilateral((-20, -20), (150, -10), (160, 200), (-10, 190))
    assert correct(skewed_photo, overhanging).is_corrected


def test_sixteen_bit_photo_keeps_its_tones():
    photo = np.full((400, 300, 3), 128 * 257, np.uint16)
    scanned = correct(photo, SKEWED, enhance=False).scanned_image

    assert scanned.dtype == np.uint8
    assert scanned.mean() == pytest.approx(128, abs=2)


def test_collinear_quad_gives_no_correction(skewed_photo):
    line = Quadrilateral((0, 0), (10, 10), (20, 20), (30, 30))
    result = correct(skewed_photo, line)
    assert result.scanned_image is None
    assert result.enhanced_image is None


@pytest.mark.parametrize("image", [None, np.zeros((0, 0, 3), np.uint8), "not an image"])
def test_uninterpretable_image_gives_no_correction(image):
    result = correct(image, SKEWED)
    assert result.scanned_image is None
    assert result.enhanced_image is None
    assert result.detected_rectangle == SKEWED


def test_empty_warp_result_gives_no_correction(skewed_photo):
    warp = RecordingWarp(result=np.zeros((0, 0, 3), np.uint8))
    result = PerspectiveCorrector(warp=warp).correct(skewed_photo, SKEWED)
    assert result.scanned_image is None


def test_threshold_failure_keeps_scanned_image(skewed_photo):
    result = PerspectiveCorrector(threshold=FailingThreshold()).correct(skewed_photo, SKEWED)
    assert result.scanned_image is not None
    assert result.enhanced_image is None


def test_enhance_can_be_disabled(skewed_photo):
    result = correct(skewed_photo, SKEWED, enhance=False)
    assert result.scanned_image is not None
    assert result.enhanced_image is None


def test_cartesian_quad_is_a_contract_violation(skewed_photo):
    with pytest.raises(TypeError):
        correct(skewed_photo, SKEWED.to_cartesian(400))


def test_warp_rejects_empty_extent():
    image = np.zeros((50, 50, 3), np.uint8)
    with pytest.raises(DegenerateRegionError):
        OpenCVPerspectiveWarp().warp(image, (10, 10), (10, 10), (10, 10), (10, 10))


def test_output_dimensions_average_opposing_sides():
    # top 100, bottom 140; both slanted sides are hypot(20, 50) ~ 53.9
    assert output_dimensions((0, 0), (100, 0), (120, 50), (-20, 50)) == (120, 54)


def test_adaptive_threshold_validates_block_size():
    with pytest.raises(ValueError):
        AdaptiveThreshold(block_size=4)
    with pytest.raises(ValueError):
        AdaptiveThreshold(method="median")


def test_scan_result_preference():
    original = np.zeros((4, 4, 3), np.uint8)
    scanned = np.ones((2, 2, 3), np.uint8)
    enhanced = np.full((2, 2), 255, np.uint8)
    result = ScanResult(original_image=original, scanned_image=scanned, enhanced_image=enhanced)

    assert result.preferred_image is scanned
    preferred = result.with_preference(True)
    assert preferred.preferred_image is enhanced
    assert result.prefers_enhanced is False

    bare = ScanResult(original_image=original)
    assert bare.with_preference(True).preferred_image is original

    with pytest.raises(dataclasses.FrozenInstanceError):
        result.prefers_enhanced = True


def test_from_picture_scales_quad_from_view_bounds(skewed_photo):
    # corners drawn on a half-size view of the 300x400 photo
    in_view = Quadrilateral.from_points([(x / 2, y / 2) for x, y in SKEWED_CORNERS])

    result = ScanResult.from_picture(skewed_photo, in_view, view_bounds=(150, 200))

    assert result.detected_rectangle == SKEWED
    assert result.scanned_image.shape[:2] == (320, 210)


def test_from_picture_without_rectangle(skewed_photo):
    result = ScanResult.from_picture(skewed_photo, None, view_bounds=(150, 200))
    assert result.scanned_image is None
    assert result.detected_rectangle is None
    assert result.original_image is skewed_photo


def test_from_picture_rejects_cartesian_rectangle(skewed_photo):
    with pytest.raises(TypeError):
        ScanResult.from_picture(skewed_photo, SKEWED.to_cartesian(400), view_bounds=(300, 400))


def test_scan_image_detects_document():
    corners = [(60, 50), (330, 70), (350, 450), (40, 430)]
    photo = make_document_on_table(corners)

    result = scan_image(photo)

    assert result.is_corrected
    for got, want in zip(result.detected_rectangle.points, corners):
        assert got == pytest.approx(want, abs=8)


def test_scan_image_falls_back_to_default_region():
    class NothingFound:
        def detect(self, image):
            return None

    photo = np.full((100, 200, 3), 128, np.uint8)
    result = scan_image(photo, detector=NothingFound())

    assert result.detected_rectangle == Quadrilateral.default_for_size((200, 100))
    assert result.scanned_image.shape[:2] == (90, 180)


def test_cartesian_type_is_what_the_warp_stage_uses(skewed_photo, monkeypatch):
    seen = []
    original = Quadrilateral.to_cartesian

    def spy(self, height):
        cart = original(self, height)
        seen.append(cart)
        return cart

    monkeypatch.setattr(Quadrilateral, "to_cartesian", spy)
    correct(skewed_photo, SKEWED, enhance=False)

    assert len(seen) == 1
    assert isinstance(seen[0], CartesianQuadrilateral)
