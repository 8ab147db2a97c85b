import pytest

from quadlib.quadrilateral import Quadrilateral
from quadlib.viewport import ImageViewport, quad_to_overlay, video_to_overlay_transforms


def test_viewport_letterboxes_wide_image():
    viewport = ImageViewport(view_size=(400, 400), image_size=(200, 100))
    assert viewport.effective_scale == pytest.approx(2.0)
    assert viewport.offset == pytest.approx((0, 100))
    assert viewport.image_frame == pytest.approx((0, 100, 400, 200))

    assert viewport.image_to_view((0, 0)) == pytest.approx((0, 100))
    assert viewport.image_to_view((200, 100)) == pytest.approx((400, 300))
    assert viewport.view_to_image((200, 200)) == pytest.approx((100, 50))


def test_viewport_quad_round_trip():
    viewport = ImageViewport(view_size=(375, 667), image_size=(3024, 4032))
    quad = Quadrilateral((300, 400), (2700, 350), (2800, 3700), (250, 3600))

    in_view = viewport.quad_to_view(quad)
    back = viewport.quad_to_image(in_view)

    for got, want in zip(back.points, quad.points):
        assert got == pytest.approx(want, abs=1e-6)


def test_viewport_clamps_points_dragged_off_image():
    viewport = ImageViewport(view_size=(400, 400), image_size=(200, 100))
    dragged = Quadrilateral((0, 0), (400, 100), (400, 300), (0, 300))

    clamped = viewport.quad_to_image(dragged)
    assert clamped.top_left == pytest.approx((0, 0))
    assert clamped.bottom_right == pytest.approx((200, 100))

    raw = viewport.quad_to_image(dragged, clamp=False)
    assert raw.top_left == pytest.approx((0, -50))


def test_viewport_rejects_empty_image():
    with pytest.raises(ValueError):
        ImageViewport(view_size=(100, 100), image_size=(0, 100))


def test_overlay_transforms_are_scale_rotate_translate():
    transforms = video_to_overlay_transforms((1920, 1080), (375, 667))
    assert len(transforms) == 3
    scale, rotation, translation = transforms
    # portrait 1080x1920 aspect-filled into 375x667
    ratio = max(375 / 1080, 667 / 1920)
    assert scale.matrix[0, 0] == pytest.approx(ratio)
    assert rotation.apply_to_point((1, 0)) == pytest.approx((0, 1), abs=1e-12)


def test_full_frame_quad_covers_overlay():
    frame = Quadrilateral((0, 0), (1920, 0), (1920, 1080), (0, 1080))
    overlay = quad_to_overlay(frame, (1920, 1080), (375, 667))

    ratio = max(375 / 1080, 667 / 1920)
    assert overlay.centroid == pytest.approx((187.5, 333.5), abs=1e-6)
    bounds = overlay.bounding_rect
    assert bounds.width == pytest.approx(1080 * ratio)
    assert bounds.height == pytest.approx(1920 * ratio)

    # the frame's top-left corner ends up at the overlay's top-right
    assert overlay.top_right == pytest.approx((187.5 + 1080 * ratio / 2, 0), abs=1e-6)


def test_overlay_rejects_cartesian_quads():
    frame = Quadrilateral((0, 0), (1920, 0), (1920, 1080), (0, 1080))
    with pytest.raises(TypeError):
        quad_to_overlay(frame.to_cartesian(1080), (1920, 1080), (375, 667))
