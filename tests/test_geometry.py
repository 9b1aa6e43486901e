"""
Test crop geometry and crop-and-pad
"""

import numpy as np
import pytest

from cropaug.core import InvalidAnchor, InvalidBuffer, PixelBuffer, Rectangle
from cropaug.image.crop import crop_and_pad, output_size, round_half_up
from cropaug.image.geometry import (
    constrain_to_image,
    derive_variant,
    jitter_aspect_ratio,
    validate_anchor,
)

BLACK = (0, 0, 0, 255)


class TestAnchorValidation:
    """Test anchor rejection rules"""

    @pytest.mark.parametrize(
        "anchor",
        [Rectangle(10, 10, 0, 50), Rectangle(10, 10, 100, 0), Rectangle(10, 10, -5, 20)],
    )
    def test_zero_size_rejected(self, anchor):
        with pytest.raises(InvalidAnchor):
            validate_anchor(anchor)

    def test_outside_image_rejected(self):
        with pytest.raises(InvalidAnchor):
            validate_anchor(Rectangle(300, 300, 10, 10), (200, 200))

    def test_partially_outside_accepted(self):
        validate_anchor(Rectangle(-5, -5, 10, 10), (200, 200))

    def test_derive_rejects_zero_size(self, rng):
        with pytest.raises(InvalidAnchor):
            derive_variant(Rectangle(0, 0, 0, 0), (0, 10), None, True, (100, 100), rng)


class TestDeriveVariant:
    """Test expansion, aspect jitter and clamping"""

    def test_out_of_bounds_returns_unexpanded_anchor(self, rng):
        anchor = Rectangle(10, 10, 100, 50)
        rect, expansion = derive_variant(anchor, (100, 100), None, True, (200, 200), rng)

        assert rect == anchor
        assert expansion == 100

    def test_zero_expansion_clamped_unchanged(self, rng):
        anchor = Rectangle(10, 10, 100, 50)
        rect, expansion = derive_variant(anchor, (0, 0), None, False, (200, 200), rng)

        assert rect.as_tuple() == (10, 10, 100, 50)
        assert expansion == 0

    def test_expansion_drawn_within_range(self, rng):
        anchor = Rectangle(10, 10, 100, 50)
        for _ in range(100):
            _, expansion = derive_variant(anchor, (-20, 30), None, True, (200, 200), rng)
            assert -20 <= expansion <= 30

    def test_aspect_jitter_preserves_area_and_center(self, rng):
        anchor = Rectangle(40, 30, 60, 40)
        for _ in range(50):
            rect, _ = derive_variant(anchor, (0, 0), (0.5, 2.0), True, (200, 200), rng)
            assert rect.area == pytest.approx(anchor.area)
            assert rect.center == pytest.approx(anchor.center)
            assert 0.5 - 1e-9 <= rect.width / rect.height <= 2.0 + 1e-9

    def test_jitter_aspect_ratio_exact(self):
        rect = jitter_aspect_ratio(Rectangle(0, 0, 100, 25), 1.0)
        assert rect.width == pytest.approx(50)
        assert rect.height == pytest.approx(50)
        assert rect.center == pytest.approx((50, 12.5))

    def test_clamped_variants_stay_inside(self):
        rng = np.random.default_rng(99)
        image_size = (200, 150)
        for _ in range(300):
            anchor = Rectangle(
                rng.uniform(-20, 190), rng.uniform(-20, 140), rng.uniform(1, 120), rng.uniform(1, 120)
            )
            rect, _ = derive_variant(anchor, (-50, 300), (0.3, 3.0), False, image_size, rng)
            assert rect.is_within(*image_size, tolerance=1e-6)
            assert rect.width >= 0 and rect.height >= 0

    def test_clamping_shifts_instead_of_shrinking(self):
        rect = constrain_to_image(Rectangle(180, 10, 40, 20), 0, (200, 200))
        assert rect.as_tuple() == (160, 10, 40, 20)

    def test_clamping_limits_to_image_size(self):
        rect = constrain_to_image(Rectangle(50, 50, 100, 100), 200, (200, 150))
        assert rect.as_tuple() == (0, 0, 200, 150)

    def test_expansion_below_minus_100_gives_empty_rect(self):
        rect = constrain_to_image(Rectangle(50, 50, 100, 100), -150, (200, 200))
        assert rect.width == 0 and rect.height == 0
        assert rect.is_within(200, 200)


class TestCropAndPad:
    """Test crop-and-pad execution"""

    def test_expanded_crop_with_black_margins(self, gradient_buffer):
        out = crop_and_pad(gradient_buffer, Rectangle(10, 10, 100, 50), 100).as_array()

        # Expanded rect is (-40, -15, 200, 100)
        assert out.shape == (100, 200, 4)
        assert (out[:15] == BLACK).all()
        assert (out[:, :40] == BLACK).all()
        # Anchor origin (10, 10) lands at column 50, row 25
        assert tuple(out[25, 50]) == (10, 10, 0, 255)
        assert tuple(out[99, 199]) == (159, 84, 0, 255)

    def test_in_bounds_crop_is_exact(self, gradient_buffer):
        out = crop_and_pad(gradient_buffer, Rectangle(5, 7, 20, 10)).as_array()
        np.testing.assert_array_equal(out, gradient_buffer.as_array()[7:17, 5:25])

    def test_crop_outside_source_is_black(self, gradient_buffer):
        out = crop_and_pad(gradient_buffer, Rectangle(-100, -100, 10, 10)).as_array()
        assert out.shape == (10, 10, 4)
        assert (out == BLACK).all()

    def test_right_edge_padding(self, gradient_buffer):
        out = crop_and_pad(gradient_buffer, Rectangle(190, 0, 20, 5)).as_array()
        assert tuple(out[0, 9]) == (199, 0, 0, 255)
        assert (out[:, 10:] == BLACK).all()

    @pytest.mark.parametrize(
        "rect",
        [
            Rectangle(99.5, 0, 100.5, 50),
            Rectangle(0, 149.5, 40, 50.5),
            Rectangle(0.5, 0.5, 199.5, 199.5),
            Rectangle(48.25, 148.7, 151.75, 51.3),
            Rectangle(24.5, 0, 175.5, 200),
        ],
    )
    def test_flush_edge_crop_has_no_black_fill(self, rect):
        white = PixelBuffer.blank(200, 200, fill=(255, 255, 255, 255))
        out = crop_and_pad(white, rect).as_array()

        assert out.shape[:2] == (round_half_up(rect.height), round_half_up(rect.width))
        assert not (out == BLACK).all(axis=2).any()

    def test_clamped_variant_crop_has_no_black_fill(self, rng):
        white = PixelBuffer.blank(200, 200, fill=(255, 255, 255, 255))
        anchor = Rectangle(99, 0, 101, 50)
        rect, expansion = derive_variant(anchor, (50, 50), None, False, white.size, rng)

        assert rect.right == pytest.approx(200)
        out = crop_and_pad(white, rect).as_array()
        assert out.shape[:2] == (75, 152)
        assert not (out == BLACK).all(axis=2).any()

    def test_flush_edge_crop_keeps_content(self, gradient_buffer):
        out = crop_and_pad(gradient_buffer, Rectangle(99.5, 0, 100.5, 50)).as_array()

        # Last output column maps onto the last source column
        assert tuple(out[0, -1]) == (199, 0, 0, 255)
        assert tuple(out[0, 0]) == (99, 0, 0, 255)

    def test_output_size_rounds_half_up(self):
        assert output_size(Rectangle(0, 0, 10.5, 9.4), 0) == (11, 9)
        assert output_size(Rectangle(10, 10, 100, 50), 100) == (200, 100)
        assert output_size(Rectangle(0, 0, 10, 10), -150) == (0, 0)
        assert round_half_up(2.5) == 3
        assert round_half_up(-0.5) == 0

    def test_shrunk_to_nothing(self, gradient_buffer):
        out = crop_and_pad(gradient_buffer, Rectangle(10, 10, 10, 10), -150)
        assert out.size == (0, 0)

    def test_source_not_modified(self, gradient_buffer):
        before = gradient_buffer.as_array().copy()
        crop_and_pad(gradient_buffer, Rectangle(10, 10, 100, 50), 50)
        np.testing.assert_array_equal(gradient_buffer.as_array(), before)

    def test_invalid_buffer(self):
        buffer = PixelBuffer(5, 5, np.zeros(10, dtype=np.uint8))
        with pytest.raises(InvalidBuffer):
            crop_and_pad(buffer, Rectangle(0, 0, 2, 2))
