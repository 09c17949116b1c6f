"""Tests for the preview module.

This module tests the preview/display and preview/export functionality including:
- Tone mapping functions (Reinhard, exposure)
- Gamma correction
- PNG, JPEG and PPM export through Pillow
- Atomic writes
- RMSE computation

None of these need Taichi, they operate on numpy arrays.
"""

import os
import tempfile

import numpy as np
import pytest
from PIL import Image as PILImage


class TestToneMapReinhard:
    """Test Reinhard tone mapping."""

    def test_reinhard_preserves_black(self):
        from prism.preview.display import tone_map_reinhard

        image = np.zeros((10, 10, 3), dtype=np.float32)
        assert np.all(tone_map_reinhard(image) == 0.0)

    def test_reinhard_values(self):
        """Test L / (1 + L) for a few radiances, including HDR values."""
        from prism.preview.display import tone_map_reinhard

        image = np.array([[[1.0, 3.0, 99.0]]], dtype=np.float32)
        np.testing.assert_allclose(tone_map_reinhard(image), [[[0.5, 0.75, 0.99]]], atol=1e-6)

    def test_reinhard_clamps_negative(self):
        from prism.preview.display import tone_map_reinhard

        image = np.full((2, 2, 3), -1.0, dtype=np.float32)
        assert np.all(tone_map_reinhard(image) == 0.0)


class TestToneMapExposure:
    """Test exposure tone mapping."""

    def test_exposure_values(self):
        from prism.preview.display import tone_map_exposure

        image = np.ones((1, 1, 3), dtype=np.float32)
        np.testing.assert_allclose(tone_map_exposure(image, 1.0), 1.0 - np.exp(-1.0), atol=1e-6)
        np.testing.assert_allclose(tone_map_exposure(image, 2.0), 1.0 - np.exp(-2.0), atol=1e-6)

    def test_higher_exposure_is_brighter(self):
        from prism.preview.display import tone_map_exposure

        image = np.full((4, 4, 3), 0.3, dtype=np.float32)
        assert tone_map_exposure(image, 2.0).mean() > tone_map_exposure(image, 0.5).mean()


class TestGamma:
    """Test gamma correction."""

    def test_gamma_one_is_identity(self):
        from prism.preview.display import apply_gamma

        image = np.array([[[2.0, 0.5, -0.1]]], dtype=np.float32)
        np.testing.assert_array_equal(apply_gamma(image, 1.0), image)

    def test_gamma_encoding(self):
        from prism.preview.display import apply_gamma

        image = np.array([[[0.25, 1.0, 4.0]]], dtype=np.float32)
        np.testing.assert_allclose(apply_gamma(image, 2.0), [[[0.5, 1.0, 1.0]]], atol=1e-6)

    @pytest.mark.parametrize("gamma", [0.0, -2.2])
    def test_invalid_gamma(self, gamma):
        from prism.preview.display import apply_gamma

        with pytest.raises(ValueError):
            apply_gamma(np.zeros((1, 1, 3), dtype=np.float32), gamma)


class TestProcessForDisplay:
    """Test the combined display pipeline."""

    def test_output_in_unit_range(self):
        from prism.preview.display import process_image_for_display

        image = np.random.default_rng(0).uniform(-1.0, 50.0, (8, 8, 3)).astype(np.float32)
        for tone_map in ("none", "reinhard", "exposure"):
            result = process_image_for_display(image, tone_map=tone_map)
            assert result.min() >= 0.0
            assert result.max() <= 1.0

    def test_unknown_tone_map(self):
        from prism.preview.display import process_image_for_display

        with pytest.raises(ValueError):
            process_image_for_display(np.zeros((1, 1, 3)), tone_map="filmic")


class TestExport:
    """Test image export."""

    def test_image_to_uint8(self):
        from prism.preview.export import image_to_uint8

        image = np.array([[[0.0, 1.0, 2.0]]], dtype=np.float32)
        result = image_to_uint8(image, gamma=1.0)
        assert result.dtype == np.uint8
        np.testing.assert_array_equal(result, [[[0, 255, 255]]])

    @pytest.mark.parametrize("extension", [".png", ".jpg", ".jpeg", ".ppm", ".PNG"])
    def test_save_formats(self, extension):
        from prism.preview.export import save_image

        image = np.zeros((6, 16, 3), dtype=np.float32)
        image[:, 8:] = 1.0
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, f"out{extension}")
            save_image(image, path)
            with PILImage.open(path) as saved:
                assert saved.size == (16, 6)
                pixels = np.asarray(saved.convert("RGB"))
            assert pixels[0, 0].max() < 10
            assert pixels[0, -1].min() > 245
            # Only the final file remains, no temporary leftovers
            assert os.listdir(tmpdir) == [f"out{extension}"]

    def test_ppm_is_binary_p6(self):
        from prism.preview.export import save_image

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.ppm")
            save_image(np.full((2, 3, 3), 0.5, dtype=np.float32), path, gamma=1.0)
            with open(path, "rb") as f:
                assert f.read(2) == b"P6"

    def test_overwrite_existing_file(self):
        from prism.preview.export import save_image

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.png")
            save_image(np.zeros((2, 2, 3), dtype=np.float32), path)
            save_image(np.ones((4, 4, 3), dtype=np.float32), path)
            with PILImage.open(path) as saved:
                assert saved.size == (4, 4)

    def test_unsupported_extension(self):
        from prism.preview.export import save_image

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.tiff")
            with pytest.raises(ValueError):
                save_image(np.zeros((2, 2, 3), dtype=np.float32), path)
            assert os.listdir(tmpdir) == []

    def test_bad_shape(self):
        from prism.preview.export import save_image

        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ValueError):
                save_image(np.zeros((2, 2)), os.path.join(tmpdir, "out.png"))

    def test_image_format_for(self):
        from prism.preview.export import image_format_for

        assert image_format_for("a/b/render.JPEG") == "JPEG"
        assert image_format_for("render.ppm") == "PPM"


class TestRMSE:
    """Test RMSE computation."""

    def test_identical_images(self):
        from prism.preview.export import compute_rmse

        image = np.random.default_rng(1).random((4, 4, 3))
        assert compute_rmse(image, image) == 0.0

    def test_known_difference(self):
        from prism.preview.export import compute_rmse

        a = np.zeros((2, 2, 3))
        b = np.full((2, 2, 3), 0.5)
        assert compute_rmse(a, b) == pytest.approx(0.5)

    def test_shape_mismatch(self):
        from prism.preview.export import compute_rmse

        with pytest.raises(ValueError):
            compute_rmse(np.zeros((2, 2, 3)), np.zeros((3, 2, 3)))
