"""
Tests for full-resolution export and encoding.
"""

from io import BytesIO
from unittest.mock import patch

import cv2
import numpy as np
import pytest
from PIL import Image

from photoedit.errors import EncodeFailure, RenderFailure
from photoedit.export.exporter import (
    ExportSettings, encode_image, encode_thumbnail, encode_with_fallback,
    export_image, render_export
)
from photoedit.processing.adjustments import AdjustmentModel, DEFAULT_ADJUSTMENTS
from photoedit.processing.geometry.crop import CropBox, DEFAULT_CROP
from photoedit.processing.geometry.transform import fit_within


def decode(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


class TestExportSize:
    """The exported image is capped at the maximum dimension."""

    def test_large_landscape_is_capped(self):
        """4000x3000 exports at 1920x1440."""
        assert fit_within(4000, 3000, 1920) == (1920, 1440)

        source = np.full((1500, 2000, 3), 90, dtype=np.uint8)
        rendered = render_export(source, DEFAULT_ADJUSTMENTS, DEFAULT_CROP, 1000)
        assert rendered.shape == (750, 1000, 3)
        assert np.all(rendered == 90)

    def test_small_image_is_not_upscaled(self, gradient_image):
        """Images under the cap keep their size."""
        rendered = render_export(gradient_image, DEFAULT_ADJUSTMENTS, DEFAULT_CROP, 1920)
        np.testing.assert_array_equal(rendered, gradient_image)

    def test_rotation_swaps_export_frame(self, gradient_image):
        """A quarter turn swaps width and height."""
        crop = DEFAULT_CROP.rotated(90)
        rendered = render_export(gradient_image, DEFAULT_ADJUSTMENTS, crop, 1920)
        assert rendered.shape == (64, 48, 3)

    def test_export_uses_full_resolution(self):
        """Crops are taken from the full-resolution source."""
        source = np.zeros((1200, 1600, 3), dtype=np.uint8)
        crop = CropBox(x=20, y=10, width=60, height=80)
        exported = export_image(source, DEFAULT_ADJUSTMENTS, crop, ExportSettings(format='png'))
        assert (exported.width, exported.height) == (960, 960)
        assert decode(exported.data).size == (960, 960)

    def test_opencv_error_becomes_render_failure(self, gradient_image):
        """Transform errors surface as RenderFailure, chained to the cause."""
        with patch('photoedit.export.exporter.apply_crop_transform',
                   side_effect=cv2.error("output too large")):
            with pytest.raises(RenderFailure) as excinfo:
                render_export(gradient_image, DEFAULT_ADJUSTMENTS, DEFAULT_CROP.with_straighten(5), 1920)
        assert isinstance(excinfo.value.__cause__, cv2.error)


class TestEncoding:
    """Test encoders and the fallback."""

    def test_encode_formats(self, gradient_image):
        """JPEG and PNG encodes decode with the requested format."""
        assert decode(encode_image(gradient_image, 'jpeg', 0.9)).format == 'JPEG'
        assert decode(encode_image(gradient_image, 'png')).format == 'PNG'

    def test_jpeg_flattens_alpha(self, rgba_image):
        """JPEG export drops the alpha channel."""
        img = decode(encode_image(rgba_image, 'jpg', 0.92))
        assert img.mode == 'RGB'

    def test_png_keeps_alpha(self, rgba_image):
        """PNG export keeps the alpha channel."""
        img = decode(encode_image(rgba_image, 'png'))
        assert img.mode == 'RGBA'
        np.testing.assert_array_equal(np.array(img)[..., 3], rgba_image[..., 3])

    def test_unsupported_format(self, gradient_image):
        """An unknown format raises EncodeFailure."""
        with pytest.raises(EncodeFailure) as exc_info:
            encode_image(gradient_image, 'gif')
        assert exc_info.value.format == 'gif'

    def test_falls_back_to_jpeg_without_webp(self, gradient_image):
        """A missing WebP encoder falls back to JPEG."""
        with patch('photoedit.export.exporter.features.check', return_value=False):
            exported = encode_with_fallback(gradient_image, ExportSettings())
        assert exported.format == 'jpeg'
        assert exported.mime_type == 'image/jpeg'
        assert decode(exported.data).format == 'JPEG'

    def test_fallback_failure_propagates(self, gradient_image):
        """If the fallback also fails the error is raised."""
        with patch('photoedit.export.exporter.encode_image',
                   side_effect=EncodeFailure("encoder broken", format='webp')) as mock_encode:
            with pytest.raises(EncodeFailure):
                encode_with_fallback(gradient_image, ExportSettings())
        assert mock_encode.call_count == 2

    def test_no_fallback_configured(self, gradient_image):
        """Without a fallback format the first failure is raised."""
        with patch('photoedit.export.exporter.features.check', return_value=False):
            with pytest.raises(EncodeFailure):
                encode_with_fallback(gradient_image, ExportSettings(fallback_format=None))

    def test_export_image_with_adjustments(self, gradient_image):
        """Adjustments are applied to the exported pixels."""
        exported = export_image(
            gradient_image, AdjustmentModel(saturation=-100),
            DEFAULT_CROP, ExportSettings(format='png')
        )
        pixels = np.array(decode(exported.data))
        assert np.all(pixels[..., 0] == pixels[..., 1])
        assert exported.mime_type == 'image/png'

    def test_thumbnail(self):
        """Thumbnails are JPEG and capped at 800 pixels."""
        image = np.full((600, 1600, 3), 128, dtype=np.uint8)
        img = decode(encode_thumbnail(image, 800, 0.85))
        assert img.format == 'JPEG'
        assert img.size == (800, 300)


class TestExportSettings:
    """Test settings from configuration."""

    def test_defaults(self):
        """Default export settings."""
        settings = ExportSettings.from_config()
        assert settings.max_dimension == 1920
        assert settings.quality == 0.92
        assert settings.format == 'webp'
        assert settings.fallback_format == 'jpeg'

    def test_from_config(self):
        """Export settings are read from the export section."""
        config = {'export': {'max_dimension': '1024', 'quality': 0.5, 'format': 'JPEG'}}
        settings = ExportSettings.from_config(config)
        assert settings.max_dimension == 1024
        assert settings.quality == 0.5
        assert settings.format == 'jpeg'
