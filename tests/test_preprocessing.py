"""Tests for ocr_prep.preprocessing: the individual pixel stages."""

import numpy as np
import pytest

from ocr_prep.config import BinarizationPolicy, BorderMode
from ocr_prep.preprocessing import (
    binarize,
    binarize_mean,
    binarize_otsu,
    binarize_threshold,
    convolve,
    denoise,
    mean_threshold,
    otsu_threshold,
    sharpen,
    stretch_contrast,
    to_grayscale,
    upscale,
)
from ocr_prep.raster import BOX_BLUR_3X3, RasterBuffer, histogram


def _gray(rows) -> RasterBuffer:
    return RasterBuffer.from_array(np.array(rows, dtype=np.uint8))


def _rgb(r: int, g: int, b: int, width: int = 2, height: int = 2) -> RasterBuffer:
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[..., :] = (r, g, b)
    return RasterBuffer.from_array(pixels)


# ── Grayscale ──────────────────────────────────────────────────────────────


class TestGrayscale:
    def test_grayscale_input_is_returned_unchanged(self, blob_buffer):
        assert to_grayscale(blob_buffer) == blob_buffer

    def test_output_is_single_channel_with_same_size(self):
        result = to_grayscale(_rgb(10, 20, 30, width=5, height=3))
        assert result.channels == 1
        assert result.size == (5, 3)

    @pytest.mark.parametrize(
        "rgb,expected",
        [
            ((255, 0, 0), 76),     # 0.299 * 255 = 76.245
            ((0, 255, 0), 150),    # 0.587 * 255 = 149.685
            ((0, 0, 255), 29),     # 0.114 * 255 = 29.07
            ((255, 255, 255), 255),
            ((0, 0, 0), 0),
        ],
    )
    def test_bt601_luminance(self, rgb, expected):
        assert set(to_grayscale(_rgb(*rgb)).samples.tolist()) == {expected}

    def test_grey_pixels_keep_their_value(self):
        assert set(to_grayscale(_rgb(128, 128, 128)).samples.tolist()) == {128}

    def test_input_is_not_modified(self):
        src = _rgb(10, 200, 30)
        before = src.samples.copy()
        to_grayscale(src)
        assert np.array_equal(src.samples, before)


# ── Upscale ────────────────────────────────────────────────────────────────


class TestUpscale:
    def test_doubles_dimensions(self, blob_buffer):
        result = upscale(blob_buffer, 2.0)
        assert result.size == (400, 400)

    def test_rounds_fractional_dimensions(self):
        result = upscale(RasterBuffer.filled(5, 3, 0), 1.5)
        # 7.5 -> 8, 4.5 -> 5 (half up)
        assert result.size == (8, 5)

    def test_uniform_image_stays_uniform(self):
        result = upscale(RasterBuffer.filled(7, 4, 91), 2.0)
        assert set(result.samples.tolist()) == {91}

    def test_interpolates_between_neighbours(self):
        result = upscale(_gray([[0, 100]]), 2.0)
        # destination x=1 samples source x=0.25, x=2 samples x=0.75
        assert result.as_array()[0].tolist() == [0, 25, 75, 100]

    def test_edges_clamp_to_source_values(self):
        result = upscale(_gray([[10, 20], [30, 40]]), 2.0)
        arr = result.as_array()
        assert arr[0, 0] == 10
        assert arr[-1, -1] == 40

    def test_preserves_channel_count(self):
        result = upscale(_rgb(10, 20, 30, width=3, height=3), 2.0)
        assert result.channels == 3
        assert result.as_array()[0, 0].tolist() == [10, 20, 30]

    @pytest.mark.parametrize("factor", [1.0, 0.5, 0])
    def test_rejects_factor_not_above_one(self, factor):
        with pytest.raises(ValueError, match="greater than 1.0"):
            upscale(RasterBuffer.filled(2, 2, 0), factor)


# ── Convolution (denoise / sharpen) ────────────────────────────────────────


class TestConvolution:
    @pytest.mark.parametrize("stage", [denoise, sharpen])
    @pytest.mark.parametrize("border", list(BorderMode))
    def test_shape_is_preserved(self, stage, border, blob_buffer):
        result = stage(blob_buffer, border)
        assert result.size == blob_buffer.size
        assert result.channels == 1

    @pytest.mark.parametrize("stage", [denoise, sharpen])
    def test_uniform_image_is_unchanged(self, stage):
        buf = RasterBuffer.filled(6, 6, 128)
        assert stage(buf) == buf

    def test_denoise_removes_isolated_pixel(self):
        pixels = np.zeros((5, 5), dtype=np.uint8)
        pixels[2, 2] = 90
        result = denoise(RasterBuffer.from_array(pixels)).as_array()
        assert result[2, 2] == 10
        assert result[1, 1] == 10
        assert result[0, 0] == 0

    def test_denoise_replicates_edges(self):
        pixels = np.full((3, 3), 0, dtype=np.uint8)
        pixels[0, 0] = 90
        result = denoise(RasterBuffer.from_array(pixels), BorderMode.REPLICATE)
        # corner window sees the 90 four times through edge replication
        assert result.as_array()[0, 0] == 40

    def test_crop_border_copies_outer_ring(self):
        pixels = np.arange(25, dtype=np.uint8).reshape(5, 5) * 10
        src = RasterBuffer.from_array(pixels)
        result = denoise(src, BorderMode.CROP).as_array()
        assert result[0].tolist() == pixels[0].tolist()
        assert result[:, -1].tolist() == pixels[:, -1].tolist()
        assert result[2, 2] == 120

    def test_crop_border_on_tiny_image_is_identity(self):
        src = _gray([[0, 255], [255, 0]])
        assert convolve(src, BOX_BLUR_3X3, BorderMode.CROP) == src

    def test_sharpen_increases_edge_contrast(self):
        src = _gray([[100, 100, 150, 150]] * 3)
        result = sharpen(src).as_array()
        assert result[1, 1] < 100
        assert result[1, 2] > 150

    def test_sharpen_clamps_to_byte_range(self):
        src = _gray([[0, 0, 0], [0, 255, 0], [0, 0, 0]])
        result = sharpen(src).as_array()
        assert result[1, 1] == 255
        assert result[0, 1] == 0

    def test_sharpen_keeps_binary_image_binary(self, bimodal_buffer):
        binary = binarize_otsu(bimodal_buffer)
        assert sharpen(binary).is_binary

    def test_rejects_colour_buffer(self):
        with pytest.raises(ValueError, match="single-channel"):
            denoise(RasterBuffer.filled(3, 3, 0, channels=3))


# ── Contrast stretch ───────────────────────────────────────────────────────


class TestContrastStretch:
    def test_uniform_input_is_unchanged(self):
        buf = RasterBuffer.filled(10, 10, 128)
        assert stretch_contrast(buf) is buf

    def test_stretches_to_full_range(self):
        result = stretch_contrast(_gray([[50, 100], [150, 200]]))
        assert result.as_array().tolist() == [[0, 85], [170, 255]]

    def test_min_maps_to_zero_and_max_to_255(self, blob_buffer):
        result = stretch_contrast(blob_buffer)
        assert result.samples.min() == 0
        assert result.samples.max() == 255

    def test_rounds_half_up(self):
        # (1 - 0) * 255 / 2 = 127.5
        result = stretch_contrast(_gray([[0, 1, 2]]))
        assert result.as_array().tolist() == [[0, 128, 255]]

    def test_full_range_input_is_identical(self):
        src = _gray([[0, 64, 255]])
        assert stretch_contrast(src) == src


# ── Binarisation ───────────────────────────────────────────────────────────


class TestMeanThreshold:
    def test_uniform_buffer_becomes_all_black(self):
        buf = RasterBuffer.filled(10, 10, 128)
        assert mean_threshold(buf) == 128
        assert set(binarize_mean(buf).samples.tolist()) == {0}

    def test_integer_mean_truncates(self):
        assert mean_threshold(_gray([[0, 1, 1]])) == 0

    def test_samples_above_mean_become_white(self):
        result = binarize_mean(_gray([[10, 20, 30]]))
        assert result.as_array().tolist() == [[0, 0, 255]]


class TestOtsuThreshold:
    def test_bimodal_threshold_separates_peaks(self, bimodal_buffer):
        threshold = otsu_threshold(histogram(bimodal_buffer))
        assert 50 <= threshold < 200

    def test_bimodal_ties_keep_lowest_threshold(self, bimodal_buffer):
        # every t in [50, 200) gives the same variance
        assert otsu_threshold(histogram(bimodal_buffer)) == 50

    def test_bimodal_binarization_reproduces_pattern(self, bimodal_buffer):
        result = binarize_otsu(bimodal_buffer).as_array()
        expected = np.where(bimodal_buffer.as_array() == 200, 255, 0)
        assert np.array_equal(result, expected)

    def test_uniform_histogram_gives_zero(self):
        hist = [0] * 256
        hist[128] = 100
        assert otsu_threshold(hist) == 0

    def test_uniform_image_binarizes_to_single_level(self):
        result = binarize_otsu(RasterBuffer.filled(4, 4, 128))
        assert set(result.samples.tolist()) == {255}

    def test_unbalanced_classes(self):
        hist = [0] * 256
        hist[20] = 10
        hist[30] = 10
        hist[220] = 80
        assert 30 <= otsu_threshold(hist) < 220

    def test_rejects_wrong_bin_count(self):
        with pytest.raises(ValueError, match="256"):
            otsu_threshold([1, 2, 3])


class TestBinarize:
    @pytest.mark.parametrize("policy", list(BinarizationPolicy))
    def test_output_is_binary(self, policy, blob_buffer):
        assert binarize(blob_buffer, policy).is_binary

    def test_threshold_is_strict(self):
        result = binarize_threshold(_gray([[99, 100, 101]]), 100)
        assert result.as_array().tolist() == [[0, 0, 255]]

    def test_policy_accepts_string_value(self, blob_buffer):
        assert binarize(blob_buffer, "otsu") == binarize_otsu(blob_buffer)

    def test_rejects_colour_buffer(self):
        with pytest.raises(ValueError, match="single-channel"):
            binarize(RasterBuffer.filled(2, 2, 0, channels=3), BinarizationPolicy.OTSU)
