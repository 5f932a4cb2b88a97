import numpy as np
import pytest

from models.errors import InvalidParameterError, OutOfBoundsError, UnknownOperationError
from models.pixel_processor import (
    Brightness,
    Contrast,
    Grayscale,
    GrayscaleMethod,
    Invert,
    PixelProcessor,
    Threshold,
    parse_operation,
)
from models.raster import Pixel, Raster, get_pixel


@pytest.fixture
def processor():
    return PixelProcessor()


@pytest.fixture
def single():
    return Raster.blank(1, 1, (100, 50, 200, 77))


@pytest.mark.parametrize("method, expected", [
    (GrayscaleMethod.LUMINOSITY, 82),   # 82.05
    (GrayscaleMethod.AVERAGE, 117),     # 116.67
    (GrayscaleMethod.LIGHTNESS, 125),   # (200 + 50) / 2
])
def test_grayscale_methods(processor, single, method, expected):
    output = processor.to_grayscale(single, method)
    assert get_pixel(output, 0, 0) == Pixel(expected, expected, expected, 77)


def test_brightness_clamps(processor):
    source = Raster.blank(1, 1, (240, 50, 0, 255))
    assert get_pixel(processor.adjust_brightness(source, 30), 0, 0) == Pixel(255, 80, 30, 255)
    assert get_pixel(processor.adjust_brightness(source, -100), 0, 0) == Pixel(140, 0, 0, 255)


def test_contrast_rounds_and_clamps(processor):
    source = Raster.blank(1, 1, (100, 200, 101, 255))
    assert get_pixel(processor.adjust_contrast(source, 2), 0, 0)[:3] == (72, 255, 74)
    # (101 - 128) * 0.5 + 128 = 114.5
    assert get_pixel(processor.adjust_contrast(source, 0.5), 0, 0).b == 115


def test_threshold_is_strict(processor):
    black = Raster.blank(1, 1, (0, 0, 0, 255))
    assert get_pixel(processor.apply_threshold(black, 0), 0, 0).r == 0

    source = Raster.blank(2, 1, (0, 0, 0, 255))
    source.pixels[0, 1, :3] = (200, 200, 200)
    output = processor.apply_threshold(source, 128)
    assert get_pixel(output, 0, 0)[:3] == (0, 0, 0)
    assert get_pixel(output, 1, 0)[:3] == (255, 255, 255)


def test_invert_is_involution(processor, random_raster):
    once = processor.invert_colors(random_raster)
    assert once != random_raster
    assert processor.invert_colors(once) == random_raster


def test_alpha_preserved_everywhere(processor, random_raster):
    for operation in (Grayscale(), Brightness(20), Contrast(1.5), Threshold(100), Invert()):
        output = processor.apply(random_raster, operation)
        np.testing.assert_array_equal(output.pixels[..., 3], random_raster.pixels[..., 3])


@pytest.mark.parametrize("operation", [
    Grayscale(GrayscaleMethod.LUMINOSITY),
    Grayscale(GrayscaleMethod.AVERAGE),
    Grayscale(GrayscaleMethod.LIGHTNESS),
    Brightness(-37),
    Brightness(12.5),
    Contrast(1.7),
    Contrast(0.3),
    Threshold(110),
    Invert(),
])
def test_point_recomputation_matches_full_pass(processor, random_raster, operation):
    output = processor.apply(random_raster, operation)
    for y in range(random_raster.height):
        for x in range(random_raster.width):
            computation = processor.calculate_at_pixel(random_raster, operation, x, y)
            assert computation.input == get_pixel(random_raster, x, y)
            assert computation.result == get_pixel(output, x, y)


def test_formulas_embed_real_values(processor):
    source = Raster.blank(1, 1, (10, 20, 30, 255))
    assert processor.calculate_at_pixel(source, Brightness(5), 0, 0).formula == \
        "RGB(10, 20, 30) + 5 = RGB(15, 25, 35)"
    assert processor.calculate_at_pixel(source, Invert(), 0, 0).formula == \
        "255 − RGB(10, 20, 30) = RGB(245, 235, 225)"
    assert processor.calculate_at_pixel(source, Grayscale(GrayscaleMethod.AVERAGE), 0, 0).formula == \
        "(10 + 20 + 30) / 3 = 20"
    assert processor.calculate_at_pixel(source, Contrast(2), 0, 0).formula == \
        "(RGB(10, 20, 30) − 128) × 2 + 128 = RGB(0, 0, 0)"


def test_luminosity_formula(processor, single):
    formula = processor.calculate_at_pixel(single, Grayscale(), 0, 0).formula
    assert formula == "0.299×100 + 0.587×50 + 0.114×200 = 82"


def test_threshold_formula(processor):
    black = Raster.blank(1, 1, (0, 0, 0, 255))
    assert processor.calculate_at_pixel(black, Threshold(0), 0, 0).formula == "gray(0) ≤ 0 → 0"


def test_calculate_at_pixel_outside(processor, single):
    with pytest.raises(OutOfBoundsError):
        processor.calculate_at_pixel(single, Invert(), 1, 0)


def test_parse_operation():
    assert parse_operation("grayscale", {"method": "average"}) == Grayscale(GrayscaleMethod.AVERAGE)
    assert parse_operation("brightness", {"amount": 10}) == Brightness(10)
    assert parse_operation("contrast") == Contrast(1)
    assert parse_operation("threshold") == Threshold(128)
    assert parse_operation("invertColors") == Invert()


def test_parse_operation_errors():
    with pytest.raises(UnknownOperationError):
        parse_operation("sepia")
    with pytest.raises(InvalidParameterError):
        parse_operation("grayscale", {"method": "desaturate"})


def test_parse_operation_none_means_default():
    params = {"method": None, "amount": None, "factor": None, "threshold": None}
    assert parse_operation("grayscale", params) == Grayscale(GrayscaleMethod.LUMINOSITY)
    assert parse_operation("brightness", params) == Brightness(0)
    assert parse_operation("contrast", params) == Contrast(1)
    assert parse_operation("threshold", params) == Threshold(128)


def test_brightness_without_amount_is_noop(processor, random_raster):
    operation = parse_operation("adjustBrightness", {"amount": None})
    assert processor.apply(random_raster, operation) == random_raster
