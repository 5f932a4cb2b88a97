import numpy as np
import pytest

from config.settings import INVALID_POSITION_FORMULA
from models.errors import InvalidTemplateSizeError, UnknownMetricError
from models.raster import Pixel, Position, Raster, extract_region, get_pixel
from models.template_matching_processor import (
    MatchMetric,
    ScoredOffset,
    TemplateMatchingProcessor,
    find_matches,
    parse_metric,
)

from conftest import make_gray


@pytest.fixture
def processor():
    return TemplateMatchingProcessor()


@pytest.fixture
def ramp():
    # Яркости 0, 10, 20, 30 в одну строку; шаблон из двух нулей
    return make_gray(np.array([[0, 10, 20, 30]])), make_gray(np.array([[0, 0]]))


def test_parse_metric():
    assert parse_metric("NCC") is MatchMetric.NCC
    assert parse_metric("sad") is MatchMetric.SAD
    assert parse_metric(MatchMetric.SSD) is MatchMetric.SSD
    with pytest.raises(UnknownMetricError):
        parse_metric("zncc")


def test_template_larger_than_source(processor, random_raster):
    template = Raster.blank(10, 2, (0, 0, 0, 255))
    with pytest.raises(InvalidTemplateSizeError):
        processor.match(random_raster, template, "ncc")


def test_ncc_finds_extracted_region(processor, random_raster):
    template = extract_region(random_raster, 3, 2, 3, 3)
    scores = processor.compute_scores(random_raster, template, MatchMetric.NCC)
    assert scores.shape == (5, 7)
    assert np.unravel_index(np.argmax(scores), scores.shape) == (2, 3)
    assert scores[2, 3] == pytest.approx(1.0)

    heat_map = processor.apply_ncc(random_raster, template)
    assert get_pixel(heat_map, 3, 2) == Pixel(255, 255, 255, 255)


@pytest.mark.parametrize("metric", [MatchMetric.SSD, MatchMetric.SAD])
def test_difference_metrics_exact_match(processor, random_raster, metric):
    template = extract_region(random_raster, 3, 2, 3, 3)
    scores = processor.compute_scores(random_raster, template, metric)
    assert scores[2, 3] == 0.0
    assert scores.min() == 0.0

    heat_map = processor.match(random_raster, template, metric)
    assert get_pixel(heat_map, 3, 2).r == 255


def test_heat_map_outside_valid_grid_is_black(processor, random_raster):
    template = extract_region(random_raster, 0, 0, 4, 3)
    heat_map = processor.apply_sad(random_raster, template)
    assert heat_map.shape == random_raster.shape
    # Допустимая сетка 6x5
    for x in range(6, 9):
        assert get_pixel(heat_map, x, 0) == Pixel(0, 0, 0, 255)
    for y in range(5, 7):
        assert get_pixel(heat_map, 0, y) == Pixel(0, 0, 0, 255)
    np.testing.assert_array_equal(heat_map.pixels[..., 3], 255)


def test_ssd_and_sad_display_scaling(processor, ramp):
    source, template = ramp
    # SSD: 100, 500, 1300
    ssd = processor.apply_ssd(source, template)
    assert [get_pixel(ssd, x, 0).r for x in range(4)] == [255, 170, 0, 0]
    # SAD: 10, 30, 50
    sad = processor.apply_sad(source, template)
    assert [get_pixel(sad, x, 0).r for x in range(3)] == [255, 128, 0]


def test_flat_region_ncc_is_zero(processor):
    source = Raster.blank(6, 6, (90, 90, 90, 255))
    template = make_gray(np.array([[0, 50, 100], [0, 50, 100], [0, 50, 100]]))
    scores = processor.compute_scores(source, template, "ncc")
    np.testing.assert_array_equal(scores, 0.0)
    assert get_pixel(processor.apply_ncc(source, template), 0, 0).r == 128


def test_single_offset_difference_metric_is_white(processor, random_raster):
    template = Raster.blank(random_raster.width, random_raster.height, (0, 0, 0, 255))
    heat_map = processor.apply_ssd(random_raster, template)
    assert get_pixel(heat_map, 0, 0).r == 255


@pytest.mark.parametrize("metric", list(MatchMetric))
def test_point_recomputation_matches_raw_scores(processor, random_raster, metric):
    template = extract_region(random_raster, 1, 1, 3, 2)
    scores = processor.compute_scores(random_raster, template, metric)
    for y in range(scores.shape[0]):
        for x in range(scores.shape[1]):
            computation = processor.calculate_at_pixel(random_raster, template, metric, x, y)
            assert computation.is_valid
            assert computation.score == pytest.approx(float(scores[y, x]), rel=1e-12, abs=1e-12)


def test_point_difference_metrics_use_fixed_scale(processor, ramp):
    source, template = ramp
    ssd = processor.calculate_at_pixel(source, template, "ssd", 2, 0)
    assert ssd.score == 1300.0
    assert ssd.normalized_score == 13
    assert ssd.formula == "SSD = Σ(src_i - tmpl_i)² = 1300.00"

    sad = processor.calculate_at_pixel(source, template, "sad", 2, 0)
    assert sad.score == 50.0
    assert sad.normalized_score == 5

    assert [step.source_value for step in sad.steps] == [20.0, 30.0]
    assert [step.template_value for step in sad.steps] == [0.0, 0.0]
    assert [step.position for step in sad.steps] == [Position(2, 0), Position(3, 0)]


def test_point_scale_is_capped(processor):
    source = make_gray(np.array([[200, 200, 200]]))
    template = make_gray(np.array([[0, 0]]))
    assert processor.calculate_at_pixel(source, template, "ssd", 0, 0).normalized_score == 255


def test_point_ncc_self_match(processor, random_raster):
    template = extract_region(random_raster, 3, 2, 3, 3)
    computation = processor.calculate_at_pixel(random_raster, template, "ncc", 3, 2)
    assert computation.score == pytest.approx(1.0)
    assert computation.normalized_score == 255
    assert len(computation.steps) == 9
    assert computation.formula.startswith("NCC = ")
    assert computation.template_bounds.width == 3


@pytest.mark.parametrize("x, y", [(7, 0), (0, 5), (-1, 0)])
def test_point_offset_outside_returns_sentinel(processor, random_raster, x, y):
    template = extract_region(random_raster, 0, 0, 3, 3)
    computation = processor.calculate_at_pixel(random_raster, template, "sad", x, y)
    assert computation.score == 0
    assert computation.normalized_score == 0
    assert computation.steps == []
    assert computation.formula == INVALID_POSITION_FORMULA
    assert not computation.is_valid
    assert computation.template_bounds.x == x


def test_find_matches_threshold_and_limit():
    scored = [ScoredOffset(0, 0, 210), ScoredOffset(1, 0, 199), ScoredOffset(2, 0, 250), ScoredOffset(3, 0, 200)]
    assert find_matches(scored, 200, 2) == [ScoredOffset(2, 0, 250), ScoredOffset(0, 0, 210)]
    assert find_matches(scored, 200, None) == [
        ScoredOffset(0, 0, 210), ScoredOffset(2, 0, 250), ScoredOffset(3, 0, 200),
    ]


def test_best_matches_include_self_match(processor, random_raster):
    template = extract_region(random_raster, 3, 2, 3, 3)
    matches = processor.best_matches(random_raster, template, "ssd", threshold=255, limit=1)
    assert matches == [ScoredOffset(3, 2, 255)]


def test_find_matches_negative_limit_keeps_all():
    scored = [ScoredOffset(0, 0, 210), ScoredOffset(1, 0, 220)]
    assert find_matches(scored, 200, -1) == scored
    assert find_matches(scored, 200, 0) == scored


def test_match_and_find_agrees_with_separate_calls(processor, random_raster):
    template = extract_region(random_raster, 3, 2, 3, 3)
    heat_map, matches = processor.match_and_find(random_raster, template, "sad", threshold=100, limit=4)
    assert heat_map == processor.match(random_raster, template, "sad")
    assert matches == processor.best_matches(random_raster, template, "sad", threshold=100, limit=4)
