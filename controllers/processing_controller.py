#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Вычислительный API для слоя представления.
Связывает строковые параметры интерфейса (имена операций и метрик) с процессорами.
"""

from typing import Any, Dict, List, Optional, Tuple

from config.settings import DEFAULT_MATCH_THRESHOLD, DEFAULT_MAX_MATCHES
from models.convolution_processor import ConvolutionComputation, ConvolutionProcessor
from models.pixel_processor import PixelComputation, PixelProcessor, parse_operation
from models.raster import Raster, Selection
from models.raster import extract_region as _extract_region
from models.template_matching_processor import (
    MatchComputation,
    ScoredOffset,
    TemplateMatchingProcessor,
    parse_metric,
)

_convolution = ConvolutionProcessor()
_pixels = PixelProcessor()
_matching = TemplateMatchingProcessor()


def convolve(source: Raster, kernel, normalize: bool = True) -> Raster:
    """Свёртка всего изображения ядром."""
    return _convolution.apply_kernel(source, kernel, normalize)


def convolve_sobel_combined(source: Raster) -> Raster:
    """Модуль градиента Собеля."""
    return _convolution.apply_sobel_combined(source)


def convolve_at_point(source: Raster, kernel, x: int, y: int, normalize: bool = True) -> ConvolutionComputation:
    """Свёртка в одной точке с трассировкой."""
    return _convolution.calculate_at_pixel(source, kernel, x, y, normalize)


def apply_point_op(source: Raster, op_name: str, params: Optional[Dict[str, Any]] = None) -> Raster:
    """
    Точечная операция по имени.

    Args:
        source: Исходный растр
        op_name: grayscale, brightness, contrast, threshold или invert
        params: Параметры операции (method, amount, factor, threshold)
    """
    return _pixels.apply(source, parse_operation(op_name, params))


def point_op_at_pixel(
    source: Raster, op_name: str, params: Optional[Dict[str, Any]], x: int, y: int
) -> PixelComputation:
    """Точечная операция в одном пикселе с формулой."""
    return _pixels.calculate_at_pixel(source, parse_operation(op_name, params), x, y)


def match_template(source: Raster, template: Raster, metric: str) -> Raster:
    """Тепловая карта сопоставления (ncc, ssd или sad)."""
    return _matching.match(source, template, parse_metric(metric))


def find_template_matches(
    source: Raster, template: Raster, metric: str,
    threshold: int = DEFAULT_MATCH_THRESHOLD, limit: Optional[int] = DEFAULT_MAX_MATCHES,
) -> List[ScoredOffset]:
    """Смещения, чья оценка на тепловой карте не ниже порога."""
    return _matching.best_matches(source, template, parse_metric(metric), threshold, limit)


def match_template_with_matches(
    source: Raster, template: Raster, metric: str,
    threshold: int = DEFAULT_MATCH_THRESHOLD, limit: Optional[int] = DEFAULT_MAX_MATCHES,
) -> Tuple[Raster, List[ScoredOffset]]:
    """Тепловая карта и совпадения за один расчёт оценок."""
    return _matching.match_and_find(source, template, parse_metric(metric), threshold, limit)


def match_at_offset(source: Raster, template: Raster, metric: str, x: int, y: int) -> MatchComputation:
    """Мера сходства в одном смещении с трассировкой."""
    return _matching.calculate_at_pixel(source, template, parse_metric(metric), x, y)


def extract_region(source: Raster, x: int, y: int, width: int, height: int) -> Raster:
    """Вырезает область (например, шаблон из выделения)."""
    return _extract_region(source, x, y, width, height)


def select_template(source: Raster, x: int, y: int, width: int, height: int) -> Raster:
    """
    Подтверждает выделение и вырезает шаблон.

    Raises:
        InvalidDimensionsError: выделение меньше 3x3
        OutOfBoundsError: выделение выходит за границы
    """
    return Selection(x, y, width, height).extract(source)
