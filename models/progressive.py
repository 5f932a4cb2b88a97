#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Пошаговый (анимированный) пересчёт.

Драйвер владеет единственным изменяемым буфером вывода: каждый шаг пересчитывает
одну координату через calculate_at_pixel процессора и записывает результат в буфер
на месте. Темп задаёт вызывающий код; процессоры состояния не хранят.
"""

import logging
import math
from typing import Iterator, List, Optional

from config.settings import *
from models.convolution_processor import ConvolutionComputation, ConvolutionProcessor
from models.kernels import as_kernel
from models.raster import Position, Raster, clone, set_pixel
from models.template_matching_processor import (
    MatchComputation,
    ScoredOffset,
    TemplateMatchingProcessor,
    find_matches,
    parse_metric,
)

logger = logging.getLogger(__name__)


class _RasterScan:
    """Обход сетки width x height: x внутри, y снаружи."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.current = Position(0, 0)
        self.is_complete = False

    @property
    def total(self) -> int:
        return self.width * self.height

    @property
    def progress(self) -> int:
        """Процент выполнения 0..100."""
        if self.is_complete:
            return 100
        index = self.current.y * self.width + self.current.x
        return math.floor(index / self.total * 100)

    def advance(self) -> None:
        next_x = self.current.x + 1
        next_y = self.current.y
        if next_x >= self.width:
            next_x = 0
            next_y += 1
        if next_y >= self.height:
            self.is_complete = True
            return
        self.current = Position(next_x, next_y)


class ConvolutionAnimation:
    """
    Пошаговая свёртка: буфер начинается с копии исходника, пиксели заменяются
    результатами свёртки в порядке развёртки.
    """

    def __init__(self, source: Raster, kernel, normalize: bool = True,
                 processor: Optional[ConvolutionProcessor] = None):
        self.source = source
        self.kernel = as_kernel(kernel)
        self.normalize = normalize
        self.processor = processor or ConvolutionProcessor()
        self.computation: Optional[ConvolutionComputation] = None
        self.computation_pixel: Optional[Position] = None
        self.reset()

    def reset(self) -> None:
        """Сбрасывает буфер и начинает заново с первого пикселя."""
        self._buffer = clone(self.source)
        self._scan = _RasterScan(self.source.width, self.source.height)
        self.computation = None
        self.computation_pixel = None

    @property
    def buffer(self) -> Raster:
        """Текущий буфер (изменяется на месте следующими шагами)."""
        return self._buffer

    @property
    def current_pixel(self) -> Position:
        return self._scan.current

    @property
    def is_complete(self) -> bool:
        return self._scan.is_complete

    @property
    def progress(self) -> int:
        return self._scan.progress

    def snapshot(self) -> Raster:
        """Независимая копия буфера."""
        return clone(self._buffer)

    def step(self) -> Optional[ConvolutionComputation]:
        """Обрабатывает текущий пиксель; после завершения возвращает None."""
        if self.is_complete:
            return None

        x, y = self._scan.current
        computation = self.processor.calculate_at_pixel(self.source, self.kernel, x, y, self.normalize)
        set_pixel(self._buffer, x, y, computation.result)

        self.computation = computation
        self.computation_pixel = Position(x, y)
        self._scan.advance()
        if self.is_complete:
            logger.debug("Convolution animation finished (%d pixels)", self._scan.total)
        return computation

    def run(self) -> Iterator[ConvolutionComputation]:
        """Выполняет все оставшиеся шаги."""
        while not self.is_complete:
            yield self.step()


class TemplateMatchingAnimation:
    """
    Пошаговое сопоставление с шаблоном: буфер начинается чёрным (альфа 255),
    в каждое смещение записывается оценка одиночного пересчёта.
    """

    def __init__(self, source: Raster, template: Raster, metric,
                 processor: Optional[TemplateMatchingProcessor] = None):
        self.source = source
        self.template = template
        self.metric = parse_metric(metric)
        self.processor = processor or TemplateMatchingProcessor()
        self.valid_w, self.valid_h = self.processor.valid_grid(source, template)
        self.computation: Optional[MatchComputation] = None
        self.computation_position: Optional[Position] = None
        self.reset()

    def reset(self) -> None:
        """Сбрасывает буфер и накопленные оценки."""
        self._buffer = Raster.blank(self.source.width, self.source.height, (0, 0, 0, OPAQUE_ALPHA))
        self._scan = _RasterScan(self.valid_w, self.valid_h)
        self._scores: List[ScoredOffset] = []
        self.computation = None
        self.computation_position = None

    @property
    def buffer(self) -> Raster:
        return self._buffer

    @property
    def current_position(self) -> Position:
        return self._scan.current

    @property
    def is_complete(self) -> bool:
        return self._scan.is_complete

    @property
    def progress(self) -> int:
        return self._scan.progress

    @property
    def all_scores(self) -> List[ScoredOffset]:
        return list(self._scores)

    def snapshot(self) -> Raster:
        return clone(self._buffer)

    def step(self) -> Optional[MatchComputation]:
        """Обрабатывает текущее смещение; после завершения возвращает None."""
        if self.is_complete:
            return None

        x, y = self._scan.current
        computation = self.processor.calculate_at_pixel(self.source, self.template, self.metric, x, y)
        value = computation.normalized_score
        set_pixel(self._buffer, x, y, (value, value, value, OPAQUE_ALPHA))
        self._scores.append(ScoredOffset(x, y, value))

        self.computation = computation
        self.computation_position = Position(x, y)
        self._scan.advance()
        if self.is_complete:
            logger.debug("Template matching animation finished (%d offsets)", self._scan.total)
        return computation

    def run(self) -> Iterator[MatchComputation]:
        while not self.is_complete:
            yield self.step()

    def matched_regions(
        self, threshold: int = DEFAULT_MATCH_THRESHOLD, limit: Optional[int] = DEFAULT_MAX_MATCHES
    ) -> List[ScoredOffset]:
        """Найденные на данный момент совпадения (порог и ограничение количества)."""
        return find_matches(self._scores, threshold, limit)
