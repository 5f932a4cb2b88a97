#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Сопоставление с шаблоном (template matching).
Шаблон «скользит» по исходному изображению, для каждого допустимого смещения
считается мера сходства: NCC, SSD или SAD. Результат выводится как тепловая карта.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

from config.settings import *
from models.errors import InvalidTemplateSizeError, UnknownMetricError
from models.raster import Position, Raster, clamp, luminosity, round_half_away

logger = logging.getLogger(__name__)


class MatchMetric(Enum):
    NCC = "ncc"
    SSD = "ssd"
    SAD = "sad"


def parse_metric(name) -> MatchMetric:
    """Метрика по имени ('ncc', 'ssd', 'sad', регистр не важен)."""
    if isinstance(name, MatchMetric):
        return name
    try:
        return MatchMetric(str(name).lower())
    except ValueError as exc:
        raise UnknownMetricError(f"Unknown matching metric: {name!r}") from exc


@dataclass(frozen=True)
class MatchStep:
    """Пара значений яркости: пиксель исходника под шаблоном и пиксель шаблона."""
    source_value: float
    template_value: float
    position: Position


@dataclass(frozen=True)
class TemplateBounds:
    x: int
    y: int
    width: int
    height: int


@dataclass
class MatchComputation:
    """Результат пересчёта меры сходства в одном смещении."""
    score: float
    normalized_score: int
    steps: List[MatchStep] = field(default_factory=list)
    formula: str = ""
    template_bounds: Optional[TemplateBounds] = None

    @property
    def is_valid(self) -> bool:
        return self.formula != INVALID_POSITION_FORMULA


@dataclass(frozen=True)
class ScoredOffset:
    """Смещение с отображаемой оценкой 0..255."""
    x: int
    y: int
    score: int


class NccTerms(NamedTuple):
    score: np.ndarray
    patch_mean: np.ndarray
    patch_std: np.ndarray
    template_mean: float
    template_std: float


def find_matches(
    scored: Iterable[ScoredOffset],
    threshold: int = DEFAULT_MATCH_THRESHOLD,
    limit: Optional[int] = DEFAULT_MAX_MATCHES,
) -> List[ScoredOffset]:
    """
    Отбирает смещения с оценкой не ниже порога.

    Args:
        scored: Смещения с отображаемыми оценками
        threshold: Минимальная оценка (0..255)
        limit: Сколько лучших оставить; None, 0 или отрицательное - без ограничения

    Returns:
        Список совпадений (при ограничении - по убыванию оценки)
    """
    matches = [item for item in scored if item.score >= threshold]
    if limit and limit > 0:
        matches = sorted(matches, key=lambda item: item.score, reverse=True)[:limit]
    return matches


class TemplateMatchingProcessor:
    """
    Поиск шаблона в изображении.

    Оба растра один раз переводятся в яркость (float32, без округления).
    Полный проход и пересчёт одного смещения используют одну функцию _score_grid:
    суммы накапливаются по отсчётам шаблона в одинаковом порядке.
    """

    def match(self, source: Raster, template: Raster, metric) -> Raster:
        """
        Строит тепловую карту размером с исходное изображение.

        Внутри допустимой сетки смещений R=G=B=оценка, вне её 0; альфа 255.

        Raises:
            InvalidTemplateSizeError: шаблон больше исходника
            UnknownMetricError: неизвестная метрика
        """
        metric = parse_metric(metric)
        display = self.display_scores(self.compute_scores(source, template, metric), metric)
        logger.debug(
            "%s heat-map for %dx%d template over %dx%d source (%d offsets)",
            metric.name, template.width, template.height, source.width, source.height, display.size,
        )
        return self._heat_map(source, display)

    def match_and_find(
        self,
        source: Raster,
        template: Raster,
        metric,
        threshold: int = DEFAULT_MATCH_THRESHOLD,
        limit: Optional[int] = DEFAULT_MAX_MATCHES,
    ) -> Tuple[Raster, List[ScoredOffset]]:
        """Тепловая карта и найденные совпадения по одному проходу оценок."""
        metric = parse_metric(metric)
        display = self.display_scores(self.compute_scores(source, template, metric), metric)
        return self._heat_map(source, display), find_matches(self._scored_offsets(display), threshold, limit)

    def apply_ncc(self, source: Raster, template: Raster) -> Raster:
        return self.match(source, template, MatchMetric.NCC)

    def apply_ssd(self, source: Raster, template: Raster) -> Raster:
        return self.match(source, template, MatchMetric.SSD)

    def apply_sad(self, source: Raster, template: Raster) -> Raster:
        return self.match(source, template, MatchMetric.SAD)

    def compute_scores(self, source: Raster, template: Raster, metric) -> np.ndarray:
        """Сырые оценки для всех допустимых смещений, форма (validH, validW)."""
        metric = parse_metric(metric)
        valid_w, valid_h = self.valid_grid(source, template)
        return self._score_grid(
            self._gray_array(source), self._gray_array(template), metric, 0, 0, valid_w, valid_h
        )

    def display_scores(self, scores: np.ndarray, metric) -> np.ndarray:
        """
        Переводит оценки полного прохода в 0..255 (светлее = лучше).

        NCC: (s + 1) * 127.5. SSD/SAD: линейно по глобальным min/max с инверсией;
        при max == min все значения 255.
        """
        metric = parse_metric(metric)
        if metric == MatchMetric.NCC:
            values = round_half_away((scores + 1.0) * NCC_DISPLAY_SCALE)
        else:
            low = float(scores.min())
            high = float(scores.max())
            if high > low:
                normalized = (scores - low) / (high - low) * MAX_PIXEL_VALUE
            else:
                normalized = np.zeros_like(scores)
            values = round_half_away(MAX_PIXEL_VALUE - normalized)
        return np.clip(values, MIN_PIXEL_VALUE, MAX_PIXEL_VALUE).astype(np.uint8)

    def best_matches(
        self,
        source: Raster,
        template: Raster,
        metric,
        threshold: int = DEFAULT_MATCH_THRESHOLD,
        limit: Optional[int] = DEFAULT_MAX_MATCHES,
    ) -> List[ScoredOffset]:
        """Смещения полного прохода, прошедшие порог (для обводки найденных областей)."""
        display = self.display_scores(self.compute_scores(source, template, metric), metric)
        return find_matches(self._scored_offsets(display), threshold, limit)

    def calculate_at_pixel(self, source: Raster, template: Raster, metric, x: int, y: int) -> MatchComputation:
        """
        Пересчитывает меру сходства для шаблона с левым верхним углом в (x, y).

        Глобальных min/max здесь нет, поэтому для SSD/SAD используется фиксированный
        масштаб (s/100 и s/10) и отображаемое значение обычно отличается от полного прохода.
        Смещение, при котором шаблон выходит за границы, даёт нулевой результат без шагов.
        """
        metric = parse_metric(metric)
        template_w, template_h = template.width, template.height
        bounds = TemplateBounds(x, y, template_w, template_h)

        if x < 0 or y < 0 or x + template_w > source.width or y + template_h > source.height:
            return MatchComputation(
                score=0.0, normalized_score=0, steps=[], formula=INVALID_POSITION_FORMULA, template_bounds=bounds
            )

        patch_gray = self._gray_array(Raster(source.pixels[y:y + template_h, x:x + template_w]))
        template_gray = self._gray_array(template)

        steps = [
            MatchStep(
                float(patch_gray[py, px]),
                float(template_gray[py, px]),
                Position(x + px, y + py),
            )
            for py in range(template_h)
            for px in range(template_w)
        ]

        if metric == MatchMetric.NCC:
            terms = self._ncc_terms(patch_gray, template_gray, 0, 0, 1, 1)
            score = float(terms.score[0, 0])
            normalized = clamp(round_half_away((score + 1.0) * NCC_DISPLAY_SCALE), MIN_PIXEL_VALUE, MAX_PIXEL_VALUE)
            formula = (
                "NCC = Σ[(src - μ_src)(tmpl - μ_tmpl)] / (σ_src × σ_tmpl × n)\n"
                f"μ_src={float(terms.patch_mean[0, 0]):.2f}, σ_src={float(terms.patch_std[0, 0]):.2f}\n"
                f"μ_tmpl={terms.template_mean:.2f}, σ_tmpl={terms.template_std:.2f}\n"
                f"NCC = {score:.4f}"
            )
        elif metric == MatchMetric.SSD:
            score = float(self._score_grid(patch_gray, template_gray, metric, 0, 0, 1, 1)[0, 0])
            normalized = min(MAX_PIXEL_VALUE, round_half_away(score / SSD_POINT_SCALE))
            formula = f"SSD = Σ(src_i - tmpl_i)² = {score:.2f}"
        else:
            score = float(self._score_grid(patch_gray, template_gray, metric, 0, 0, 1, 1)[0, 0])
            normalized = min(MAX_PIXEL_VALUE, round_half_away(score / SAD_POINT_SCALE))
            formula = f"SAD = Σ|src_i - tmpl_i| = {score:.2f}"

        return MatchComputation(
            score=score, normalized_score=int(normalized), steps=steps, formula=formula, template_bounds=bounds
        )

    def valid_grid(self, source: Raster, template: Raster):
        """Размер сетки допустимых смещений (validW, validH)."""
        valid_w = source.width - template.width + 1
        valid_h = source.height - template.height + 1
        if valid_w <= 0 or valid_h <= 0:
            raise InvalidTemplateSizeError(
                f"Template {template.width}x{template.height} must not exceed source {source.width}x{source.height}"
            )
        return valid_w, valid_h

    def _heat_map(self, source: Raster, display: np.ndarray) -> Raster:
        """Внутри допустимой сетки R=G=B=оценка, вне её 0; альфа 255."""
        valid_h, valid_w = display.shape
        output = np.zeros_like(source.pixels)
        output[..., 3] = OPAQUE_ALPHA
        output[:valid_h, :valid_w, :3] = display[..., np.newaxis]
        return Raster(output)

    def _scored_offsets(self, display: np.ndarray) -> List[ScoredOffset]:
        return [
            ScoredOffset(int(x), int(y), int(display[y, x]))
            for y in range(display.shape[0])
            for x in range(display.shape[1])
        ]

    def _gray_array(self, raster: Raster) -> np.ndarray:
        return luminosity(raster).astype(np.float32)

    def _score_grid(
        self,
        source_gray: np.ndarray,
        template_gray: np.ndarray,
        metric: MatchMetric,
        x0: int,
        y0: int,
        valid_w: int,
        valid_h: int,
    ) -> np.ndarray:
        """Оценки для смещений [x0, x0+valid_w) x [y0, y0+valid_h)."""
        if metric == MatchMetric.NCC:
            return self._ncc_terms(source_gray, template_gray, x0, y0, valid_w, valid_h).score

        template_h, template_w = template_gray.shape
        accumulator = np.zeros((valid_h, valid_w), dtype=np.float64)
        for py in range(template_h):
            for px in range(template_w):
                diff = self._shifted(source_gray, x0 + px, y0 + py, valid_w, valid_h) - float(template_gray[py, px])
                if metric == MatchMetric.SSD:
                    accumulator += diff * diff
                elif metric == MatchMetric.SAD:
                    accumulator += np.abs(diff)
                else:
                    raise UnknownMetricError(f"Unknown matching metric: {metric!r}")
        return accumulator

    def _ncc_terms(
        self, source_gray: np.ndarray, template_gray: np.ndarray, x0: int, y0: int, valid_w: int, valid_h: int
    ) -> NccTerms:
        """
        Нормированная кросс-корреляция и её промежуточные величины.

        Стандартные отклонения популяционные; если хотя бы одно равно нулю, оценка 0.
        """
        template_h, template_w = template_gray.shape
        n = template_h * template_w
        taps = [(py, px) for py in range(template_h) for px in range(template_w)]

        template_sum = 0.0
        for py, px in taps:
            template_sum += float(template_gray[py, px])
        template_mean = template_sum / n
        template_var = 0.0
        for py, px in taps:
            deviation = float(template_gray[py, px]) - template_mean
            template_var += deviation * deviation
        template_std = math.sqrt(template_var / n)

        patch_sum = np.zeros((valid_h, valid_w), dtype=np.float64)
        for py, px in taps:
            patch_sum += self._shifted(source_gray, x0 + px, y0 + py, valid_w, valid_h)
        patch_mean = patch_sum / n

        patch_var = np.zeros_like(patch_sum)
        correlation = np.zeros_like(patch_sum)
        for py, px in taps:
            deviation = self._shifted(source_gray, x0 + px, y0 + py, valid_w, valid_h) - patch_mean
            patch_var += deviation * deviation
            correlation += deviation * (float(template_gray[py, px]) - template_mean)
        patch_std = np.sqrt(patch_var / n)

        score = np.zeros_like(patch_sum)
        if template_std != 0:
            defined = patch_std != 0
            score[defined] = correlation[defined] / (patch_std[defined] * template_std * n)
        return NccTerms(score, patch_mean, patch_std, template_mean, template_std)

    def _shifted(self, gray: np.ndarray, x: int, y: int, valid_w: int, valid_h: int) -> np.ndarray:
        return gray[y:y + valid_h, x:x + valid_w].astype(np.float64)
