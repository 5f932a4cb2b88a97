#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Точечные операции: каждый пиксель обрабатывается независимо от соседей.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import numpy as np

from config.settings import *
from models.errors import InvalidParameterError, OutOfBoundsError, UnknownOperationError
from models.raster import Pixel, Raster, get_pixel, to_channel_values

logger = logging.getLogger(__name__)


class GrayscaleMethod(Enum):
    LUMINOSITY = "luminosity"
    AVERAGE = "average"
    LIGHTNESS = "lightness"


@dataclass(frozen=True)
class Grayscale:
    method: GrayscaleMethod = GrayscaleMethod.LUMINOSITY


@dataclass(frozen=True)
class Brightness:
    amount: float = 0  # обычно -100..100, движок не проверяет


@dataclass(frozen=True)
class Contrast:
    factor: float = 1  # 1 = без изменений


@dataclass(frozen=True)
class Threshold:
    threshold: float = 128


@dataclass(frozen=True)
class Invert:
    pass


PointOperation = Union[Grayscale, Brightness, Contrast, Threshold, Invert]

OPERATION_NAMES = ("grayscale", "brightness", "contrast", "threshold", "invert")
OPERATION_ALIASES = {
    "toGrayscale": "grayscale",
    "adjustBrightness": "brightness",
    "adjustContrast": "contrast",
    "applyThreshold": "threshold",
    "invertColors": "invert",
}


def parse_operation(name: str, params: Optional[Dict[str, Any]] = None) -> PointOperation:
    """
    Строит операцию по имени и словарю параметров.

    Args:
        name: grayscale, brightness, contrast, threshold или invert
        params: method / amount / factor / threshold

    Returns:
        Экземпляр операции

    Raises:
        UnknownOperationError: неизвестное имя
        InvalidParameterError: неизвестный метод перевода в серое
    """
    params = params or {}
    key = OPERATION_ALIASES.get(name, name)

    def param(param_name):
        # None означает значение по умолчанию
        value = params.get(param_name)
        return POINT_OP_DEFAULTS[param_name] if value is None else value

    if key == "grayscale":
        method = param("method")
        try:
            return Grayscale(GrayscaleMethod(method))
        except ValueError as exc:
            raise InvalidParameterError(f"Unknown grayscale method: {method!r}") from exc
    if key == "brightness":
        return Brightness(param("amount"))
    if key == "contrast":
        return Contrast(param("factor"))
    if key == "threshold":
        return Threshold(param("threshold"))
    if key == "invert":
        return Invert()
    raise UnknownOperationError(f"Unknown point operation: {name!r}")


@dataclass
class PixelComputation:
    """Результат пересчёта одного пикселя с формулой для отображения."""
    input: Pixel
    result: Pixel
    formula: str


def _fmt(value: float) -> str:
    """Число без лишних нулей: 5 -> '5', 0.25 -> '0.25'."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:.4f}".rstrip("0").rstrip(".")


def _rgb(pixel: Pixel) -> str:
    return f"RGB({pixel.r}, {pixel.g}, {pixel.b})"


class PixelProcessor:
    """
    Точечные операции над растром.

    Полный проход и пересчёт одного пикселя используют одну и ту же функцию
    _transform, поэтому результаты совпадают.
    """

    def to_grayscale(self, source: Raster, method: GrayscaleMethod = GrayscaleMethod.LUMINOSITY) -> Raster:
        return self.apply(source, Grayscale(GrayscaleMethod(method)))

    def adjust_brightness(self, source: Raster, amount: float) -> Raster:
        return self.apply(source, Brightness(amount))

    def adjust_contrast(self, source: Raster, factor: float) -> Raster:
        return self.apply(source, Contrast(factor))

    def apply_threshold(self, source: Raster, threshold: float) -> Raster:
        return self.apply(source, Threshold(threshold))

    def invert_colors(self, source: Raster) -> Raster:
        return self.apply(source, Invert())

    def apply(self, source: Raster, operation: PointOperation) -> Raster:
        """Применяет операцию ко всем пикселям; альфа сохраняется."""
        output = np.empty_like(source.pixels)
        output[..., :3] = self._transform(source.pixels[..., :3], operation)
        output[..., 3] = source.pixels[..., 3]
        logger.debug("Applied %s to %dx%d raster", operation, source.width, source.height)
        return Raster(output)

    def calculate_at_pixel(self, source: Raster, operation: PointOperation, x: int, y: int) -> PixelComputation:
        """
        Пересчитывает операцию в пикселе (x, y) и строит формулу с реальными числами.
        """
        if not source.contains(x, y):
            raise OutOfBoundsError(f"Pixel ({x}, {y}) outside raster {source.width}x{source.height}")

        pixel = get_pixel(source, x, y)
        r, g, b = (int(v) for v in self._transform(source.pixels[y:y + 1, x:x + 1, :3], operation)[0, 0])
        result = Pixel(r, g, b, pixel.a)
        return PixelComputation(input=pixel, result=result, formula=self._formula(pixel, result, operation))

    def _transform(self, rgb: np.ndarray, operation: PointOperation) -> np.ndarray:
        """Вычисляет новые значения R, G, B (uint8) для массива формы (..., 3)."""
        channels = rgb.astype(np.float64)

        if isinstance(operation, Grayscale):
            gray = to_channel_values(self._gray(channels, operation.method))
            return np.repeat(gray[..., np.newaxis], 3, axis=-1)

        if isinstance(operation, Brightness):
            return to_channel_values(channels + float(operation.amount))

        if isinstance(operation, Contrast):
            return to_channel_values((channels - CONTRAST_PIVOT) * float(operation.factor) + CONTRAST_PIVOT)

        if isinstance(operation, Threshold):
            gray = self._gray(channels, GrayscaleMethod.LUMINOSITY)
            # Строго больше порога
            value = np.where(gray > float(operation.threshold), MAX_PIXEL_VALUE, MIN_PIXEL_VALUE)
            return np.repeat(value.astype(np.uint8)[..., np.newaxis], 3, axis=-1)

        if isinstance(operation, Invert):
            return (MAX_PIXEL_VALUE - rgb.astype(np.int16)).astype(np.uint8)

        raise UnknownOperationError(f"Unknown point operation: {operation!r}")

    def _gray(self, channels: np.ndarray, method: GrayscaleMethod) -> np.ndarray:
        red, green, blue = channels[..., 0], channels[..., 1], channels[..., 2]
        if method == GrayscaleMethod.AVERAGE:
            return (red + green + blue) / 3.0
        if method == GrayscaleMethod.LIGHTNESS:
            return (np.maximum(np.maximum(red, green), blue) + np.minimum(np.minimum(red, green), blue)) / 2.0
        return LUMA_R * red + LUMA_G * green + LUMA_B * blue

    def _formula(self, pixel: Pixel, result: Pixel, operation: PointOperation) -> str:
        if isinstance(operation, Grayscale):
            if operation.method == GrayscaleMethod.AVERAGE:
                return f"({pixel.r} + {pixel.g} + {pixel.b}) / 3 = {result.r}"
            if operation.method == GrayscaleMethod.LIGHTNESS:
                high = max(pixel.r, pixel.g, pixel.b)
                low = min(pixel.r, pixel.g, pixel.b)
                return f"(max({high}) + min({low})) / 2 = {result.r}"
            return f"{LUMA_R}×{pixel.r} + {LUMA_G}×{pixel.g} + {LUMA_B}×{pixel.b} = {result.r}"

        if isinstance(operation, Brightness):
            return f"{_rgb(pixel)} + {_fmt(operation.amount)} = {_rgb(result)}"

        if isinstance(operation, Contrast):
            return f"({_rgb(pixel)} − {CONTRAST_PIVOT}) × {_fmt(operation.factor)} + {CONTRAST_PIVOT} = {_rgb(result)}"

        if isinstance(operation, Threshold):
            gray = LUMA_R * pixel.r + LUMA_G * pixel.g + LUMA_B * pixel.b
            sign = ">" if gray > float(operation.threshold) else "≤"
            return f"gray({_fmt(gray)}) {sign} {_fmt(operation.threshold)} → {result.r}"

        if isinstance(operation, Invert):
            return f"{MAX_PIXEL_VALUE} − {_rgb(pixel)} = {_rgb(result)}"

        raise UnknownOperationError(f"Unknown point operation: {operation!r}")
