#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Растровый буфер RGBA.
Общий примитив для всех процессоров: хранение пикселей, доступ с проверкой границ,
клонирование и вырезание областей.
"""

import math
from dataclasses import dataclass
from typing import NamedTuple, Sequence, Tuple, Union

import numpy as np

from config.settings import *
from models.errors import InvalidDimensionsError, InvalidParameterError, OutOfBoundsError


class Pixel(NamedTuple):
    """Значение пикселя RGBA (целые 0..255)."""
    r: int
    g: int
    b: int
    a: int = OPAQUE_ALPHA


class Position(NamedTuple):
    """Координата пикселя."""
    x: int
    y: int


PixelLike = Union[Pixel, Sequence[int]]


@dataclass(eq=False)
class Raster:
    """
    Прямоугольная сетка пикселей RGBA.

    Пиксели хранятся построчно в массиве формы (height, width, 4) с типом uint8,
    что соответствует плоскому буферу width*height*4 байт.
    """
    pixels: np.ndarray

    def __post_init__(self):
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray) or pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise InvalidDimensionsError("Raster pixels must have shape (height, width, 4)")
        if pixels.shape[0] <= 0 or pixels.shape[1] <= 0:
            raise InvalidDimensionsError(
                f"Raster must have positive dimensions, got {pixels.shape[1]}x{pixels.shape[0]}"
            )
        if pixels.dtype != np.uint8:
            raise InvalidDimensionsError(f"Raster pixels must be uint8, got {pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def shape(self) -> Tuple[int, int]:
        """Размер как (width, height)."""
        return self.width, self.height

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def to_bytes(self) -> bytes:
        """Плоский буфер RGBA в построчном порядке."""
        return self.pixels.tobytes()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self) -> str:
        return f"Raster({self.width}x{self.height})"

    @classmethod
    def blank(cls, width: int, height: int, fill: PixelLike = (0, 0, 0, 0)) -> "Raster":
        """Создаёт растр, залитый одним цветом."""
        if width <= 0 or height <= 0:
            raise InvalidDimensionsError(f"Raster must have positive dimensions, got {width}x{height}")
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[...] = _pixel_to_tuple(fill)
        return cls(pixels)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Raster":
        """
        Строит растр из массива uint8.

        Args:
            array: (H, W) серое, (H, W, 3) RGB или (H, W, 4) RGBA

        Returns:
            Новый растр (данные копируются), альфа 255 если её не было
        """
        array = np.asarray(array)
        if array.ndim == 2:
            array = np.repeat(array[:, :, np.newaxis], 3, axis=2)
        if array.ndim != 3 or array.shape[2] not in (3, CHANNELS):
            raise InvalidDimensionsError(f"Unsupported array shape {array.shape}")
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), OPAQUE_ALPHA, dtype=np.uint8)
            array = np.concatenate([array.astype(np.uint8), alpha], axis=2)
        return cls(np.ascontiguousarray(array, dtype=np.uint8).copy())


def _pixel_to_tuple(pixel: PixelLike) -> Tuple[int, int, int, int]:
    values = tuple(int(v) for v in pixel)
    if len(values) == 3:
        values = values + (OPAQUE_ALPHA,)
    if len(values) != CHANNELS:
        raise InvalidParameterError(f"Pixel must have 3 or 4 channels, got {len(values)}")
    for value in values:
        if value < MIN_PIXEL_VALUE or value > MAX_PIXEL_VALUE:
            raise InvalidParameterError(f"Channel value {value} outside [0, 255]")
    return values


def _check_position(raster: Raster, x: int, y: int) -> None:
    if not raster.contains(x, y):
        raise OutOfBoundsError(
            f"Pixel ({x}, {y}) outside raster {raster.width}x{raster.height}"
        )


def get_pixel(raster: Raster, x: int, y: int) -> Pixel:
    """Возвращает пиксель (x, y)."""
    _check_position(raster, x, y)
    r, g, b, a = raster.pixels[y, x]
    return Pixel(int(r), int(g), int(b), int(a))


def set_pixel(raster: Raster, x: int, y: int, pixel: PixelLike) -> None:
    """
    Записывает пиксель (x, y) на месте.

    Если альфа не указана (три канала), записывается 255.
    """
    _check_position(raster, x, y)
    raster.pixels[y, x] = _pixel_to_tuple(pixel)


def clamp(value, low, high):
    """Ограничивает значение диапазоном [low, high]."""
    return min(max(value, low), high)


def round_half_away(value):
    """
    Округление до ближайшего целого, половины от нуля.

    Работает и со скалярами (возвращает int), и с массивами numpy.
    """
    if np.ndim(value) == 0:
        value = float(value)
        return int(math.copysign(math.floor(abs(value) + 0.5), value))
    value = np.asarray(value, dtype=np.float64)
    return np.sign(value) * np.floor(np.abs(value) + 0.5)


def to_channel_values(values: np.ndarray) -> np.ndarray:
    """Округляет и ограничивает вещественные значения каналов, возвращает uint8."""
    rounded = round_half_away(values)
    return np.clip(rounded, MIN_PIXEL_VALUE, MAX_PIXEL_VALUE).astype(np.uint8)


def clone(raster: Raster) -> Raster:
    """Независимая копия растра."""
    return Raster(raster.pixels.copy())


def extract_region(raster: Raster, x: int, y: int, width: int, height: int) -> Raster:
    """
    Вырезает прямоугольную область без пересэмплирования.

    Args:
        raster: Исходный растр
        x, y: Левый верхний угол области
        width, height: Размер области

    Returns:
        Новый растр width x height

    Raises:
        OutOfBoundsError: область выходит за границы растра
        InvalidDimensionsError: неположительный размер области
    """
    if x < 0 or y < 0 or x + width > raster.width or y + height > raster.height:
        raise OutOfBoundsError("Region bounds exceed image dimensions")
    if width <= 0 or height <= 0:
        raise InvalidDimensionsError("Region must have positive dimensions")
    return Raster(raster.pixels[y:y + height, x:x + width].copy())


def luminosity(raster: Raster) -> np.ndarray:
    """Яркость 0.299R + 0.587G + 0.114B без округления, форма (H, W), float64."""
    rgb = raster.pixels[..., :3].astype(np.float64)
    return LUMA_R * rgb[..., 0] + LUMA_G * rgb[..., 1] + LUMA_B * rgb[..., 2]


@dataclass(frozen=True)
class Selection:
    """Прямоугольник выделения на исходном изображении."""
    x: int
    y: int
    width: int
    height: int

    def validate(self, source: Raster, min_size: int = MIN_SELECTION_SIZE) -> None:
        """Проверка при подтверждении выделения (во время перетаскивания не вызывается)."""
        if self.x < 0 or self.y < 0 or self.x + self.width > source.width or self.y + self.height > source.height:
            raise OutOfBoundsError(f"Selection {self} exceeds source {source.width}x{source.height}")
        if self.width < min_size or self.height < min_size:
            raise InvalidDimensionsError(
                f"Selection must be at least {min_size}x{min_size}, got {self.width}x{self.height}"
            )

    def extract(self, source: Raster) -> Raster:
        """Подтверждает выделение и вырезает шаблон."""
        self.validate(source)
        return extract_region(source, self.x, self.y, self.width, self.height)
