#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Вспомогательные функции для растров: изменение размера и синтетические изображения.
"""

from typing import Optional

import cv2
import numpy as np

from config.settings import *
from models.errors import InvalidDimensionsError, InvalidParameterError
from models.raster import Raster


def resize_image(raster: Raster, max_width: int, max_height: int) -> Raster:
    """
    Уменьшает изображение, чтобы оно поместилось в max_width x max_height.

    Увеличения нет; если изменять нечего, возвращается тот же растр.
    """
    width, height = raster.width, raster.height
    if width <= max_width and height <= max_height:
        return raster

    scale = min(max_width / width, max_height / height)
    new_width = max(1, int(width * scale))
    new_height = max(1, int(height * scale))
    resized = cv2.resize(raster.pixels, (new_width, new_height), interpolation=cv2.INTER_AREA)
    return Raster(np.ascontiguousarray(resized))


def resize_to_target(raster: Raster, target_width: int, target_height: int) -> Raster:
    """
    Масштабирует (вверх или вниз) под целевой размер с сохранением пропорций.

    Используется ближайший сосед, чтобы пиксели оставались чёткими.
    """
    if target_width <= 0 or target_height <= 0:
        raise InvalidDimensionsError(f"Target size must be positive, got {target_width}x{target_height}")

    width, height = raster.width, raster.height
    scale = min(target_width / width, target_height / height)
    new_width = max(1, int(width * scale))
    new_height = max(1, int(height * scale))
    if new_width == width and new_height == height:
        return raster

    resized = cv2.resize(raster.pixels, (new_width, new_height), interpolation=cv2.INTER_NEAREST)
    return Raster(np.ascontiguousarray(resized))


def resize_to_option(raster: Raster, option: str) -> Raster:
    """Размер из меню: tiny, small, medium, large или original."""
    if option not in SIZE_OPTIONS:
        raise InvalidParameterError(
            f"Unknown size option {option!r}, expected one of {', '.join(SIZE_OPTIONS)}"
        )
    size: Optional[int] = SIZE_OPTIONS[option]
    if size is None:
        return raster
    return resize_to_target(raster, size, size)


def create_gradient_image(width: int = DEFAULT_GRADIENT_SIZE[0], height: int = DEFAULT_GRADIENT_SIZE[1]) -> Raster:
    """Градиент: R растёт по x, G по y, B = 128."""
    xs = np.arange(width, dtype=np.float64) / width * MAX_PIXEL_VALUE
    ys = np.arange(height, dtype=np.float64) / height * MAX_PIXEL_VALUE

    pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
    pixels[..., 0] = np.rint(xs)[np.newaxis, :]
    pixels[..., 1] = np.rint(ys)[:, np.newaxis]
    pixels[..., 2] = 128
    pixels[..., 3] = OPAQUE_ALPHA
    return Raster(pixels)


def create_checkerboard(
    width: int = DEFAULT_GRADIENT_SIZE[0],
    height: int = DEFAULT_GRADIENT_SIZE[1],
    square_size: int = DEFAULT_CHECKER_SQUARE,
) -> Raster:
    """Шахматная доска: левый верхний квадрат белый."""
    if square_size <= 0:
        raise InvalidParameterError(f"Square size must be positive, got {square_size}")
    xs = np.arange(width) // square_size
    ys = np.arange(height) // square_size
    white = (xs[np.newaxis, :] + ys[:, np.newaxis]) % 2 == 0

    pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
    pixels[..., :3] = np.where(white, MAX_PIXEL_VALUE, MIN_PIXEL_VALUE)[..., np.newaxis]
    pixels[..., 3] = OPAQUE_ALPHA
    return Raster(pixels)
