#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Свёртка изображения ядром NxN.
Полный проход по изображению и пересчёт одного пикселя с трассировкой каждого отсчёта.
"""

import logging
from dataclasses import dataclass, field
from typing import List

import numpy as np

from config.settings import *
from models.errors import OutOfBoundsError
from models.kernels import prepare_kernel
from models.raster import Pixel, Position, Raster, clamp, get_pixel, round_half_away, to_channel_values

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvolutionStep:
    """Один отсчёт ядра, попавший внутрь изображения."""
    pixel: Pixel
    kernel_value: float
    position: Position


@dataclass
class ConvolutionComputation:
    """Результат пересчёта одного пикселя."""
    result: Pixel
    steps: List[ConvolutionStep] = field(default_factory=list)
    kernel: np.ndarray = None


class ConvolutionProcessor:
    """
    Свёртка с нулевым дополнением: отсчёты за границей изображения пропускаются
    (не дают вклада ни в сумму, ни в трассировку).
    """

    def apply_kernel(self, source: Raster, kernel, normalize: bool = True) -> Raster:
        """
        Применяет ядро к каждому пикселю.

        Каналы R, G, B обрабатываются независимо, альфа копируется из исходного пикселя.
        При normalize ядро один раз делится на сумму (если она не 0 и не 1), независимо
        от того, сколько отсчётов попадает в изображение, поэтому края у усредняющих
        ядер получаются темнее.

        Args:
            source: Исходный растр
            kernel: Квадратное ядро нечётного размера
            normalize: Нормализовать ли ядро

        Returns:
            Новый растр того же размера
        """
        processed_kernel = prepare_kernel(kernel, normalize)
        rgb = self._correlate(source.pixels[..., :3].astype(np.float64), processed_kernel)

        output = np.empty_like(source.pixels)
        output[..., :3] = to_channel_values(rgb)
        output[..., 3] = source.pixels[..., 3]

        logger.debug(
            "Applied %dx%d kernel (normalize=%s) to %dx%d raster",
            processed_kernel.shape[0], processed_kernel.shape[0], normalize, source.width, source.height,
        )
        return Raster(output)

    def apply_sobel_combined(self, source: Raster) -> Raster:
        """Модуль градиента Собеля sqrt(gx² + gy²) по каждому каналу."""
        channels = source.pixels[..., :3].astype(np.float64)
        gx = self._correlate(channels, np.array(SOBEL_X, dtype=np.float64))
        gy = self._correlate(channels, np.array(SOBEL_Y, dtype=np.float64))
        magnitude = np.sqrt(gx * gx + gy * gy)

        output = np.empty_like(source.pixels)
        output[..., :3] = to_channel_values(magnitude)
        output[..., 3] = source.pixels[..., 3]

        logger.debug("Applied combined Sobel to %dx%d raster", source.width, source.height)
        return Raster(output)

    def calculate_at_pixel(
        self, source: Raster, kernel, x: int, y: int, normalize: bool = True
    ) -> ConvolutionComputation:
        """
        Пересчитывает свёртку в одной точке с полной трассировкой.

        Порядок отсчётов: ky снаружи, kx внутри. Отсчёты за границей в трассировку
        не попадают, поэтому у краёв шагов меньше, чем size².

        Returns:
            ConvolutionComputation с результатом, шагами и использованным ядром
        """
        if not source.contains(x, y):
            raise OutOfBoundsError(f"Pixel ({x}, {y}) outside raster {source.width}x{source.height}")

        processed_kernel = prepare_kernel(kernel, normalize)
        size = processed_kernel.shape[0]
        offset = size // 2

        red = green = blue = 0.0
        steps = []
        for ky in range(size):
            for kx in range(size):
                pixel_x = x + kx - offset
                pixel_y = y + ky - offset
                if not source.contains(pixel_x, pixel_y):
                    continue

                pixel = get_pixel(source, pixel_x, pixel_y)
                kernel_value = float(processed_kernel[ky, kx])
                steps.append(ConvolutionStep(pixel, kernel_value, Position(pixel_x, pixel_y)))

                red += pixel.r * kernel_value
                green += pixel.g * kernel_value
                blue += pixel.b * kernel_value

        result = Pixel(
            _to_channel(red),
            _to_channel(green),
            _to_channel(blue),
            int(source.pixels[y, x, 3]),
        )
        return ConvolutionComputation(result=result, steps=steps, kernel=processed_kernel)

    def _correlate(self, channels: np.ndarray, kernel: np.ndarray) -> np.ndarray:
        """
        Сумма произведений по всем отсчётам ядра для всех пикселей сразу.

        Отсчёты накапливаются в том же порядке, что и в calculate_at_pixel; нулевое
        дополнение добавляет ровно 0, так что результат совпадает побитово.
        """
        size = kernel.shape[0]
        offset = size // 2
        height, width = channels.shape[:2]
        padded = np.pad(channels, ((offset, offset), (offset, offset), (0, 0)), mode="constant")

        accumulator = np.zeros_like(channels)
        for ky in range(size):
            for kx in range(size):
                accumulator += padded[ky:ky + height, kx:kx + width] * kernel[ky, kx]
        return accumulator


def _to_channel(value: float) -> int:
    return clamp(round_half_away(value), MIN_PIXEL_VALUE, MAX_PIXEL_VALUE)
