#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Ядра свёртки: пресеты, генераторы произвольного размера, нормализация и разбор текста.
"""

import math
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from config.settings import *
from models.errors import InvalidKernelError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KernelPreset:
    """Именованное ядро с флагом нормализации по умолчанию."""
    name: str
    kernel: np.ndarray
    normalize: bool


def as_kernel(kernel) -> np.ndarray:
    """
    Приводит ядро к квадратной матрице float64 нечётного размера.

    Args:
        kernel: Вложенные списки или массив numpy

    Returns:
        Копия ядра в виде np.ndarray

    Raises:
        InvalidKernelError: если ядро пустое, не квадратное или чётного размера
    """
    try:
        k = np.array(kernel, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidKernelError(f"Kernel must be a square numeric matrix: {exc}") from exc
    if k.ndim != 2 or k.shape[0] == 0 or k.shape[0] != k.shape[1]:
        raise InvalidKernelError(f"Kernel must be square, got shape {k.shape}")
    if k.shape[0] % 2 == 0:
        raise InvalidKernelError(f"Kernel size must be odd, got {k.shape[0]}")
    return k


def kernel_sum(kernel: np.ndarray) -> float:
    # Последовательное суммирование по строкам, как при обходе матрицы вручную
    total = 0.0
    for value in np.asarray(kernel, dtype=np.float64).ravel().tolist():
        total += value
    return total


def normalize_kernel(kernel) -> np.ndarray:
    """Делит ядро на сумму элементов; если сумма ровно 0 или 1, ядро не меняется."""
    k = as_kernel(kernel)
    total = kernel_sum(k)
    if total == 0 or total == 1:
        if total == 0:
            logger.debug("Kernel sum is zero, normalization skipped")
        return k
    return k / total


def prepare_kernel(kernel, normalize: bool) -> np.ndarray:
    """Ядро, которое реально участвует в вычислениях (нормализуется один раз)."""
    return normalize_kernel(kernel) if normalize else as_kernel(kernel)


def create_empty_kernel(size: int = 3) -> np.ndarray:
    return np.zeros((size, size), dtype=np.float64)


def create_identity_kernel(size: int) -> np.ndarray:
    kernel = create_empty_kernel(size)
    center = size // 2
    kernel[center, center] = 1.0
    return kernel


def create_box_blur_kernel(size: int) -> np.ndarray:
    return np.ones((size, size), dtype=np.float64)


def create_gaussian_kernel(size: int) -> np.ndarray:
    """Гауссово ядро с sigma = size/3 (без нормализации, её делает флаг normalize)."""
    sigma = size / 3.0
    center = size // 2
    offsets = np.arange(size, dtype=np.float64) - center
    xx, yy = np.meshgrid(offsets, offsets, indexing="ij")
    return np.exp(-(xx * xx + yy * yy) / (2.0 * sigma * sigma))


def _preset_kernels() -> Dict[str, KernelPreset]:
    """Набор стандартных ядер 3x3."""
    return {
        "identity": KernelPreset("Identity", create_identity_kernel(3), False),
        "boxBlur": KernelPreset("Box Blur", create_box_blur_kernel(3), True),
        "gaussianBlur": KernelPreset(
            "Gaussian Blur", np.array([[1, 2, 1], [2, 4, 2], [1, 2, 1]], dtype=np.float64), True
        ),
        "sharpen": KernelPreset(
            "Sharpen", np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float64), False
        ),
        "edgeDetect": KernelPreset(
            "Edge Detect", np.array([[-1, -1, -1], [-1, 8, -1], [-1, -1, -1]], dtype=np.float64), False
        ),
        "sobelHorizontal": KernelPreset("Sobel Horizontal", np.array(SOBEL_X, dtype=np.float64), False),
        "sobelVertical": KernelPreset("Sobel Vertical", np.array(SOBEL_Y, dtype=np.float64), False),
        "emboss": KernelPreset(
            "Emboss", np.array([[-2, -1, 0], [-1, 1, 1], [0, 1, 2]], dtype=np.float64), False
        ),
    }


PREDEFINED_KERNELS = _preset_kernels()


def is_preset_available_for_size(preset_key: str, size: int) -> bool:
    """Масштабируемые пресеты есть для любого размера, остальные только 3x3."""
    if preset_key in SCALABLE_PRESETS:
        return True
    return size == 3 and preset_key in PREDEFINED_KERNELS


def get_preset_for_size(preset_key: str, size: int) -> Optional[KernelPreset]:
    """Возвращает пресет нужного размера или None, если такого нет."""
    if size == 3:
        return PREDEFINED_KERNELS.get(preset_key)

    if preset_key == "identity":
        return KernelPreset("Identity", create_identity_kernel(size), False)
    if preset_key == "boxBlur":
        return KernelPreset("Box Blur", create_box_blur_kernel(size), True)
    if preset_key == "gaussianBlur":
        return KernelPreset("Gaussian Blur", create_gaussian_kernel(size), True)
    return None


def parse_kernel_values(text: str) -> List[float]:
    """Парсит текст в список чисел. Разделители: пробел, запятая, точка с запятой, перевод строки."""
    raw = text.replace("\n", " ").replace(",", " ").replace(";", " ")
    values = []
    for token in raw.split():
        try:
            values.append(float(token))
        except ValueError as exc:
            raise InvalidKernelError(f"Kernel value {token!r} is not a number") from exc
    return values


def parse_kernel_text(text: str) -> np.ndarray:
    """
    Разбирает пользовательское ядро n x n из текста.

    Размер выводится из количества значений, оно должно быть квадратом нечётного числа.
    """
    values = parse_kernel_values(text or "")
    if not values:
        raise InvalidKernelError("Kernel text is empty")
    n = int(round(math.sqrt(len(values))))
    if n * n != len(values):
        raise InvalidKernelError(f"Kernel needs a square number of values, got {len(values)}")
    return as_kernel(np.array(values, dtype=np.float64).reshape((n, n)))


def format_kernel(kernel: Sequence[Sequence[float]], precision: int = 3) -> str:
    """Текстовое представление ядра для вывода в консоль."""
    rows = []
    for row in np.asarray(kernel, dtype=np.float64):
        rows.append(" ".join(f"{value:>{precision + 4}.{precision}f}" for value in row))
    return "\n".join(rows)
