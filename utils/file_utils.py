#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Утилиты для работы с файлами изображений: проверка пути, загрузка и сохранение.
"""

import logging
import os
from typing import Optional

import cv2
import numpy as np

from config.settings import LOSSLESS_FORMATS, MAX_IMAGE_SIZE, SUPPORTED_FORMATS
from models.errors import ImageLoadError, ImageSaveError
from models.raster import Raster
from utils.image_utils import resize_image

logger = logging.getLogger(__name__)


def validate_image_path(path: str) -> bool:
    """
    Проверяет, является ли путь валидным файлом изображения.

    Args:
        path: Путь к файлу

    Returns:
        True если файл валиден, False иначе
    """
    if not os.path.exists(path):
        return False

    _, ext = os.path.splitext(path.lower())
    return ext in SUPPORTED_FORMATS


def get_supported_formats_string() -> str:
    """
    Возвращает строку с поддерживаемыми форматами.

    Returns:
        Строка с форматами
    """
    return ", ".join(SUPPORTED_FORMATS)


def load_image(path: str, max_size: Optional[int] = MAX_IMAGE_SIZE) -> Raster:
    """
    Загружает изображение в растр RGBA.

    Серые и BGR изображения дополняются альфой 255. Если сторона больше max_size,
    изображение уменьшается с сохранением пропорций.

    Args:
        path: Путь к изображению
        max_size: Максимальная сторона (None - без ограничения)

    Returns:
        Растр RGBA

    Raises:
        ImageLoadError: файл не найден, формат не поддерживается или не декодируется
    """
    if not validate_image_path(path):
        raise ImageLoadError(f"Invalid image path or unsupported format: {path}")

    img = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ImageLoadError(f"Failed to decode image: {path}")

    if img.dtype == np.uint16:
        # 16 бит -> 8 бит
        img = (img >> 8).astype(np.uint8)

    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    elif img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    else:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)

    raster = Raster(np.ascontiguousarray(img))
    if max_size is not None:
        raster = resize_image(raster, max_size, max_size)

    logger.info("Loaded %s as %dx%d raster", path, raster.width, raster.height)
    return raster


def save_image(raster: Raster, path: str) -> None:
    """
    Сохраняет растр без потерь (PNG, BMP или TIFF).

    Raises:
        ImageSaveError: формат с потерями или неизвестный, ошибка записи
    """
    _, ext = os.path.splitext(path.lower())
    if ext not in LOSSLESS_FORMATS:
        raise ImageSaveError(
            f"Unsupported output format: {ext or path} (expected one of {', '.join(LOSSLESS_FORMATS)})"
        )

    bgra = cv2.cvtColor(raster.pixels, cv2.COLOR_RGBA2BGRA)
    try:
        ok = cv2.imwrite(path, bgra)
    except cv2.error as exc:
        raise ImageSaveError(f"Failed to write {path}: {exc}") from exc
    if not ok:
        raise ImageSaveError(f"Failed to write {path}")
    logger.info("Saved %dx%d raster to %s", raster.width, raster.height, path)
