#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Исключения вычислительного ядра.
"""


class ImageCoreError(ValueError):
    """Базовое исключение для всех ошибок ядра."""


class OutOfBoundsError(ImageCoreError):
    """Координаты или область выходят за границы растра."""


class InvalidDimensionsError(ImageCoreError):
    """Неположительные (или слишком маленькие) размеры растра или области."""


class InvalidTemplateSizeError(ImageCoreError):
    """Шаблон больше исходного изображения хотя бы по одному измерению."""


class InvalidKernelError(ImageCoreError):
    """Ядро не квадратное, пустое или чётного размера."""


class UnknownOperationError(ImageCoreError):
    """Неизвестное имя точечной операции."""


class UnknownMetricError(ImageCoreError):
    """Неизвестная метрика сопоставления."""


class InvalidParameterError(ImageCoreError):
    """Недопустимый параметр операции."""


class ImageLoadError(ImageCoreError):
    """Не удалось прочитать или декодировать изображение."""


class ImageSaveError(ImageCoreError):
    """Не удалось закодировать или записать изображение."""
