#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Конфигурационные настройки вычислительного ядра.
"""

# Диапазоны значений
MAX_PIXEL_VALUE = 255
MIN_PIXEL_VALUE = 0
CHANNELS = 4  # R, G, B, A
OPAQUE_ALPHA = 255

# Веса для яркости (luminosity)
LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114

# Точка опоры для контраста
CONTRAST_PIVOT = 128

# Фиксированные ядра Собеля
SOBEL_X = [
    [-1, 0, 1],
    [-2, 0, 2],
    [-1, 0, 1],
]
SOBEL_Y = [
    [-1, -2, -1],
    [0, 0, 0],
    [1, 2, 1],
]

# Размеры ядер в редакторе (движок сам верхнюю границу не ограничивает)
KERNEL_SIZE_RANGE = (3, 9)
SCALABLE_PRESETS = ("identity", "boxBlur", "gaussianBlur")

# Загрузка изображений
MAX_IMAGE_SIZE = 512  # максимальная сторона после загрузки
SIZE_OPTIONS = {
    "tiny": 32,
    "small": 64,
    "medium": 128,
    "large": 256,
    "original": None,
}
DEFAULT_GRADIENT_SIZE = (256, 256)
DEFAULT_CHECKER_SQUARE = 32

# Выделение шаблона
MIN_SELECTION_SIZE = 3

# Сопоставление с шаблоном
NCC_DISPLAY_SCALE = 127.5  # [-1, 1] -> [0, 255]
SSD_POINT_SCALE = 100  # делитель для одиночной точки (нет глобальных min/max)
SAD_POINT_SCALE = 10
DEFAULT_MATCH_THRESHOLD = 200
DEFAULT_MAX_MATCHES = 5
INVALID_POSITION_FORMULA = "Invalid position (template out of bounds)"

# Параметры точечных операций по умолчанию
POINT_OP_DEFAULTS = {
    "method": "luminosity",
    "amount": 0,
    "factor": 1,
    "threshold": 128,
}

# Логирование
LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"

# Поддерживаемые форматы изображений
SUPPORTED_FORMATS = ['.bmp', '.png', '.tiff', '.tif', '.jpg', '.jpeg']
# Форматы для сохранения результата (только без потерь)
LOSSLESS_FORMATS = ['.png', '.bmp', '.tiff', '.tif']
DEFAULT_OUTPUT_NAME = "processed-image.png"
