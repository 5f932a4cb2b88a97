#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Настройка логирования.
"""

import logging
import sys

from config.settings import LOG_FORMAT


def setup_logging(level=logging.INFO) -> None:
    """Базовая настройка корневого логгера (вывод в stdout)."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
