#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Консольная точка входа вычислительного ядра.

Применяет свёртку, точечные операции или сопоставление с шаблоном к файлу изображения
и сохраняет результат в PNG. С ключом --at печатает пошаговый расчёт в одной точке.

Использование:
    python main.py convolve photo.png out.png --preset boxBlur --size 5
    python main.py convolve photo.png out.png --kernel "0 -1 0 -1 5 -1 0 -1 0" --at 10 10
    python main.py sobel photo.png edges.png
    python main.py point photo.png gray.png --op grayscale --method average
    python main.py match photo.png heat.png --metric ncc --region 40 30 16 16
"""

import sys
import argparse
import logging

from config.settings import *
from controllers import processing_controller as api
from models.errors import ImageCoreError
from models.kernels import PREDEFINED_KERNELS, format_kernel, get_preset_for_size, parse_kernel_text
from utils.file_utils import get_supported_formats_string, load_image, save_image
from utils.image_utils import resize_to_option
from utils.logging_utils import setup_logging


def parse_arguments(argv=None):
    """
    Парсит аргументы командной строки.

    Returns:
        Объект с аргументами
    """
    parser = argparse.ArgumentParser(
        description="Свёртка, точечные операции и сопоставление с шаблоном",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Поддерживаемые форматы: {get_supported_formats_string()}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Подробный лог")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("input", help="Исходное изображение")
    common.add_argument("output", nargs="?", default=DEFAULT_OUTPUT_NAME,
                        help=f"Куда сохранить результат (по умолчанию {DEFAULT_OUTPUT_NAME})")
    common.add_argument("--max-size", type=int, default=MAX_IMAGE_SIZE, help="Максимальная сторона при загрузке")
    common.add_argument("--resize", choices=list(SIZE_OPTIONS), default="original", help="Размер из меню")
    common.add_argument("--at", nargs=2, type=int, metavar=("X", "Y"),
                        help="Показать расчёт в точке (кроме sobel)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    conv = subparsers.add_parser("convolve", parents=[common], help="Свёртка ядром NxN")
    kernel_group = conv.add_mutually_exclusive_group()
    kernel_group.add_argument("--preset", choices=list(PREDEFINED_KERNELS), default="identity")
    kernel_group.add_argument("--kernel", help="Пользовательское ядро: n*n чисел через пробел/запятую")
    conv.add_argument("--size", type=int, default=KERNEL_SIZE_RANGE[0],
                      choices=range(KERNEL_SIZE_RANGE[0], KERNEL_SIZE_RANGE[1] + 1, 2),
                      help="Размер пресета (нечётный)")
    conv.add_argument("--normalize", action=argparse.BooleanOptionalAction, default=None,
                      help="Делить ядро на сумму (по умолчанию как в пресете)")

    subparsers.add_parser("sobel", parents=[common], help="Модуль градиента Собеля")

    point = subparsers.add_parser("point", parents=[common], help="Точечная операция")
    point.add_argument("--op", required=True, choices=["grayscale", "brightness", "contrast", "threshold", "invert"])
    point.add_argument("--method", default=POINT_OP_DEFAULTS["method"], choices=["luminosity", "average", "lightness"])
    point.add_argument("--amount", type=float, default=POINT_OP_DEFAULTS["amount"])
    point.add_argument("--factor", type=float, default=POINT_OP_DEFAULTS["factor"])
    point.add_argument("--threshold", type=float, default=POINT_OP_DEFAULTS["threshold"])

    match = subparsers.add_parser("match", parents=[common], help="Сопоставление с шаблоном")
    match.add_argument("--metric", choices=["ncc", "ssd", "sad"], default="ncc")
    template_group = match.add_mutually_exclusive_group(required=True)
    template_group.add_argument("--template", help="Файл шаблона")
    template_group.add_argument("--region", nargs=4, type=int, metavar=("X", "Y", "W", "H"),
                                help="Вырезать шаблон из исходника")
    match.add_argument("--match-threshold", type=int, default=DEFAULT_MATCH_THRESHOLD)
    match.add_argument("--limit", type=int, default=DEFAULT_MAX_MATCHES, help="0 - без ограничения")

    return parser.parse_args(argv)


def _resolve_kernel(args):
    """Ядро и флаг нормализации из аргументов."""
    if args.kernel:
        kernel = parse_kernel_text(args.kernel)
        normalize = True if args.normalize is None else args.normalize
        return kernel, normalize

    preset = get_preset_for_size(args.preset, args.size)
    if preset is None:
        raise ImageCoreError(f"Preset {args.preset!r} is not available for size {args.size}")
    normalize = preset.normalize if args.normalize is None else args.normalize
    return preset.kernel, normalize


def run_convolve(args, source):
    kernel, normalize = _resolve_kernel(args)
    if args.at:
        x, y = args.at
        computation = api.convolve_at_point(source, kernel, x, y, normalize)
        print("Ядро:")
        print(format_kernel(computation.kernel))
        for step in computation.steps:
            pixel = step.pixel
            print(
                f"  ({step.position.x}, {step.position.y}) "
                f"RGB({pixel.r}, {pixel.g}, {pixel.b}) × {step.kernel_value:.4f}"
            )
        result = computation.result
        print(f"Результат ({x}, {y}): RGB({result.r}, {result.g}, {result.b})")
    return api.convolve(source, kernel, normalize)


def run_sobel(args, source):
    return api.convolve_sobel_combined(source)


def run_point(args, source):
    params = {
        "method": args.method,
        "amount": args.amount,
        "factor": args.factor,
        "threshold": args.threshold,
    }
    if args.at:
        x, y = args.at
        computation = api.point_op_at_pixel(source, args.op, params, x, y)
        print(f"({x}, {y}): {computation.formula}")
    return api.apply_point_op(source, args.op, params)


def run_match(args, source):
    if args.region:
        x, y, width, height = args.region
        template = api.select_template(source, x, y, width, height)
    else:
        template = load_image(args.template, args.max_size)

    if args.at:
        x, y = args.at
        computation = api.match_at_offset(source, template, args.metric, x, y)
        print(computation.formula)
        print(f"Оценка: {computation.score:.4f}, отображение: {computation.normalized_score}")

    heatmap, matches = api.match_template_with_matches(
        source, template, args.metric, args.match_threshold, args.limit
    )
    print(f"Совпадений (порог {args.match_threshold}): {len(matches)}")
    for item in matches:
        print(f"  ({item.x}, {item.y}) -> {item.score}")
    return heatmap


COMMANDS = {
    "convolve": run_convolve,
    "sobel": run_sobel,
    "point": run_point,
    "match": run_match,
}


def main(argv=None):
    """Главная функция приложения."""
    try:
        args = parse_arguments(argv)
        setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

        source = load_image(args.input, args.max_size)
        source = resize_to_option(source, args.resize)

        result = COMMANDS[args.command](args, source)
        save_image(result, args.output)
        print(f"[OK] Сохранено: {args.output}")

    except KeyboardInterrupt:
        print("\nПрервано пользователем")
    except ImageCoreError as e:
        print(f"Ошибка: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
