"""Консольное приложение ImgForge: пакетная конвертация папки изображений."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from PIL import ImageColor
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from imgforge.controllers.batch_controller import BatchController
from imgforge.models.config_model import DEFAULT_PNG_COMPRESSION, DEFAULT_QUALITY, ConversionConfig
from imgforge.models.error_model import ConversionError, OutputRootError
from imgforge.models.format_model import (
    INPUT_EXTENSIONS,
    OUTPUT_EXTENSIONS,
    is_available_on_runtime,
    list_formats,
)
from imgforge.models.result_model import BatchResult, ConversionOutcome
from imgforge.services.file_service import FileService, file_size, format_file_size
from imgforge.services.image_service import ImageService
from imgforge.services.validation_service import ValidationService

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2

INFO_PREVIEW_LIMIT = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imgforge",
        description="Пакетная конвертация изображений между PNG, JPEG, BMP, GIF, TIFF и WBMP.",
    )
    parser.add_argument("-i", "--input", help="Папка с исходными изображениями")
    parser.add_argument("-o", "--output", help="Папка для результатов")
    parser.add_argument("-f", "--format", dest="target_format", help="Формат вывода: " + ", ".join(OUTPUT_EXTENSIONS))
    parser.add_argument("-q", "--quality", type=float, default=DEFAULT_QUALITY,
                        help="Качество JPEG/TIFF 0.0-1.0 (по умолчанию 0.85)")
    parser.add_argument("-r", "--recursive", action="store_true", help="Искать во вложенных папках")
    parser.add_argument("-v", "--verbose", action="store_true", help="Подробный вывод")
    parser.add_argument("--overwrite", action="store_true", help="Перезаписывать существующие файлы")
    parser.add_argument("--dry-run", action="store_true", help="Показать план без конвертации")
    parser.add_argument("--png-compression", type=int, default=DEFAULT_PNG_COMPRESSION,
                        help="Уровень сжатия PNG 0-9 (по умолчанию 6)")
    parser.add_argument("--preserve-quality", action="store_true", help="Максимальное качество, игнорировать -q")
    parser.add_argument("--preserve-structure", action="store_true",
                        help="Сохранять структуру папок (только с --recursive)")
    parser.add_argument("--background", default="white", help="Цвет фона при удалении прозрачности")
    parser.add_argument("--optimize", action="store_true", help="Оптимизировать представление пикселей для размера")
    parser.add_argument("--info", action="store_true", help="Показать сведения о первых изображениях")
    parser.add_argument("--list-formats", action="store_true", help="Показать поддерживаемые форматы")
    parser.add_argument("--filter-format", default="", help="Обрабатывать только эти форматы (через запятую)")
    parser.add_argument("--stats", action="store_true", help="Показать статистику по форматам")
    parser.add_argument("--validate", action="store_true", help="Проверить каждый файл перед конвертацией")
    return parser


def configure_logging(console: Console, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


class ImgForgeApp:
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self._files = FileService()
        self._images = ImageService()
        self._validator = ValidationService(image_service=self._images)
        self._batch = BatchController(file_service=self._files)

    def run(self, argv: Optional[Sequence[str]] = None) -> int:
        args = build_parser().parse_args(argv)
        configure_logging(self.console, args.verbose)

        if args.list_formats:
            self.show_formats()
            return EXIT_OK

        config = self._validate_args(args)
        if config is None:
            return EXIT_USAGE

        files = self._files.find_image_files(args.input, args.recursive)
        if args.filter_format:
            files = self._files.filter_by_formats(files, args.filter_format.split(","))
        if not files:
            self.console.print(f"[red]❌ Изображения не найдены в:[/] {args.input}")
            if args.filter_format:
                self.console.print(f"   (фильтр форматов: {args.filter_format})")
            return EXIT_FAILURES

        self.console.print(f"📁 Найдено изображений: {len(files)}")
        if args.stats:
            self.console.print(self._files.format_statistics(files))
        if args.info:
            self.show_info(files)
        if args.verbose:
            self._print_settings(args)

        planned = {path: self._output_path(path, args) for path in files}
        if args.dry_run:
            self.show_dry_run(planned)
            return EXIT_OK

        if args.validate:
            planned = self._validated(planned, args.target_format)

        to_convert: Dict[Path, Path] = {}
        claimed: Dict[Path, Path] = {}
        for src, dst in planned.items():
            if dst in claimed:
                # two inputs with the same stem map to one output; the first one wins
                self.console.print(
                    f"⏭️  Пропущен (тот же файл вывода, что у {claimed[dst].name}): {src.name}", markup=False
                )
                continue
            if dst.exists() and not args.overwrite:
                self.console.print(f"⏭️  Пропущен (уже существует): {src.name}", markup=False)
                continue
            claimed[dst] = src
            to_convert[src] = dst

        try:
            result = self._batch.run(
                list(to_convert),
                args.output,
                args.target_format,
                config,
                output_path_for=to_convert.__getitem__,
                on_progress=lambda i, n, outcome: self._print_progress(i, n, outcome, args.verbose),
            )
        except OutputRootError as exc:
            self.console.print(f"[red]❌ {exc}[/]")
            return EXIT_USAGE

        self.show_final_stats(result, args.target_format)
        return EXIT_OK if result.failure_count == 0 else EXIT_FAILURES

    # ---- Sections ----
    def show_formats(self) -> None:
        table = Table(title="Поддерживаемые форматы")
        for column in ("Формат", "Описание", "MIME", "Прозрачность", "Качество", "Тип", "Доступен"):
            table.add_column(column)
        for fmt in list_formats():
            table.add_row(
                fmt.extension.upper(),
                fmt.description,
                fmt.mime_type,
                "✓" if fmt.supports_transparency else "—",
                "✓" if fmt.supports_quality else "—",
                "С потерями" if fmt.is_lossy else "Без потерь",
                "✓" if is_available_on_runtime(fmt.extension) else "✗",
            )
        self.console.print(table)
        self.console.print(f"Вход: {', '.join(e.upper() for e in INPUT_EXTENSIONS)}")
        self.console.print(f"Выход: {', '.join(e.upper() for e in OUTPUT_EXTENSIONS)}")

    def show_info(self, files: List[Path]) -> None:
        self.console.print("\n📋 Сведения об изображениях:\n")
        for path in files[:INFO_PREVIEW_LIMIT]:
            self.console.print(f"📸 {path.name}")
            try:
                text = self._images.image_info(path).describe() + "\n" + self._images.memory_usage_info(path)
            except ConversionError as exc:
                text = f"Не удалось получить сведения: {exc.reason}"
            for line in text.splitlines():
                self.console.print(f"   {line}")
            self.console.print()
        if len(files) > INFO_PREVIEW_LIMIT:
            self.console.print(f"   ... и ещё {len(files) - INFO_PREVIEW_LIMIT} файлов\n")

    def show_dry_run(self, planned: Dict[Path, Path]) -> None:
        self.console.print("🔍 Пробный запуск, файлы для обработки:\n")
        for src, dst in planned.items():
            self.console.print(f"   {src} -> {dst}", markup=False)
        self.console.print(f"\n📊 Всего будет обработано: {len(planned)}")

    def show_final_stats(self, result: BatchResult, target_format: str) -> None:
        self.console.print()
        self.console.print(result.summary())
        if result.success_count > 0:
            self.console.print(f"  Формат вывода: {target_format.upper()}")
        if result.failure_count > 0:
            self.console.print("[yellow]⚠️  Часть файлов не обработана. Подробности в журнале.[/]")
            for record in result.failures:
                self.console.print(f"   ❌ {record.input_path.name}: {record.error}")
        elif result.success_count > 0:
            self.console.print("[green]🎉 Конвертация завершена успешно![/]")

    # ---- Helpers ----
    def _validate_args(self, args: argparse.Namespace) -> Optional[ConversionConfig]:
        """Проверяет аргументы и собирает конфигурацию; при ошибке печатает причину и возвращает None."""
        for value, flag in ((args.input, "-i/--input"), (args.output, "-o/--output"), (args.target_format, "-f/--format")):
            if not value or not value.strip():
                self.console.print(f"[red]❌ Не указан обязательный параметр {flag}[/]")
                return None
        if not self._files.is_valid_folder(args.input):
            self.console.print(f"[red]❌ Папка ввода не существует или недоступна:[/] {args.input}")
            return None
        if args.target_format.lower() not in OUTPUT_EXTENSIONS:
            self.console.print(f"[red]❌ Формат не поддерживается:[/] {args.target_format}")
            self.console.print(f"   Поддерживаются: {', '.join(OUTPUT_EXTENSIONS)}")
            self.console.print("   Подробнее: --list-formats")
            return None
        if not 0.0 <= args.quality <= 1.0:
            self.console.print(f"[red]❌ Качество должно быть от 0.0 до 1.0, указано: {args.quality}[/]")
            return None
        if not 0 <= args.png_compression <= 9:
            self.console.print(f"[red]❌ Сжатие PNG должно быть от 0 до 9, указано: {args.png_compression}[/]")
            return None
        try:
            background = ImageColor.getrgb(args.background)[:3]
        except ValueError:
            self.console.print(f"[red]❌ Неизвестный цвет фона:[/] {args.background}")
            return None
        if args.preserve_structure and not args.recursive:
            self.console.print("[yellow]⚠️  --preserve-structure действует только вместе с --recursive[/]")

        return ConversionConfig(
            quality=args.quality,
            png_compression=args.png_compression,
            preserve_quality=args.preserve_quality,
            background_color=background,
            optimize_for_size=args.optimize,
        )

    def _output_path(self, path: Path, args: argparse.Namespace) -> Path:
        if args.preserve_structure and args.recursive:
            return self._files.output_path_with_structure(path, args.input, args.output, args.target_format)
        return self._files.output_path(path, args.output, args.target_format)

    def _validated(self, planned: Dict[Path, Path], target_format: str) -> Dict[Path, Path]:
        kept: Dict[Path, Path] = {}
        for src, dst in planned.items():
            result = self._validator.validate(src, target_format)
            for warning in result.warnings:
                self.console.print(f"[yellow]⚠️  {src.name}: {warning}[/]")
            if result.has_errors:
                for error in result.errors:
                    self.console.print(f"[red]❌ {src.name}: {error}[/]")
                continue
            kept[src] = dst
        return kept

    def _print_settings(self, args: argparse.Namespace) -> None:
        yes_no = {True: "Да", False: "Нет"}
        self.console.print("📋 Настройки:")
        self.console.print(f"   Ввод: {args.input}")
        self.console.print(f"   Вывод: {args.output}")
        self.console.print(f"   Формат: {args.target_format.upper()}")
        self.console.print(f"   Качество: {args.quality * 100:.0f}%")
        self.console.print(f"   Рекурсивно: {yes_no[args.recursive]}")
        self.console.print(f"   Сохранять структуру: {yes_no[args.preserve_structure]}")
        self.console.print(f"   Перезапись: {yes_no[args.overwrite]}")
        self.console.print(f"   Сжатие PNG: {args.png_compression}")
        self.console.print(f"   Максимальное качество: {yes_no[args.preserve_quality]}")
        if args.filter_format:
            self.console.print(f"   Фильтр форматов: {args.filter_format}")
        self.console.print()

    def _print_progress(self, index: int, total: int, outcome: ConversionOutcome, verbose: bool) -> None:
        name = outcome.input_path.name
        if outcome.ok:
            self.console.print(f"[{index}/{total}] ✅ {name}", markup=False)
            if verbose and outcome.output_path is not None:
                before = format_file_size(file_size(outcome.input_path))
                after = format_file_size(file_size(outcome.output_path))
                self.console.print(f"   {before} -> {after}")
        else:
            self.console.print(f"[{index}/{total}] ❌ {name}: {outcome.reason}", markup=False)
