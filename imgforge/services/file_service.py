"""Работа с файлами: поиск изображений, пути вывода, размеры.

Принципы:
- SRP: только файловая система, без декодирования изображений.
- Детерминизм: одинаковый вход даёт одинаковый порядок и одинаковые пути.
"""
from __future__ import annotations

import logging
import os
from collections import OrderedDict
from pathlib import Path
from typing import Iterable, List

from imgforge.models.format_model import INPUT_EXTENSIONS, is_supported_image_file

logger = logging.getLogger(__name__)

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_file_size(size_bytes: int) -> str:
    """Размер в читаемом виде: "0 B", "512 B", "1.50 KB", "12.3 MB", "512 GB"."""
    if size_bytes < 0:
        return "Неизвестно"
    if size_bytes == 0:
        return "0 B"
    size = float(size_bytes)
    unit = 0
    while size >= 1024 and unit < len(_SIZE_UNITS) - 1:
        size /= 1024
        unit += 1
    if unit == 0:
        return f"{int(size)} {_SIZE_UNITS[unit]}"
    if size < 10:
        return f"{size:.2f} {_SIZE_UNITS[unit]}"
    if size < 100:
        return f"{size:.1f} {_SIZE_UNITS[unit]}"
    return f"{size:.0f} {_SIZE_UNITS[unit]}"


def file_size(path: str | Path) -> int:
    """Размер файла в байтах или -1, если файл недоступен."""
    try:
        p = Path(path)
        return p.stat().st_size if p.is_file() else -1
    except OSError:
        return -1


def _extension(path: Path) -> str:
    return path.suffix.lower().lstrip(".")


class FileService:
    def find_image_files(self, folder: str | Path, recursive: bool = False) -> List[Path]:
        """Возвращает отсортированный список изображений в папке.

        В список попадают только обычные файлы с известным входным расширением.
        Несуществующая папка даёт пустой список.
        """
        root = Path(folder)
        if not root.is_dir():
            logger.warning("Папка не существует или не является папкой: %s", root)
            return []
        candidates = root.rglob("*") if recursive else root.iterdir()
        files = sorted(p for p in candidates if p.is_file() and is_supported_image_file(p))
        logger.info("Найдено %d изображений в %s", len(files), root)
        return files

    def filter_by_formats(self, paths: Iterable[Path], formats: Iterable[str]) -> List[Path]:
        wanted = {f.strip().lower().lstrip(".") for f in formats if f.strip()}
        return [p for p in paths if _extension(Path(p)) in wanted]

    def output_path(self, input_path: str | Path, output_folder: str | Path, extension: str) -> Path:
        return Path(output_folder) / f"{Path(input_path).stem}.{extension.lower()}"

    def output_path_with_structure(
        self,
        input_path: str | Path,
        input_root: str | Path,
        output_folder: str | Path,
        extension: str,
    ) -> Path:
        """Путь вывода с сохранением относительной структуры папок.

        Если файл лежит вне `input_root`, используется плоский путь.
        """
        try:
            relative = Path(input_path).resolve().relative_to(Path(input_root).resolve())
        except ValueError:
            logger.warning("Файл %s вне папки %s, структура не сохраняется", input_path, input_root)
            return self.output_path(input_path, output_folder, extension)
        return Path(output_folder) / relative.parent / f"{relative.stem}.{extension.lower()}"

    def is_valid_folder(self, folder: str | Path) -> bool:
        p = Path(folder)
        return p.is_dir() and os.access(p, os.R_OK)

    def ensure_folder(self, folder: str | Path) -> bool:
        """Создаёт папку вместе с родителями; повторный вызов ничего не делает."""
        p = Path(folder)
        if p.is_dir():
            return True
        try:
            p.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Не удалось создать папку %s: %s", p, exc)
            return False
        logger.info("Создана папка: %s", p)
        return True

    def format_statistics(self, paths: Iterable[Path]) -> str:
        """Сводка количества и объёма файлов по расширениям."""
        paths = list(paths)
        if not paths:
            return "Нет файлов для анализа"
        counts: "OrderedDict[str, int]" = OrderedDict((ext, 0) for ext in INPUT_EXTENSIONS)
        sizes: "OrderedDict[str, int]" = OrderedDict((ext, 0) for ext in INPUT_EXTENSIONS)
        total_size = 0
        for path in paths:
            ext = _extension(Path(path))
            counts[ext] = counts.get(ext, 0) + 1
            size = file_size(path)
            if size > 0:
                sizes[ext] = sizes.get(ext, 0) + size
                total_size += size
        lines = ["Статистика по форматам:"]
        for ext, count in counts.items():
            if count == 0:
                continue
            percent = count * 100.0 / len(paths)
            lines.append(
                f"  {ext.upper():<5} {count:>4} файлов ({percent:.1f}%) - {format_file_size(sizes[ext])}"
            )
        lines.append(f"  Всего: {len(paths)} файлов, {format_file_size(total_size)}")
        return "\n".join(lines)
