"""Загрузка изображений с диска и извлечение сведений о них.

Принципы:
- SRP: класс отвечает только за декодирование и базовое извлечение свойств.
- Декодер выбирается по содержимому файла; по расширению только в крайнем случае.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from imgforge.models.error_model import DecodeError, InputNotFoundError
from imgforge.models.format_model import resolve
from imgforge.models.image_model import ImageData, ImageInfo
from imgforge.services.file_service import format_file_size

logger = logging.getLogger(__name__)

_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError)

_ALPHA_MODES = {"RGBA", "RGBa", "LA", "La", "PA"}

_MODE_DESCRIPTIONS = {
    "1": "Бинарный (1-бит)",
    "L": "Оттенки серого (8-бит)",
    "LA": "Оттенки серого с прозрачностью (16-бит)",
    "P": "Индексированные цвета",
    "PA": "Индексированные цвета с прозрачностью",
    "RGB": "RGB (24-бит)",
    "RGBA": "ARGB (32-бит с прозрачностью)",
    "RGBX": "RGB (32-бит, с заполнением)",
    "CMYK": "CMYK (32-бит)",
    "YCbCr": "YCbCr (24-бит)",
    "I;16": "Оттенки серого (16-бит)",
    "I": "Целочисленные значения (32-бит)",
    "F": "Вещественные значения (32-бит)",
}

_MODE_BITS = {"1": 1, "I;16": 16, "I;16B": 16, "I;16L": 16, "I": 32, "F": 32}


def has_transparency(image: Image.Image) -> bool:
    """Есть ли у изображения альфа-канал или прозрачный цвет палитры."""
    return image.mode in _ALPHA_MODES or "transparency" in image.info


def bits_per_pixel(image: Image.Image) -> int:
    return _MODE_BITS.get(image.mode, len(image.getbands()) * 8)


def color_type_description(image: Image.Image) -> str:
    """Подробное описание цветовой модели, например "Индексированные цвета (256 цветов) - 8 бит на пиксель"."""
    description = _MODE_DESCRIPTIONS.get(image.mode, f"Особый режим ({image.mode})")
    if image.mode in ("P", "PA"):
        palette = image.getpalette() or []
        description += f" ({len(palette) // 3} цветов)"
    description += f" - {bits_per_pixel(image)} бит на пиксель"
    if has_transparency(image):
        description += ", альфа-канал"
    return description


class ImageService:
    def load_image(self, file_path: str | Path) -> ImageData:
        """Загружает изображение с диска и возвращает его вместе с метаданными.

        Args:
            file_path: Путь до файла изображения.

        Returns:
            `ImageData` c `PIL.Image.Image` в исходном режиме, размерами и размером файла.

        Raises:
            InputNotFoundError: если путь не существует, не является файлом или недоступен для чтения.
            DecodeError: если файл не удалось декодировать.
        """
        path = Path(file_path)
        if not path.exists() or not path.is_file():
            raise InputNotFoundError(f"Файл не найден: {path}")
        if not os.access(path, os.R_OK):
            raise InputNotFoundError(f"Файл недоступен для чтения: {path}")

        try:
            pil_image, source_format = self._decode(path)
        except _DECODE_ERRORS as exc:
            raise DecodeError(f"Не удалось прочитать изображение {path}: {exc}") from exc

        width, height = pil_image.size
        try:
            size_bytes: Optional[int] = path.stat().st_size
        except OSError:
            size_bytes = None

        return ImageData(
            path=path,
            pil_image=pil_image,
            width=width,
            height=height,
            mode=pil_image.mode,
            source_format=source_format,
            size_bytes=size_bytes,
        )

    def _decode(self, path: Path) -> Tuple[Image.Image, Optional[str]]:
        try:
            with Image.open(path) as opened:
                opened.load()
                return opened.copy(), opened.format
        except UnidentifiedImageError:
            logger.warning("Декодер по содержимому не найден для %s, пробуем по расширению", path.name)
        return self._decode_by_extension(path)

    def _decode_by_extension(self, path: Path) -> Tuple[Image.Image, Optional[str]]:
        """Запасной декодер: плагин Pillow, зарегистрированный для расширения файла."""
        Image.init()
        pillow_format = Image.registered_extensions().get(path.suffix.lower())
        if pillow_format is None or pillow_format not in Image.OPEN:
            raise UnidentifiedImageError(f"Нет декодера для {path.suffix or path.name}")
        factory, _accept = Image.OPEN[pillow_format]
        with path.open("rb") as fp:
            opened = factory(fp, str(path))
            opened.load()
            return opened.copy(), pillow_format

    def image_info(self, file_path: str | Path) -> ImageInfo:
        """Собирает `ImageInfo` для файла.

        Raises:
            InputNotFoundError, UnsupportedFormatError, DecodeError.
        """
        path = Path(file_path)
        if not path.exists():
            raise InputNotFoundError(f"Файл не найден: {path}")
        fmt = resolve(path.suffix)
        data = self.load_image(path)
        image = data.pil_image
        return ImageInfo(
            file_name=path.name,
            format=fmt,
            width=data.width,
            height=data.height,
            color_type=color_type_description(image),
            has_transparency=has_transparency(image),
            file_size=data.size_bytes if data.size_bytes is not None else -1,
            compression=fmt.compression,
        )

    def memory_usage_info(self, file_path: str | Path) -> str:
        info = self.image_info(file_path)
        estimated_ram = info.pixel_count * 4
        ratio = estimated_ram // info.file_size if info.file_size > 0 else 0
        return "\n".join([
            "Оценка использования памяти:",
            f"  Пикселей: {info.pixel_count:,}",
            f"  Нужно RAM: {format_file_size(estimated_ram)}",
            f"  Размер на диске: {format_file_size(info.file_size)}",
            f"  Степень сжатия: {ratio}:1",
        ])
