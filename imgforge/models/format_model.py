"""Реестр поддерживаемых форматов изображений.

Принципы:
- SRP: только описание возможностей форматов, без кодирования.
- Закрытое множество: форматы задаются таблицей при импорте и не меняются.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

from PIL import Image

import imgforge.codecs.wbmp_plugin  # noqa: F401  registers WBMP with Pillow
from imgforge.models.error_model import UnsupportedFormatError


@dataclass(frozen=True)
class ImageFormat:
    """Неизменяемое описание формата.

    Fields:
        extension: Каноническое расширение без точки, в нижнем регистре.
        mime_type: MIME-тип.
        supports_transparency: Может ли формат хранить альфа-канал.
        supports_quality: Есть ли у кодировщика параметр качества.
        description: Человекочитаемое название.
        pillow_format: Имя формата в реестре Pillow.
        compression: Описание сжатия для отчётов.
    """
    extension: str
    mime_type: str
    supports_transparency: bool
    supports_quality: bool
    description: str
    pillow_format: str
    compression: str

    @property
    def is_lossy(self) -> bool:
        return self.pillow_format == "JPEG"

    @property
    def requires_color_reduction(self) -> bool:
        return self.pillow_format in ("GIF", "WBMP")

    @property
    def is_high_quality(self) -> bool:
        return self.pillow_format in ("PNG", "TIFF", "BMP")


_FORMATS: Tuple[ImageFormat, ...] = (
    ImageFormat("png", "image/png", True, False, "Portable Network Graphics", "PNG", "Deflate (без потерь)"),
    ImageFormat("jpg", "image/jpeg", False, True, "JPEG", "JPEG", "JPEG (с потерями)"),
    ImageFormat("jpeg", "image/jpeg", False, True, "JPEG", "JPEG", "JPEG (с потерями)"),
    ImageFormat("bmp", "image/bmp", False, False, "Windows Bitmap", "BMP", "Без сжатия"),
    ImageFormat("gif", "image/gif", True, False, "Graphics Interchange Format", "GIF", "LZW (без потерь)"),
    ImageFormat("tiff", "image/tiff", True, True, "Tagged Image File Format", "TIFF", "Переменное (LZW/None/JPEG)"),
    ImageFormat("tif", "image/tiff", True, True, "Tagged Image File Format", "TIFF", "Переменное (LZW/None/JPEG)"),
    ImageFormat("wbmp", "image/vnd.wap.wbmp", False, False, "Wireless Bitmap", "WBMP", "Без сжатия"),
)

FORMATS: Dict[str, ImageFormat] = {fmt.extension: fmt for fmt in _FORMATS}

INPUT_EXTENSIONS: Tuple[str, ...] = ("jpg", "jpeg", "png", "bmp", "gif", "tiff", "tif", "wbmp")
OUTPUT_EXTENSIONS: Tuple[str, ...] = ("png", "jpg", "jpeg", "bmp", "gif", "tiff", "tif", "wbmp")


def _normalize_extension(extension: str) -> str:
    return extension.strip().lower().lstrip(".")


def resolve(extension: str) -> ImageFormat:
    """Возвращает описание формата по расширению (без учёта регистра).

    Raises:
        UnsupportedFormatError: если расширение неизвестно.
    """
    key = _normalize_extension(extension or "")
    try:
        return FORMATS[key]
    except KeyError:
        raise UnsupportedFormatError(f"Формат не поддерживается: {extension}") from None


def list_formats() -> List[ImageFormat]:
    return list(_FORMATS)


def is_supported_image_file(path: str | Path) -> bool:
    suffix = Path(path).suffix
    return bool(suffix) and _normalize_extension(suffix) in INPUT_EXTENSIONS


def is_available_on_runtime(extension: str) -> bool:
    """Проверяет, что Pillow на этой машине умеет и читать, и писать формат.

    Известный формат не обязательно доступен: WBMP читается и пишется
    только пока зарегистрирован плагин `imgforge.codecs.wbmp_plugin`.
    """
    try:
        fmt = resolve(extension)
    except UnsupportedFormatError:
        return False
    Image.init()
    registered = Image.registered_extensions().get(f".{fmt.extension}")
    if registered != fmt.pillow_format:
        return False
    return fmt.pillow_format in Image.OPEN and fmt.pillow_format in Image.SAVE

