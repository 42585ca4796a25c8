"""Модели данных для изображений.

Принципы:
- SRP: только структура данных, без логики обработки.
- Чистый код: неизменяемость (`frozen=True`) для предсказуемости.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from PIL import Image

from imgforge.models.format_model import ImageFormat
from imgforge.services.file_service import format_file_size


class ColorModel(str, Enum):
    BINARY = "binary"
    GRAYSCALE = "grayscale"
    GRAYSCALE_16 = "grayscale16"
    GRAYSCALE_ALPHA = "grayscale+alpha"
    INDEXED = "indexed"
    RGB = "rgb"
    ARGB = "argb"
    CMYK = "cmyk"
    OTHER = "other"


_MODE_MODELS = {
    "1": ColorModel.BINARY,
    "L": ColorModel.GRAYSCALE,
    "I;16": ColorModel.GRAYSCALE_16,
    "I;16B": ColorModel.GRAYSCALE_16,
    "I;16L": ColorModel.GRAYSCALE_16,
    "LA": ColorModel.GRAYSCALE_ALPHA,
    "La": ColorModel.GRAYSCALE_ALPHA,
    "P": ColorModel.INDEXED,
    "PA": ColorModel.INDEXED,
    "RGB": ColorModel.RGB,
    "RGBX": ColorModel.RGB,
    "RGBA": ColorModel.ARGB,
    "RGBa": ColorModel.ARGB,
    "CMYK": ColorModel.CMYK,
}


def color_model_of(mode: str) -> ColorModel:
    """Тег цветовой модели для режима PIL."""
    return _MODE_MODELS.get(mode, ColorModel.OTHER)


@dataclass(frozen=True)
class ImageData:
    """Декодированное изображение и его метаданные.

    Принадлежит конвейеру одного файла и не переиспользуется между файлами.

    Fields:
        path: Путь к исходному файлу.
        pil_image: Загруженное изображение PIL (режим как в файле).
        width: Ширина, px.
        height: Высота, px.
        mode: Режим PIL, например "RGBA" или "P".
        source_format: Формат, определённый по содержимому файла ("PNG", "JPEG", ...).
        size_bytes: Размер файла, если доступен.
    """
    path: Path
    pil_image: Image.Image
    width: int
    height: int
    mode: str
    source_format: Optional[str]
    size_bytes: Optional[int]

    @property
    def color_model(self) -> ColorModel:
        return color_model_of(self.mode)


@dataclass(frozen=True)
class ImageInfo:
    """Снимок сведений об изображении для отчётов и проверки."""
    file_name: str
    format: ImageFormat
    width: int
    height: int
    color_type: str
    has_transparency: bool
    file_size: int
    compression: str

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height != 0 else 0.0

    def describe(self) -> str:
        lines = [
            f"Файл: {self.file_name}",
            f"Формат: {self.format.description} ({self.format.mime_type})",
            f"Размеры: {self.width} x {self.height} пикселей",
            f"Всего пикселей: {self.pixel_count:,}",
            f"Соотношение сторон: {self.aspect_ratio:.2f}:1",
            f"Тип цвета: {self.color_type}",
            f"Прозрачность: {'Да' if self.has_transparency else 'Нет'}",
            f"Размер файла: {format_file_size(self.file_size)}",
        ]
        if self.compression:
            lines.append(f"Сжатие: {self.compression}")
        return "\n".join(lines)
