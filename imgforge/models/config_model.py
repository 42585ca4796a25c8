"""Параметры конвертации, общие для всего пакета файлов."""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Tuple

RGB = Tuple[int, int, int]

DEFAULT_QUALITY = 0.85
DEFAULT_PNG_COMPRESSION = 6
WHITE: RGB = (255, 255, 255)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ConversionConfig:
    """Неизменяемая конфигурация конвертации.

    Числовые поля всегда лежат в допустимых диапазонах: `__post_init__`
    приводит любое значение, в том числе при `dataclasses.replace`.

    Fields:
        quality: Качество для форматов с потерями, [0.0, 1.0].
        png_compression: Уровень сжатия PNG, [0, 9] (9: сильнее всего).
        preserve_quality: Игнорировать `quality` и писать с максимальным качеством.
        background_color: Фон (RGB) при удалении прозрачности.
        optimize_for_size: Сужать представление пикселей перед записью.
        preserve_metadata: Зарезервировано; метаданные не переносятся.
    """
    quality: float = DEFAULT_QUALITY
    png_compression: int = DEFAULT_PNG_COMPRESSION
    preserve_quality: bool = False
    background_color: RGB = WHITE
    optimize_for_size: bool = False
    preserve_metadata: bool = False

    def __post_init__(self) -> None:
        quality = float(self.quality)
        if math.isnan(quality):
            quality = DEFAULT_QUALITY
        object.__setattr__(self, "quality", _clamp(quality, 0.0, 1.0))
        level = float(self.png_compression)
        if math.isnan(level):
            level = DEFAULT_PNG_COMPRESSION
        object.__setattr__(self, "png_compression", int(_clamp(level, 0, 9)))
        r, g, b = (int(_clamp(int(c), 0, 255)) for c in tuple(self.background_color)[:3])
        object.__setattr__(self, "background_color", (r, g, b))

    @property
    def effective_quality(self) -> float:
        return 1.0 if self.preserve_quality else self.quality

    def with_quality(self, quality: float) -> "ConversionConfig":
        return replace(self, quality=quality)

    def with_png_compression(self, level: int) -> "ConversionConfig":
        return replace(self, png_compression=level)
