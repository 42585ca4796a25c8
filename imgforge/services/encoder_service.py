"""Запись изображений: выбор параметров кодировщика по формату и запасные пути.

Принципы:
- SRP: сервис только кодирует уже нормализованное изображение.
- Атомарность: файл пишется во временный файл рядом и переносится `os.replace`,
  поэтому при ошибке целевой файл либо отсутствует, либо не тронут.
"""
from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from PIL import Image, features

from imgforge.models.config_model import ConversionConfig
from imgforge.models.error_model import EncodeError, UnsupportedFormatError
from imgforge.models.format_model import ImageFormat, is_available_on_runtime
from imgforge.services.image_service import has_transparency
from imgforge.services.normalize_service import NormalizeService

logger = logging.getLogger(__name__)

_ENCODE_ERRORS = (OSError, ValueError, KeyError)

_LIBTIFF_COMPRESSIONS = ("tiff_lzw", "tiff_adobe_deflate", "packbits", "jpeg", "raw")
PREFERRED_TIFF_COMPRESSION = "tiff_lzw"


@dataclass(frozen=True)
class EncodePlan:
    """Выбранные параметры записи.

    Fields:
        pillow_format: Имя формата Pillow.
        params: Аргументы `Image.save`.
        quality: Значение ручки качества кодировщика в [0, 1], если она применяется.
        compression: Схема сжатия, если выбирается явно.
    """
    pillow_format: str
    params: Dict[str, Any] = field(default_factory=dict)
    quality: Optional[float] = None
    compression: Optional[str] = None


def jpeg_quality(quality: float) -> int:
    """Качество [0, 1] -> шкала libjpeg [0, 100]."""
    return max(0, min(100, int(round(quality * 100))))


def png_compression_quality(level: int) -> float:
    """Уровень сжатия 0..9 -> "качество сжатия" 1..0 (шкала обратная)."""
    return 1.0 - level / 9.0


def available_tiff_compressions() -> List[str]:
    """Схемы сжатия TIFF, доступные в этой сборке Pillow."""
    if features.check_codec("libtiff"):
        return list(_LIBTIFF_COMPRESSIONS)
    return ["raw"]


def select_tiff_compression(available: List[str]) -> str:
    for name in available:
        if name.lower() == PREFERRED_TIFF_COMPRESSION:
            return name
    return available[0] if available else "raw"


@dataclass
class EncoderService:
    normalizer: NormalizeService = field(default_factory=NormalizeService)

    def plan(self, fmt: ImageFormat, config: ConversionConfig) -> EncodePlan:
        """Подбирает параметры записи для формата."""
        name = fmt.pillow_format
        if name == "JPEG":
            quality = config.effective_quality
            params: Dict[str, Any] = {"quality": jpeg_quality(quality)}
            if config.preserve_quality:
                params["subsampling"] = 0
            if config.optimize_for_size:
                params["optimize"] = True
            return EncodePlan(name, params, quality=quality)
        if name == "PNG":
            # Pillow's compress_level already counts "more compression" upward
            level = config.png_compression
            return EncodePlan(name, {"compress_level": level}, quality=png_compression_quality(level))
        if name == "GIF":
            return EncodePlan(name, {"optimize": config.optimize_for_size})
        if name == "TIFF":
            compression = select_tiff_compression(available_tiff_compressions())
            params = {"compression": compression}
            quality = None
            if not config.preserve_quality:
                quality = config.quality
                # Pillow accepts a TIFF quality only for jpeg compression
                if compression == "jpeg":
                    params["quality"] = jpeg_quality(quality)
            return EncodePlan(name, params, quality=quality, compression=compression)
        return EncodePlan(name)

    def encode(
        self,
        image: Image.Image,
        output_path: str | Path,
        fmt: ImageFormat,
        config: ConversionConfig,
    ) -> EncodePlan:
        """Записывает изображение в формате `fmt`.

        Raises:
            UnsupportedFormatError: если кодировщик формата недоступен в этой среде.
            EncodeError: при ошибке кодека или ввода-вывода (в том числе после запасного пути).
        """
        if not is_available_on_runtime(fmt.extension):
            raise UnsupportedFormatError(
                f"Формат {fmt.extension.upper()} недоступен в этой системе: нет кодировщика Pillow"
            )

        path = Path(output_path)
        plan = self.plan(fmt, config)
        logger.debug("Параметры записи %s: %s", fmt.extension.upper(), plan)

        name = fmt.pillow_format
        if name == "BMP":
            self._save_bmp(image, path, plan, config)
        elif name == "GIF":
            self._save_gif(image, path, plan)
        elif name == "WBMP":
            self._save_wbmp(image, path, plan)
        else:
            self._save(image, path, plan.pillow_format, plan.params)
        return plan

    def _save_bmp(self, image: Image.Image, path: Path, plan: EncodePlan, config: ConversionConfig) -> None:
        if has_transparency(image):
            image = self.normalizer.remove_transparency(image, config.background_color)
        self._save(image, path, plan.pillow_format, plan.params)

    def _save_gif(self, image: Image.Image, path: Path, plan: EncodePlan) -> None:
        image = self.normalizer.to_indexed(image)
        try:
            self._save(image, path, plan.pillow_format, plan.params)
        except EncodeError as exc:
            logger.warning("Запись GIF не удалась (%s), пробуем общий кодировщик", exc)
            self._save(image, path, None, {})

    def _save_wbmp(self, image: Image.Image, path: Path, plan: EncodePlan) -> None:
        binary = self.normalizer.to_binary(image)
        try:
            self._save(binary, path, plan.pillow_format, plan.params)
        except EncodeError as exc:
            logger.warning("Запись WBMP не удалась (%s), пробуем через оттенки серого", exc)
            self._save(self.normalizer.to_grayscale(image), path, plan.pillow_format, {})

    def _save(self, image: Image.Image, path: Path, pillow_format: Optional[str], params: Dict[str, Any]) -> None:
        tmp: Optional[Path] = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=path.suffix, dir=path.parent)
            os.close(fd)
            tmp = Path(tmp_name)
            image.save(tmp, format=pillow_format, **params)
            os.replace(tmp, path)
        except _ENCODE_ERRORS as exc:
            raise EncodeError(f"Ошибка записи {path}: {exc}") from exc
        finally:
            if tmp is not None and tmp.exists():
                tmp.unlink()
