from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Tuple

import numpy as np
from PIL import Image

from imgforge.models.config_model import ConversionConfig, WHITE
from imgforge.models.format_model import ImageFormat
from imgforge.services.image_service import has_transparency

logger = logging.getLogger(__name__)

# WBMP binarization: luminance >= 128 becomes white
BINARY_THRESHOLD = 128

# modes Pillow can write for each format without further conversion
_WRITABLE_MODES: Dict[str, FrozenSet[str]] = {
    "JPEG": frozenset({"L", "RGB", "CMYK"}),
    "PNG": frozenset({"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}),
    "BMP": frozenset({"1", "L", "P", "RGB"}),
    "GIF": frozenset({"P"}),
    "TIFF": frozenset({"1", "L", "LA", "P", "RGB", "RGBA", "CMYK", "YCbCr", "I", "I;16", "F"}),
    "WBMP": frozenset({"1"}),
}

# single-channel integer modes holding 16-bit samples (0..65535)
_WIDE_GRAY_MODES: FrozenSet[str] = frozenset({"I;16", "I;16L", "I;16B", "I;16N", "I"})


class NormalizeService:
    def normalize(self, image: Image.Image, fmt: ImageFormat, config: ConversionConfig) -> Image.Image:
        """
        Приводит изображение к виду, который целевой формат хранит без потерь:
        1) удаляет прозрачность (наложение на фон), если формат её не поддерживает;
        2) сокращает цвета для GIF (палитра) и WBMP (1 бит);
        3) при `optimize_for_size` сужает представление пикселей (кроме форматов с потерями);
        4) приводит режим к одному из записываемых кодировщиком.
        Исходное изображение не мутируется.
        """
        result = image
        if not fmt.supports_transparency and has_transparency(result):
            result = self.remove_transparency(result, config.background_color)
            logger.info("Прозрачность удалена для формата %s", fmt.extension.upper())

        if fmt.requires_color_reduction:
            result = self.reduce_colors(result, fmt)

        if config.optimize_for_size:
            result = self.optimize_for_size(result, fmt)

        result = self._ensure_writable(result, fmt)
        self._check_constraints(result, fmt)
        return result

    # ---------- 1) Прозрачность ----------
    def remove_transparency(self, image: Image.Image, background: Tuple[int, int, int] = WHITE) -> Image.Image:
        """
        Накладывает изображение на непрозрачный фон:
        out = alpha * color + (1 - alpha) * background.
        Возвращает RGB того же размера.
        """
        rgba = np.asarray(self._to_rgba(image), dtype=np.float32)
        alpha = rgba[..., 3:4] / 255.0
        bg = np.asarray(background, dtype=np.float32).reshape(1, 1, 3)
        out = alpha * rgba[..., :3] + (1.0 - alpha) * bg
        return Image.fromarray(np.clip(np.rint(out), 0, 255).astype(np.uint8))

    # ---------- 2) Сокращение цветов ----------
    def reduce_colors(self, image: Image.Image, fmt: ImageFormat) -> Image.Image:
        if fmt.pillow_format == "GIF":
            return self.to_indexed(image)
        if fmt.pillow_format == "WBMP":
            return self.to_binary(image)
        return image

    def to_indexed(self, image: Image.Image, colors: int = 256) -> Image.Image:
        """
        Индексированные цвета (режим P). Непрозрачные изображения квантуются
        медианным сечением, изображения с альфой квантуются быстрым октодеревом.
        """
        if image.mode == "P":
            return image
        if image.mode in _WIDE_GRAY_MODES:
            image = self._to_rgba(image) if has_transparency(image) else self.to_8bit(image)
        if has_transparency(image):
            return image.convert("RGBA").quantize(colors=colors, method=Image.Quantize.FASTOCTREE)
        return image.convert("RGB").quantize(colors=colors, method=Image.Quantize.MEDIANCUT)

    def to_grayscale(self, image: Image.Image) -> Image.Image:
        """
        Преобразование изображения в оттенки серого (8-бит, L).
        Яркость по ITU-R 601-2: L = 0.299 R + 0.587 G + 0.114 B.
        """
        if image.mode == "L":
            return image.copy()
        if image.mode in _WIDE_GRAY_MODES:
            return self.to_8bit(image)
        if image.mode in ("P", "PA"):
            image = image.convert("RGB")
        return image.convert("L")

    def to_8bit(self, image: Image.Image) -> Image.Image:
        """
        16-битные оттенки серого (I;16, I) -> 8 бит (L) с масштабированием
        0..65535 -> 0..255. Простой `convert("L")` обрезает значения выше 255.
        """
        arr = np.asarray(image).astype(np.float64)
        scaled = np.rint(np.clip(arr, 0, 65535) / 257.0).astype(np.uint8)
        return Image.fromarray(scaled)

    def to_binary(self, image: Image.Image, threshold: int = BINARY_THRESHOLD) -> Image.Image:
        """
        Бинарное изображение (режим "1"): сначала оттенки серого, затем порог.
        """
        if image.mode == "1":
            return image
        arr = self._image_to_gray_np(image)
        return self._apply_binary_mask(arr >= threshold)

    # ---------- 3) Оптимизация размера ----------
    def optimal_mode(self, image: Image.Image, fmt: ImageFormat) -> str:
        name = fmt.pillow_format
        if name in ("JPEG", "BMP"):
            return "RGB"
        if name == "PNG":
            return "RGBA" if self._alpha_in_use(image) else "RGB"
        if name == "GIF":
            return "P"
        if name == "WBMP":
            # binary is already narrower than 8-bit gray
            return "1" if image.mode == "1" else "L"
        return image.mode

    def optimize_for_size(self, image: Image.Image, fmt: ImageFormat) -> Image.Image:
        """
        Переводит изображение в оптимальный для формата режим.
        Форматы с потерями пропускаются: их размер задаётся качеством.
        """
        if fmt.is_lossy:
            return image
        target = self.optimal_mode(image, fmt)
        if image.mode == target:
            return image
        if target == "P":
            return self.to_indexed(image)
        if target == "L":
            return self.to_grayscale(image)
        if image.mode in _WIDE_GRAY_MODES:
            image = self.to_8bit(image)
        return image.convert(target)

    # ---------- Вспомогательные функции ----------
    def _image_to_gray_np(self, image: Image.Image) -> np.ndarray:
        """
        Возвращает numpy-массив float32 в диапазоне [0, 255] (градации серого).
        """
        gray = self.to_grayscale(image)
        return np.asarray(gray, dtype=np.float32)

    def _to_rgba(self, image: Image.Image) -> Image.Image:
        if image.mode not in _WIDE_GRAY_MODES:
            return image.convert("RGBA")
        rgba = self.to_8bit(image).convert("RGBA")
        key = image.info.get("transparency")
        if isinstance(key, int):
            opaque = np.asarray(image) != key
            rgba.putalpha(Image.fromarray(opaque.astype(np.uint8) * 255))
        return rgba

    def _alpha_in_use(self, image: Image.Image) -> bool:
        """Есть ли хотя бы один не полностью непрозрачный пиксель."""
        if "A" not in image.getbands():
            return has_transparency(image)
        return image.getchannel("A").getextrema()[0] < 255

    def _apply_binary_mask(self, mask_bool: np.ndarray) -> Image.Image:
        """
        Преобразует булеву маску в 1-битное изображение (True = белый).
        """
        return Image.fromarray(np.ascontiguousarray(mask_bool, dtype=bool))

    def _ensure_writable(self, image: Image.Image, fmt: ImageFormat) -> Image.Image:
        modes = _WRITABLE_MODES.get(fmt.pillow_format)
        if modes is None or image.mode in modes:
            return image
        if image.mode in _WIDE_GRAY_MODES:
            image = self.to_8bit(image)
            if image.mode in modes:
                return image
        if fmt.pillow_format == "WBMP":
            return self.to_binary(image)
        if fmt.pillow_format == "GIF":
            return self.to_indexed(image)
        if fmt.supports_transparency and has_transparency(image):
            return image.convert("RGBA")
        if image.mode in ("LA", "La", "F"):
            return self.to_grayscale(image) if "L" in modes else image.convert("RGB")
        return image.convert("RGB")

    def _check_constraints(self, image: Image.Image, fmt: ImageFormat) -> None:
        if not fmt.supports_transparency and has_transparency(image):
            raise RuntimeError(f"normalized image still has transparency for {fmt.extension}")
        if fmt.pillow_format == "GIF" and image.mode != "P":
            raise RuntimeError(f"normalized GIF image has mode {image.mode}, expected P")
        if fmt.pillow_format == "WBMP" and image.mode != "1":
            raise RuntimeError(f"normalized WBMP image has mode {image.mode}, expected 1")
