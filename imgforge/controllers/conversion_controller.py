"""Контроллер конвертации одного файла.

SOLID:
- SRP: класс связывает сервисы в конвейер и не содержит логики обработки пикселей.
- DIP: сервисы и логгер передаются извне; по умолчанию создаются стандартные.
Clean Code:
- Любая ошибка файла превращается в значение `ConversionOutcome`, а не исключение.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from imgforge.models.config_model import ConversionConfig
from imgforge.models.error_model import (
    ConversionError,
    EncodeError,
    InputNotFoundError,
    OutputPathError,
    UnsupportedFormatError,
)
from imgforge.models.format_model import ImageFormat, is_available_on_runtime, resolve
from imgforge.models.result_model import ConversionOutcome
from imgforge.services.encoder_service import EncoderService
from imgforge.services.file_service import FileService
from imgforge.services.image_service import ImageService
from imgforge.services.normalize_service import NormalizeService


def _default_logger() -> logging.Logger:
    return logging.getLogger(__name__)


@dataclass
class ConversionController:
    """Конвейер одного файла: Validated -> Decoded -> Normalized -> Encoded -> Done.

    Любой шаг может перейти в `Failed(reason)`; вызывающий получает
    `ConversionOutcome` с видом ошибки и причиной.
    """
    logger: logging.Logger = field(default_factory=_default_logger)
    image_service: ImageService = field(default_factory=ImageService)
    normalize_service: NormalizeService = field(default_factory=NormalizeService)
    encoder_service: EncoderService = field(default_factory=EncoderService)
    file_service: FileService = field(default_factory=FileService)

    def convert(
        self,
        input_path: str | Path,
        output_path: str | Path,
        target_format: str,
        config: Optional[ConversionConfig] = None,
    ) -> ConversionOutcome:
        src = Path(input_path)
        dst = Path(output_path)
        try:
            fmt = self._run(src, dst, target_format, config or ConversionConfig())
        except ConversionError as exc:
            self.logger.error("Ошибка конвертации %s [%s]: %s", src, exc.kind.value, exc.reason)
            return ConversionOutcome.failed(src, exc.kind, exc.reason)

        self.logger.info("Успешная конвертация: %s -> %s [%s]", src, dst, fmt.mime_type)
        return ConversionOutcome.done(src, dst, fmt)

    # ---- Steps ----
    def _run(self, src: Path, dst: Path, target_format: str, config: ConversionConfig) -> ImageFormat:
        if not src.is_file():
            raise InputNotFoundError(f"Входной файл не существует: {src}")

        fmt = resolve(target_format)
        if not is_available_on_runtime(fmt.extension):
            raise UnsupportedFormatError(f"Формат {fmt.extension.upper()} недоступен в этой системе")

        data = self.image_service.load_image(src)
        try:
            if not self.file_service.ensure_folder(dst.parent):
                raise OutputPathError(f"Не удалось создать папки для: {dst}")

            try:
                normalized = self.normalize_service.normalize(data.pil_image, fmt, config)
            except (ValueError, OSError) as exc:
                raise EncodeError(f"Не удалось подготовить изображение для {fmt.extension.upper()}: {exc}") from exc

            try:
                self.encoder_service.encode(normalized, dst, fmt, config)
            finally:
                if normalized is not data.pil_image:
                    normalized.close()
        finally:
            data.pil_image.close()
        return fmt
