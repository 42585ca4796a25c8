"""Предварительная проверка конвертации: блокирующие ошибки и предупреждения."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from imgforge.models.error_model import ConversionError, UnsupportedFormatError
from imgforge.models.format_model import resolve
from imgforge.models.result_model import ValidationResult
from imgforge.services.image_service import ImageService

LARGE_IMAGE_PIXELS = 50_000_000


@dataclass
class ValidationService:
    image_service: ImageService = field(default_factory=ImageService)

    def validate(self, input_path: str | Path, target_format: str) -> ValidationResult:
        """Проверяет, можно ли конвертировать файл в целевой формат.

        Ошибки: файла нет, формат не поддерживается, файл не читается.
        Предупреждения: потеря прозрачности, переход от формата без потерь к формату
        с потерями, очень большое изображение. Предупреждения не блокируют конвертацию.
        """
        errors: List[str] = []
        warnings: List[str] = []

        path = Path(input_path)
        if not path.exists():
            errors.append(f"Файл не существует: {path}")
            return ValidationResult(tuple(errors), tuple(warnings))

        try:
            target = resolve(target_format)
        except UnsupportedFormatError:
            errors.append(f"Формат вывода не поддерживается: {target_format}")
            return ValidationResult(tuple(errors), tuple(warnings))

        try:
            info = self.image_service.image_info(path)
        except ConversionError as exc:
            errors.append(f"Не удалось прочитать изображение {path}: {exc.reason}")
            return ValidationResult(tuple(errors), tuple(warnings))

        if info.has_transparency and not target.supports_transparency:
            warnings.append(
                f"Формат {target.extension.upper()} не поддерживает прозрачность. Будет применён фон."
            )
        if info.format.is_high_quality and target.is_lossy:
            warnings.append(
                "Конвертация из формата без потерь в формат с потерями. Возможна потеря качества."
            )
        if info.pixel_count > LARGE_IMAGE_PIXELS:
            warnings.append(
                f"Очень большое изображение ({info.pixel_count:,} пикселей). Конвертация может быть медленной."
            )

        return ValidationResult(tuple(errors), tuple(warnings), info)
