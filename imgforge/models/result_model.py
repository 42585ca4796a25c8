"""Результаты конвертации, пакетной обработки и проверки."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from imgforge.models.error_model import ErrorKind
from imgforge.models.format_model import ImageFormat
from imgforge.models.image_model import ImageInfo


@dataclass(frozen=True)
class ConversionOutcome:
    """Итог конвертации одного файла: `Done` или `Failed(reason)`."""
    input_path: Path
    output_path: Optional[Path]
    format: Optional[ImageFormat] = None
    kind: Optional[ErrorKind] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def done(cls, input_path: Path, output_path: Path, fmt: ImageFormat) -> "ConversionOutcome":
        return cls(input_path=input_path, output_path=output_path, format=fmt)

    @classmethod
    def failed(cls, input_path: Path, kind: ErrorKind, reason: str) -> "ConversionOutcome":
        return cls(input_path=input_path, output_path=None, kind=kind, reason=reason)


@dataclass(frozen=True)
class ConversionRecord:
    input_path: Path
    output_path: Optional[Path]
    duration: float  # seconds
    error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """Упорядоченная последовательность записей; статистика считается по запросу."""
    records: List[ConversionRecord] = field(default_factory=list)

    def add_success(self, input_path: Path, output_path: Path, duration: float) -> None:
        self.records.append(ConversionRecord(input_path, output_path, duration))

    def add_failure(self, input_path: Path, error: str, duration: float = 0.0) -> None:
        self.records.append(ConversionRecord(input_path, None, duration, error))

    @property
    def successes(self) -> List[ConversionRecord]:
        return [r for r in self.records if r.is_success]

    @property
    def failures(self) -> List[ConversionRecord]:
        return [r for r in self.records if not r.is_success]

    @property
    def success_count(self) -> int:
        return len(self.successes)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def total_count(self) -> int:
        return len(self.records)

    @property
    def success_rate(self) -> float:
        total = self.total_count
        return self.success_count / total * 100 if total > 0 else 0.0

    @property
    def total_duration(self) -> float:
        return sum(r.duration for r in self.successes)

    @property
    def average_duration(self) -> float:
        count = self.success_count
        return self.total_duration / count if count else 0.0

    def summary(self) -> str:
        lines = [
            "Результат пакетной конвертации:",
            f"  Всего: {self.total_count} файлов",
            f"  Успешно: {self.success_count} ({self.success_rate:.1f}%)",
            f"  С ошибкой: {self.failure_count}",
            f"  Общее время: {self.total_duration:.2f} с",
        ]
        if self.success_count > 0:
            lines.append(f"  Среднее время: {self.average_duration * 1000:.2f} мс на изображение")
        return "\n".join(lines)


@dataclass(frozen=True)
class ValidationResult:
    """Ошибки (блокирующие) и предупреждения (справочные) предварительной проверки."""
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    image_info: Optional[ImageInfo] = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def summary(self) -> str:
        lines: List[str] = []
        if self.errors:
            lines.append("Ошибки:")
            lines.extend(f"  ❌ {e}" for e in self.errors)
        if self.warnings:
            lines.append("Предупреждения:")
            lines.extend(f"  ⚠️  {w}" for w in self.warnings)
        if self.image_info is not None:
            lines.append("Сведения об изображении:")
            lines.append(self.image_info.describe())
        return "\n".join(lines)
