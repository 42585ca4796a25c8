"""Последовательная пакетная конвертация."""
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from imgforge.controllers.conversion_controller import ConversionController
from imgforge.models.config_model import ConversionConfig
from imgforge.models.error_model import OutputRootError
from imgforge.models.result_model import BatchResult, ConversionOutcome
from imgforge.services.file_service import FileService

OutputPathBuilder = Callable[[Path], Path]
ProgressCb = Callable[[int, int, ConversionOutcome], None]


def _default_logger() -> logging.Logger:
    return logging.getLogger(__name__)


@dataclass
class BatchController:
    """Конвертирует файлы по одному, в порядке входа, и собирает `BatchResult`.

    Ошибка одного файла не прерывает пакет. Прерывает его только недоступная
    корневая папка вывода (`OutputRootError`), проверяемая до первого файла.
    """
    logger: logging.Logger = field(default_factory=_default_logger)
    conversion: Optional[ConversionController] = None
    file_service: FileService = field(default_factory=FileService)
    clock: Callable[[], float] = time.perf_counter

    def __post_init__(self) -> None:
        if self.conversion is None:
            self.conversion = ConversionController(logger=self.logger)

    def run(
        self,
        input_paths: Iterable[str | Path],
        output_root: str | Path,
        target_format: str,
        config: Optional[ConversionConfig] = None,
        output_path_for: Optional[OutputPathBuilder] = None,
        on_progress: Optional[ProgressCb] = None,
    ) -> BatchResult:
        root = Path(output_root)
        self.ensure_output_root(root)

        paths = [Path(p) for p in input_paths]
        config = config or ConversionConfig()
        extension = target_format.strip().lower().lstrip(".")
        if output_path_for is None:
            def output_path_for(path: Path) -> Path:
                return self.file_service.output_path(path, root, extension)

        result = BatchResult()
        total = len(paths)
        for index, path in enumerate(paths, start=1):
            start = self.clock()
            outcome = self.conversion.convert(path, output_path_for(path), target_format, config)
            duration = self.clock() - start
            if outcome.ok:
                result.add_success(path, outcome.output_path, duration)
            else:
                result.add_failure(path, f"{outcome.kind.value}: {outcome.reason}", duration)
            if on_progress is not None:
                on_progress(index, total, outcome)

        self.logger.info(
            "Пакет завершён: %d из %d успешно (%.1f%%)",
            result.success_count, result.total_count, result.success_rate,
        )
        return result

    def ensure_output_root(self, root: Path) -> None:
        if not self.file_service.ensure_folder(root):
            raise OutputRootError(f"Не удалось создать папку вывода: {root}")
        if not os.access(root, os.W_OK):
            raise OutputRootError(f"Нет прав на запись в папку вывода: {root}")
