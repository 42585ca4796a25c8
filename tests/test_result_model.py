from __future__ import annotations

from pathlib import Path

from imgforge.models.error_model import ErrorKind
from imgforge.models.format_model import resolve
from imgforge.models.result_model import BatchResult, ConversionOutcome, ValidationResult


def test_outcome_truthiness():
    done = ConversionOutcome.done(Path("a.png"), Path("out/a.jpg"), resolve("jpg"))
    failed = ConversionOutcome.failed(Path("b.png"), ErrorKind.DECODE_ERROR, "broken")
    assert done and done.ok
    assert not failed
    assert failed.output_path is None
    assert failed.kind.value == "DecodeError"


def test_failure_duration_is_not_counted():
    result = BatchResult()
    result.add_success(Path("a"), Path("out/a"), 0.5)
    result.add_success(Path("b"), Path("out/b"), 1.5)
    result.add_failure(Path("c"), "EncodeError: disk full", 10.0)

    assert result.total_duration == 2.0
    assert result.average_duration == 1.0
    assert result.success_rate == 2 / 3 * 100
    assert "Среднее время: 1000.00 мс" in result.summary()


def test_empty_batch_summary_has_no_average():
    summary = BatchResult().summary()
    assert "Всего: 0 файлов" in summary
    assert "Среднее время" not in summary


def test_validation_summary_lists_errors_and_warnings():
    result = ValidationResult(errors=("нет файла",), warnings=("большой файл",))
    summary = result.summary()
    assert result.has_errors and result.has_warnings
    assert summary.index("Ошибки:") < summary.index("Предупреждения:")
    assert "нет файла" in summary and "большой файл" in summary
