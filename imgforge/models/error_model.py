"""Типизированные ошибки конвертации.

Каждая ошибка относится к одному файлу и не прерывает пакетную обработку;
исключение составляет только `OutputRootError`.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INPUT_NOT_FOUND = "InputNotFound"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    DECODE_ERROR = "DecodeError"
    OUTPUT_PATH_ERROR = "OutputPathError"
    ENCODE_ERROR = "EncodeError"


class ConversionError(Exception):
    """Базовая ошибка конвертации одного файла."""
    kind: ErrorKind = ErrorKind.ENCODE_ERROR

    @property
    def reason(self) -> str:
        return str(self) or self.kind.value


class InputNotFoundError(ConversionError):
    kind = ErrorKind.INPUT_NOT_FOUND


class UnsupportedFormatError(ConversionError, ValueError):
    kind = ErrorKind.UNSUPPORTED_FORMAT


class DecodeError(ConversionError):
    kind = ErrorKind.DECODE_ERROR


class OutputPathError(ConversionError):
    kind = ErrorKind.OUTPUT_PATH_ERROR


class EncodeError(ConversionError):
    kind = ErrorKind.ENCODE_ERROR


class OutputRootError(Exception):
    """Корневая папка вывода недоступна: пакет не может начаться."""
