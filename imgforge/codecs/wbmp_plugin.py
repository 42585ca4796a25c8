"""Плагин Pillow для Wireless Bitmap (WBMP, тип 0).

Структура файла:
- байты 0x00 0x00 (тип и фиксированный заголовок);
- ширина и высота многобайтовыми целыми (7 бит на байт, старший бит означает продолжение);
- строки пикселей по 1 биту, старший бит первым, 1 означает белый; строка дополняется до байта.

Импорт модуля регистрирует формат "WBMP" в Pillow.
"""
from __future__ import annotations

import os
from typing import IO

from PIL import Image, ImageFile

FORMAT = "WBMP"
MIME_TYPE = "image/vnd.wap.wbmp"
# mid-gray threshold used when an 8-bit image is written directly
THRESHOLD = 128

_MAX_INT_BYTES = 4


def _accept(prefix: bytes) -> bool:
    return prefix[:2] == b"\x00\x00"


def _read_multibyte(fp: IO[bytes]) -> int:
    value = 0
    for _ in range(_MAX_INT_BYTES):
        raw = fp.read(1)
        if not raw:
            raise SyntaxError("truncated WBMP header")
        byte = raw[0]
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value
    raise SyntaxError("WBMP dimension is too large")


def _write_multibyte(value: int) -> bytes:
    out = [value & 0x7F]
    value >>= 7
    while value:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(out))


class WbmpImageFile(ImageFile.ImageFile):
    format = FORMAT
    format_description = "Wireless Bitmap"

    def _open(self) -> None:
        assert self.fp is not None
        if self.fp.read(2) != b"\x00\x00":
            raise SyntaxError("not a WBMP file")
        width = _read_multibyte(self.fp)
        height = _read_multibyte(self.fp)
        if width <= 0 or height <= 0:
            raise SyntaxError("invalid WBMP dimensions")

        offset = self.fp.tell()
        self.fp.seek(0, os.SEEK_END)
        payload = self.fp.tell() - offset
        if payload != (width + 7) // 8 * height:
            raise SyntaxError("WBMP payload size does not match dimensions")
        self.fp.seek(offset)

        self._mode = "1"
        self._size = (width, height)
        self.tile = [("raw", (0, 0, width, height), offset, ("1", 0, 1))]


def _save(im: Image.Image, fp: IO[bytes], filename: str | bytes) -> None:
    if im.mode == "1":
        binary = im
    elif im.mode == "L":
        binary = im.point(lambda v: 255 if v >= THRESHOLD else 0, "1")
    else:
        raise OSError(f"cannot write mode {im.mode} as WBMP")

    width, height = binary.size
    fp.write(b"\x00\x00" + _write_multibyte(width) + _write_multibyte(height))
    ImageFile._save(binary, fp, [("raw", (0, 0, width, height), 0, ("1", 0, 1))])


Image.register_open(FORMAT, WbmpImageFile, _accept)
Image.register_save(FORMAT, _save)
Image.register_extension(FORMAT, ".wbmp")
Image.register_mime(FORMAT, MIME_TYPE)
