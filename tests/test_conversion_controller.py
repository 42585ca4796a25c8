from __future__ import annotations

import logging

import numpy as np
import pytest
from PIL import Image

from conftest import make_gradient_16
from imgforge.controllers.conversion_controller import ConversionController
from imgforge.models.config_model import ConversionConfig
from imgforge.models.error_model import ErrorKind


@pytest.fixture
def controller():
    return ConversionController(logger=logging.getLogger("imgforge.test.conversion"))


def test_missing_input_fails_with_input_not_found(controller, tmp_path):
    outcome = controller.convert(tmp_path / "nope.png", tmp_path / "out" / "nope.jpg", "jpg")
    assert not outcome
    assert outcome.kind is ErrorKind.INPUT_NOT_FOUND
    assert outcome.output_path is None
    assert not (tmp_path / "out").exists()


def test_unknown_target_format_fails(controller, opaque_png, output_dir):
    outcome = controller.convert(opaque_png, output_dir / "opaque.webp", "webp")
    assert outcome.kind is ErrorKind.UNSUPPORTED_FORMAT
    assert not (output_dir / "opaque.webp").exists()


def test_undecodable_input_fails_with_decode_error(controller, corrupt_png, output_dir):
    outcome = controller.convert(corrupt_png, output_dir / "corrupt.jpg", "jpg")
    assert outcome.kind is ErrorKind.DECODE_ERROR
    assert not (output_dir / "corrupt.jpg").exists()


def test_output_under_a_file_fails_with_output_path_error(controller, opaque_png, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a folder")
    outcome = controller.convert(opaque_png, blocker / "opaque.jpg", "jpg")
    assert outcome.kind is ErrorKind.OUTPUT_PATH_ERROR


def test_missing_output_folders_are_created(controller, opaque_png, output_dir):
    target = output_dir / "a" / "b" / "opaque.bmp"
    outcome = controller.convert(opaque_png, target, "bmp")
    assert outcome.ok
    assert target.is_file()


def test_jpeg_to_gif_is_indexed(controller, photo_jpg, output_dir):
    target = output_dir / "photo.gif"
    outcome = controller.convert(photo_jpg, target, "GIF")

    assert outcome.ok
    assert outcome.output_path == target
    assert outcome.format.extension == "gif"
    assert outcome.format.supports_transparency
    with Image.open(target) as written:
        assert written.format == "GIF"
        assert written.mode == "P"


def test_png_compression_level_does_not_change_pixels(controller, opaque_png, output_dir):
    fast, small = output_dir / "fast.png", output_dir / "small.png"
    assert controller.convert(opaque_png, fast, "png", ConversionConfig(png_compression=0))
    assert controller.convert(opaque_png, small, "png", ConversionConfig(png_compression=9))

    with Image.open(fast) as a, Image.open(small) as b:
        assert a.tobytes() == b.tobytes()
    assert small.stat().st_size <= fast.stat().st_size


def test_transparent_png_to_bmp_uses_background(controller, transparent_png, output_dir):
    target = output_dir / "transparent.bmp"
    outcome = controller.convert(
        transparent_png, target, "bmp", ConversionConfig(background_color=(0, 128, 255))
    )
    assert outcome.ok
    with Image.open(target) as written:
        assert written.mode == "RGB"
        assert written.getpixel((0, 0)) == (0, 128, 255)
        assert written.getpixel((written.width - 1, 0)) == (255, 0, 0)


def test_any_format_to_wbmp_is_binary(controller, photo_jpg, output_dir):
    target = output_dir / "photo.wbmp"
    assert controller.convert(photo_jpg, target, "wbmp")
    with Image.open(target) as written:
        assert written.format == "WBMP"
        assert written.mode == "1"


def test_wbmp_input_is_decoded(controller, tmp_path, output_dir):
    source = tmp_path / "mono.wbmp"
    Image.new("1", (16, 4), 255).save(source)
    target = output_dir / "mono.png"
    assert controller.convert(source, target, "png")
    with Image.open(target) as written:
        assert written.size == (16, 4)


def test_existing_output_is_replaced(controller, opaque_png, output_dir):
    output_dir.mkdir()
    target = output_dir / "opaque.jpg"
    target.write_bytes(b"stale")
    assert controller.convert(opaque_png, target, "jpg")
    with Image.open(target) as written:
        assert written.format == "JPEG"


def test_failure_is_logged_with_kind(controller, tmp_path, caplog):
    with caplog.at_level(logging.ERROR, logger="imgforge.test.conversion"):
        controller.convert(tmp_path / "nope.png", tmp_path / "nope.jpg", "jpg")
    assert any("InputNotFound" in record.getMessage() for record in caplog.records)


def test_transparency_removal_is_logged(controller, transparent_png, output_dir, caplog):
    with caplog.at_level(logging.INFO, logger="imgforge.services.normalize_service"):
        controller.convert(transparent_png, output_dir / "transparent.jpg", "jpg")
    assert any("Прозрачность удалена" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize("target", ["wbmp", "jpg", "gif", "bmp"])
def test_sixteen_bit_png_keeps_tones(controller, input_dir, output_dir, target):
    source = input_dir / "deep.png"
    make_gradient_16().save(source)
    destination = output_dir / f"deep.{target}"

    assert controller.convert(source, destination, target)

    with Image.open(destination) as written:
        gray = np.asarray(written.convert("L"), dtype=np.float32)
    white = (gray >= 128).mean()
    assert white == pytest.approx(0.5, abs=0.05)
