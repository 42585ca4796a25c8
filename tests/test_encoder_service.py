from __future__ import annotations

import pytest
from PIL import Image

from conftest import make_gradient_rgb
from imgforge.models.config_model import ConversionConfig
from imgforge.models.error_model import EncodeError, ErrorKind, UnsupportedFormatError
from imgforge.models.format_model import resolve
from imgforge.services import encoder_service
from imgforge.services.encoder_service import EncoderService, jpeg_quality, png_compression_quality


@pytest.fixture
def service():
    return EncoderService()


def test_jpeg_plan_uses_configured_quality(service):
    plan = service.plan(resolve("jpg"), ConversionConfig())
    assert plan.pillow_format == "JPEG"
    assert plan.params == {"quality": 85}
    assert plan.quality == pytest.approx(0.85)


def test_jpeg_plan_preserve_quality_ignores_quality(service):
    plan = service.plan(resolve("jpeg"), ConversionConfig(quality=0.2, preserve_quality=True))
    assert plan.params["quality"] == 100
    assert plan.params["subsampling"] == 0
    assert plan.quality == 1.0


def test_jpeg_plan_optimize_flag(service):
    plan = service.plan(resolve("jpg"), ConversionConfig(optimize_for_size=True))
    assert plan.params["optimize"] is True


@pytest.mark.parametrize("level, quality", [(0, 1.0), (9, 0.0), (6, 1 - 6 / 9)])
def test_png_plan_maps_level_to_inverse_quality(service, level, quality):
    plan = service.plan(resolve("png"), ConversionConfig(png_compression=level))
    assert plan.params == {"compress_level": level}
    assert plan.quality == pytest.approx(quality)


def test_quality_helpers():
    assert jpeg_quality(0.0) == 0
    assert jpeg_quality(0.856) == 86
    assert png_compression_quality(9) == 0.0


def test_tiff_prefers_lzw(service, monkeypatch):
    monkeypatch.setattr(encoder_service, "available_tiff_compressions", lambda: ["packbits", "tiff_lzw", "raw"])
    plan = service.plan(resolve("tiff"), ConversionConfig(quality=0.5))
    assert plan.compression == "tiff_lzw"
    assert plan.params == {"compression": "tiff_lzw"}
    assert plan.quality == pytest.approx(0.5)


def test_tiff_falls_back_to_first_available(service, monkeypatch):
    monkeypatch.setattr(encoder_service, "available_tiff_compressions", lambda: ["packbits", "raw"])
    assert service.plan(resolve("tif"), ConversionConfig()).compression == "packbits"


def test_tiff_jpeg_compression_carries_quality(service, monkeypatch):
    monkeypatch.setattr(encoder_service, "available_tiff_compressions", lambda: ["jpeg"])
    plan = service.plan(resolve("tiff"), ConversionConfig(quality=0.6))
    assert plan.params == {"compression": "jpeg", "quality": 60}


def test_tiff_preserve_quality_leaves_quality_unset(service, monkeypatch):
    monkeypatch.setattr(encoder_service, "available_tiff_compressions", lambda: ["jpeg"])
    plan = service.plan(resolve("tiff"), ConversionConfig(preserve_quality=True))
    assert plan.quality is None
    assert "quality" not in plan.params


@pytest.mark.parametrize("ext, expected", [("png", "PNG"), ("jpg", "JPEG"), ("bmp", "BMP"), ("tiff", "TIFF")])
def test_encode_writes_requested_format(service, tmp_path, ext, expected):
    path = tmp_path / f"out.{ext}"
    service.encode(make_gradient_rgb(), path, resolve(ext), ConversionConfig())
    with Image.open(path) as written:
        assert written.format == expected


def test_unavailable_format_raises(service, tmp_path, monkeypatch):
    monkeypatch.setattr(encoder_service, "is_available_on_runtime", lambda ext: False)
    path = tmp_path / "out.png"
    with pytest.raises(UnsupportedFormatError):
        service.encode(make_gradient_rgb(), path, resolve("png"), ConversionConfig())
    assert not path.exists()


def test_gif_falls_back_to_generic_writer(service, tmp_path, monkeypatch):
    real_save = service._save
    calls = []

    def flaky_save(image, path, pillow_format, params):
        calls.append(pillow_format)
        if pillow_format == "GIF":
            raise EncodeError("gif writer failed")
        real_save(image, path, pillow_format, params)

    monkeypatch.setattr(service, "_save", flaky_save)
    path = tmp_path / "out.gif"
    service.encode(make_gradient_rgb(), path, resolve("gif"), ConversionConfig())

    assert calls == ["GIF", None]
    with Image.open(path) as written:
        assert written.format == "GIF"


def test_wbmp_falls_back_to_grayscale(service, tmp_path, monkeypatch):
    real_save = service._save
    modes = []

    def flaky_save(image, path, pillow_format, params):
        modes.append(image.mode)
        if image.mode == "1":
            raise EncodeError("binary writer failed")
        real_save(image, path, pillow_format, params)

    monkeypatch.setattr(service, "_save", flaky_save)
    path = tmp_path / "out.wbmp"
    service.encode(make_gradient_rgb(), path, resolve("wbmp"), ConversionConfig())

    assert modes == ["1", "L"]
    with Image.open(path) as written:
        assert written.mode == "1"


def test_failed_write_leaves_no_partial_file(service, tmp_path):
    path = tmp_path / "out.png"
    with pytest.raises(EncodeError) as excinfo:
        # PNG cannot store CMYK
        service._save(make_gradient_rgb().convert("CMYK"), path, "PNG", {})
    assert excinfo.value.kind is ErrorKind.ENCODE_ERROR
    assert list(tmp_path.iterdir()) == []


def test_failed_write_keeps_existing_file(service, tmp_path):
    path = tmp_path / "out.png"
    path.write_bytes(b"previous")
    with pytest.raises(EncodeError):
        service._save(make_gradient_rgb().convert("CMYK"), path, "PNG", {})
    assert path.read_bytes() == b"previous"
    assert list(tmp_path.iterdir()) == [path]
