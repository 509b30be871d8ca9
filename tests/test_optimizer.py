"""Tests for the method handlers and the batch optimizer."""

import logging

import pytest
from PIL import Image

from handlers import mip_bias, proportional_resize
from methods import METHODS, available_methods, menu_label
from optimizer import (
    OptimizationRequest,
    notification_text,
    optimize_paths,
    optimize_texture,
    optimize_textures,
    result_row,
    run,
    summarize,
)
from reduction_policy import REASON_ALREADY_AT_TARGET, REASON_SOURCE_MISSING, Method
from texture_library import load_texture, read_sidecar


def _size(path):
    with Image.open(path) as image:
        return image.size


class TestHandlers:

    def test_mip_bias_writes_sidecar(self, make_texture):
        path = make_texture("a.png", (2048, 1024))
        result = mip_bias.process(load_texture(path), 512)

        assert result["applied"]
        assert result["error"] is None
        assert result["outcome"].mip_bias_level == 2
        assert read_sidecar(path)["lod_bias"] == 2
        assert _size(path) == (2048, 1024)

    def test_mip_bias_dry_run(self, make_texture):
        path = make_texture("a.png", (2048, 1024))
        result = mip_bias.process(load_texture(path), 512, dry_run=True)
        assert result["outcome"].succeeded
        assert not result["applied"]
        assert read_sidecar(path) == {}

    def test_mip_bias_already_small(self, make_texture):
        path = make_texture("a.png", (256, 256))
        result = mip_bias.process(load_texture(path), 512)
        assert not result["applied"]
        assert result["outcome"].reason == REASON_ALREADY_AT_TARGET

    def test_proportional_reencodes(self, make_texture):
        path = make_texture("a.png", (3000, 2000), source_size=(3000, 2000))
        result = proportional_resize.process(load_texture(path), 512)
        assert result["applied"]
        assert _size(path) == (512, 341)

    def test_proportional_without_source(self, make_texture):
        path = make_texture("a.png", (3000, 2000))
        result = proportional_resize.process(load_texture(path), 512)
        assert not result["applied"]
        assert result["outcome"].reason == REASON_SOURCE_MISSING
        assert _size(path) == (3000, 2000)

    def test_proportional_log_rounds_half_up(self, make_texture, caplog):
        # 3072x1536 -> 2048x1024 saves exactly 2.5 MB
        path = make_texture("a.png", (3072, 1536), source_size=(64, 64))
        with caplog.at_level(logging.INFO):
            result = proportional_resize.process(load_texture(path), 2048, dry_run=True)
        assert result["outcome"].estimated_memory_saved_bytes == 2.5 * 1024 * 1024
        assert "saves 3 MB VRAM" in caplog.text


class TestOptimizeTexture:

    def test_auto_with_source(self, make_texture):
        tex = load_texture(make_texture("a.png", (2048, 2048), source_size=(4096, 4096)))
        result = optimize_texture(tex, Method.AUTO, 1024)
        assert result.method == Method.PROPORTIONAL_RESIZE
        assert result.requested_method == Method.AUTO
        assert result.had_source_file
        assert result.succeeded

    def test_auto_without_source(self, make_texture):
        tex = load_texture(make_texture("a.png", (2048, 2048)))
        result = optimize_texture(tex, Method.AUTO, 1024)
        assert result.method == Method.MIP_BIAS
        assert result.outcome.mip_bias_level == 1

    def test_forced_proportional_falls_back(self, make_texture):
        tex = load_texture(make_texture("a.png", (2048, 2048)))
        result = optimize_texture(tex, Method.PROPORTIONAL_RESIZE, 512)
        assert result.method == Method.MIP_BIAS
        assert result.succeeded

    def test_broken_source_is_an_error_row(self, make_texture, tmp_path):
        path = make_texture("a.png", (2048, 2048), source_size=(4096, 4096))
        (tmp_path / "sources" / "a.png").write_bytes(b"corrupt")
        result = optimize_texture(load_texture(path), Method.AUTO, 512)
        assert not result.succeeded
        assert result.error
        assert result.message == result.error
        assert _size(path) == (2048, 2048)

    def test_oversized_source_is_an_error_row_and_batch_continues(self, make_texture, monkeypatch):
        first  = load_texture(make_texture("a.png", (64, 64), source_size=(1024, 1024)))
        second = load_texture(make_texture("b.png", (2048, 1024)))
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10_000)
        results = optimize_textures([first, second], Method.AUTO, 32)
        assert [r.texture.name for r in results] == ["a", "b"]
        assert results[0].error and not results[0].applied
        assert results[1].succeeded
        assert read_sidecar(second.path)["lod_bias"] == 6

    def test_already_small_message_quotes_target(self, make_texture):
        tex = load_texture(make_texture("a.png", (100, 100)))
        result = optimize_texture(tex, Method.MIP_BIAS, 512)
        assert result.message == f"{REASON_ALREADY_AT_TARGET} (100x100 <= 512)"


class TestBatch:

    @pytest.fixture
    def mixed_library(self, make_texture, library_dir):
        make_texture("hero.png", (4096, 2048), source_size=(4096, 2048))
        make_texture("crate.png", (2048, 2048))
        make_texture("icon.png", (128, 128))
        return library_dir

    def test_summary(self, mixed_library):
        results = optimize_paths([str(mixed_library)], Method.AUTO, 512)
        summary = summarize(results)

        assert summary.total_processed == 3
        assert summary.total_successful == 2
        assert summary.total_proportional == 1
        assert summary.total_mip_bias == 2
        assert summary.total_with_source == 1
        expected = (4096 * 2048 - 512 * 256) + (2048 * 2048 - 512 * 512)
        assert summary.memory_saved_bytes == expected
        assert summary.file_saved_bytes == pytest.approx((4096 * 2048 - 512 * 256) * 0.8)
        assert summary.memory_saved_mb == 12
        assert notification_text(summary) == (
            "Texture optimization complete: 2/3 optimized, 12 MB VRAM saved"
        )

    def test_dry_run_writes_nothing(self, mixed_library):
        results = optimize_paths([str(mixed_library)], Method.AUTO, 512, dry_run=True)
        assert all(not r.applied for r in results)
        assert _size(str(mixed_library / "hero.png")) == (4096, 2048)
        assert read_sidecar(str(mixed_library / "crate.png")) == {}

    def test_progress_callback(self, mixed_library):
        seen = []
        textures = [load_texture(str(mixed_library / n)) for n in ("crate.png", "icon.png")]
        optimize_textures(textures, Method.MIP_BIAS, 512,
                          progress=lambda i, total, name: seen.append((i, total, name)))
        assert seen == [(0, 2, "crate"), (1, 2, "icon")]

    def test_run_prefers_asset_selection(self, mixed_library):
        req = OptimizationRequest(
            assets=(str(mixed_library / "crate.png"),),
            paths=(str(mixed_library),),
            method=Method.MIP_BIAS,
            target_resolution=1024,
        )
        results = run(req)
        assert [r.texture.name for r in results] == ["crate"]

    def test_run_with_folders(self, mixed_library):
        req = OptimizationRequest(paths=(str(mixed_library),), method=Method.MIP_BIAS)
        assert len(run(req)) == 3

    def test_empty_summary(self):
        summary = summarize([])
        assert summary.total_processed == 0
        assert summary.memory_saved_mb == 0

    def test_result_row(self, mixed_library):
        tex = load_texture(str(mixed_library / "crate.png"))
        row = result_row(optimize_texture(tex, Method.AUTO, 512))
        assert row["status"] == "✅"
        assert row["method_label"] == "🧪 Universal LOD"
        assert row["original"] == "2048x2048"
        assert row["final"] == "512x512"
        assert row["mip_bias"] == 2
        assert row["memory_saved_mb"] == 4
        assert row["file_saved_mb"] == 0


class TestMethodRegistry:

    def test_every_concrete_method_has_a_handler(self):
        for key, cfg in METHODS.items():
            if key == Method.AUTO.value:
                assert cfg["handler"] is None
            else:
                assert cfg["handler"] == key

    def test_menu_label(self):
        assert menu_label("mip_bias", 4, 1) == "🧪 Quick Test (LOD Bias) (4 textures, 1 with source)"

    def test_source_methods_need_a_source(self):
        assert "proportional_resize" not in available_methods(0)
        assert available_methods(2) == list(METHODS)
