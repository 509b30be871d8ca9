"""
Batch texture optimizer.

Runs the selected method over every texture in a selection and aggregates the
per-texture outcomes into a summary. Textures are independent of each other:
a failure on one is reported on its row and the batch carries on.
"""
import importlib
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from methods import DEFAULT_TARGET_RESOLUTION, METHODS
from reduction_policy import (
    REASON_ALREADY_AT_TARGET,
    Method,
    ReductionOutcome,
    bytes_to_mb,
    round_half_up,
    select_method,
)
from texture_library import Texture, TextureError, find_textures, source_file_exists

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


@dataclass(frozen=True)
class OptimizationRequest:
    """Everything one optimization run needs; nothing is kept between runs."""
    assets:            tuple[str, ...] = ()
    paths:             tuple[str, ...] = ()
    method:            Method = Method.AUTO
    target_resolution: int = DEFAULT_TARGET_RESOLUTION
    dry_run:           bool = False
    recursive:         bool = True

    @property
    def has_asset_selection(self) -> bool:
        return bool(self.assets)


@dataclass(frozen=True)
class TextureResult:
    texture:           Texture
    requested_method:  Method
    method:            Method             # effective method after source check
    had_source_file:   bool
    target_resolution: int
    outcome:           Optional[ReductionOutcome] = None
    applied:           bool = False
    error:             Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.outcome is not None and self.outcome.succeeded

    @property
    def message(self) -> str:
        if self.error:
            return self.error
        if self.outcome is None or self.outcome.reason is None:
            return ""
        if self.outcome.reason == REASON_ALREADY_AT_TARGET:
            return f"{self.outcome.reason} ({self.outcome.original} <= {self.target_resolution})"
        return self.outcome.reason


@dataclass(frozen=True)
class BatchSummary:
    total_processed:    int = 0
    total_successful:   int = 0
    total_mip_bias:     int = 0
    total_proportional: int = 0
    total_with_source:  int = 0
    memory_saved_bytes: float = 0.0
    file_saved_bytes:   float = 0.0

    @property
    def memory_saved_mb(self) -> int:
        return round_half_up(bytes_to_mb(self.memory_saved_bytes))

    @property
    def file_saved_mb(self) -> int:
        return round_half_up(bytes_to_mb(self.file_saved_bytes))


# ── Single texture ────────────────────────────────────────────────────────────

def _get_handler(method: Method):
    handler_name = METHODS[method.value]["handler"]
    return importlib.import_module(f"handlers.{handler_name}")


def optimize_texture(
    texture: Texture,
    method: Method,
    target_resolution: int,
    dry_run: bool = False,
) -> TextureResult:
    requested  = Method(method)
    has_source = source_file_exists(texture)
    effective  = select_method(requested, has_source)

    try:
        result = _get_handler(effective).process(texture, target_resolution, dry_run=dry_run)
    except TextureError as e:
        logger.error("Optimizing %s failed: %s", texture.name, e)
        return TextureResult(
            texture=texture,
            requested_method=requested,
            method=effective,
            had_source_file=has_source,
            error=str(e),
            target_resolution=target_resolution,
        )

    return TextureResult(
        texture=texture,
        requested_method=requested,
        method=effective,
        had_source_file=has_source,
        outcome=result["outcome"],
        applied=result["applied"],
        error=result["error"],
        target_resolution=target_resolution,
    )


# ── Batches ───────────────────────────────────────────────────────────────────

def optimize_textures(
    textures: Iterable[Texture],
    method: Method,
    target_resolution: int,
    dry_run: bool = False,
    progress: Optional[ProgressCallback] = None,
) -> list[TextureResult]:
    textures = list(textures)
    results  = []
    for index, texture in enumerate(textures):
        if progress:
            progress(index, len(textures), texture.name)
        results.append(optimize_texture(texture, method, target_resolution, dry_run=dry_run))
    return results


def optimize_paths(
    paths: Iterable[str],
    method: Method,
    target_resolution: int,
    dry_run: bool = False,
    recursive: bool = True,
    progress: Optional[ProgressCallback] = None,
) -> list[TextureResult]:
    textures = find_textures(paths, recursive=recursive)
    return optimize_textures(textures, method, target_resolution, dry_run=dry_run, progress=progress)


def run(request: OptimizationRequest, progress: Optional[ProgressCallback] = None) -> list[TextureResult]:
    """Asset selection wins over folder selection, as in the library browser."""
    selection = request.assets if request.has_asset_selection else request.paths
    return optimize_paths(
        selection,
        request.method,
        request.target_resolution,
        dry_run=request.dry_run,
        recursive=request.recursive,
        progress=progress,
    )


# ── Reporting ─────────────────────────────────────────────────────────────────

def summarize(results: Iterable[TextureResult]) -> BatchSummary:
    processed = successful = mip = proportional = with_source = 0
    memory = files = 0.0
    for r in results:
        processed += 1
        if r.succeeded:
            successful += 1
            memory     += r.outcome.estimated_memory_saved_bytes
            files      += r.outcome.estimated_file_saved_bytes
        if r.method is Method.MIP_BIAS:
            mip += 1
        elif r.method is Method.PROPORTIONAL_RESIZE:
            proportional += 1
        if r.had_source_file:
            with_source += 1

    summary = BatchSummary(
        total_processed=processed,
        total_successful=successful,
        total_mip_bias=mip,
        total_proportional=proportional,
        total_with_source=with_source,
        memory_saved_bytes=memory,
        file_saved_bytes=files,
    )
    if processed:
        logger.info(
            "Texture optimization completed: %d/%d optimized, %d MB VRAM saved, %d MB file size saved",
            successful, processed, summary.memory_saved_mb, summary.file_saved_mb,
        )
    return summary


def notification_text(summary: BatchSummary) -> str:
    return (
        f"Texture optimization complete: {summary.total_successful}/{summary.total_processed} "
        f"optimized, {summary.memory_saved_mb} MB VRAM saved"
    )


def result_row(result: TextureResult) -> dict:
    """Flat, template/JSON friendly view of one result."""
    cfg     = METHODS[result.method.value]
    outcome = result.outcome
    size    = f"{result.texture.width}x{result.texture.height}"
    return {
        "name":            result.texture.name,
        "path":            result.texture.path,
        "status":          "✅" if result.succeeded else "❌",
        "succeeded":       result.succeeded,
        "method":          result.method.value,
        "method_label":    f"{cfg['icon']} {cfg['result_label']}",
        "had_source":      result.had_source_file,
        "applied":         result.applied,
        "original":        str(outcome.original) if outcome else size,
        "final":           str(outcome.final) if outcome else size,
        "mip_bias":        outcome.mip_bias_level if outcome else None,
        "memory_saved_mb": round_half_up(bytes_to_mb(outcome.estimated_memory_saved_bytes)) if outcome else 0,
        "file_saved_mb":   round_half_up(bytes_to_mb(outcome.estimated_file_saved_bytes)) if outcome else 0,
        "message":         result.message,
    }
