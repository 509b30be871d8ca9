"""
Resolution reduction policy.

Pure functions that decide how far a texture must shrink to fit a target
resolution cap, using either a mip bias (non-destructive) or a proportional
re-encode (destructive), and estimate the memory saved.

Nothing here touches files; callers own all side effects.
"""
import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, PositiveInt

# Search depth for mip bias: never halve more than this many times
MAX_MIP_BIAS = 10

# Rough compressed-texture heuristic: 4 channels at a 4:1 compression ratio
BYTES_PER_PIXEL_ESTIMATE = 4 * 0.25

# Re-encoded files shrink a little less than their in-memory size
FILE_SAVINGS_FACTOR = 0.8

REASON_ALREADY_AT_TARGET = "already within target size"
REASON_NO_REDUCTION      = "could not compute a reduction"
REASON_SOURCE_MISSING    = "source file unavailable"


class Method(str, Enum):
    AUTO                = "auto"
    MIP_BIAS            = "mip_bias"
    PROPORTIONAL_RESIZE = "proportional_resize"


class ImageDimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width:  PositiveInt
    height: PositiveInt

    @property
    def max_dimension(self) -> int:
        return max(self.width, self.height)

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


class ReductionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    dimensions: ImageDimensions
    target_cap: PositiveInt
    method:     Method = Method.AUTO


class ReductionOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    method:                       Method
    original:                     ImageDimensions
    final:                        ImageDimensions
    mip_bias_level:               int | None = None   # mip bias only
    succeeded:                    bool
    estimated_memory_saved_bytes: float = 0.0
    estimated_file_saved_bytes:   float = 0.0
    reason:                       str | None = None   # set iff not succeeded


# ── Helpers ───────────────────────────────────────────────────────────────────

def size_estimate(width: int, height: int) -> float:
    """Approximate in-memory size of a width × height texture, in bytes."""
    return width * height * BYTES_PER_PIXEL_ESTIMATE


def bytes_to_mb(value: float) -> float:
    return value / (1024.0 * 1024.0)


def is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


def round_half_up(value: float) -> int:
    """Round to nearest integer, ties away from zero (Python's round() is banker's)."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def _validated(width: int, height: int, target_cap: int) -> ImageDimensions:
    if target_cap <= 0:
        raise ValueError(f"target_cap must be positive, got {target_cap}")
    return ImageDimensions(width=width, height=height)


def _already_at_target(method: Method, original: ImageDimensions) -> ReductionOutcome:
    return ReductionOutcome(
        method=method,
        original=original,
        final=original,
        succeeded=False,
        reason=REASON_ALREADY_AT_TARGET,
    )


def _savings(original: ImageDimensions, final: ImageDimensions) -> float:
    return (size_estimate(original.width, original.height)
            - size_estimate(final.width, final.height))


# ── Policy ────────────────────────────────────────────────────────────────────

def mip_bias_for(width: int, height: int, target_cap: int) -> int:
    """
    Smallest number of floor-halvings that brings max(width, height) within
    target_cap. Each axis is clamped to 1; the search stops at MAX_MIP_BIAS.
    """
    bias = 0
    w, h = width, height
    while max(w, h) > target_cap and bias < MAX_MIP_BIAS:
        w = max(1, w // 2)
        h = max(1, h // 2)
        bias += 1
    return bias


def compute_mip_bias_reduction(width: int, height: int, target_cap: int) -> ReductionOutcome:
    original = _validated(width, height, target_cap)
    if original.max_dimension <= target_cap:
        return _already_at_target(Method.MIP_BIAS, original)

    bias = mip_bias_for(width, height, target_cap)
    if bias <= 0:
        return ReductionOutcome(
            method=Method.MIP_BIAS,
            original=original,
            final=original,
            mip_bias_level=0,
            succeeded=False,
            reason=REASON_NO_REDUCTION,
        )

    final = ImageDimensions(width=max(1, width >> bias), height=max(1, height >> bias))
    return ReductionOutcome(
        method=Method.MIP_BIAS,
        original=original,
        final=final,
        mip_bias_level=bias,
        succeeded=True,
        estimated_memory_saved_bytes=_savings(original, final),
        estimated_file_saved_bytes=0.0,  # stored data is untouched
    )


def proportional_size(width: int, height: int, target_cap: int) -> tuple[int, int]:
    """Aspect-preserving size whose larger side equals target_cap."""
    aspect = width / height
    if width >= height:
        new_w = target_cap
        new_h = round_half_up(target_cap / aspect)
    else:
        new_h = target_cap
        new_w = round_half_up(target_cap * aspect)
    return max(1, new_w), max(1, new_h)


def compute_proportional_resize(width: int, height: int, target_cap: int) -> ReductionOutcome:
    original = _validated(width, height, target_cap)
    if original.max_dimension <= target_cap:
        return _already_at_target(Method.PROPORTIONAL_RESIZE, original)

    new_w, new_h = proportional_size(width, height, target_cap)
    final        = ImageDimensions(width=new_w, height=new_h)
    saved        = _savings(original, final)
    return ReductionOutcome(
        method=Method.PROPORTIONAL_RESIZE,
        original=original,
        final=final,
        succeeded=True,
        estimated_memory_saved_bytes=saved,
        estimated_file_saved_bytes=saved * FILE_SAVINGS_FACTOR,
    )


def source_missing(width: int, height: int) -> ReductionOutcome:
    """Outcome reported when a re-encode is forced but there is nothing to re-encode from."""
    original = ImageDimensions(width=width, height=height)
    return ReductionOutcome(
        method=Method.PROPORTIONAL_RESIZE,
        original=original,
        final=original,
        succeeded=False,
        reason=REASON_SOURCE_MISSING,
    )


def select_method(requested: Method, source_available: bool) -> Method:
    requested = Method(requested)
    if requested is Method.AUTO:
        return Method.PROPORTIONAL_RESIZE if source_available else Method.MIP_BIAS
    if requested is Method.PROPORTIONAL_RESIZE and not source_available:
        return Method.MIP_BIAS
    return requested


def compute_reduction(request: ReductionRequest, source_available: bool) -> ReductionOutcome:
    method = select_method(request.method, source_available)
    dims   = request.dimensions
    if method is Method.PROPORTIONAL_RESIZE:
        return compute_proportional_resize(dims.width, dims.height, request.target_cap)
    return compute_mip_bias_reduction(dims.width, dims.height, request.target_cap)
