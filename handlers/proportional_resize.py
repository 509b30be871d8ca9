"""
Handler: Proportional resize (re-encode from source)
Destructive: regenerates the texture from its source file at an
aspect-preserving size whose larger side equals the target resolution.
Without a source file there is nothing to re-encode from and the texture is
reported unchanged.
"""
import logging

from reduction_policy import (
    bytes_to_mb,
    round_half_up,
    compute_proportional_resize,
    is_power_of_two,
    source_missing,
)
from texture_library import Texture, reimport, source_file_exists

logger = logging.getLogger(__name__)


def process(texture: Texture, target_resolution: int, dry_run: bool = False) -> dict:
    if not source_file_exists(texture):
        logger.warning("Cannot reimport %s: source file not found", texture.name)
        return {"outcome": source_missing(texture.width, texture.height), "applied": False, "error": None}

    outcome = compute_proportional_resize(texture.width, texture.height, target_resolution)
    if not outcome.succeeded:
        return {"outcome": outcome, "applied": False, "error": None}

    if not dry_run:
        reimport(texture, outcome.final.width, outcome.final.height)

    npot = not (is_power_of_two(texture.width) and is_power_of_two(texture.height))
    logger.info(
        "Proportional reimport %s %s texture %s: %s -> %s (saves %d MB VRAM)",
        "calculated for" if dry_run else "done for",
        "NPOT" if npot else "POT",
        texture.name, outcome.original, outcome.final,
        round_half_up(bytes_to_mb(outcome.estimated_memory_saved_bytes)),
    )
    return {"outcome": outcome, "applied": not dry_run, "error": None}
