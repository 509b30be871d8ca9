"""
Handler: Mip bias (LOD bias)
Non-destructive: computes how many mip levels to drop so the effective size
fits the target, then records that bias in the texture's sidecar.
The texture file and its source are never modified.
"""
import logging

from reduction_policy import compute_mip_bias_reduction, is_power_of_two
from texture_library import Texture, apply_lod_bias

logger = logging.getLogger(__name__)


def process(texture: Texture, target_resolution: int, dry_run: bool = False) -> dict:
    outcome = compute_mip_bias_reduction(texture.width, texture.height, target_resolution)
    if not outcome.succeeded:
        return {"outcome": outcome, "applied": False, "error": None}

    if not dry_run:
        apply_lod_bias(texture, outcome.mip_bias_level)

    npot = not (is_power_of_two(texture.width) and is_power_of_two(texture.height))
    logger.info(
        "LOD bias %s %s texture %s: %s -> LOD %d (effective %s)",
        "calculated for" if dry_run else "applied to",
        "NPOT" if npot else "POT",
        texture.name, outcome.original, outcome.mip_bias_level, outcome.final,
    )
    return {"outcome": outcome, "applied": not dry_run, "error": None}
