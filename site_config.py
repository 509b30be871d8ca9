"""
Centralized site configuration.
Edit this file to update the header and footer texts displayed on all pages.
Runtime settings (library location, default resolution, log level) live in .env.
"""

SITE_CONFIG = {
    "title": "Texture Downscaler",
    # Footer — displayed at the bottom of every page
    "footer_tagline": (
        "Batch-downscale texture assets to cut memory use: a reversible mip bias, "
        "or a proportional re-encode from the source files."
    ),
    "footer_estimate_note": (
        "Savings are estimates (about 1 byte per pixel of compressed texture memory), "
        "not measured values."
    ),
}
