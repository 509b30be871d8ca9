# ─────────────────────────────────────────────────────────────────────────────
#  Optimization method registry
#
#  Each method that actually touches a texture maps to a handler module in
#  handlers/. "auto" has no handler of its own: the optimizer picks one of the
#  others per texture depending on whether a source file exists.
#  Methods are displayed on the library page in the order they appear here.
#
#  Per-method config fields:
#    handler         — module name in handlers/ (None for "auto")
#    name            — short title shown in the method menu
#    description     — tooltip / one-line description
#    icon            — emoji shown in menus and result rows
#    result_label    — label shown in the "method" column of the results
#    requires_source — only offered when some selected texture has a source file
# ─────────────────────────────────────────────────────────────────────────────
from reduction_policy import Method

METHODS: dict[str, dict] = {

    Method.AUTO.value: {
        "handler":         None,
        "name":            "Smart Optimize",
        "description":     "Proportional re-encode where a source file exists, mip bias everywhere else.",
        "icon":            "🚀",
        "result_label":    "Hybrid",
        "requires_source": False,
    },

    Method.MIP_BIAS.value: {
        "handler":         "mip_bias",
        "name":            "Quick Test (LOD Bias)",
        "description":     "Fast and reversible. Works on any texture size and preserves the original files.",
        "icon":            "🧪",
        "result_label":    "Universal LOD",
        "requires_source": False,
    },

    Method.PROPORTIONAL_RESIZE.value: {
        "handler":         "proportional_resize",
        "name":            "Proportional Reimport",
        "description":     "Re-encode from the source file at an aspect-preserving size. Overwrites the texture.",
        "icon":            "⚡",
        "result_label":    "Proportional",
        "requires_source": True,
    },

}

# ── Target resolution picker ─────────────────────────────────────────────────
RESOLUTION_OPTIONS: list[int] = [128, 256, 512, 1024, 2048, 4096]
DEFAULT_TARGET_RESOLUTION = 512

# ── Default method pre-selected on the library page ──────────────────────────
ACTIVE_METHOD = Method.AUTO.value


def menu_label(method_key: str, texture_count: int, with_source: int) -> str:
    """Menu entry text with selection counts, e.g. '🧪 Quick Test (LOD Bias) (4 textures, 1 with source)'."""
    cfg = METHODS[method_key]
    return f"{cfg['icon']} {cfg['name']} ({texture_count} textures, {with_source} with source)"


def available_methods(with_source: int) -> list[str]:
    """Method keys that can run on a selection with `with_source` re-encodable textures."""
    return [
        key for key, cfg in METHODS.items()
        if not cfg["requires_source"] or with_source > 0
    ]
