import os
import logging
import traceback
from datetime import datetime

from flask import Flask, request, render_template, Response, jsonify
from dotenv import load_dotenv

from methods import (
    METHODS,
    ACTIVE_METHOD,
    RESOLUTION_OPTIONS,
    DEFAULT_TARGET_RESOLUTION,
    available_methods,
    menu_label,
)
from optimizer import OptimizationRequest, run, summarize, notification_text, result_row
from reduction_policy import Method
from site_config import SITE_CONFIG
from texture_library import find_textures, list_folders, source_file_exists
from texture_metadata import extract_metadata

load_dotenv()

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024  # 16 MB
app.config["TEXTURE_LIBRARY"]    = os.path.abspath(os.environ.get("TEXTURE_LIBRARY", "textures"))
app.config["DEFAULT_TARGET_RESOLUTION"] = int(
    os.environ.get("DEFAULT_TARGET_RESOLUTION", DEFAULT_TARGET_RESOLUTION)
)

# Only these endpoints work without a texture library on disk
_NO_LIBRARY_ALLOWED = {"static", "robots_txt"}

ERROR_LOG = "last_error.log"


# ── Inject site config into every template automatically ──────────────────────
@app.context_processor
def inject_globals():
    return {"site": SITE_CONFIG}


@app.before_request
def require_library():
    if request.endpoint in _NO_LIBRARY_ALLOWED:
        return
    if not os.path.isdir(_library_root()):
        if request.endpoint == "api_optimize":
            return jsonify({"error": "Texture library not found."}), 503
        return render_template("setup.html", library=_library_root()), 503


# ── Helpers ───────────────────────────────────────────────────────────────────

class SelectionError(ValueError):
    """The submitted selection or settings cannot be used."""


def _library_root() -> str:
    return app.config["TEXTURE_LIBRARY"]


def _log_error(context: str, exc: Exception) -> None:
    """Write the last error with timestamp to last_error.log."""
    logger.error("%s: %s", context, exc)
    with open(ERROR_LOG, "w", encoding="utf-8") as f:
        f.write(f"[{datetime.now().isoformat(timespec='seconds')}] {context}\n\n")
        if exc.__traceback__:
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=f)
        else:
            f.write(f"{type(exc).__name__}: {exc}\n")


def _resolve_selection(relative_paths: list) -> tuple:
    """Map library-relative paths to absolute ones, refusing anything outside the library."""
    root     = _library_root()
    resolved = []
    for rel in relative_paths:
        if not isinstance(rel, str) or not rel:
            continue
        path = os.path.abspath(os.path.join(root, rel))
        if os.path.commonpath([root, path]) != root:
            raise SelectionError(f"Path is outside the texture library: {rel}")
        resolved.append(path)
    return tuple(resolved)


def _build_request(assets: list, paths: list, method: str, resolution, dry_run: bool) -> OptimizationRequest:
    if not isinstance(method, str) or method not in METHODS:
        raise SelectionError(f"Unknown method: {method}")
    try:
        target = int(resolution)
    except (TypeError, ValueError):
        raise SelectionError(f"Invalid target resolution: {resolution}")
    if target <= 0:
        raise SelectionError(f"Invalid target resolution: {resolution}")

    req = OptimizationRequest(
        assets=_resolve_selection(assets),
        paths=_resolve_selection(paths),
        method=Method(method),
        target_resolution=target,
        dry_run=dry_run,
    )
    if not req.assets and not req.paths:
        raise SelectionError("Nothing selected. Pick textures or folders first.")
    return req


def _as_flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.lower() in ("1", "on", "true")


def _as_list(value) -> list:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _texture_rows(textures: list) -> list:
    root = _library_root()
    rows = []
    for tex in textures:
        meta = extract_metadata(tex.path)
        rows.append({
            "rel_path":   os.path.relpath(tex.path, root),
            "name":       tex.name,
            "size":       f"{tex.width}x{tex.height}",
            "npot":       meta.get("npot", False),
            "format":     meta.get("format", ""),
            "file_kb":    round(meta.get("file_bytes", 0) / 1024),
            "has_source": source_file_exists(tex),
            "lod_bias":   tex.lod_bias,
        })
    return rows


# ── Routes ────────────────────────────────────────────────────────────────────

@app.route("/robots.txt")
def robots_txt():
    return Response("User-agent: *\nDisallow: /\n", mimetype="text/plain")


@app.route("/")
def index():
    root        = _library_root()
    textures    = find_textures([root])
    rows        = _texture_rows(textures)
    with_source = sum(1 for r in rows if r["has_source"])
    offered     = available_methods(with_source)

    menu = [
        {
            "key":     key,
            "label":   menu_label(key, len(rows), with_source),
            "tooltip": cfg["description"],
            "enabled": key in offered,
            "active":  key == ACTIVE_METHOD,
        }
        for key, cfg in METHODS.items()
    ]

    return render_template(
        "index.html",
        textures=rows,
        folders=list_folders(root),
        menu=menu,
        resolutions=RESOLUTION_OPTIONS,
        default_resolution=app.config["DEFAULT_TARGET_RESOLUTION"],
        library=root,
    )


@app.route("/optimize", methods=["POST"])
def optimize():
    try:
        req = _build_request(
            assets=request.form.getlist("assets"),
            paths=request.form.getlist("paths"),
            method=request.form.get("method", ACTIVE_METHOD),
            resolution=request.form.get("resolution", app.config["DEFAULT_TARGET_RESOLUTION"]),
            dry_run=_as_flag(request.form.get("dry_run")),
        )
    except SelectionError as e:
        return render_template("error.html", message=str(e)), 400

    try:
        results = run(req)
    except Exception as e:
        _log_error(f"method={req.method.value} resolution={req.target_resolution}", e)
        return render_template("error.html", message=f"Optimization failed: {e}"), 500

    if not results:
        return render_template("error.html", message="No textures found in the selection."), 400

    summary = summarize(results)
    return render_template(
        "result.html",
        request_info=req,
        method=METHODS[req.method.value],
        summary=summary,
        rows=[result_row(r) for r in results],
        notification=notification_text(summary),
    )


@app.route("/api/optimize", methods=["POST"])
def api_optimize():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Expected a JSON object."}), 400

    try:
        req = _build_request(
            assets=_as_list(payload.get("assets")),
            paths=_as_list(payload.get("paths")),
            method=payload.get("method", ACTIVE_METHOD),
            resolution=payload.get("resolution", app.config["DEFAULT_TARGET_RESOLUTION"]),
            dry_run=_as_flag(payload.get("dry_run", False)),
        )
    except SelectionError as e:
        return jsonify({"error": str(e)}), 400

    try:
        results = run(req)
    except Exception as e:
        _log_error(f"api method={req.method.value} resolution={req.target_resolution}", e)
        return jsonify({"error": f"Optimization failed: {e}"}), 500

    summary = summarize(results)
    return jsonify({
        "summary": {
            "total_processed":    summary.total_processed,
            "total_successful":   summary.total_successful,
            "total_mip_bias":     summary.total_mip_bias,
            "total_proportional": summary.total_proportional,
            "total_with_source":  summary.total_with_source,
            "memory_saved_bytes": summary.memory_saved_bytes,
            "file_saved_bytes":   summary.file_saved_bytes,
            "memory_saved_mb":    summary.memory_saved_mb,
            "file_saved_mb":      summary.file_saved_mb,
        },
        "notification": notification_text(summary),
        "results":      [result_row(r) for r in results],
    })


if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print(f"Serving texture library {_library_root()} on http://localhost:5000")
    app.run(debug=True, port=5000)
