from __future__ import annotations

import dataclasses
import datetime as _dt
import hashlib
import json
import logging
import math
import re
import time
from enum import Enum
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


# -------------------------
# Path utilities
# -------------------------
def normalize_abs_posix(path: str | Path) -> str:
    """
    Return an absolute POSIX-style path string for the given input.
    Ensures deterministic representation across platforms.
    """
    p = Path(path).resolve()
    return p.as_posix()


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(name: str) -> str:
    """
    Collapse anything outside [A-Za-z0-9._-] into '_' so item, series and table
    names can be embedded in artifact filenames.
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("_")
    return cleaned or "unnamed"


def unique_filename(filename: str, used: set[str]) -> str:
    """
    Return filename, or filename with a -2, -3, ... suffix before the extension
    when it is already in used. Comparison ignores case. The result is added to used.
    """
    path = Path(filename)
    candidate = filename
    n = 2
    while candidate.casefold() in used:
        candidate = f"{path.stem}-{n}{path.suffix}"
        n += 1
    used.add(candidate.casefold())
    return candidate


# -------------------------
# Hashing utilities
# -------------------------
def canonical_json_dumps(payload: dict[str, Any]) -> str:
    """
    Deterministic JSON string for hashing:
    - separators=(',', ':')
    - sort_keys=True
    - ensure_ascii=False
    """
    return json.dumps(
        payload, ensure_ascii=False, separators=(",", ":"), sort_keys=True
    )


def canonical_json_hash(payload: dict[str, Any]) -> tuple[str, str]:
    """
    Return (short_hash8, full_hash_hex) computed over canonical JSON bytes (UTF-8).
    """
    h = hashlib.sha256(canonical_json_dumps(payload).encode("utf-8")).hexdigest()
    return h[:8], h


# -------------------------
# JSON helpers
# -------------------------
def sanitize_for_json(obj: Any) -> Any:
    """
    Recursively convert parameter objects into JSON-serializable primitives.

    Conversions performed:
    - pathlib.Path -> normalized POSIX string via normalize_abs_posix()
    - Enums -> .name
    - dataclasses -> dict, sanitized recursively
    - numpy scalars -> Python int/float via .item()
    - non-finite floats -> None (JSON has no NaN/Infinity)
    - dicts -> sanitized dict with stringified keys
    - lists/tuples/sets -> lists with sanitized elements
    """
    if obj is None or isinstance(obj, (bool, int, str)):
        return obj

    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None

    if isinstance(obj, Path):
        return normalize_abs_posix(obj)

    if isinstance(obj, Enum):
        return obj.name

    if isinstance(obj, _dt.datetime):
        return obj.isoformat()

    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return sanitize_for_json(
            {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
        )

    if isinstance(obj, dict):
        return {str(k): sanitize_for_json(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple, set)):
        return [sanitize_for_json(x) for x in obj]

    # numpy scalars expose .item()
    if hasattr(obj, "item") and callable(getattr(obj, "item")):
        return sanitize_for_json(obj.item())

    return str(obj)


def build_effective_parameters(load: Any, output: Any) -> dict[str, Any]:
    """
    Build a JSON-serializable mapping {"load": {...}, "output": {...}} from the
    LoadParams and OutputParams dataclass instances used for a run.
    """
    return {
        "load": sanitize_for_json(load),
        "output": sanitize_for_json(output),
    }


def write_json_document(path: str | Path, payload: Dict[str, Any]) -> Path:
    """
    Write a JSON document with UTF-8 encoding and stable formatting (indent=2 for readability).
    """
    p = Path(path)
    p.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.debug("Wrote JSON document to %s", str(p))
    return p


def read_json_document(path: str | Path) -> Any:
    """
    Read a UTF-8 JSON document. JSON and I/O errors propagate to the caller.
    """
    return json.loads(Path(path).read_text(encoding="utf-8"))


def utc_timestamp_seconds() -> str:
    """
    ISO-8601 UTC timestamp with seconds precision and Z suffix.
    """
    now = _dt.datetime.now(_dt.timezone.utc).replace(tzinfo=None)
    return now.isoformat(timespec="seconds") + "Z"


# -------------------------
# Run directory
# -------------------------
def ensure_run_dir(base: Path | str = "output") -> Path:
    """
    Ensure and return a per-run directory <base>/<timestamp>.

    Timestamp format: time.strftime("%Y%m%dT%H%M%S", time.localtime())
    """
    run_ts = time.strftime("%Y%m%dT%H%M%S", time.localtime())
    run_dir = Path(base) / run_ts
    run_dir.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured run_dir=%s", str(run_dir))
    return run_dir
