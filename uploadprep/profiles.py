"""Named pipeline profiles stored as JSON files.

A profile holds an optional ``description`` and a ``pipeline`` mapping that
:meth:`PipelineConfig.from_dict` accepts. Profiles live in the directory
named by ``UPLOADPREP_PROFILES_DIR`` (default: ``profiles/`` at the repo root).
"""

import os
import json
from pathlib import Path
from typing import Any, Dict, Iterator, List

from .config import PipelineConfig

PROFILES_DIR = Path(os.getenv("UPLOADPREP_PROFILES_DIR", Path(__file__).resolve().parents[1] / "profiles"))


def _candidates(name_or_path: str) -> Iterator[Path]:
    p = Path(name_or_path)
    if p.suffix == ".json" or p.is_absolute():
        yield p
    stem = p.stem if p.suffix == ".json" else p.name
    yield PROFILES_DIR / f"{stem}.json"
    # versioned names resolve to their base profile: photo-upload@2 -> photo-upload
    base, sep, _ = stem.partition("@")
    if sep and base:
        yield PROFILES_DIR / f"{base}.json"


def load_profile(name_or_path: str) -> Dict[str, Any]:
    """Return the raw profile mapping for a profile name or a JSON file path."""
    for cand in _candidates(name_or_path):
        if cand.is_file():
            data = json.loads(cand.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError(f"profile {cand} must hold a JSON object")
            return data
    raise FileNotFoundError(
        f"Profile '{name_or_path}' not found. Looked in {PROFILES_DIR}. Available: {available_profiles()}"
    )


def available_profiles() -> List[str]:
    return sorted(x.stem for x in PROFILES_DIR.glob("*.json"))


def load_config(name_or_path: str) -> PipelineConfig:
    return PipelineConfig.from_dict(load_profile(name_or_path).get("pipeline", {}))


def describe_profiles() -> List[Dict[str, Any]]:
    """Name, description and resolved settings of every available profile."""
    out = []
    for name in available_profiles():
        prof = load_profile(name)
        cfg = PipelineConfig.from_dict(prof.get("pipeline", {}))
        out.append({"name": name, "description": prof.get("description"), "pipeline": cfg.to_dict()})
    return out
