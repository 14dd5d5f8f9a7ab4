from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from genz_analytics.config import BOUNDARY_FILE, DATA_DIR, SURVEY_FILE
from genz_analytics.core.records import question_key
from genz_analytics.core.transformers import question_columns

logger = logging.getLogger(__name__)

# Feature property holding the province name, first match wins.
BOUNDARY_NAME_PROPERTIES = ("Propinsi", "provinsi", "PROVINSI", "name", "NAME", "Nama")

# In-memory caches
_BOUNDARY_CACHE: Optional[List[str]] = None
_QUESTION_LABELS_CACHE: Optional[Dict[str, str]] = None


class MetadataError(Exception):
    """Raised when the boundary file or survey header cannot be read."""


# ---------------------------------------------------------------------------
# Province boundary names (GeoJSON)
# ---------------------------------------------------------------------------

def detect_name_property(properties: Dict[str, Any]) -> Optional[str]:
    for key in BOUNDARY_NAME_PROPERTIES:
        if key in properties:
            return key
    return None


def boundary_names_from_geojson(data: Dict[str, Any]) -> List[str]:
    """
    Province names from a FeatureCollection, in feature order, without
    duplicates. The name property is detected from the first feature that
    has one of BOUNDARY_NAME_PROPERTIES.
    """
    features = data.get("features") if isinstance(data, dict) else None
    if not isinstance(features, list):
        raise MetadataError("Boundary file is not a GeoJSON FeatureCollection (no 'features' list).")

    name_key: Optional[str] = None
    for feature in features:
        props = (feature or {}).get("properties") or {}
        name_key = detect_name_property(props)
        if name_key:
            break

    if name_key is None:
        logger.warning(
            "No province name property found in boundary file (tried %s).",
            ", ".join(BOUNDARY_NAME_PROPERTIES),
        )
        return []

    names: List[str] = []
    seen = set()
    for feature in features:
        props = (feature or {}).get("properties") or {}
        raw = props.get(name_key)
        if raw is None:
            continue
        name = str(raw).strip()
        if name and name not in seen:
            seen.add(name)
            names.append(name)

    logger.info("Boundary file: %d province names from property %r.", len(names), name_key)
    return names


def load_boundary_names(path: Optional[Path] = None, refresh: bool = False) -> List[str]:
    """
    Province names from the boundary GeoJSON, cached in memory.

    A missing file is not an error: the province normalizer simply runs
    without a boundary fallback.
    """
    global _BOUNDARY_CACHE
    if path is None and _BOUNDARY_CACHE is not None and not refresh:
        return _BOUNDARY_CACHE

    target = Path(path) if path is not None else DATA_DIR / BOUNDARY_FILE
    if not target.exists():
        logger.warning("Boundary file %s not found; province fallback matching disabled.", target)
        names: List[str] = []
    else:
        try:
            data = json.loads(target.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise MetadataError(f"Could not read boundary file {target}: {exc}") from exc
        names = boundary_names_from_geojson(data)

    if path is None:
        _BOUNDARY_CACHE = names
    return names


# ---------------------------------------------------------------------------
# Survey question labels (survey CSV header)
# ---------------------------------------------------------------------------

def question_labels_from_columns(columns: List[Any]) -> Dict[str, str]:
    """Q1.. -> original question text, using the same column order as the survey transformer."""
    return {
        question_key(i): str(col).strip()
        for i, col in enumerate(question_columns(columns), start=1)
    }


def load_question_labels(path: Optional[Path] = None, refresh: bool = False) -> Dict[str, str]:
    global _QUESTION_LABELS_CACHE
    if path is None and _QUESTION_LABELS_CACHE is not None and not refresh:
        return _QUESTION_LABELS_CACHE

    target = Path(path) if path is not None else DATA_DIR / SURVEY_FILE
    try:
        header = pd.read_csv(target, nrows=0, encoding="utf-8-sig")
    except FileNotFoundError:
        logger.warning("Survey file %s not found; question labels unavailable.", target)
        labels: Dict[str, str] = {}
    except Exception as exc:
        raise MetadataError(f"Could not read survey header from {target}: {exc}") from exc
    else:
        labels = question_labels_from_columns(list(header.columns))

    if path is None:
        _QUESTION_LABELS_CACHE = labels
    return labels
