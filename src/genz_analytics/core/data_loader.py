from __future__ import annotations

import io
import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from genz_analytics.config import (
    DATA_BASE_URL,
    DATA_DIR,
    HTTP_TIMEOUT_SECONDS,
    PROFILE_FILE,
    REGIONAL_FILE,
    SURVEY_FILE,
)
from genz_analytics.core.records import DatasetSnapshot
from genz_analytics.core.transformers import (
    drop_empty_rows,
    transform_profile_frame,
    transform_regional_frame,
    transform_survey_frame,
)

logger = logging.getLogger(__name__)


class DataLoaderError(Exception):
    """Raised when a dataset cannot be fetched or parsed."""


def _build_retry_session() -> requests.Session:
    """
    Build a requests Session with conservative retries.
    Static hosting of the CSV files can be slow or transiently flaky.
    """
    session = requests.Session()

    retry = Retry(
        total=5,
        connect=5,
        read=5,
        status=5,
        backoff_factor=0.6,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session


_SESSION: Optional[requests.Session] = None


def _get_session() -> requests.Session:
    global _SESSION
    if _SESSION is None:
        _SESSION = _build_retry_session()
    return _SESSION


# ---------------------------------------------------------------------------
# Raw CSV readers
# ---------------------------------------------------------------------------

def _read_csv_text(text: str, source: str) -> pd.DataFrame:
    try:
        df = pd.read_csv(io.StringIO(text), skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        logger.warning("Dataset %s is empty.", source)
        return pd.DataFrame()
    except Exception as exc:
        preview = text[:200]
        raise DataLoaderError(f"Could not parse CSV from {source}. Preview: {preview}") from exc
    return drop_empty_rows(df)


def _fetch_remote_csv(url: str, timeout_seconds: int) -> pd.DataFrame:
    try:
        resp = _get_session().get(url, timeout=timeout_seconds)
    except Exception as exc:
        raise DataLoaderError(f"HTTP error while fetching {url}: {exc}") from exc

    if resp.status_code != 200:
        preview = (resp.text or "")[:200]
        raise DataLoaderError(f"Unexpected status {resp.status_code} for {url}. Preview: {preview}")

    resp.encoding = resp.encoding or "utf-8"
    return _read_csv_text(resp.text, url)


def _read_local_csv(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise DataLoaderError(f"Dataset file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise DataLoaderError(f"Could not read {path}: {exc}") from exc
    return _read_csv_text(text, str(path))


def read_raw_dataset(
    file_name: str,
    *,
    data_dir: Optional[Path] = None,
    base_url: Optional[str] = None,
    timeout_seconds: int = HTTP_TIMEOUT_SECONDS,
) -> pd.DataFrame:
    """
    Read one CSV into a DataFrame with fully empty rows removed.

    A base URL (argument or GENZ_DATA_BASE_URL) takes precedence over the
    local data directory.
    """
    url_root = (base_url if base_url is not None else DATA_BASE_URL or "").strip()
    if url_root:
        url = f"{url_root.rstrip('/')}/{file_name}"
        logger.info("Fetching dataset %s", url)
        return _fetch_remote_csv(url, timeout_seconds)

    path = Path(data_dir or DATA_DIR) / file_name
    logger.info("Reading dataset %s", path)
    return _read_local_csv(path)


# ---------------------------------------------------------------------------
# Dataset dispatch
# ---------------------------------------------------------------------------

def _transformer_for(file_name: str) -> Callable[[pd.DataFrame], tuple]:
    if "Survey" in file_name:
        return transform_survey_frame
    if "Profile" in file_name:
        return transform_profile_frame
    if "Regional" in file_name:
        return transform_regional_frame
    raise DataLoaderError(
        f"Cannot tell which dataset {file_name!r} holds. "
        "Expected 'Survey', 'Profile' or 'Regional' in the file name."
    )


def load_dataset(
    file_name: str,
    *,
    data_dir: Optional[Path] = None,
    base_url: Optional[str] = None,
    timeout_seconds: int = HTTP_TIMEOUT_SECONDS,
) -> tuple:
    """Read a dataset file and transform it into records, chosen by file name."""
    transform = _transformer_for(file_name)
    df = read_raw_dataset(file_name, data_dir=data_dir, base_url=base_url, timeout_seconds=timeout_seconds)
    return transform(df)


def load_all_data(
    *,
    data_dir: Optional[Path] = None,
    base_url: Optional[str] = None,
    file_names: Optional[Dict[str, str]] = None,
    timeout_seconds: int = HTTP_TIMEOUT_SECONDS,
) -> DatasetSnapshot:
    """
    Load survey, profile and regional data into one snapshot.

    file_names may override any of the keys 'survey', 'profile', 'regional'.
    """
    names = {"survey": SURVEY_FILE, "profile": PROFILE_FILE, "regional": REGIONAL_FILE}
    names.update(file_names or {})

    t0 = time.perf_counter()
    kwargs = dict(data_dir=data_dir, base_url=base_url, timeout_seconds=timeout_seconds)
    snapshot = DatasetSnapshot(
        survey=transform_survey_frame(read_raw_dataset(names["survey"], **kwargs)),
        profiles=transform_profile_frame(read_raw_dataset(names["profile"], **kwargs)),
        regional=transform_regional_frame(read_raw_dataset(names["regional"], **kwargs)),
    )
    logger.info(
        "Loaded %d survey, %d profile and %d regional rows in %.2fs.",
        len(snapshot.survey),
        len(snapshot.profiles),
        len(snapshot.regional),
        time.perf_counter() - t0,
    )
    return snapshot


def timed_load_all_data(**kwargs) -> Tuple[DatasetSnapshot, float]:
    """
    Convenience helper for UI timing logs.
    """
    t0 = time.perf_counter()
    snapshot = load_all_data(**kwargs)
    return snapshot, (time.perf_counter() - t0)
