"""
Province name canonicalization.

The survey, profile, regional and boundary datasets each spell provinces
differently ('DKI Jakarta' / 'Jakarta' / 'DKI', 'West Java' / 'Jabar',
'Kep. Riau', 'Nangroe Aceh Darusalam', ...). Everything that joins datasets
by province goes through this module.

Pipeline for a raw name:
  1. clean_province_name: uppercase, punctuation to spaces, collapse
     whitespace, then a fixed list of textual substitutions.
  2. Alias lookup in a reverse index built from PROVINCE_ALIASES.
  3. Optional fallback: equality against an external boundary name list,
     comparing cleaned compact forms.
  4. Otherwise the cleaned name itself (unjoinable).

All of it is static configuration; the mapping is pure and idempotent.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Canonical name -> known variants (Indonesian, English, abbreviations,
# boundary-file spellings). The canonical name is always its own alias.
PROVINCE_ALIASES: Dict[str, Tuple[str, ...]] = {
    "ACEH": ("Aceh", "Nanggroe Aceh Darussalam", "Nangrou Aceh Darusalam", "NAD", "DI Aceh", "DI. Aceh"),
    "SUMATERA UTARA": ("North Sumatera", "North Sumatra", "Sumut"),
    "SUMATERA BARAT": ("West Sumatera", "West Sumatra", "Sumbar"),
    "RIAU": ("Riau",),
    "JAMBI": ("Jambi",),
    "SUMATERA SELATAN": ("South Sumatera", "South Sumatra", "Sumsel"),
    "BENGKULU": ("Bengkulu",),
    "LAMPUNG": ("Lampung",),
    "KEPULAUAN BANGKA BELITUNG": (
        "Bangka Belitung Islands", "Bangka Belitung", "Bangka-Belitung", "Babel",
    ),
    "KEPULAUAN RIAU": ("Riau Islands", "Kepri"),
    "DKI JAKARTA": ("Jakarta", "DKI", "Jakarta Raya", "Special Capital Region of Jakarta"),
    "JAWA BARAT": ("West Java", "Jabar"),
    "JAWA TENGAH": ("Central Java", "Jateng"),
    "DI YOGYAKARTA": ("Yogyakarta", "DIY", "Special Region of Yogyakarta", "Jogjakarta", "Jogja"),
    "JAWA TIMUR": ("East Java", "Jatim"),
    "BANTEN": ("Banten",),
    "BALI": ("Bali",),
    "NUSA TENGGARA BARAT": ("West Nusa Tenggara", "NTB"),
    "NUSA TENGGARA TIMUR": ("East Nusa Tenggara", "NTT"),
    "KALIMANTAN BARAT": ("West Kalimantan", "Kalbar"),
    "KALIMANTAN TENGAH": ("Central Kalimantan", "Kalteng"),
    "KALIMANTAN SELATAN": ("South Kalimantan", "Kalsel"),
    "KALIMANTAN TIMUR": ("East Kalimantan", "Kaltim"),
    "KALIMANTAN UTARA": ("North Kalimantan", "Kaltara"),
    "SULAWESI UTARA": ("North Sulawesi", "Sulut"),
    "SULAWESI TENGAH": ("Central Sulawesi", "Sulteng"),
    "SULAWESI SELATAN": ("South Sulawesi", "Sulsel"),
    "SULAWESI TENGGARA": ("Southeast Sulawesi", "South East Sulawesi", "Sultra"),
    "GORONTALO": ("Gorontalo",),
    "SULAWESI BARAT": ("West Sulawesi", "Sulbar"),
    "MALUKU": ("Maluku", "Moluccas"),
    "MALUKU UTARA": ("North Maluku", "Malut"),
    "PAPUA": ("Papua",),
    "PAPUA BARAT": ("West Papua", "Irian Jaya Barat"),
    "PAPUA TENGAH": ("Central Papua",),
    "PAPUA PEGUNUNGAN": ("Highland Papua", "Papua Highlands"),
    "PAPUA SELATAN": ("South Papua",),
    "PAPUA BARAT DAYA": ("Southwest Papua", "South West Papua"),
}

CANONICAL_PROVINCES: Tuple[str, ...] = tuple(PROVINCE_ALIASES.keys())

# Applied in order to the uppercased, punctuation-free name.
_SUBSTITUTIONS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"^(?:(?:PROVINSI|PROPINSI|PROV|PROVINCE OF)\s+)+"), ""),
    (re.compile(r"(?:\s+PROVINCE)+$"), ""),
    (re.compile(r"\bD I\b"), "DI"),
    (re.compile(r"\bDAERAH ISTIMEWA\b"), "DI"),
    (re.compile(r"\bDAERAH KHUSUS IBUKOTA\b"), "DKI"),
    (re.compile(r"\bKEP\b"), "KEPULAUAN"),
    (re.compile(r"\bKEPUALAUAN\b"), "KEPULAUAN"),
    (re.compile(r"\bNUSATENGGARA\b"), "NUSA TENGGARA"),
    (re.compile(r"\bSUMATRA\b"), "SUMATERA"),
    (re.compile(r"\b(?:NANGGROE|NANGROE|NANGROU)\s+ACEH(?:\s+DARUS+ALAM)?\b"), "ACEH"),
    (re.compile(r"\bIRIAN JAYA BARAT\b"), "PAPUA BARAT"),
    (re.compile(r"\bIRIAN JAYA\b"), "PAPUA"),
)

_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]+")


def clean_province_name(name: object) -> str:
    """
    Uppercase, strip punctuation, collapse whitespace and apply the fixed
    substitutions. Idempotent; None and blanks give ''.
    """
    if name is None:
        return ""
    text = _NON_ALNUM_RE.sub(" ", str(name).upper()).strip()
    if text in {"NAN", "NONE", "NULL"}:
        return ""
    # repeat until stable so nested forms ('NANGGROE NANGGROE ACEH') settle
    for _ in range(len(text) + 1):
        previous = text
        for pattern, replacement in _SUBSTITUTIONS:
            text = pattern.sub(replacement, text)
        text = re.sub(r"\s+", " ", text).strip()
        if text == previous:
            break
    return text


def _compact(cleaned: str) -> str:
    return cleaned.replace(" ", "")


def _build_alias_index() -> Dict[str, str]:
    index: Dict[str, str] = {}
    for canonical, variants in PROVINCE_ALIASES.items():
        for variant in (canonical,) + tuple(variants):
            key = _compact(clean_province_name(variant))
            existing = index.get(key)
            if existing is not None and existing != canonical:
                raise ValueError(f"Province alias {variant!r} maps to both {existing} and {canonical}")
            index[key] = canonical
    return index


_ALIAS_INDEX: Dict[str, str] = _build_alias_index()


def canonical_province(name: object) -> Optional[str]:
    """Canonical province for a raw name, or None when no alias matches."""
    cleaned = clean_province_name(name)
    if not cleaned:
        return None
    return _ALIAS_INDEX.get(_compact(cleaned))


class ProvinceNormalizer:
    """
    Province normalization with an optional external boundary name list
    (e.g. the feature names of a province GeoJSON).

    normalize() returns, in order of preference: the canonical name, the
    boundary file's own spelling, or the cleaned input.
    """

    def __init__(self, boundary_names: Optional[Iterable[str]] = None) -> None:
        self._boundary_by_compact: Dict[str, str] = {}
        self._boundary_by_canonical: Dict[str, str] = {}

        for raw in boundary_names or ():
            if raw is None:
                continue
            text = str(raw).strip()
            cleaned = clean_province_name(text)
            if not cleaned:
                continue
            self._boundary_by_compact.setdefault(_compact(cleaned), text)
            canonical = _ALIAS_INDEX.get(_compact(cleaned))
            if canonical is not None:
                self._boundary_by_canonical.setdefault(canonical, text)

        if self._boundary_by_compact:
            logger.debug(
                "Province boundary list: %d names, %d matched to canonical provinces.",
                len(self._boundary_by_compact),
                len(self._boundary_by_canonical),
            )

    @property
    def boundary_names(self) -> List[str]:
        return sorted(set(self._boundary_by_compact.values()))

    def resolve(self, name: object) -> Optional[str]:
        """Canonical or boundary name, or None when the name is unjoinable."""
        canonical = canonical_province(name)
        if canonical is not None:
            return canonical
        cleaned = clean_province_name(name)
        if not cleaned:
            return None
        return self._boundary_by_compact.get(_compact(cleaned))

    def normalize(self, name: object) -> str:
        resolved = self.resolve(name)
        if resolved is not None:
            return resolved
        return clean_province_name(name)

    def is_joinable(self, name: object) -> bool:
        return self.resolve(name) is not None

    def boundary_key(self, name: object) -> Optional[str]:
        """Spelling used by the boundary dataset for this province, if any."""
        canonical = canonical_province(name)
        if canonical is not None and canonical in self._boundary_by_canonical:
            return self._boundary_by_canonical[canonical]
        cleaned = clean_province_name(name)
        if not cleaned:
            return None
        return self._boundary_by_compact.get(_compact(cleaned))

    def unmatched_boundaries(self) -> List[str]:
        """Boundary names that no canonical province maps to."""
        matched = set(self._boundary_by_canonical.values())
        return sorted(n for n in self._boundary_by_compact.values() if n not in matched)


_DEFAULT_NORMALIZER = ProvinceNormalizer()


def normalize_province(name: object, boundary_names: Optional[Iterable[str]] = None) -> str:
    """Module-level shortcut; builds a throwaway normalizer when boundaries are given."""
    if boundary_names is None:
        return _DEFAULT_NORMALIZER.normalize(name)
    return ProvinceNormalizer(boundary_names).normalize(name)
