"""
Display naming rules for listing categories.

Factory listings are marketed as "Factory or Warehouse" in every language.
Legacy rows may carry a combined "Factory|Warehouse" type tag instead of a
type id; those get the same label.
"""
from __future__ import annotations

import re
from typing import Dict, Optional

FACTORY_OR_WAREHOUSE = {
    "en": "Factory or Warehouse",
    "th": "โรงงาน หรือ คลังสินค้า",
    "zh": "工厂或仓库",
}

CANONICAL_FACTORY = "Factory"
CANONICAL_RENT_AND_SALE = "For Rent & Sale"

_MULTI_VALUE_SPLIT = re.compile(r"\s*[|,]\s*")


def needs_factory_warehouse_label(type_names: Optional[Dict[str, str]], type_text: Optional[str] = None) -> bool:
    resolved_en = ((type_names or {}).get("en") or "").strip().lower()
    raw = (type_text or "").strip().lower()

    is_factory_only = resolved_en == "factory" or raw == "factory"
    has_factory_and_warehouse = "factory" in raw and "warehouse" in raw
    return is_factory_only or has_factory_and_warehouse


def apply_factory_rule(type_names: Optional[Dict[str, str]], type_text: Optional[str] = None) -> Dict[str, str]:
    """
    Return the per-language type strings to display.

    The raw text check runs independently of the resolved name, so a row
    whose type id says "Warehouse" but whose legacy text still says
    "Factory|Warehouse" is labelled "Factory or Warehouse".
    """
    if needs_factory_warehouse_label(type_names, type_text):
        return dict(FACTORY_OR_WAREHOUSE)
    names = type_names or {}
    return {lang: names.get(lang) or "" for lang in ("en", "th", "zh")}


def canonical_type_text(text: Optional[str]) -> Optional[str]:
    """Collapse combined "Factory|Warehouse" tags onto the Factory category."""
    if text is None:
        return None
    stripped = text.strip()
    lowered = stripped.lower()
    if "factory" in lowered and "warehouse" in lowered:
        return CANONICAL_FACTORY
    return stripped


def canonical_status_text(text: Optional[str]) -> Optional[str]:
    """Collapse pipe-combined statuses ("For Rent|For Sale") to "For Rent & Sale"."""
    if text is None:
        return None
    stripped = text.strip()
    if "|" in stripped:
        parts = [p for p in _MULTI_VALUE_SPLIT.split(stripped) if p]
        if len(parts) == 1:
            # stray separator, e.g. "For Rent|"
            return parts[0]
        return CANONICAL_RENT_AND_SALE
    return stripped
