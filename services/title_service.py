"""
Multilingual listing titles.

Format EN: [Type] [Size] sqm for [Status] at [Subdistrict], [District], [Province] (Property ID: [Code])
Format TH: [Type] [Size] ตร.ม. [Status] ที่ [Subdistrict], [District], [Province] (รหัส: [Code])
Format ZH: [Type] [Size] 平方米 [Status] [Subdistrict], [District], [Province] (ID: [Code])

Empty fragments are dropped together with their connector word. Titles are a
cache of the categorical ids + size and are rebuilt whenever those change.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from models.property import Property
from services.base_service import BaseService
from services.lookup_service import InMemoryLookupTables, LookupTables, SqlLookupTables
from services.naming_rules import apply_factory_rule

logger = logging.getLogger(__name__)

# Input keys that feed the titles; a change to any of them invalidates the cache
TITLE_SOURCE_FIELDS = (
    "type_id", "status_id", "subdistrict_id", "size", "property_id",
    "type", "status", "province", "district", "sub_district",
)

_LEADING_NUMBER = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?")


def parse_size(size) -> float:
    """Numeric size in sqm; anything unparseable or non-positive becomes 0."""
    if size is None or isinstance(size, bool):
        return 0.0
    if isinstance(size, (int, float)):
        value = float(size)
    else:
        match = _LEADING_NUMBER.match(str(size))
        if not match:
            return 0.0
        value = float(match.group(0))
    if math.isnan(value) or math.isinf(value) or value <= 0:
        return 0.0
    return value


def format_size(size) -> str:
    """'500' for 500.0, '120.5' for 120.5, '' when the size is omitted."""
    value = parse_size(size)
    if not value:
        return ""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _location_text(fragments: Dict[str, str]) -> str:
    parts = [fragments.get(k) for k in ("subdistrict", "district", "province")]
    return ", ".join(p for p in parts if p)


def build_english_title(fragments: Dict[str, str]) -> str:
    parts = []
    if fragments.get("type"):
        parts.append(fragments["type"])
    size = format_size(fragments.get("size"))
    if size:
        parts.append(f"{size} sqm")
    if fragments.get("status"):
        parts.append(f"for {fragments['status']}")
    location = _location_text(fragments)
    if location:
        parts.append(f"at {location}")
    if fragments.get("property_id"):
        parts.append(f"(Property ID: {fragments['property_id']})")
    return " ".join(parts)


def build_thai_title(fragments: Dict[str, str]) -> str:
    parts = []
    if fragments.get("type"):
        parts.append(fragments["type"])
    size = format_size(fragments.get("size"))
    if size:
        parts.append(f"{size} ตร.ม.")
    if fragments.get("status"):
        parts.append(fragments["status"])
    location = _location_text(fragments)
    if location:
        parts.append(f"ที่ {location}")
    if fragments.get("property_id"):
        parts.append(f"(รหัส: {fragments['property_id']})")
    return " ".join(parts)


def build_chinese_title(fragments: Dict[str, str]) -> str:
    parts = []
    if fragments.get("type"):
        parts.append(fragments["type"])
    size = format_size(fragments.get("size"))
    if size:
        parts.append(f"{size} 平方米")
    if fragments.get("status"):
        parts.append(fragments["status"])
    location = _location_text(fragments)
    if location:
        parts.append(location)
    if fragments.get("property_id"):
        parts.append(f"(ID: {fragments['property_id']})")
    return " ".join(parts)


TITLE_BUILDERS = {
    "en": build_english_title,
    "th": build_thai_title,
    "zh": build_chinese_title,
}


def compose_titles(fragments_by_lang: Dict[str, Dict[str, str]]) -> Dict[str, str]:
    """Pure composition step: per-language fragments in, title_<lang> strings out."""
    return {
        f"title_{lang}": builder(fragments_by_lang.get(lang) or {})
        for lang, builder in TITLE_BUILDERS.items()
    }


def resolve_fragments(data: dict, lookups: LookupTables) -> Dict[str, Dict[str, str]]:
    """
    Resolve ids through the reference tables, falling back to the legacy
    text fields wherever an id is missing or points to nothing.
    """
    type_text = data.get("type") or ""
    status_text = data.get("status") or ""

    type_names = lookups.get_type(data.get("type_id"))
    if not type_names.get("en"):
        type_names = {"en": type_text, "th": "", "zh": ""}

    status_names = lookups.get_status(data.get("status_id"))
    if not status_names.get("en"):
        status_names = {"en": status_text, "th": "", "zh": ""}

    location = {
        "province": {"en": data.get("province") or "", "th": "", "zh": ""},
        "district": {"en": data.get("district") or "", "th": "", "zh": ""},
        "subdistrict": {"en": data.get("sub_district") or "", "th": "", "zh": ""},
    }
    location.update(lookups.get_ancestry(data.get("subdistrict_id")))

    display_type = apply_factory_rule(type_names, type_text)
    size = parse_size(data.get("size"))
    code = str(data.get("property_id") or "").strip()

    fragments = {}
    for lang in ("en", "th", "zh"):
        fallback_en = lang != "en"
        fragments[lang] = {
            "type": display_type[lang] or (type_names["en"] if fallback_en else ""),
            "size": size,
            # status has no English fallback in th/zh titles
            "status": status_names.get(lang) or "",
            "subdistrict": _localized(location["subdistrict"], lang),
            "district": _localized(location["district"], lang),
            "province": _localized(location["province"], lang),
            "property_id": code,
        }
    return fragments


def _localized(names: Dict[str, str], lang: str) -> str:
    return names.get(lang) or names.get("en") or ""


def generate_titles(data: dict, lookups: LookupTables) -> Dict[str, str]:
    """
    Build {title_en, title_th, title_zh} for one listing.

    `data` follows the listing input contract (type_id, status_id,
    subdistrict_id, size, property_id, plus the legacy text fields type,
    status, province, district, sub_district). Database errors raised by
    `lookups` propagate to the caller.
    """
    return compose_titles(resolve_fragments(data, lookups))


def titles_need_refresh(changes: dict) -> bool:
    return any(field in changes for field in TITLE_SOURCE_FIELDS)


class TitleService(BaseService):
    def __init__(self, db):
        super().__init__(db)

    @staticmethod
    def apply_titles(prop: Property, titles: Dict[str, str]) -> bool:
        """Write titles onto the row; True when anything changed."""
        new_values = dict(titles)
        # `title` mirrors the English title for older clients
        new_values["title"] = titles.get("title_en") or prop.title
        changed = False
        for field, value in new_values.items():
            if getattr(prop, field) != value:
                setattr(prop, field, value)
                changed = True
        return changed

    def regenerate_for_property(self, prop: Property, lookups: Optional[LookupTables] = None) -> Dict[str, str]:
        lookups = lookups or SqlLookupTables(self.db)
        titles = generate_titles(prop.title_input(), lookups)
        self.apply_titles(prop, titles)
        return titles

    def regenerate_one(self, ref):
        try:
            prop = Property.find_by_ref(self.db, ref)
            if prop is None:
                return self._error_response('Property not found')
            titles = self.regenerate_for_property(prop)
            self.db.commit()
            return self._success_response({'propertyId': prop.property_id, **titles})
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Title regeneration failed for %s: %s", ref, e)
            return self._error_response(f'Title regeneration error: {str(e)}')

    def regenerate_all(self, dry_run: bool = False, lookups: Optional[LookupTables] = None) -> dict:
        """
        Rebuild every cached title in one transaction.

        Returns {"total", "updated", "unchanged", "errors", "samples"}.
        """
        lookups = lookups or InMemoryLookupTables.load(self.db)
        props = self.db.query(Property).order_by(Property.id).all()
        logger.info("📦 Found %d properties to check", len(props))

        report = {"total": len(props), "updated": 0, "unchanged": 0, "errors": 0, "samples": []}
        try:
            for prop in props:
                try:
                    titles = generate_titles(prop.title_input(), lookups)
                except (TypeError, ValueError, KeyError) as e:
                    report["errors"] += 1
                    logger.error("❌ Error building title for %s: %s", prop.property_id, e)
                    continue

                if self.apply_titles(prop, titles):
                    report["updated"] += 1
                    if len(report["samples"]) < 3:
                        report["samples"].append({"propertyId": prop.property_id, **titles})
                else:
                    report["unchanged"] += 1

                if report["updated"] and report["updated"] % 100 == 0:
                    logger.info("✅ Updated %d/%d properties...", report["updated"], len(props))

            if dry_run:
                self.db.rollback()
            else:
                self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(
            "Title regeneration %s: %d updated, %d unchanged, %d errors",
            "dry run" if dry_run else "done", report["updated"], report["unchanged"], report["errors"],
        )
        return report
