"""
Offline repair of legacy listing data.

FeatureNormalizer rewrites the `features` / `labels` text columns into the
canonical encoding (a JSON array of plain strings). Each stored value is
classified by an ordered list of parser strategies; the first one that
matches wins:

    1. empty_string      ''                       -> []
    2. json_array        '["Parking", "99"]'      -> ["Parking"]
    3. legacy_brace_set  '{"Parking","Office"}'   -> ["Parking", "Office"]
    4. delimited_text    'Parking|Office'         -> ["Parking", "Office"]
    5. bare_token        'Parking'                -> ["Parking"]

Values no strategy recognizes are left untouched and reported for manual
review. JSON holding nested lists or objects ends the chain unrecognized
instead of falling through to the text strategies. Clean arrays are never
rewritten, so a second pass is a no-op.

MasterDataReconciler lines the free-text type/status/location columns up
with the reference tables, backfills the matching foreign keys and rebuilds
the cached titles of the rows it touched.

Both passes run in a single transaction and roll back on database errors.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from models.property import Property
from services.base_service import BaseService
from services.lookup_service import LookupTables, coerce_id
from services.naming_rules import canonical_status_text, canonical_type_text
from services.title_service import TitleService, generate_titles

logger = logging.getLogger(__name__)

# Placeholder codes left behind by the previous system
SENTINEL_VALUES = frozenset({"1", "99", "0"})
LEGACY_NULL_TOKENS = frozenset({"null", "undefined"})
ARRAY_COLUMNS = ("features", "labels")

_ARTIFACT_CHARS = re.compile(r'["{}\[\]]')
_STRUCTURAL_CHARS = re.compile(r'[{}\[\];"]')

UNCHANGED = "unchanged"
REWRITTEN = "rewritten"
UNRECOGNIZED = "unrecognized"


@dataclass
class ParseResult:
    matched: bool
    value: List[str] = field(default_factory=list)
    rejected: bool = False      # stops the strategy chain


NO_MATCH = ParseResult(False)
# JSON that parses but is not a flat list of scalars
REJECTED = ParseResult(False, rejected=True)


def _is_nested(values: Iterable) -> bool:
    return any(isinstance(item, (list, dict)) for item in values)


@dataclass
class NormalizeOutcome:
    status: str                         # unchanged | rewritten | unrecognized
    value: Optional[str]                # text to store (original when not rewritten)
    strategy: Optional[str] = None


def encode_array(values: Sequence[str]) -> str:
    """Canonical text encoding for a string array."""
    return json.dumps(list(values), ensure_ascii=False, separators=(",", ":"))


def clean_element(item) -> str:
    if item is None:
        return ""
    return _ARTIFACT_CHARS.sub("", str(item)).strip()


def clean_elements(items: Iterable) -> List[str]:
    """Strip quote/brace artifacts, drop empties and sentinel codes."""
    cleaned = []
    for item in items:
        text = clean_element(item)
        if text and text not in SENTINEL_VALUES:
            cleaned.append(text)
    return cleaned


def _is_clean_element(item) -> bool:
    return (
        isinstance(item, str)
        and item == item.strip()
        and item != ""
        and item not in SENTINEL_VALUES
        and not _ARTIFACT_CHARS.search(item)
    )


def is_clean_array_text(raw: Optional[str]) -> bool:
    if raw is None:
        return False
    try:
        parsed = json.loads(raw)
    except ValueError:
        return False
    return isinstance(parsed, list) and all(_is_clean_element(item) for item in parsed)


# ----------------------------------------------------------------------
# Parser strategies
# ----------------------------------------------------------------------
def parse_empty_string(raw: str) -> ParseResult:
    if raw.strip() == "" or raw.strip().lower() in LEGACY_NULL_TOKENS:
        return ParseResult(True, [])
    return NO_MATCH


def parse_json_array(raw: str) -> ParseResult:
    try:
        parsed = json.loads(raw)
    except ValueError:
        return NO_MATCH
    # double-encoded: '"[\"Parking\"]"'
    if isinstance(parsed, str) and parsed.strip().startswith("["):
        try:
            parsed = json.loads(parsed)
        except ValueError:
            return NO_MATCH
    if not isinstance(parsed, list):
        return NO_MATCH
    if _is_nested(parsed):
        return REJECTED
    return ParseResult(True, clean_elements(item for item in parsed if item is not None))


def _split_respecting_quotes(inner: str) -> List[str]:
    items = []
    current = []
    in_quotes = False
    i = 0
    while i < len(inner):
        char = inner[i]
        if char == '"':
            if in_quotes and i + 1 < len(inner) and inner[i + 1] == '"':
                current.append('"')     # escaped quote
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            items.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1
    items.append("".join(current))
    return items


def parse_legacy_brace_set(raw: str) -> ParseResult:
    text = raw.strip()
    if not (text.startswith("{") and text.endswith("}")):
        return NO_MATCH
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        if _is_nested(parsed.values()):
            return REJECTED
        return ParseResult(True, clean_elements(parsed.values()))
    return ParseResult(True, clean_elements(_split_respecting_quotes(text[1:-1])))


def parse_delimited_text(raw: str) -> ParseResult:
    text = raw.strip()
    if "|" in text:
        parts = text.split("|")
    elif "," in text:
        parts = text.split(",")
    else:
        return NO_MATCH
    # serialized structures (e.g. PHP "a:2:{...}") are not delimited text
    if any(";" in part or ":{" in part for part in parts):
        return NO_MATCH
    return ParseResult(True, clean_elements(parts))


def parse_bare_token(raw: str) -> ParseResult:
    text = raw.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        text = text[1:-1].strip()
    if _STRUCTURAL_CHARS.search(text):
        return NO_MATCH
    return ParseResult(True, clean_elements([text]))


PARSER_STRATEGIES: Tuple[Tuple[str, Callable[[str], ParseResult]], ...] = (
    ("empty_string", parse_empty_string),
    ("json_array", parse_json_array),
    ("legacy_brace_set", parse_legacy_brace_set),
    ("delimited_text", parse_delimited_text),
    ("bare_token", parse_bare_token),
)


def parse_array_text(raw: str) -> Tuple[Optional[str], ParseResult]:
    """Run the strategies in priority order; returns (strategy name, result)."""
    for name, strategy in PARSER_STRATEGIES:
        result = strategy(raw)
        if result.rejected:
            break
        if result.matched:
            return name, result
    return None, NO_MATCH


def title_case_elements(values: Iterable[str]) -> List[str]:
    """'free trade ZONE' -> 'Free Trade Zone'."""
    return [" ".join(word.capitalize() for word in v.split()) for v in values]


def normalize_array_text(raw: Optional[str], title_case: bool = False) -> NormalizeOutcome:
    """Classify one stored value and decide whether it needs rewriting."""
    if raw is None:
        return NormalizeOutcome(UNCHANGED, None)

    if is_clean_array_text(raw) and not title_case:
        return NormalizeOutcome(UNCHANGED, raw, "json_array")

    name, result = parse_array_text(raw)
    if name is None:
        return NormalizeOutcome(UNRECOGNIZED, raw)

    values = title_case_elements(result.value) if title_case else result.value

    if is_clean_array_text(raw) and json.loads(raw) == values:
        return NormalizeOutcome(UNCHANGED, raw, name)
    return NormalizeOutcome(REWRITTEN, encode_array(values), name)


def encode_string_array(value) -> str:
    """
    Write-boundary encoder for features/labels: lists, JSON text and legacy
    text all come out as the canonical JSON array encoding.
    """
    if value is None:
        return encode_array([])
    if isinstance(value, (list, tuple, set)):
        items = sorted(value) if isinstance(value, set) else value
        if _is_nested(items):
            raise ValueError(f"Nested array value: {value!r}")
        return encode_array(clean_elements(items))
    outcome = normalize_array_text(str(value))
    if outcome.status == UNRECOGNIZED:
        raise ValueError(f"Unrecognized array value: {value!r}")
    if outcome.status == UNCHANGED:
        return encode_array(json.loads(outcome.value))
    return outcome.value


def decode_string_array(raw: Optional[str]) -> List[str]:
    """Read side: canonical text -> list, tolerating not-yet-repaired rows."""
    if raw is None:
        return []
    _, result = parse_array_text(raw)
    return list(result.value)


# ----------------------------------------------------------------------
# Batch passes
# ----------------------------------------------------------------------
class FeatureNormalizer(BaseService):
    def __init__(self, db):
        super().__init__(db)

    def run(self, columns: Sequence[str] = ARRAY_COLUMNS, dry_run: bool = True,
            title_case: bool = False) -> dict:
        """
        Repair array columns on every listing.

        Report: {"scanned", "rewritten", "unchanged", "changes": [...],
                 "manual_review": [...], "dry_run"}
        """
        for column in columns:
            if column not in ARRAY_COLUMNS:
                raise ValueError(f"Not an array column: {column}")

        report = {"scanned": 0, "rewritten": 0, "unchanged": 0,
                  "changes": [], "manual_review": [], "dry_run": dry_run}
        try:
            props = self.db.query(Property).order_by(Property.id).all()
            for prop in props:
                for column in columns:
                    raw = getattr(prop, column)
                    if raw is None:
                        continue
                    report["scanned"] += 1
                    outcome = normalize_array_text(raw, title_case=title_case)

                    if outcome.status == UNRECOGNIZED:
                        logger.warning(
                            "⚠️ Unrecognized %s on property %s (id=%s): %r",
                            column, prop.property_id, prop.id, raw,
                        )
                        report["manual_review"].append({
                            "id": prop.id, "propertyId": prop.property_id,
                            "column": column, "value": raw,
                        })
                    elif outcome.status == REWRITTEN:
                        report["rewritten"] += 1
                        report["changes"].append({
                            "id": prop.id, "propertyId": prop.property_id, "column": column,
                            "strategy": outcome.strategy, "before": raw, "after": outcome.value,
                        })
                        logger.info("%s %s.%s: %r -> %s", "Would fix" if dry_run else "Fixed",
                                    prop.property_id, column, raw, outcome.value)
                        setattr(prop, column, outcome.value)
                    else:
                        report["unchanged"] += 1

            if dry_run:
                self.db.rollback()
            else:
                self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(
            "Array normalization: scanned=%d rewritten=%d unchanged=%d manual_review=%d",
            report["scanned"], report["rewritten"], report["unchanged"], len(report["manual_review"]),
        )
        return report


class MasterDataReconciler(BaseService):
    def __init__(self, db):
        super().__init__(db)

    @staticmethod
    def _reconcile_row(prop: Property, lookups: LookupTables) -> dict:
        """Return {field: new_value} for the columns this row needs changed."""
        updates = {}

        type_text = canonical_type_text(prop.type)
        type_id = lookups.find_type_id(type_text)
        if type_id is not None and type_id != coerce_id(prop.type_id):
            updates["type_id"] = type_id
            canonical = lookups.get_type(type_id)["en"]
            if canonical and canonical != prop.type:
                updates["type"] = canonical

        status_text = canonical_status_text(prop.status)
        status_id = lookups.find_status_id(status_text)
        if status_id is not None and status_id != coerce_id(prop.status_id):
            updates["status_id"] = status_id
            canonical = lookups.get_status(status_id)["en"]
            if canonical and canonical != prop.status:
                updates["status"] = canonical

        subdistrict_id = lookups.find_subdistrict_id(prop.sub_district, prop.district, prop.province)
        if subdistrict_id is not None and subdistrict_id != coerce_id(prop.subdistrict_id):
            updates["subdistrict_id"] = subdistrict_id

        return updates

    def run(self, lookups: LookupTables, dry_run: bool = True) -> dict:
        """
        Backfill type_id / status_id / subdistrict_id from the free-text
        columns. Rows whose resolved ids already match are not touched.

        Report: {"scanned", "updated", "changes", "unmatched_provinces", "dry_run"}
        """
        report = {"scanned": 0, "updated": 0, "changes": [],
                  "unmatched_provinces": [], "dry_run": dry_run}
        unmatched = set()
        try:
            props = self.db.query(Property).order_by(Property.id).all()
            for prop in props:
                report["scanned"] += 1
                updates = self._reconcile_row(prop, lookups)

                if prop.province and lookups.find_province_id(prop.province) is None:
                    unmatched.add(prop.province.strip())

                if not updates:
                    continue
                report["updated"] += 1
                report["changes"].append({"id": prop.id, "propertyId": prop.property_id, **updates})
                for column, value in updates.items():
                    setattr(prop, column, value)
                # titles are derived from the ids just changed
                TitleService.apply_titles(prop, generate_titles(prop.title_input(), lookups))

            if dry_run:
                self.db.rollback()
            else:
                self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        report["unmatched_provinces"] = sorted(unmatched)
        if unmatched:
            logger.warning("Province names with no canonical match: %s", ", ".join(sorted(unmatched)))
        logger.info("Reconciliation: scanned=%d updated=%d", report["scanned"], report["updated"])
        return report
