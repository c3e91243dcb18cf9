"""
Reference-data lookups used by title generation and the maintenance passes.

Two implementations share one interface:

- SqlLookupTables: request path, one small query per lookup.
- InMemoryLookupTables: built once per batch run and passed around
  explicitly, so a pass over thousands of listings does not hit the
  reference tables per row.

Unresolvable ids resolve to an empty name record, never an error. Database
errors are not caught here.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from sqlalchemy import func, literal, select
from sqlalchemy.orm import Session, aliased

from models.master_data import (
    LOCATION_LEVELS, MasterLocation, MasterStatus, MasterType, empty_name, name_record
)

logger = logging.getLogger(__name__)

NameRecord = Dict[str, str]


def coerce_id(value) -> Optional[int]:
    """Return a positive int id, or None for null/blank/garbage input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        num = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return num if num > 0 else None


def _key(text: Optional[str]) -> str:
    return (text or "").strip().lower()


class LookupTables:
    """Interface for the category and location reference tables."""

    def get_type(self, type_id) -> NameRecord:
        raise NotImplementedError

    def get_status(self, status_id) -> NameRecord:
        raise NotImplementedError

    def get_ancestry(self, leaf_id) -> Dict[str, NameRecord]:
        """Map of level -> name record for the leaf and every ancestor."""
        raise NotImplementedError

    def find_type_id(self, name: Optional[str]) -> Optional[int]:
        raise NotImplementedError

    def find_status_id(self, name: Optional[str]) -> Optional[int]:
        raise NotImplementedError

    def find_province_id(self, name: Optional[str]) -> Optional[int]:
        raise NotImplementedError

    def find_subdistrict_id(self, sub_district: Optional[str], district: Optional[str],
                            province: Optional[str]) -> Optional[int]:
        raise NotImplementedError


class SqlLookupTables(LookupTables):
    def __init__(self, db: Session):
        self.db = db

    def _get_name(self, model, row_id) -> NameRecord:
        row_id = coerce_id(row_id)
        if row_id is None:
            return empty_name()
        row = self.db.get(model, row_id)
        if row is None:
            logger.debug("No %s row for id=%s", model.__tablename__, row_id)
            return empty_name()
        return name_record(row.name)

    def get_type(self, type_id) -> NameRecord:
        return self._get_name(MasterType, type_id)

    def get_status(self, status_id) -> NameRecord:
        return self._get_name(MasterStatus, status_id)

    def get_ancestry(self, leaf_id) -> Dict[str, NameRecord]:
        leaf_id = coerce_id(leaf_id)
        if leaf_id is None:
            return {}

        base = (
            select(
                MasterLocation.id,
                MasterLocation.parent_id,
                MasterLocation.level,
                MasterLocation.name,
                literal(0).label("depth"),
            )
            .where(MasterLocation.id == leaf_id)
            .cte("location_tree", recursive=True)
        )
        parent = aliased(MasterLocation)
        tree = base.union_all(
            select(
                parent.id,
                parent.parent_id,
                parent.level,
                parent.name,
                (base.c.depth + 1).label("depth"),
            )
            .join(base, parent.id == base.c.parent_id)
            # a well-formed tree never goes deeper than subdistrict -> province
            .where(base.c.depth < len(LOCATION_LEVELS) - 1)
        )

        rows = self.db.execute(select(tree.c.level, tree.c.name)).all()
        return {level: name_record(name) for level, name in rows if level in LOCATION_LEVELS}

    def _find_by_en(self, model, name: Optional[str], *criteria) -> Optional[int]:
        key = _key(name)
        if not key:
            return None
        row = (
            self.db.query(model.id)
            .filter(func.lower(model.name["en"].as_string()) == key, *criteria)
            .order_by(model.id)
            .first()
        )
        return row[0] if row else None

    def find_type_id(self, name: Optional[str]) -> Optional[int]:
        return self._find_by_en(MasterType, name)

    def find_status_id(self, name: Optional[str]) -> Optional[int]:
        return self._find_by_en(MasterStatus, name)

    def find_province_id(self, name: Optional[str]) -> Optional[int]:
        return self._find_by_en(MasterLocation, name, MasterLocation.level == "province")

    def find_subdistrict_id(self, sub_district, district, province) -> Optional[int]:
        s_key, d_key, p_key = _key(sub_district), _key(district), _key(province)
        if not (s_key and d_key and p_key):
            return None
        s = aliased(MasterLocation)
        d = aliased(MasterLocation)
        p = aliased(MasterLocation)
        row = (
            self.db.query(s.id)
            .join(d, s.parent_id == d.id)
            .join(p, d.parent_id == p.id)
            .filter(
                s.level == "subdistrict",
                func.lower(s.name["en"].as_string()) == s_key,
                func.lower(d.name["en"].as_string()) == d_key,
                func.lower(p.name["en"].as_string()) == p_key,
            )
            .order_by(s.id)
            .first()
        )
        return row[0] if row else None


class InMemoryLookupTables(LookupTables):
    """
    Snapshot of the reference tables.

    types / statuses: {id: {"en", "th", "zh"}}
    locations: {id: (level, parent_id, {"en", "th", "zh"})}
    """

    def __init__(self, types: Dict[int, dict], statuses: Dict[int, dict],
                 locations: Dict[int, Tuple[str, Optional[int], dict]]):
        self.types = {int(k): name_record(v) for k, v in types.items()}
        self.statuses = {int(k): name_record(v) for k, v in statuses.items()}
        self.locations = {
            int(k): (level, parent_id, name_record(name))
            for k, (level, parent_id, name) in locations.items()
        }

        self._type_ids = self._index_by_en(self.types)
        self._status_ids = self._index_by_en(self.statuses)
        self._province_ids = {}
        self._subdistrict_ids = {}
        for loc_id in sorted(self.locations):
            level, _, name = self.locations[loc_id]
            if level == "province":
                self._province_ids.setdefault(_key(name["en"]), loc_id)
            elif level == "subdistrict":
                ancestry = self.get_ancestry(loc_id)
                path = (
                    _key(name["en"]),
                    _key(ancestry.get("district", {}).get("en")),
                    _key(ancestry.get("province", {}).get("en")),
                )
                self._subdistrict_ids.setdefault(path, loc_id)

    @staticmethod
    def _index_by_en(records: Dict[int, NameRecord]) -> Dict[str, int]:
        index: Dict[str, int] = {}
        for row_id in sorted(records):
            index.setdefault(_key(records[row_id]["en"]), row_id)
        index.pop("", None)
        return index

    @classmethod
    def load(cls, db: Session) -> "InMemoryLookupTables":
        types = {row.id: row.name for row in db.query(MasterType).all()}
        statuses = {row.id: row.name for row in db.query(MasterStatus).all()}
        locations = {
            row.id: (row.level, row.parent_id, row.name)
            for row in db.query(MasterLocation).all()
        }
        logger.info(
            "Loaded reference data: %d types, %d statuses, %d locations",
            len(types), len(statuses), len(locations),
        )
        return cls(types, statuses, locations)

    def get_type(self, type_id) -> NameRecord:
        return dict(self.types.get(coerce_id(type_id)) or empty_name())

    def get_status(self, status_id) -> NameRecord:
        return dict(self.statuses.get(coerce_id(status_id)) or empty_name())

    def get_ancestry(self, leaf_id) -> Dict[str, NameRecord]:
        result: Dict[str, NameRecord] = {}
        current = coerce_id(leaf_id)
        hops = 0
        while current is not None and hops < len(LOCATION_LEVELS):
            entry = self.locations.get(current)
            if entry is None:
                break
            level, parent_id, name = entry
            if level in LOCATION_LEVELS:
                result[level] = dict(name)
            current = parent_id
            hops += 1
        return result

    def find_type_id(self, name: Optional[str]) -> Optional[int]:
        return self._type_ids.get(_key(name))

    def find_status_id(self, name: Optional[str]) -> Optional[int]:
        return self._status_ids.get(_key(name))

    def find_province_id(self, name: Optional[str]) -> Optional[int]:
        return self._province_ids.get(_key(name))

    def find_subdistrict_id(self, sub_district, district, province) -> Optional[int]:
        path = (_key(sub_district), _key(district), _key(province))
        if not all(path):
            return None
        return self._subdistrict_ids.get(path)
