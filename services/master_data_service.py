import csv
import logging
from typing import Dict, List, Tuple

from sqlalchemy.exc import SQLAlchemyError

from models.master_data import MasterLocation, MasterStatus, MasterType, name_record
from models.property import Property
from services.base_service import BaseService
from services.lookup_service import InMemoryLookupTables, coerce_id
from services.naming_rules import CANONICAL_RENT_AND_SALE
from services.normalizer_service import decode_string_array
from services.title_service import TitleService, generate_titles

logger = logging.getLogger(__name__)

RENT_AND_SALE_NAMES = {"en": CANONICAL_RENT_AND_SALE, "th": "ให้เช่าและขาย", "zh": "出租和出售"}

# Translation CSV "Field" prefixes -> group
FIELD_GROUPS = (
    ("Type", "types"),
    ("Status", "statuses"),
    ("Province", "provinces"),
    ("Sub Ditstrict", "subdistricts"),   # sic, as exported
    ("Sub District", "subdistricts"),
    ("District", "districts"),
)


def _sort_key_en(option: dict) -> str:
    return (option["name_en"] or "").lower()


def read_translations(path: str) -> Dict[str, List[dict]]:
    """Group the translation export (Field, EN_text, TH_text, ZH-Text) by field."""
    groups = {group: [] for _, group in FIELD_GROUPS}
    with open(path, newline="", encoding="utf-8-sig") as f:
        for row in csv.DictReader(f):
            field = (row.get("Field") or "").strip()
            names = {
                "en": (row.get("EN_text") or "").strip(),
                "th": (row.get("TH_text") or "").strip(),
                "zh": (row.get("ZH-Text") or "").strip(),
            }
            if not names["en"]:
                continue
            for prefix, group in FIELD_GROUPS:
                if field.startswith(prefix):
                    groups[group].append(names)
                    break
    return groups


def read_location_paths(path: str) -> List[Tuple[str, str, str]]:
    """Unique (province, district, subdistrict) triples from a listing export."""
    seen = {}
    with open(path, newline="", encoding="utf-8-sig") as f:
        for row in csv.DictReader(f):
            province = (row.get("Province") or "").strip()
            district = (row.get("District") or "").strip()
            subdistrict = (row.get("Sub Ditstrict") or row.get("Sub District") or "").strip()
            if province and district and subdistrict:
                seen.setdefault((province, district, subdistrict), None)
    return list(seen)


class MasterDataService(BaseService):
    def __init__(self, db):
        super().__init__(db)

    # ---------- Dropdown options ----------
    def get_types(self):
        try:
            options = [row.to_option() for row in self.db.query(MasterType).all()]
            return self._success_response(sorted(options, key=_sort_key_en))
        except SQLAlchemyError as e:
            logger.error("Error fetching types: %s", e)
            return self._error_response('Database error')

    def get_statuses(self):
        try:
            rows = self.db.query(MasterStatus).order_by(MasterStatus.id).all()
            return self._success_response([row.to_option() for row in rows])
        except SQLAlchemyError as e:
            logger.error("Error fetching statuses: %s", e)
            return self._error_response('Database error')

    def _locations(self, level, parent_id=None):
        q = self.db.query(MasterLocation).filter(MasterLocation.level == level)
        if parent_id is not None:
            q = q.filter(MasterLocation.parent_id == parent_id)
        return sorted((row.to_option() for row in q.all()), key=_sort_key_en)

    def get_provinces(self):
        try:
            return self._success_response(self._locations("province"))
        except SQLAlchemyError as e:
            logger.error("Error fetching provinces: %s", e)
            return self._error_response('Database error')

    def get_districts(self, province_id):
        province_id = coerce_id(province_id)
        if province_id is None:
            return self._error_response('Invalid province ID')
        try:
            return self._success_response(self._locations("district", province_id))
        except SQLAlchemyError as e:
            logger.error("Error fetching districts: %s", e)
            return self._error_response('Database error')

    def get_subdistricts(self, district_id):
        district_id = coerce_id(district_id)
        if district_id is None:
            return self._error_response('Invalid district ID')
        try:
            return self._success_response(self._locations("subdistrict", district_id))
        except SQLAlchemyError as e:
            logger.error("Error fetching subdistricts: %s", e)
            return self._error_response('Database error')

    def get_location_hierarchy(self, location_id):
        """{level: option} for a location and its ancestors; None data when unknown."""
        location_id = coerce_id(location_id)
        if location_id is None:
            return self._error_response('Invalid location ID')
        try:
            hierarchy = {}
            current = self.db.get(MasterLocation, location_id)
            while current is not None and current.level not in hierarchy:
                hierarchy[current.level] = current.to_option()
                current = current.parent
            return self._success_response(hierarchy or None)
        except SQLAlchemyError as e:
            logger.error("Error fetching location hierarchy: %s", e)
            return self._error_response('Database error')

    def get_features(self):
        """Distinct feature tags across listings, as options."""
        try:
            unique = set()
            for (raw,) in self.db.query(Property.features).distinct().all():
                unique.update(decode_string_array(raw))
            return self._success_response([
                {"id": i, "name_en": name, "name_th": name, "name_zh": name,
                 "name": {"en": name, "th": name, "zh": name}}
                for i, name in enumerate(sorted(unique), start=1)
            ])
        except SQLAlchemyError as e:
            logger.error("Error fetching features: %s", e)
            return self._error_response('Database error')

    # ---------- Import ----------
    def import_master_data(self, translations_csv: str, locations_csv: str):
        """
        Replace types, statuses and the location tree from the CSV exports.

        Runs as one transaction. Listing foreign keys are cleared and the
        cached titles rebuilt from the remaining text fields; run the
        reconciler afterwards to backfill the ids.
        """
        try:
            groups = read_translations(translations_csv)
            paths = read_location_paths(locations_csv)
            logger.info(
                "📄 Parsed translations: %d types, %d statuses, %d provinces, %d districts, %d subdistricts",
                len(groups["types"]), len(groups["statuses"]), len(groups["provinces"]),
                len(groups["districts"]), len(groups["subdistricts"]),
            )
        except (OSError, csv.Error) as e:
            logger.error("Cannot read master data CSV: %s", e)
            return self._error_response(f'Import error: {str(e)}')

        try:
            self.db.query(Property).update(
                {Property.type_id: None, Property.status_id: None, Property.subdistrict_id: None},
                synchronize_session=False,
            )
            # children first, the tree has a self-referencing FK
            for level in ("subdistrict", "district", "province"):
                self.db.query(MasterLocation).filter(MasterLocation.level == level).delete(synchronize_session=False)
            self.db.query(MasterStatus).delete(synchronize_session=False)
            self.db.query(MasterType).delete(synchronize_session=False)

            for names in groups["types"]:
                self.db.add(MasterType(name=names))

            statuses = list(groups["statuses"])
            has_rent_and_sale = any(
                "&" in s["en"] or ("rent" in s["en"].lower() and "sale" in s["en"].lower())
                for s in statuses
            )
            if not has_rent_and_sale:
                statuses.append(dict(RENT_AND_SALE_NAMES))
            for names in statuses:
                self.db.add(MasterStatus(name=names))

            counts = self._import_locations(groups, paths)
            counts["titles_updated"] = self._rebuild_titles()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("❌ Import failed: %s", e)
            return self._error_response(f'Import error: {str(e)}')

        summary = {"types": len(groups["types"]), "statuses": len(statuses), **counts}
        logger.info("✅ Master data import completed: %s", summary)
        return self._success_response(summary)

    def _rebuild_titles(self) -> int:
        """Re-derive every cached title now that the listing ids are cleared."""
        lookups = InMemoryLookupTables.load(self.db)
        props = (
            self.db.query(Property)
            .execution_options(populate_existing=True)
            .order_by(Property.id)
            .all()
        )
        updated = 0
        for prop in props:
            if TitleService.apply_titles(prop, generate_titles(prop.title_input(), lookups)):
                updated += 1
        self.db.flush()
        return updated

    def _import_locations(self, groups, paths) -> dict:
        def translations(group):
            return {names["en"]: names for names in groups[group]}

        province_names = translations("provinces")
        district_names = translations("districts")
        subdistrict_names = translations("subdistricts")

        def names_for(lookup, en):
            # untranslated places keep the English name in every language
            return name_record(lookup.get(en) or {"en": en, "th": en, "zh": en})

        province_ids = {}
        district_ids = {}
        subdistricts = 0
        for province, district, subdistrict in paths:
            if province not in province_ids:
                row = MasterLocation(level="province", name=names_for(province_names, province))
                self.db.add(row)
                self.db.flush()
                province_ids[province] = row.id

            district_key = (province, district)
            if district_key not in district_ids:
                row = MasterLocation(level="district", parent_id=province_ids[province],
                                     name=names_for(district_names, district))
                self.db.add(row)
                self.db.flush()
                district_ids[district_key] = row.id

            self.db.add(MasterLocation(level="subdistrict", parent_id=district_ids[district_key],
                                       name=names_for(subdistrict_names, subdistrict)))
            subdistricts += 1

        self.db.flush()
        return {"provinces": len(province_ids), "districts": len(district_ids), "subdistricts": subdistricts}
