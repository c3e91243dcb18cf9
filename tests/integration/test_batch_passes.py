# tests/integration/test_batch_passes.py
import pytest

from models.property import Property
from services.normalizer_service import FeatureNormalizer, MasterDataReconciler
from tests.reference_data import (
    BANG_NA, FACTORY, FOR_RENT, FOR_RENT_AND_SALE, THA_SA_AN, WAREHOUSE,
)

PHP_SERIALIZED = 'a:2:{i:0;s:7:"Parking";i:1;s:6:"Office";}'


@pytest.fixture
def legacy_rows(make_property):
    return [
        make_property(property_id="L1", features='["Parking", "99", "1"]', labels=""),
        make_property(property_id="L2", features=PHP_SERIALIZED, labels=None),
        make_property(property_id="L3", features='["Parking"]', labels="[]"),
        make_property(property_id="L4", features="Security 24h|Office", labels='{"Hot Deal"}'),
    ]


def _column(db, code, column):
    return getattr(db.query(Property).filter_by(property_id=code).one(), column)


class TestFeatureNormalizer:
    def test_fix_rewrites_and_reports(self, db, legacy_rows):
        report = FeatureNormalizer(db).run(dry_run=False)

        assert report["scanned"] == 7
        assert report["rewritten"] == 4
        assert report["unchanged"] == 2
        assert [item["propertyId"] for item in report["manual_review"]] == ["L2"]

        assert _column(db, "L1", "features") == '["Parking"]'
        assert _column(db, "L1", "labels") == "[]"
        assert _column(db, "L4", "features") == '["Security 24h","Office"]'
        assert _column(db, "L4", "labels") == '["Hot Deal"]'

    def test_unrecognized_values_are_left_alone(self, db, legacy_rows):
        FeatureNormalizer(db).run(dry_run=False)
        assert _column(db, "L2", "features") == PHP_SERIALIZED
        assert _column(db, "L2", "labels") is None

    def test_second_run_changes_nothing(self, db, legacy_rows):
        FeatureNormalizer(db).run(dry_run=False)
        report = FeatureNormalizer(db).run(dry_run=False)
        assert report["rewritten"] == 0
        assert report["changes"] == []
        assert len(report["manual_review"]) == 1

    def test_dry_run_reports_without_writing(self, db, legacy_rows):
        report = FeatureNormalizer(db).run(dry_run=True)
        assert report["dry_run"] is True
        assert report["rewritten"] == 4
        change = next(c for c in report["changes"] if c["propertyId"] == "L1" and c["column"] == "features")
        assert change["after"] == '["Parking"]'
        assert change["strategy"] == "json_array"
        assert _column(db, "L1", "features") == '["Parking", "99", "1"]'

    def test_single_column(self, db, legacy_rows):
        report = FeatureNormalizer(db).run(columns=["labels"], dry_run=False)
        assert {c["column"] for c in report["changes"]} == {"labels"}
        assert _column(db, "L1", "features") == '["Parking", "99", "1"]'

    def test_nested_json_goes_to_manual_review(self, db, make_property):
        nested = '[{"a":"x"},{"b":"y"}]'
        make_property(property_id="N1", features=nested, labels='[["Hot Deal"],["New"]]')

        report = FeatureNormalizer(db).run(dry_run=False)

        assert report["rewritten"] == 0
        assert [item["column"] for item in report["manual_review"]] == ["features", "labels"]
        assert _column(db, "N1", "features") == nested

    def test_rejects_unknown_column(self, db):
        with pytest.raises(ValueError):
            FeatureNormalizer(db).run(columns=["remarks"])


class TestMasterDataReconciler:
    def test_backfills_ids_from_legacy_text(self, master_data, make_property, lookups):
        make_property(property_id="L1", type="Factory|Warehouse", status="For Rent|For Sale",
                      province="Bangkok", district="Bang Na", sub_district="bang na")

        report = MasterDataReconciler(master_data).run(lookups, dry_run=False)

        assert report["updated"] == 1
        prop = master_data.query(Property).filter_by(property_id="L1").one()
        assert (prop.type_id, prop.status_id, prop.subdistrict_id) == (FACTORY, FOR_RENT_AND_SALE, BANG_NA)
        assert prop.type == "Factory"
        assert prop.status == "For Rent & Sale"
        assert prop.title_en == (
            "Factory or Warehouse for For Rent & Sale at Bang Na, Bang Na, Bangkok (Property ID: L1)"
        )
        assert prop.title == prop.title_en

    def test_is_idempotent(self, master_data, make_property, lookups):
        make_property(property_id="L1", type="warehouse", status="For Rent",
                      province="Chachoengsao", district="Bang Pakong", sub_district="Tha Sa-an")
        MasterDataReconciler(master_data).run(lookups, dry_run=False)

        report = MasterDataReconciler(master_data).run(lookups, dry_run=False)

        assert report["updated"] == 0
        prop = master_data.query(Property).filter_by(property_id="L1").one()
        assert (prop.type_id, prop.status_id, prop.subdistrict_id) == (WAREHOUSE, FOR_RENT, THA_SA_AN)

    def test_matching_rows_are_not_touched(self, master_data, make_property, lookups):
        make_property(property_id="L1", type="Warehouse", type_id=WAREHOUSE, title_en="kept")
        report = MasterDataReconciler(master_data).run(lookups, dry_run=False)
        assert report["updated"] == 0
        assert master_data.query(Property).filter_by(property_id="L1").one().title_en == "kept"

    def test_reports_unmatched_provinces(self, master_data, make_property, lookups):
        make_property(property_id="L1", province="Krung Thep", district="Bang Na", sub_district="Bang Na")
        make_property(property_id="L2", province=" Krung Thep ")

        report = MasterDataReconciler(master_data).run(lookups, dry_run=False)

        assert report["unmatched_provinces"] == ["Krung Thep"]
        assert master_data.query(Property).filter_by(property_id="L1").one().subdistrict_id is None

    def test_dry_run_writes_nothing(self, master_data, make_property, lookups):
        make_property(property_id="L1", type="Factory")
        report = MasterDataReconciler(master_data).run(lookups, dry_run=True)
        assert report["changes"][0]["type_id"] == FACTORY
        assert master_data.query(Property).filter_by(property_id="L1").one().type_id is None
