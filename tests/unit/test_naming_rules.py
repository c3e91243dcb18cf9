# tests/unit/test_naming_rules.py
import pytest

from services.naming_rules import (
    FACTORY_OR_WAREHOUSE,
    apply_factory_rule,
    canonical_status_text,
    canonical_type_text,
    needs_factory_warehouse_label,
)

FACTORY = {"en": "Factory", "th": "โรงงาน", "zh": "工厂"}
WAREHOUSE = {"en": "Warehouse", "th": "คลังสินค้า", "zh": "仓库"}


def test_factory_is_labelled_factory_or_warehouse():
    assert apply_factory_rule(FACTORY) == {
        "en": "Factory or Warehouse",
        "th": "โรงงาน หรือ คลังสินค้า",
        "zh": "工厂或仓库",
    }


def test_match_is_case_insensitive():
    assert apply_factory_rule({"en": "FACTORY", "th": "", "zh": ""}) == FACTORY_OR_WAREHOUSE


def test_warehouse_passes_through_unchanged():
    assert apply_factory_rule(WAREHOUSE) == WAREHOUSE


@pytest.mark.parametrize("raw", ["Factory|Warehouse", "warehouse, factory", "FACTORY / WAREHOUSE"])
def test_combined_legacy_text_triggers_rule(raw):
    assert apply_factory_rule({"en": "", "th": "", "zh": ""}, raw) == FACTORY_OR_WAREHOUSE


def test_combined_text_wins_over_resolved_warehouse():
    assert apply_factory_rule(WAREHOUSE, "Factory|Warehouse") == FACTORY_OR_WAREHOUSE


def test_plain_factory_text_without_resolved_name():
    assert needs_factory_warehouse_label(None, " factory ")


def test_rule_does_not_mutate_input():
    names = dict(FACTORY)
    apply_factory_rule(names)
    assert names == FACTORY


def test_missing_names_become_empty_strings():
    assert apply_factory_rule({"en": "Land"}) == {"en": "Land", "th": "", "zh": ""}


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Factory|Warehouse", "Factory"),
        ("warehouse|factory", "Factory"),
        (" Warehouse ", "Warehouse"),
        (None, None),
    ],
)
def test_canonical_type_text(raw, expected):
    assert canonical_type_text(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("For Rent|For Sale", "For Rent & Sale"),
        ("For Sale | For Rent", "For Rent & Sale"),
        ("For Rent|", "For Rent"),
        ("For Rent", "For Rent"),
        (None, None),
    ],
)
def test_canonical_status_text(raw, expected):
    assert canonical_status_text(raw) == expected
