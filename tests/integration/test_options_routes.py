# tests/integration/test_options_routes.py
from tests.reference_data import BANG_NA, BANG_NA_DISTRICT, BANGKOK


def test_types_sorted_by_english_name(client, master_data):
    resp = client.get("/options/types")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert [t["name_en"] for t in body["data"]] == ["Factory", "Land", "Warehouse"]
    assert body["data"][0]["name"] == {"en": "Factory", "th": "โรงงาน", "zh": "工厂"}


def test_statuses(client, master_data):
    body = client.get("/options/statuses").get_json()
    assert [s["name_en"] for s in body["data"]] == ["For Rent", "For Sale", "For Rent & Sale"]


def test_location_cascade(client, master_data):
    provinces = client.get("/options/provinces").get_json()["data"]
    assert [p["name_en"] for p in provinces] == ["Bangkok", "Chachoengsao"]

    districts = client.get(f"/options/districts/{BANGKOK}").get_json()
    assert districts["province_id"] == BANGKOK
    assert [d["id"] for d in districts["data"]] == [BANG_NA_DISTRICT]

    subdistricts = client.get(f"/options/subdistricts/{BANG_NA_DISTRICT}").get_json()
    assert subdistricts["district_id"] == BANG_NA_DISTRICT
    assert [s["name_th"] for s in subdistricts["data"]] == ["บางนา"]


def test_unknown_parent_gives_empty_list(client, master_data):
    resp = client.get("/options/districts/999")
    assert resp.status_code == 200
    assert resp.get_json()["data"] == []


def test_invalid_ids_are_rejected(client, master_data):
    resp = client.get("/options/districts/abc")
    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "error": "Invalid province ID"}
    assert client.get("/options/subdistricts/0").status_code == 400
    assert client.get("/options/location/-1").status_code == 400


def test_location_hierarchy(client, master_data):
    data = client.get(f"/options/location/{BANG_NA}").get_json()["data"]
    assert set(data) == {"province", "district", "subdistrict"}
    assert data["province"]["id"] == BANGKOK


def test_unknown_location_is_404(client, master_data):
    resp = client.get("/options/location/999")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Location not found"


def test_features_are_distinct_and_sorted(client, master_data, make_property):
    make_property(property_id="A1", features='["Parking","Office"]')
    make_property(property_id="A2", features="Parking|Crane")
    make_property(property_id="A3", features=None)

    data = client.get("/options/features").get_json()["data"]
    assert [f["name_en"] for f in data] == ["Crane", "Office", "Parking"]
