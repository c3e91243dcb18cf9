# tests/integration/test_property_routes.py
import pytest

from tests.reference_data import BANG_NA, FOR_RENT, FOR_SALE, WAREHOUSE

NEW_LISTING = {
    "property_id": "AT42R",
    "type_id": WAREHOUSE,
    "status_id": FOR_RENT,
    "subdistrict_id": BANG_NA,
    "size": 500,
    "price": 95000,
    "features": ["Parking", "99", " Office "],
}


@pytest.fixture
def created(client, master_data, auth_headers):
    resp = client.post("/properties", json=NEW_LISTING, headers=auth_headers)
    assert resp.status_code == 201
    return resp.get_json()["property"]


def test_create_requires_auth(client, master_data):
    resp = client.post("/properties", json=NEW_LISTING)
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_create_generates_titles_and_cleans_arrays(created):
    assert created["titleEn"] == "Warehouse 500 sqm for For Rent at Bang Na, Bang Na, Bangkok (Property ID: AT42R)"
    assert created["titleZh"] == "仓库 500 平方米 出租 邦纳, 邦纳, 曼谷 (ID: AT42R)"
    assert created["title"] == created["titleEn"]
    assert created["features"] == ["Parking", "Office"]
    assert created["labels"] == []


def test_duplicate_code_conflicts(client, created, auth_headers):
    resp = client.post("/properties", json=NEW_LISTING, headers=auth_headers)
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Property ID already exists"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"type_id": WAREHOUSE}, "Missing required field: property_id"),
        ({"property_id": "X1", "size": "big"}, "Invalid number for size"),
        ({"property_id": "X1", "features": 'a:1:{i:0;s:7:"Parking";}'}, None),
    ],
)
def test_create_validation(client, master_data, auth_headers, payload, message):
    resp = client.post("/properties", json=payload, headers=auth_headers)
    assert resp.status_code == 400
    if message:
        assert resp.get_json()["message"] == message


def test_update_of_title_field_refreshes_titles(client, created, auth_headers):
    resp = client.patch("/properties/AT42R", json={"size": "750", "status_id": FOR_SALE}, headers=auth_headers)
    assert resp.status_code == 200
    prop = resp.get_json()["property"]
    assert prop["titleEn"] == "Warehouse 750 sqm for For Sale at Bang Na, Bang Na, Bangkok (Property ID: AT42R)"
    assert prop["titleTh"].startswith("คลังสินค้า 750 ตร.ม. ขาย")


def test_update_of_other_fields_keeps_titles(client, created, auth_headers):
    resp = client.patch(f"/properties/{created['id']}", json={"price": 1}, headers=auth_headers)
    assert resp.status_code == 200
    prop = resp.get_json()["property"]
    assert prop["price"] == 1
    assert prop["titleEn"] == created["titleEn"]


def test_update_unknown_listing(client, master_data, auth_headers):
    resp = client.patch("/properties/NOPE", json={"size": 1}, headers=auth_headers)
    assert resp.status_code == 404


def test_update_with_nothing_editable(client, created, auth_headers):
    resp = client.patch("/properties/AT42R", json={"title_en": "hand written"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "No valid fields to update"


def test_get_single_listing(client, created):
    resp = client.get("/properties/AT42R")
    assert resp.status_code == 200
    assert resp.get_json()["property"]["id"] == created["id"]
    assert client.get("/properties/ZZZ").status_code == 404


def test_list_with_filters_and_pagination(client, master_data, make_property):
    for i in range(5):
        make_property(property_id=f"P{i}", size=100 * (i + 1), province="Bangkok")

    body = client.get("/properties?min_size=200&limit=2&page=2").get_json()
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 4, "pages": 2}
    assert [p["propertyId"] for p in body["properties"]] == ["P3", "P4"]

    assert client.get("/properties?min_size=lots").status_code == 400
    assert client.get("/properties?page=x").status_code == 400


def test_regenerate_title_endpoint(client, master_data, make_property, auth_headers):
    make_property(property_id="AT7S", type="Factory", title_en="stale")

    assert client.post("/properties/AT7S/regenerate-title").status_code == 401
    resp = client.post("/properties/AT7S/regenerate-title", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["title_en"] == "Factory or Warehouse (Property ID: AT7S)"


def test_numeric_code_is_found_by_code(client, created, auth_headers):
    # created listing has pk 1; this one has pk 2 and code "1"
    resp = client.post("/properties", json={"property_id": "1", "type_id": WAREHOUSE}, headers=auth_headers)
    assert resp.status_code == 201
    numeric = resp.get_json()["property"]

    assert client.get("/properties/1").get_json()["property"]["propertyId"] == "1"
    assert client.get(f"/properties/{numeric['id']}").get_json()["property"]["propertyId"] == "1"

    resp = client.patch("/properties/1", json={"size": 42}, headers=auth_headers)
    assert resp.get_json()["property"]["titleEn"] == "Warehouse 42 sqm (Property ID: 1)"
    assert client.get("/properties/AT42R").get_json()["property"]["size"] == 500


def test_all_digit_code_round_trips(client, master_data, auth_headers):
    assert client.post("/properties", json={"property_id": "4242", "type_id": WAREHOUSE},
                       headers=auth_headers).status_code == 201
    resp = client.get("/properties/4242")
    assert resp.status_code == 200
    assert resp.get_json()["property"]["propertyId"] == "4242"
    assert client.post("/properties/4242/regenerate-title", headers=auth_headers).status_code == 200
