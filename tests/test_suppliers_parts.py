from __future__ import annotations

from sqlalchemy import func, select

from cityflow.extensions import db
from cityflow.models import BatchOrder, Part, PartOrder, Supplier


def test_create_and_update_supplier(client, manager_headers):
    created = client.post(
        "/api/v1/suppliers",
        json={"name": "  Metro Electric ", "email": "orders@metro.example.com", "phone": ""},
        headers=manager_headers,
    )
    assert created.status_code == 201
    data = created.get_json()
    assert data["name"] == "Metro Electric"
    assert data["phone"] is None
    assert data["is_active"] is True

    updated = client.put(
        f"/api/v1/suppliers/{data['id']}",
        json={"is_active": False, "notes": "On hold"},
        headers=manager_headers,
    )
    assert updated.status_code == 200
    assert updated.get_json()["is_active"] is False
    assert updated.get_json()["notes"] == "On hold"


def test_create_supplier_rejects_bad_email(client, manager_headers):
    response = client.post(
        "/api/v1/suppliers", json={"name": "Metro", "email": "not-an-email"}, headers=manager_headers
    )
    assert response.status_code == 400
    assert response.get_json()["details"][0]["field"] == "email"


def test_supplier_list_filters(client, manager_headers, supplier):
    inactive = Supplier(name="Dormant Parts", is_active=False)
    db.session.add(inactive)
    db.session.commit()

    everything = client.get("/api/v1/suppliers", headers=manager_headers).get_json()["items"]
    assert {item["name"] for item in everything} == {"Acme Traffic Supply", "Dormant Parts"}

    active = client.get("/api/v1/suppliers?active_only=true", headers=manager_headers).get_json()
    assert [item["name"] for item in active["items"]] == ["Acme Traffic Supply"]

    searched = client.get("/api/v1/suppliers?search=dormant", headers=manager_headers).get_json()
    assert [item["name"] for item in searched["items"]] == ["Dormant Parts"]


def test_get_unknown_supplier(client, staff_headers):
    assert client.get("/api/v1/suppliers/999", headers=staff_headers).status_code == 404


def test_create_part_and_duplicate_number(client, manager_headers, supplier):
    body = {
        "part_number": "LED-9",
        "name": "LED module",
        "category": "lighting",
        "supplier_id": supplier.id,
        "unit_price": "4.25",
    }
    created = client.post("/api/v1/parts", json=body, headers=manager_headers)
    assert created.status_code == 201
    data = created.get_json()
    assert data["unit_price"] == "4.25"
    assert data["minimum_order_quantity"] == 1
    assert data["lead_time_days"] == 7
    assert data["supplier"]["id"] == supplier.id

    duplicate = client.post("/api/v1/parts", json=body, headers=manager_headers)
    assert duplicate.status_code == 409


def test_same_part_number_allowed_for_other_supplier(client, manager_headers, supplier, part):
    other = Supplier(name="Other Co", is_active=True)
    db.session.add(other)
    db.session.commit()

    response = client.post(
        "/api/v1/parts",
        json={
            "part_number": part.part_number,
            "name": "Signal lamp",
            "category": "traffic",
            "supplier_id": other.id,
        },
        headers=manager_headers,
    )
    assert response.status_code == 201
    assert response.get_json()["unit_price"] is None


def test_create_part_unknown_supplier(client, manager_headers):
    response = client.post(
        "/api/v1/parts",
        json={"part_number": "X", "name": "X", "category": "misc", "supplier_id": 999},
        headers=manager_headers,
    )
    assert response.status_code == 404


def test_part_list_filters(client, staff_headers, supplier, part):
    db.session.add(
        Part(
            part_number="BR-2",
            name="Bracket",
            category="hardware",
            manufacturer="Steelworks",
            supplier_id=supplier.id,
            is_active=False,
        )
    )
    db.session.commit()

    by_category = client.get("/api/v1/parts?category=traffic", headers=staff_headers).get_json()
    assert [item["part_number"] for item in by_category["items"]] == ["TL-100"]

    by_search = client.get("/api/v1/parts?search=steel", headers=staff_headers).get_json()
    assert [item["part_number"] for item in by_search["items"]] == ["BR-2"]

    active = client.get(
        f"/api/v1/parts?supplier_id={supplier.id}&active_only=true", headers=staff_headers
    ).get_json()
    assert [item["part_number"] for item in active["items"]] == ["TL-100"]


def test_delete_supplier_cascades(client, manager_headers, supplier, part):
    order = client.post(
        "/api/v1/batch-orders", json={"supplier_id": supplier.id}, headers=manager_headers
    ).get_json()
    client.post(
        "/api/v1/part-orders",
        json={
            "batch_order_id": order["id"],
            "part_id": part.id,
            "quantity": 1,
            "request_reason": "Spare",
        },
        headers=manager_headers,
    )

    response = client.delete(f"/api/v1/suppliers/{supplier.id}", headers=manager_headers)
    assert response.status_code == 200

    assert db.session.scalar(select(func.count(Supplier.id))) == 0
    assert db.session.scalar(select(func.count(Part.id))) == 0
    assert db.session.scalar(select(func.count(BatchOrder.id))) == 0
    assert db.session.scalar(select(func.count(PartOrder.id))) == 0

    again = client.delete(f"/api/v1/suppliers/{order['supplier_id']}", headers=manager_headers)
    assert again.status_code == 404


def test_part_list_rejects_non_integer_supplier_filter(client, staff_headers, part):
    response = client.get("/api/v1/parts?supplier_id=abc", headers=staff_headers)
    assert response.status_code == 400
    assert response.get_json() == {"message": "supplier_id must be an integer"}
