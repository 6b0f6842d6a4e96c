from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select

from cityflow.extensions import db
from cityflow.models import Asset, BatchOrder, Part, PartOrder, Supplier
from cityflow.services import procurement_service


def _draft_order(client, headers, supplier_id) -> dict:
    response = client.post("/api/v1/batch-orders", json={"supplier_id": supplier_id}, headers=headers)
    assert response.status_code == 201
    return response.get_json()


def _line_body(batch_order_id, part_id, quantity, **extra) -> dict:
    return {
        "batch_order_id": batch_order_id,
        "part_id": part_id,
        "quantity": quantity,
        "request_reason": "Pothole crew restock",
        **extra,
    }


def _assert_total_matches_lines(batch_order_id: int) -> None:
    db.session.expire_all()
    order = db.session.get(BatchOrder, batch_order_id)
    assert Decimal(order.total_amount).quantize(Decimal("0.01")) == (
        procurement_service.recalculate_total(batch_order_id)
    )


def test_unknown_part_leaves_total_untouched(client, staff_headers, supplier, part):
    order = _draft_order(client, staff_headers, supplier.id)
    client.post("/api/v1/part-orders", json=_line_body(order["id"], part.id, 3), headers=staff_headers)

    response = client.post(
        "/api/v1/part-orders", json=_line_body(order["id"], 9999, 1), headers=staff_headers
    )
    assert response.status_code == 404
    assert response.get_json() == {"message": "part not found"}

    detail = client.get(f"/api/v1/batch-orders/{order['id']}", headers=staff_headers).get_json()
    assert detail["total_amount"] == "30.00"
    assert len(detail["part_orders"]) == 1


def test_unknown_batch_order(client, staff_headers, part):
    response = client.post("/api/v1/part-orders", json=_line_body(404, part.id, 1), headers=staff_headers)
    assert response.status_code == 404
    assert db.session.scalar(select(func.count(PartOrder.id))) == 0


def test_quantity_must_be_positive(client, staff_headers, supplier, part):
    order = _draft_order(client, staff_headers, supplier.id)

    response = client.post(
        "/api/v1/part-orders", json=_line_body(order["id"], part.id, 0), headers=staff_headers
    )
    assert response.status_code == 400
    assert response.get_json()["message"].startswith("quantity")


def test_invalid_urgency_is_rejected(client, staff_headers, supplier, part):
    order = _draft_order(client, staff_headers, supplier.id)

    response = client.post(
        "/api/v1/part-orders",
        json=_line_body(order["id"], part.id, 1, urgency_level="whenever"),
        headers=staff_headers,
    )
    assert response.status_code == 400


def test_part_from_other_supplier_is_rejected(client, staff_headers, supplier, part):
    other = Supplier(name="Other Co", is_active=True)
    db.session.add(other)
    db.session.commit()
    order = _draft_order(client, staff_headers, other.id)

    response = client.post(
        "/api/v1/part-orders", json=_line_body(order["id"], part.id, 1), headers=staff_headers
    )
    assert response.status_code == 400
    _assert_total_matches_lines(order["id"])


def test_unit_price_is_snapshotted(client, manager_headers, supplier, part):
    order = _draft_order(client, manager_headers, supplier.id)
    line = client.post(
        "/api/v1/part-orders", json=_line_body(order["id"], part.id, 2), headers=manager_headers
    ).get_json()

    updated = client.put(
        f"/api/v1/parts/{part.id}", json={"unit_price": "12.50"}, headers=manager_headers
    )
    assert updated.status_code == 200
    assert updated.get_json()["unit_price"] == "12.50"

    detail = client.get(f"/api/v1/batch-orders/{order['id']}", headers=manager_headers).get_json()
    assert detail["part_orders"][0]["id"] == line["id"]
    assert detail["part_orders"][0]["unit_price"] == "10.00"
    assert detail["part_orders"][0]["total_price"] == "20.00"
    assert detail["total_amount"] == "20.00"

    second = client.post(
        "/api/v1/part-orders", json=_line_body(order["id"], part.id, 2), headers=manager_headers
    ).get_json()
    assert second["unit_price"] == "12.50"
    assert second["batch_order_total_amount"] == "45.00"


def test_part_without_price_adds_zero_line(client, staff_headers, supplier):
    unpriced = Part(
        part_number="CONE-1",
        name="Traffic cone",
        category="safety",
        supplier_id=supplier.id,
        is_active=True,
    )
    db.session.add(unpriced)
    db.session.commit()
    order = _draft_order(client, staff_headers, supplier.id)

    response = client.post(
        "/api/v1/part-orders", json=_line_body(order["id"], unpriced.id, 5), headers=staff_headers
    )
    assert response.status_code == 201
    assert response.get_json()["total_price"] == "0.00"
    assert response.get_json()["batch_order_total_amount"] == "0.00"


def test_remove_line_item_subtracts_from_total(client, staff_headers, supplier, part):
    order = _draft_order(client, staff_headers, supplier.id)
    first = client.post(
        "/api/v1/part-orders", json=_line_body(order["id"], part.id, 3), headers=staff_headers
    ).get_json()
    client.post("/api/v1/part-orders", json=_line_body(order["id"], part.id, 2), headers=staff_headers)

    response = client.delete(f"/api/v1/part-orders/{first['id']}", headers=staff_headers)
    assert response.status_code == 200
    assert response.get_json()["batch_order_total_amount"] == "20.00"
    _assert_total_matches_lines(order["id"])

    missing = client.delete(f"/api/v1/part-orders/{first['id']}", headers=staff_headers)
    assert missing.status_code == 404


def test_cannot_remove_line_from_submitted_order(client, staff_headers, supplier, part):
    order = _draft_order(client, staff_headers, supplier.id)
    line = client.post(
        "/api/v1/part-orders", json=_line_body(order["id"], part.id, 1), headers=staff_headers
    ).get_json()
    client.post(f"/api/v1/batch-orders/{order['id']}/submit", headers=staff_headers)

    response = client.delete(f"/api/v1/part-orders/{line['id']}", headers=staff_headers)
    assert response.status_code == 409
    assert db.session.get(PartOrder, line["id"]) is not None
    _assert_total_matches_lines(order["id"])


def test_line_item_links_asset(client, manager_headers, supplier, part):
    asset = Asset(name="Signal 14", lng=Decimal("-122.4194"), lat=Decimal("37.7749"), color="#3b82f6")
    db.session.add(asset)
    db.session.commit()
    order = _draft_order(client, manager_headers, supplier.id)

    response = client.post(
        "/api/v1/part-orders",
        json=_line_body(
            order["id"], part.id, 1, asset_id=asset.id, urgency_level="high", work_order_number="WO-77"
        ),
        headers=manager_headers,
    )
    assert response.status_code == 201
    data = response.get_json()
    assert data["asset"] == {"id": asset.id, "name": "Signal 14"}
    assert data["urgency_level"] == "high"
    assert data["work_order_number"] == "WO-77"

    missing_asset = client.post(
        "/api/v1/part-orders",
        json=_line_body(order["id"], part.id, 1, asset_id=9999),
        headers=manager_headers,
    )
    assert missing_asset.status_code == 404


def test_total_matches_lines_after_mixed_operations(client, staff_headers, supplier, part):
    order = _draft_order(client, staff_headers, supplier.id)
    ids = []
    for quantity in (1, 4, 7, 2):
        line = client.post(
            "/api/v1/part-orders", json=_line_body(order["id"], part.id, quantity), headers=staff_headers
        ).get_json()
        ids.append(line["id"])
    client.delete(f"/api/v1/part-orders/{ids[1]}", headers=staff_headers)
    client.delete(f"/api/v1/part-orders/{ids[3]}", headers=staff_headers)

    _assert_total_matches_lines(order["id"])
    assert procurement_service.recalculate_total(order["id"]) == Decimal("80.00")


def test_quantity_must_be_a_real_integer(client, staff_headers, supplier, part):
    order = _draft_order(client, staff_headers, supplier.id)

    for quantity in (True, 2.5, "3"):
        response = client.post(
            "/api/v1/part-orders",
            json=_line_body(order["id"], part.id, quantity),
            headers=staff_headers,
        )
        assert response.status_code == 400
    assert db.session.scalar(select(func.count(PartOrder.id))) == 0


def test_quantity_upper_bound(client, staff_headers, supplier, part):
    order = _draft_order(client, staff_headers, supplier.id)

    response = client.post(
        "/api/v1/part-orders",
        json=_line_body(order["id"], part.id, 2_000_000_000),
        headers=staff_headers,
    )
    assert response.status_code == 400
    assert response.get_json()["message"].startswith("quantity")


def test_line_total_beyond_column_limit_is_rejected(client, staff_headers, supplier):
    pricey = Part(
        part_number="XFMR-1",
        name="Substation transformer",
        category="power",
        unit_price=Decimal("99999999.99"),
        supplier_id=supplier.id,
        is_active=True,
    )
    db.session.add(pricey)
    db.session.commit()
    order = _draft_order(client, staff_headers, supplier.id)

    response = client.post(
        "/api/v1/part-orders", json=_line_body(order["id"], pricey.id, 2), headers=staff_headers
    )
    assert response.status_code == 400
    _assert_total_matches_lines(order["id"])
    assert procurement_service.recalculate_total(order["id"]) == Decimal("0.00")
