"""
Product catalogue tests.

Verifies:
- SKU unique per store, blank/absent SKUs exempt
- Search and sort
- Stock edits through update are adjustments that can't go negative
- Deleting a product removes its ledger rows
"""

import pytest

from stockroom.errors import InvalidInput, SkuTaken
from stockroom.models import AuditLog, Product, Sale
from stockroom.services import inventory_service, products_service


def _create(client, headers, **fields):
    body = {"name": "Item", "cost_price_cents": 50, "selling_price_cents": 75}
    body.update(fields)
    return client.post("/api/products", json=body, headers=headers)


class TestCreate:

    def test_create_defaults(self, client, owner_headers):
        resp = _create(client, owner_headers, name="Soap")
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["stock"] == 0
        assert body["low_stock_threshold"] == 10
        assert body["is_low_stock"] is True
        assert body["sku"] is None

    @pytest.mark.parametrize(
        "fields",
        [
            {"cost_price_cents": -1},
            {"selling_price_cents": 1.5},
            {"stock": -3},
            {"low_stock_threshold": -1},
            {"name": "   "},
            {"id": 7},
        ],
    )
    def test_invalid_create(self, client, owner_headers, fields):
        assert _create(client, owner_headers, **fields).status_code == 400

    def test_missing_prices(self, client, owner_headers):
        resp = client.post("/api/products", json={"name": "No Price"}, headers=owner_headers)
        assert resp.status_code == 400

    def test_create_is_audited(self, client, owner_headers, db_session):
        product_id = _create(client, owner_headers, name="Audited").get_json()["id"]
        entry = db_session.query(AuditLog).filter_by(entity_type="product", entity_id=product_id).one()
        assert entry.action == "CREATE"


class TestSku:

    def test_sku_unique_in_store(self, client, owner_headers, product):
        resp = _create(client, owner_headers, sku="W-1")
        assert resp.status_code == 409

    def test_same_sku_other_store(self, client, outsider_headers, product):
        resp = _create(client, outsider_headers, sku="W-1")
        assert resp.status_code == 201

    def test_blank_and_missing_skus_never_collide(self, client, owner_headers, db_session, store):
        assert _create(client, owner_headers, name="A", sku="").status_code == 201
        assert _create(client, owner_headers, name="B", sku="").status_code == 201
        assert _create(client, owner_headers, name="C").status_code == 201
        assert db_session.query(Product).filter_by(store_id=store.id, sku=None).count() == 3

    def test_update_to_taken_sku(self, store, make_product, product):
        second = make_product(store, name="Second", sku="W-2")
        with pytest.raises(SkuTaken):
            products_service.update_product(store_id=store.id, product_id=second.id, patch={"sku": "W-1"})


class TestListing:

    @pytest.fixture
    def catalogue(self, store, make_product):
        make_product(store, name="Basmati Rice", sku="RICE-5", stock=40, selling_price_cents=500)
        make_product(store, name="Toor Dal", sku="DAL-1", stock=3, selling_price_cents=150)
        make_product(store, name="Rice Flour", sku="FLR-2", stock=12, selling_price_cents=90)

    def test_search_name_or_sku(self, client, owner_headers, catalogue):
        names = [p["name"] for p in client.get("/api/products?search=rice&sort=name", headers=owner_headers).get_json()["items"]]
        assert names == ["Basmati Rice", "Rice Flour"]

        by_sku = client.get("/api/products?search=dal-", headers=owner_headers).get_json()
        assert by_sku["count"] == 1

    def test_sort_descending(self, client, owner_headers, catalogue):
        items = client.get("/api/products?sort=-stock", headers=owner_headers).get_json()["items"]
        assert [p["stock"] for p in items] == [40, 12, 3]

    def test_bad_sort(self, client, owner_headers, catalogue):
        assert client.get("/api/products?sort=cost_price_cents", headers=owner_headers).status_code == 400


class TestUpdate:

    def test_update_fields(self, client, owner_headers, product, db_session):
        resp = client.put(
            f"/api/products/{product.id}",
            json={"name": "Widget Pro", "selling_price_cents": 200},
            headers=owner_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Widget Pro"

        entry = db_session.query(AuditLog).filter_by(entity_type="product", action="UPDATE").one()
        assert entry.old_values["selling_price_cents"] == 120
        assert entry.new_values["selling_price_cents"] == 200

    def test_stock_adjustment(self, client, owner_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"stock": 3}, headers=owner_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["stock"] == 3
        assert body["is_low_stock"] is True

    def test_negative_stock_adjustment_refused(self, client, owner_headers, product, db_session):
        resp = client.put(f"/api/products/{product.id}", json={"stock": -1}, headers=owner_headers)
        assert resp.status_code == 400
        db_session.expire_all()
        assert db_session.get(Product, product.id).stock == 10

    def test_set_stock_service(self, db_session, store, product):
        with pytest.raises(InvalidInput):
            inventory_service.set_stock(store_id=store.id, product_id=product.id, new_stock=-5)

        previous = inventory_service.set_stock(store_id=store.id, product_id=product.id, new_stock=25)
        db_session.commit()
        assert previous == 10
        db_session.expire_all()
        assert db_session.get(Product, product.id).stock == 25


class TestDelete:

    def test_delete_removes_ledger_rows(self, client, owner, owner_headers, store, product, db_session):
        inventory_service.create_sale(
            store_id=store.id, product_id=product.id, quantity=1, selling_price_cents=120, created_by=owner.id
        )
        inventory_service.create_purchase(
            store_id=store.id, product_id=product.id, quantity=1, cost_price_cents=80, created_by=owner.id
        )

        product_id = product.id
        resp = client.delete(f"/api/products/{product_id}", headers=owner_headers)
        assert resp.status_code == 200

        db_session.expire_all()
        assert db_session.get(Product, product_id) is None
        assert db_session.query(Sale).filter_by(product_id=product_id).count() == 0

    def test_delete_missing(self, client, owner_headers):
        assert client.delete("/api/products/424242", headers=owner_headers).status_code == 404
