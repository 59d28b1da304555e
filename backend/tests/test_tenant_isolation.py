"""
Tenant isolation tests.

Verifies:
- A member of store S cannot read or write products, sales or purchases of store T
- Entity ids from another store answer 404 under the caller's own store, never data
- Naming another store directly answers 403 no_tenant_access
- A second membership for the same (user, store) pair is refused
"""

import pytest
from sqlalchemy.exc import IntegrityError

from stockroom.errors import MembershipExists, NotFound
from stockroom.models import Product, UserStoreRole
from stockroom.services import inventory_service, membership_service

from conftest import auth_headers, token_for


@pytest.fixture
def foreign_sale(other_store, other_product, outsider):
    return inventory_service.create_sale(
        store_id=other_store.id,
        product_id=other_product.id,
        quantity=1,
        selling_price_cents=100,
        created_by=outsider.id,
    )


@pytest.fixture
def foreign_purchase(other_store, other_product, outsider):
    return inventory_service.create_purchase(
        store_id=other_store.id,
        product_id=other_product.id,
        quantity=2,
        cost_price_cents=50,
        created_by=outsider.id,
    )


class TestForeignIdsUnderOwnStore:
    """Owner works in store S and guesses ids that belong to store T."""

    def test_get_foreign_product(self, client, owner_headers, other_product):
        resp = client.get(f"/api/products/{other_product.id}", headers=owner_headers)
        assert resp.status_code == 404
        assert resp.get_json()["kind"] == "not_found"
        assert "Gadget" not in resp.get_data(as_text=True)

    def test_update_foreign_product(self, client, owner_headers, other_product, db_session):
        resp = client.put(f"/api/products/{other_product.id}", json={"name": "Hijacked"}, headers=owner_headers)
        assert resp.status_code == 404
        db_session.expire_all()
        assert db_session.get(Product, other_product.id).name == "Gadget"

    def test_delete_foreign_product(self, client, owner_headers, other_product, db_session):
        resp = client.delete(f"/api/products/{other_product.id}", headers=owner_headers)
        assert resp.status_code == 404
        db_session.expire_all()
        assert db_session.get(Product, other_product.id) is not None

    def test_sell_foreign_product(self, client, owner_headers, other_product, db_session):
        resp = client.post(
            "/api/sales",
            json={"product_id": other_product.id, "quantity": 1, "selling_price_cents": 100},
            headers=owner_headers,
        )
        assert resp.status_code == 404
        db_session.expire_all()
        assert db_session.get(Product, other_product.id).stock == 10

    def test_get_foreign_sale(self, client, owner_headers, foreign_sale):
        assert client.get(f"/api/sales/{foreign_sale.id}", headers=owner_headers).status_code == 404

    def test_delete_foreign_sale(self, client, owner_headers, foreign_sale, other_product, db_session):
        assert client.delete(f"/api/sales/{foreign_sale.id}", headers=owner_headers).status_code == 404
        db_session.expire_all()
        assert db_session.get(Product, other_product.id).stock == 9

    def test_get_foreign_purchase(self, client, owner_headers, foreign_purchase):
        assert client.get(f"/api/purchases/{foreign_purchase.id}", headers=owner_headers).status_code == 404

    def test_lists_only_own_store(self, client, owner_headers, product, other_product, foreign_sale):
        products = client.get("/api/products", headers=owner_headers).get_json()["items"]
        sales = client.get("/api/sales", headers=owner_headers).get_json()

        assert [p["name"] for p in products] == ["Widget"]
        assert sales == []


class TestNamingForeignStore:
    """Owner names store T directly."""

    @pytest.mark.parametrize(
        "path_template",
        [
            "/api/products",
            "/api/sales",
            "/api/purchases",
            "/api/stores/{store_id}",
            "/api/stores/{store_id}/users",
            "/api/alerts/{store_id}/low-stock",
            "/api/audit/{store_id}/logs",
        ],
    )
    def test_read_denied(self, client, owner, store, other_store, path_template):
        path = path_template.format(store_id=other_store.id)
        if "{store_id}" not in path_template:
            path += f"?store_id={other_store.id}"

        resp = client.get(path, headers=auth_headers(token_for(owner)))
        assert resp.status_code == 403
        assert resp.get_json()["kind"] == "no_tenant_access"

    def test_write_denied(self, client, owner, store, other_store, other_product, db_session):
        resp = client.post(
            "/api/sales",
            json={"product_id": other_product.id, "quantity": 1, "selling_price_cents": 100},
            headers=auth_headers(token_for(owner), other_store.id),
        )
        assert resp.status_code == 403
        db_session.expire_all()
        assert db_session.get(Product, other_product.id).stock == 10

    def test_delete_foreign_store_denied(self, client, owner, store, other_store):
        resp = client.delete(f"/api/stores/{other_store.id}", headers=auth_headers(token_for(owner)))
        assert resp.status_code == 403

    def test_same_user_two_stores(self, client, owner, store, outsider, other_store, add_member, product, other_product):
        """Membership in both stores: the resolved store decides what is visible."""
        add_member(owner, other_store, "staff")

        in_s = client.get("/api/products", headers=auth_headers(token_for(owner), store.id)).get_json()["items"]
        in_t = client.get("/api/products", headers=auth_headers(token_for(owner), other_store.id)).get_json()["items"]

        assert [p["name"] for p in in_s] == ["Widget"]
        assert [p["name"] for p in in_t] == ["Gadget"]
        # Staff role in T: no cost price
        assert "cost_price_cents" in in_s[0]
        assert "cost_price_cents" not in in_t[0]


class TestMembershipUniqueness:

    def test_second_membership_refused(self, db_session, store, staff):
        with pytest.raises(MembershipExists):
            membership_service.add_membership(user_id=staff.id, store_id=store.id, role="admin")

        rows = db_session.query(UserStoreRole).filter_by(user_id=staff.id, store_id=store.id).all()
        assert len(rows) == 1
        assert rows[0].role == "staff"

    def test_membership_requires_existing_store(self, staff):
        with pytest.raises(NotFound):
            membership_service.add_membership(user_id=staff.id, store_id=999999, role="staff")

    def test_membership_role_is_constrained(self, db_session, store, outsider):
        db_session.add(UserStoreRole(user_id=outsider.id, store_id=store.id, role="owner"))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()

        assert db_session.query(UserStoreRole).filter_by(user_id=outsider.id).count() == 1
