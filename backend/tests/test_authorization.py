"""
Authorization gate tests.

Verifies:
- Unauthenticated requests return 401
- Missing store context returns 400 missing_tenant
- Staff denied management operations (403 insufficient_role)
- Coadmin denied admin-only operations
- Store id resolution order (header, path, body, query)
- Denials are recorded as security events
"""

import pytest

from stockroom.models import Product, SecurityEvent, Store
from stockroom.permissions import OPERATION_ROLES, get_allowed_roles

from conftest import auth_headers, token_for


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/signout"),
            ("GET", "/api/stores"),
            ("POST", "/api/stores"),
            ("GET", "/api/stores/1"),
            ("PUT", "/api/stores/1"),
            ("DELETE", "/api/stores/1"),
            ("GET", "/api/stores/1/users"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("DELETE", "/api/products/1"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/purchases"),
            ("POST", "/api/purchases"),
            ("GET", "/api/alerts/1/low-stock"),
            ("GET", "/api/audit/1/logs"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["kind"] == "unauthenticated"

    def test_health_is_public(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"

    def test_unknown_route_is_json_404(self, client):
        resp = client.get("/api/version")
        assert resp.status_code == 404
        assert resp.get_json()["kind"] == "http_error"


# =============================================================================
# TENANT RESOLUTION
# =============================================================================


class TestTenantResolution:

    def test_missing_store_id(self, client, owner, store):
        resp = client.get("/api/products", headers=auth_headers(token_for(owner)))
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "missing_tenant"

    def test_store_id_from_query(self, client, owner, store, product):
        resp = client.get(f"/api/products?store_id={store.id}", headers=auth_headers(token_for(owner)))
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 1

    def test_store_id_from_body(self, client, owner, store):
        resp = client.post(
            "/api/products",
            json={"store_id": store.id, "name": "Body Product", "cost_price_cents": 10, "selling_price_cents": 20},
            headers=auth_headers(token_for(owner)),
        )
        assert resp.status_code == 201
        assert resp.get_json()["store_id"] == store.id

    def test_header_wins_over_query(self, client, owner, store, other_store):
        # Header names owner's store; query names a store owner has no access to
        resp = client.get(
            f"/api/products?store_id={other_store.id}",
            headers=auth_headers(token_for(owner), store.id),
        )
        assert resp.status_code == 200

    def test_foreign_header_denied_even_with_own_path(self, client, owner, store, other_store):
        resp = client.get(
            f"/api/alerts/{store.id}/low-stock",
            headers=auth_headers(token_for(owner), other_store.id),
        )
        assert resp.status_code == 403
        assert resp.get_json()["kind"] == "no_tenant_access"

    def test_path_must_match_active_store(self, client, db_session, owner, store, make_store):
        second = make_store(owner, name="Second Store")
        second_id = second.id

        resp = client.delete(
            f"/api/stores/{second_id}",
            headers=auth_headers(token_for(owner), store.id),
        )
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "invalid_input"

        db_session.expire_all()
        names = sorted(s.name for s in db_session.query(Store).filter_by(owner_id=owner.id))
        assert names == sorted(["Second Store", store.name])

    def test_path_and_header_agree(self, client, owner, store):
        resp = client.get(
            f"/api/alerts/{store.id}/low-stock",
            headers=auth_headers(token_for(owner), store.id),
        )
        assert resp.status_code == 200

    def test_unknown_store_same_as_foreign_store(self, client, owner, store, other_store):
        foreign = client.get("/api/products", headers=auth_headers(token_for(owner), other_store.id))
        made_up = client.get("/api/products", headers=auth_headers(token_for(owner), 999999))

        assert foreign.status_code == made_up.status_code == 403
        assert foreign.get_json() == made_up.get_json()

    def test_non_numeric_store_id(self, client, owner, store):
        resp = client.get("/api/products", headers=auth_headers(token_for(owner), "abc"))
        assert resp.status_code == 403

    def test_denial_is_logged(self, client, owner, store, other_store, db_session):
        client.get("/api/products", headers=auth_headers(token_for(owner), other_store.id))

        events = db_session.query(SecurityEvent).filter_by(user_id=owner.id).all()
        assert len(events) == 1
        assert events[0].event_type == "NO_TENANT_ACCESS"
        assert events[0].store_id == other_store.id
        assert events[0].success is False


# =============================================================================
# ROLE CHECKS (403)
# =============================================================================


class TestStaffDenied:
    """Staff can view and sell, nothing more."""

    def test_cannot_create_product(self, client, staff_headers):
        resp = client.post(
            "/api/products",
            json={"name": "x", "cost_price_cents": 1, "selling_price_cents": 2},
            headers=staff_headers,
        )
        assert resp.status_code == 403
        body = resp.get_json()
        assert body["kind"] == "insufficient_role"
        assert body["current"] == "staff"
        assert "admin" in body["required"]

    def test_cannot_update_product(self, client, staff_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"name": "renamed"}, headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_list_purchases(self, client, staff_headers):
        resp = client.get("/api/purchases", headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_delete_sale(self, client, staff_headers, owner_headers, product):
        created = client.post(
            "/api/sales",
            json={"product_id": product.id, "quantity": 1, "selling_price_cents": 120},
            headers=staff_headers,
        )
        assert created.status_code == 201

        resp = client.delete(f"/api/sales/{created.get_json()['id']}", headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_view_team(self, client, staff_headers, store):
        resp = client.get(f"/api/stores/{store.id}/users", headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_view_audit(self, client, staff_headers, store):
        resp = client.get(f"/api/audit/{store.id}/logs", headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_delete_store(self, client, staff_headers, store):
        resp = client.delete(f"/api/stores/{store.id}", headers=staff_headers)
        assert resp.status_code == 403

    def test_can_view_and_sell(self, client, staff_headers, product):
        assert client.get("/api/products", headers=staff_headers).status_code == 200
        resp = client.post(
            "/api/sales",
            json={"product_id": product.id, "quantity": 2, "selling_price_cents": 120},
            headers=staff_headers,
        )
        assert resp.status_code == 201

    def test_role_denial_is_logged(self, client, staff, staff_headers, db_session):
        client.post("/api/products", json={"name": "x", "cost_price_cents": 1, "selling_price_cents": 2},
                    headers=staff_headers)

        event = db_session.query(SecurityEvent).filter_by(user_id=staff.id).one()
        assert event.event_type == "INSUFFICIENT_ROLE"
        assert event.action == "products.create"


class TestCoadminLimits:

    def test_can_manage_products(self, client, coadmin_headers):
        resp = client.post(
            "/api/products",
            json={"name": "Co Product", "cost_price_cents": 10, "selling_price_cents": 20},
            headers=coadmin_headers,
        )
        assert resp.status_code == 201

    def test_cannot_update_store(self, client, coadmin_headers, store):
        resp = client.put(f"/api/stores/{store.id}", json={"name": "Renamed"}, headers=coadmin_headers)
        assert resp.status_code == 403

    def test_cannot_invite(self, client, coadmin_headers, store, make_user):
        make_user(name="New", email="new@example.com")
        resp = client.post(
            f"/api/stores/{store.id}/users",
            json={"email": "new@example.com", "role": "staff"},
            headers=coadmin_headers,
        )
        assert resp.status_code == 403

    def test_cannot_delete_store(self, client, coadmin_headers, store):
        resp = client.delete(f"/api/stores/{store.id}", headers=coadmin_headers)
        assert resp.status_code == 403


# =============================================================================
# STAFF PROJECTION
# =============================================================================


class TestCostPriceVisibility:

    def test_staff_never_sees_cost(self, client, staff_headers, product):
        listed = client.get("/api/products", headers=staff_headers).get_json()["items"]
        single = client.get(f"/api/products/{product.id}", headers=staff_headers).get_json()

        assert "cost_price_cents" not in listed[0]
        assert "cost_price_cents" not in single

    def test_staff_sale_summary_has_no_cost(self, client, staff_headers, product):
        sale = client.post(
            "/api/sales",
            json={"product_id": product.id, "quantity": 1, "selling_price_cents": 120},
            headers=staff_headers,
        ).get_json()
        assert "cost_price_cents" not in sale["product"]

    def test_admin_sees_cost(self, client, owner_headers, product):
        single = client.get(f"/api/products/{product.id}", headers=owner_headers).get_json()
        assert single["cost_price_cents"] == 80


# =============================================================================
# DECLARATIVE TABLE
# =============================================================================


class TestOperationTable:

    def test_unknown_operation_fails_fast(self):
        with pytest.raises(KeyError):
            get_allowed_roles("products.teleport")

    def test_staff_excluded_from_writes(self):
        for op in ("products.create", "products.update", "products.delete", "sales.delete", "purchases.create"):
            assert "staff" not in OPERATION_ROLES[op]

    def test_sales_create_open_to_all_roles(self):
        assert set(OPERATION_ROLES["sales.create"]) == {"admin", "coadmin", "staff"}


# =============================================================================
# SCENARIO: staff vs admin on the same product
# =============================================================================


def test_invited_staff_cannot_delete_but_admin_can(client, db_session, make_user):
    """U creates S, invites V as staff; V's delete is refused, U's succeeds."""
    signup = client.post(
        "/api/auth/signup",
        json={"name": "U", "email": "u@example.com", "password": "secret123", "store_name": "S"},
    ).get_json()
    u_token = signup["token"]
    store_id = signup["store"]["id"]

    v = make_user(name="V", email="v@example.com")
    invited = client.post(
        f"/api/stores/{store_id}/users",
        json={"email": "v@example.com", "role": "staff"},
        headers=auth_headers(u_token, store_id),
    )
    assert invited.status_code == 201

    created = client.post(
        "/api/products",
        json={"name": "P", "cost_price_cents": 80, "selling_price_cents": 120, "stock": 3},
        headers=auth_headers(u_token, store_id),
    )
    product_id = created.get_json()["id"]

    denied = client.delete(f"/api/products/{product_id}", headers=auth_headers(token_for(v), store_id))
    assert denied.status_code == 403
    assert denied.get_json()["kind"] == "insufficient_role"
    assert db_session.get(Product, product_id) is not None

    allowed = client.delete(f"/api/products/{product_id}", headers=auth_headers(u_token, store_id))
    assert allowed.status_code == 200
    db_session.expire_all()
    assert db_session.get(Product, product_id) is None
