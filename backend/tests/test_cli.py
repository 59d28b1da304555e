"""
Operator CLI tests.
"""

from stockroom.models import Store, User


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--name", "Asha",
        "--email", "asha@example.com",
        "--password", "secret123",
        "--store-name", "Asha Mart",
    ])
    assert result.exit_code == 0, result.output
    assert "PASS Created user asha@example.com" in result.output

    user = db_session.query(User).filter_by(email="asha@example.com").one()
    assert db_session.query(Store).filter_by(owner_id=user.id).one().name == "Asha Mart"

    listed = runner.invoke(args=["users", "list"])
    assert "asha@example.com" in listed.output
    assert ":admin" in listed.output


def test_users_create_duplicate_fails(app, owner):
    result = app.test_cli_runner().invoke(args=[
        "users", "create",
        "--name", "Again",
        "--email", "owner@example.com",
        "--password", "secret123",
    ])
    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_stores_members(app, store, staff):
    result = app.test_cli_runner().invoke(args=["stores", "members", str(store.id)])
    assert result.exit_code == 0
    assert "owner@example.com" in result.output
    assert "(owner)" in result.output
    assert "staff@example.com" in result.output


def test_stores_members_unknown_store(app, db_session):
    result = app.test_cli_runner().invoke(args=["stores", "members", "424242"])
    assert result.exit_code == 1
    assert "Store not found" in result.output


def test_stores_events(app, client, staff_headers, store):
    client.post("/api/products", json={"name": "x", "cost_price_cents": 1, "selling_price_cents": 2},
                headers=staff_headers)

    result = app.test_cli_runner().invoke(args=["stores", "events", str(store.id)])
    assert result.exit_code == 0
    assert "INSUFFICIENT_ROLE" in result.output
    assert "products.create" in result.output
