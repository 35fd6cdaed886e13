from tests.conftest import ADDRESS


def test_register_login_me(client):
    r = client.post("/auth/register", json={"email": "New@Example.com", "password": "secret123", "name": "Nia"})
    assert r.status_code == 201
    assert r.get_json()["data"]["user"]["role"] == "customer"

    assert client.post("/auth/register", json={"email": "new@example.com", "password": "secret123"}).status_code == 409
    assert client.post("/auth/login", json={"email": "new@example.com", "password": "nope"}).status_code == 401

    token = client.post("/auth/login", json={"email": "new@example.com", "password": "secret123"}).get_json()["data"]["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).get_json()
    assert me["status"] is True
    assert me["data"]["user"]["email"] == "new@example.com"
    assert "API_TIME_HUMAN" in me["data"]


def test_register_needs_password(client):
    r = client.post("/auth/register", json={"email": "x@example.com", "password": "123"})
    assert r.status_code == 400
    assert r.get_json()["status"] is False


def test_address_missing_fields(client, customer_headers):
    r = client.post("/addresses", json={"first_name": "Asha", "city": "Pune"}, headers=customer_headers)
    assert r.status_code == 422
    assert r.get_json()["data"]["missing"] == ["last_name", "address_line_1", "state", "postal_code"]


def test_new_default_address_replaces_old(client, customer_headers):
    client.post("/addresses", json={**ADDRESS, "is_default": True}, headers=customer_headers)
    client.post("/addresses", json={**ADDRESS, "city": "Mumbai", "is_default": True}, headers=customer_headers)

    items = client.get("/addresses", headers=customer_headers).get_json()["data"]["items"]
    assert [(a["city"], a["is_default"]) for a in items] == [("Mumbai", True), ("Pune", False)]
