import pytest

from storefront.extensions import db
from storefront.model import Order, OrderPayment
from storefront.services.checkout_service import CheckoutRequest, place_order
from storefront.services.payment_service import request_hash, response_hash
from storefront.services.pricing import CartLine

KEY, SALT = "test-key", "test-salt"


@pytest.fixture
def pending(customer, catalog, address):
    result = place_order(CheckoutRequest(
        lines=[CartLine(catalog["shaker"].id, 2)], address=address, payment_method="online",
        user_id=customer.id, user_email=customer.email, quick_buy=True,
    ))
    return OrderPayment.query.filter_by(order_id=result.order.id).one()


def _callback(payment, status="success", **extra):
    data = {
        "key": KEY,
        "txnid": payment.payment_id,
        "amount": payment.payment_data["amount"],
        "productinfo": payment.payment_data["productinfo"],
        "firstname": payment.payment_data["firstname"],
        "email": payment.payment_data["email"],
        "status": status,
        **extra,
    }
    data["hash"] = response_hash(data, KEY, SALT)
    return data


def test_request_is_signed(pending):
    p = pending.payment_data
    assert p["amount"] == "350.00"
    assert p["productinfo"].startswith("Order #ORD-")
    assert p["hash"] == request_hash(KEY, p["txnid"], p["amount"], p["productinfo"], p["firstname"], p["email"], SALT)


def test_redirect_page_posts_to_gateway(client, pending):
    r = client.get(f"/payments/{pending.payment_id}/redirect")
    assert r.status_code == 200
    html = r.get_data(as_text=True)
    assert 'action="https://secure.payu.in/_payment"' in html
    assert pending.payment_data["hash"] in html
    assert client.get("/payments/TXN_nope/redirect").status_code == 404


def test_success_callback_moves_order_to_processing(client, pending):
    r = client.post("/payments/payu/callback", data=_callback(pending))
    assert r.status_code == 302
    assert r.headers["Location"].startswith("https://shop.example/payment-success?")
    assert f"txnid={pending.payment_id}" in r.headers["Location"]

    db.session.expire_all()
    order = db.session.get(Order, pending.order_id)
    assert (order.status, order.payment_status) == ("processing", "completed")
    assert db.session.get(OrderPayment, pending.id).gateway_response["status"] == "success"
    # already processed
    assert client.get(f"/payments/{pending.payment_id}/redirect").status_code == 409


def test_failure_callback(client, pending):
    r = client.post("/payments/payu/callback", data=_callback(pending, "failure", error_Message="Card declined"))
    assert "/payment-failure?" in r.headers["Location"]
    assert "Card+declined" in r.headers["Location"]

    db.session.expire_all()
    order = db.session.get(Order, pending.order_id)
    assert (order.status, order.payment_status) == ("pending", "failed")


def test_tampered_callback_is_rejected(client, pending):
    data = _callback(pending)
    data["amount"] = "1.00"
    r = client.post("/payments/payu/callback", data=data)
    assert "/payment-failure?" in r.headers["Location"]

    db.session.expire_all()
    assert db.session.get(OrderPayment, pending.id).status == "pending"
    assert db.session.get(Order, pending.order_id).payment_status == "pending"


def test_duplicate_callback_does_not_flip_status(client, pending):
    client.post("/payments/payu/callback", data=_callback(pending))
    r = client.post("/payments/payu/callback", data=_callback(pending, "failure"))
    assert "payment-success" in r.headers["Location"]

    db.session.expire_all()
    assert db.session.get(Order, pending.order_id).payment_status == "completed"


def test_callback_without_txnid(client):
    r = client.get("/payments/payu/callback")
    assert r.status_code == 302
    assert "/payment-failure?" in r.headers["Location"]
