# storefront/services/payment_service.py
"""
PayU hand-off and callback handling.

Cash-on-delivery orders need no gateway: the shopper goes straight to the
success page. Online orders get an `order_payments` row and a redirect to a
page that auto-posts the signed form to PayU.
"""
from __future__ import annotations
import hashlib
import hmac
import time
from dataclasses import dataclass
from urllib.parse import urlencode

from flask import current_app, has_request_context, url_for
from sqlalchemy.exc import SQLAlchemyError

from ..errors import PaymentInitiationFailed, PaymentNotFound, PaymentVerificationFailed
from ..extensions import db
from ..model import Order, OrderPayment
from ..utils.money import round_money


@dataclass(frozen=True)
class Contact:
    first_name: str
    email: str
    phone: str


@dataclass(frozen=True)
class PaymentHandoff:
    redirect_url: str
    payment: OrderPayment | None = None


def _sha512(s: str) -> str:
    return hashlib.sha512(s.encode("utf-8")).hexdigest()


def _credentials() -> tuple[str, str]:
    key = current_app.config.get("PAYU_MERCHANT_KEY")
    salt = current_app.config.get("PAYU_SALT")
    if not key or not salt:
        raise PaymentInitiationFailed("PayU credentials not configured")
    return key, salt


def _site_url(path: str, **params) -> str:
    base = (current_app.config.get("SITE_URL") or "").rstrip("/")
    return f"{base}{path}?{urlencode(params)}"


def success_url(order: Order, txnid: str | None = None) -> str:
    if txnid is None:
        return _site_url("/payment-success", orderId=order.id, method=order.payment_method)
    return _site_url("/payment-success", txnid=txnid, status="success", orderId=order.id, method="online")


def request_hash(key, txnid, amount, productinfo, firstname, email, salt) -> str:
    # key|txnid|amount|productinfo|firstname|email|udf1..udf5||||||salt
    return _sha512(f"{key}|{txnid}|{amount}|{productinfo}|{firstname}|{email}|||||||||||{salt}")


def response_hash(data: dict, key: str, salt: str) -> str:
    # salt|status||||||udf5|udf4|udf3|udf2|udf1|email|firstname|productinfo|amount|txnid|key
    g = lambda k: data.get(k) or ""  # noqa: E731
    return _sha512(
        f"{salt}|{g('status')}||||||{g('udf5')}|{g('udf4')}|{g('udf3')}|{g('udf2')}|{g('udf1')}"
        f"|{g('email')}|{g('firstname')}|{g('productinfo')}|{g('amount')}|{g('txnid')}|{key}"
    )


def _callback_url() -> str:
    if has_request_context():
        return url_for("payment.payu_callback", _external=True)
    return "/payments/payu/callback"


def gateway_redirect_url(txnid: str) -> str:
    if has_request_context():
        return url_for("payment.redirect_to_gateway", txnid=txnid, _external=True)
    return f"/payments/{txnid}/redirect"


def initiate_payment(order: Order, contact: Contact) -> PaymentHandoff:
    if order.payment_method == "cod":
        return PaymentHandoff(success_url(order))

    key, salt = _credentials()
    txnid = f"TXN_{order.id}_{int(time.time() * 1000)}"
    amount = f"{round_money(order.total_amount):.2f}"
    productinfo = f"Order #{order.code}"

    params = {
        "key": key,
        "txnid": txnid,
        "amount": amount,
        "productinfo": productinfo,
        "firstname": contact.first_name,
        "email": contact.email,
        "phone": contact.phone,
        "surl": _callback_url(),
        "furl": _callback_url(),
        "hash": request_hash(key, txnid, amount, productinfo, contact.first_name, contact.email, salt),
    }

    payment = OrderPayment(
        order_id=order.id,
        payment_id=txnid,
        payment_method="payu",
        amount=order.total_amount,
        status="pending",
        payment_data=params,
    )
    try:
        db.session.add(payment)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("could not record payment for order %s", order.id)
        raise PaymentInitiationFailed(order_id=order.id)

    current_app.logger.info("payment %s initiated for order %s amount=%s", txnid, order.id, amount)
    return PaymentHandoff(gateway_redirect_url(txnid), payment)


def get_pending_payment(txnid: str) -> OrderPayment:
    payment = OrderPayment.query.filter_by(payment_id=txnid).first()
    if not payment:
        raise PaymentNotFound()
    return payment


@dataclass(frozen=True)
class CallbackOutcome:
    order: Order | None
    success: bool
    redirect_url: str


def handle_callback(data: dict) -> CallbackOutcome:
    """Apply a PayU success/failure post to the payment and its order."""
    txnid = data.get("txnid")
    if not txnid:
        raise PaymentNotFound("Transaction ID not found in callback")

    key, salt = _credentials()
    received = (data.get("hash") or "").lower()
    if not hmac.compare_digest(received, response_hash(data, key, salt)):
        current_app.logger.warning("PayU hash mismatch for %s", txnid)
        raise PaymentVerificationFailed(txnid=txnid)

    payment = get_pending_payment(txnid)
    order = payment.order
    success = data.get("status") == "success"

    if payment.status == "pending":
        payment.status = "completed" if success else "failed"
        payment.gateway_response = dict(data)
        order.payment_status = "completed" if success else "failed"
        if success and order.status == "pending":
            order.status = "processing"
        db.session.commit()
        current_app.logger.info(
            "order %s payment %s -> %s", order.id, txnid, payment.status)
    else:
        success = payment.status == "completed"
        current_app.logger.info("duplicate callback for %s ignored (%s)", txnid, payment.status)

    if success:
        url = success_url(order, txnid)
    else:
        message = data.get("error_Message") or data.get("field9") or "Payment failed"
        url = _site_url("/payment-failure", txnid=txnid, status="failed", error=message, orderId=order.id)
    return CallbackOutcome(order, success, url)
