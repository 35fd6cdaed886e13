# storefront/errors.py
from flask import jsonify
from .utils.api import api_error


class StorefrontError(Exception):
    """Base for errors surfaced to the shopper with a stable code."""
    code = "StorefrontError"
    status = 400
    message = "request failed"

    def __init__(self, message: str | None = None, **details):
        super().__init__(message or self.message)
        self.details = details

    @property
    def error_code(self) -> str:
        return self.code

    def as_api(self):
        return {"code": self.error_code, **self.details}


# ---- validation (before any write) ----------------------------------------
class AddressRequired(StorefrontError):
    code = "AddressRequired"
    status = 422
    message = "a complete delivery address is required"

class PaymentMethodRequired(StorefrontError):
    code = "PaymentMethodRequired"
    status = 422
    message = "please select a payment method"

class GuestContactRequired(StorefrontError):
    code = "GuestContactRequired"
    status = 422
    message = "guest orders need a name, email and phone"

class EmptyCart(StorefrontError):
    code = "EmptyCart"
    status = 422
    message = "your cart is empty"


# ---- coupons ---------------------------------------------------------------
class CouponInvalid(StorefrontError):
    status = 422
    message = "coupon cannot be applied"

    def __init__(self, reason, message: str | None = None, **details):
        super().__init__(message or f"coupon invalid: {reason}", **details)
        self.reason = reason

    @property
    def error_code(self) -> str:
        return f"CouponInvalid:{self.reason}"


# ---- idempotency -----------------------------------------------------------
class IdempotencyKeyConflict(StorefrontError):
    code = "IdempotencyKeyConflict"
    status = 409
    message = "idempotency key already used by another customer"

class IdempotencyKeyMismatch(StorefrontError):
    code = "IdempotencyKeyMismatch"
    status = 422
    message = "idempotency key was already used with a different checkout request"


# ---- persistence / payment -------------------------------------------------
class OrderCreationFailed(StorefrontError):
    code = "OrderCreationFailed"
    status = 500
    message = "failed to create order"

class PaymentInitiationFailed(StorefrontError):
    code = "PaymentInitiationFailed"
    status = 502
    message = "failed to start payment"

class PaymentNotFound(StorefrontError):
    code = "PaymentNotFound"
    status = 404
    message = "payment record not found"

class PaymentVerificationFailed(StorefrontError):
    code = "PaymentVerificationFailed"
    status = 400
    message = "payment callback failed verification"


def register_error_handlers(app):
    @app.errorhandler(StorefrontError)
    def handle_storefront_error(e):
        r = jsonify(api_error(str(e), e.as_api()))
        r.status_code = e.status
        return r

    @app.errorhandler(ValueError)
    def handle_value_error(e):
        r = jsonify(api_error(str(e), {"code": "ValidationError"}))
        r.status_code = 422
        return r
