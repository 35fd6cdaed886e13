# storefront/services/shipping.py
from flask import current_app, has_app_context

from ..utils.money import D, ZERO, Money

DEFAULT_FREE_THRESHOLD = D("500")
DEFAULT_FLAT_FEE = D("50")

def shipping_policy() -> tuple[Money, Money]:
    """(free_threshold, flat_fee) from app config, falling back to the defaults."""
    if not has_app_context():
        return DEFAULT_FREE_THRESHOLD, DEFAULT_FLAT_FEE
    cfg = current_app.config
    return (
        D(cfg.get("SHIPPING_FREE_THRESHOLD", DEFAULT_FREE_THRESHOLD)),
        D(cfg.get("SHIPPING_FLAT_FEE", DEFAULT_FLAT_FEE)),
    )

def compute_shipping(subtotal, free_threshold=None, flat_fee=None) -> Money:
    """Free strictly above the threshold, flat fee otherwise."""
    if free_threshold is None or flat_fee is None:
        cfg_threshold, cfg_fee = shipping_policy()
        free_threshold = cfg_threshold if free_threshold is None else free_threshold
        flat_fee = cfg_fee if flat_fee is None else flat_fee
    return ZERO if D(subtotal) > D(free_threshold) else D(flat_fee)
