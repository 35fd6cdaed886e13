# storefront/payment/routes.py
from urllib.parse import urlencode
from flask import current_app, redirect, render_template_string, request

from . import bp
from ..errors import StorefrontError
from ..services.payment_service import get_pending_payment, handle_callback
from ..utils.api import err

_REDIRECT_PAGE = """<!DOCTYPE html>
<html>
  <head><title>Redirecting to PayU...</title></head>
  <body>
    <h2>Processing Payment</h2>
    <p>Please wait while we redirect you to PayU secure payment gateway...</p>
    <form id="payuForm" method="post" action="{{ action }}">
      {% for name, value in params.items() %}
      <input type="hidden" name="{{ name }}" value="{{ value }}" />
      {% endfor %}
    </form>
    <script>setTimeout(function () { document.getElementById('payuForm').submit(); }, 2000);</script>
  </body>
</html>
"""


@bp.get("/<txnid>/redirect")
def redirect_to_gateway(txnid: str):
    try:
        payment = get_pending_payment(txnid)
    except StorefrontError as e:
        return err(str(e), e.status)
    if payment.status != "pending":
        return err("payment already processed", 409)
    return render_template_string(
        _REDIRECT_PAGE,
        action=current_app.config["PAYU_URL"],
        params=payment.payment_data or {},
    )


@bp.route("/payu/callback", methods=["GET", "POST"])
def payu_callback():
    data = request.form.to_dict() if request.method == "POST" else request.args.to_dict()
    current_app.logger.info("PayU callback for txn %s status=%s", data.get("txnid"), data.get("status"))
    try:
        outcome = handle_callback(data)
    except StorefrontError as e:
        base = (current_app.config.get("SITE_URL") or "").rstrip("/")
        return redirect(f"{base}/payment-failure?{urlencode({'error': str(e)})}", code=302)
    return redirect(outcome.redirect_url, code=302)
