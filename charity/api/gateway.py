"""
Fake payment gateway

``/fake/pay`` renders the checkout stub, ``/fake/confirm`` is the callback
the stub posts the outcome to. The gateway reference is the only credential.
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession
import html
import json
import structlog

from charity.database.database import get_db
from charity.schemas.donation import ConfirmPaymentRequest, ConfirmPaymentResponse
from charity.services.gateway import GatewayBridge

router = APIRouter(prefix="/fake", tags=["gateway"])
logger = structlog.get_logger(__name__)

CHECKOUT_PAGE = """<!doctype html>
<html>
  <head><title>Fake Payment Gateway</title></head>
  <body>
    <h2>Fake Payment Gateway</h2>
    <p>Reference: {ref_html}</p>
    <button onclick="send('success')">Success</button>
    <button onclick="send('failed')">Fail</button>
    <script>
      function send(status) {{
        fetch('/fake/confirm', {{
          method: 'POST',
          headers: {{'Content-Type': 'application/json'}},
          body: JSON.stringify({{ref: {ref_js}, status: status}})
        }}).then(function () {{ alert(status); }});
      }}
    </script>
  </body>
</html>
"""


@router.get("/pay", response_class=HTMLResponse)
async def checkout_page(ref: str = Query(..., min_length=1)):
    """Checkout stub with success/fail buttons"""
    return CHECKOUT_PAGE.format(
        ref_html=html.escape(ref),
        # json.dumps alone would let "</script>" through
        ref_js=json.dumps(ref).replace("<", "\\u003c"),
    )


@router.post("/confirm", response_model=ConfirmPaymentResponse)
async def confirm_payment(
    confirmation: ConfirmPaymentRequest,
    db: AsyncSession = Depends(get_db)
):
    """Gateway callback: record the outcome and move the donation to it"""
    logger.info("Gateway confirmation received", status=confirmation.status)

    await GatewayBridge(db).confirm(
        confirmation.ref,
        confirmation.status,
        payload={"ref": confirmation.ref, "status": confirmation.status},
    )
    return ConfirmPaymentResponse(ok=True)
