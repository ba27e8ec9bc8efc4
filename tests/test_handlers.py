import pytest

from quickbite.handlers import create_web_app
from quickbite.utils.security import sign_gateway_payment

from tests.conftest import ADMIN_ID, USER_ID
from tests.fakes import GATEWAY_SECRET, make_cart

USER = {"X-User-Id": str(USER_ID)}
ADMIN = {"X-User-Id": str(ADMIN_ID)}


def _cart(payment_method="cash", **overrides):
    return make_cart(payment_method, **overrides).model_dump(mode="json", by_alias=True)


@pytest.fixture
async def client(aiohttp_client, stack):
    app = create_web_app(
        stack.order_service,
        stack.wallet_service,
        stack.settings_service,
        admin_ids=[ADMIN_ID],
    )
    return await aiohttp_client(app)


async def test_health(client):
    response = await client.get("/health")
    assert response.status == 200
    assert await response.json() == {"success": True, "message": "OK", "data": {"status": "ok"}}


async def test_place_cash_order(client):
    response = await client.post("/api/orders", json=_cart(), headers=USER)
    body = await response.json()

    assert response.status == 201
    assert body["success"] is True
    assert body["data"]["order"]["status"] == "confirmed"
    assert body["data"]["order"]["total"] == 340


async def test_place_gateway_order(client):
    response = await client.post("/api/orders", json=_cart("razorpay"), headers=USER)
    body = await response.json()

    assert response.status == 201
    assert body["message"] == "Order created, awaiting payment"
    assert body["data"]["razorpay"]["amount"] == 34000


async def test_identity_required(client):
    response = await client.post("/api/orders", json=_cart())
    body = await response.json()

    assert response.status == 401
    assert body["success"] is False


async def test_zone_mismatch_is_forbidden(client):
    response = await client.post("/api/orders", json=_cart(zoneId=99), headers=USER)
    body = await response.json()

    assert response.status == 403
    assert body["success"] is False
    assert "zone" in body["message"]


async def test_unknown_restaurant_is_not_found(client):
    response = await client.post("/api/orders", json=_cart(restaurantId="nowhere"), headers=USER)
    assert response.status == 404


async def test_malformed_body(client):
    response = await client.post(
        "/api/orders", data="{not json", headers={**USER, "Content-Type": "application/json"}
    )
    body = await response.json()

    assert response.status == 400
    assert body == {"success": False, "message": "Request body must be valid JSON", "data": None}


async def test_wallet_shortfall_reports_amounts(client, stack):
    stack.wallets.balances[USER_ID] = 100
    response = await client.post("/api/orders", json=_cart("wallet"), headers=USER)
    body = await response.json()

    assert response.status == 400
    assert body["data"] == {"required": 340, "available": 100, "shortfall": 240}


async def test_calculate_pricing(client):
    response = await client.post("/api/orders/calculate", json=_cart(couponCode="SAVE50"), headers=USER)
    body = await response.json()

    assert response.status == 200
    pricing = body["data"]["pricing"]
    assert pricing["total"] == "288"
    assert pricing["appliedCoupon"]["code"] == "SAVE50"


async def test_verify_payment_flow(client):
    created = await (await client.post("/api/orders", json=_cart("razorpay"), headers=USER)).json()
    reference = created["data"]["order"]["orderId"]

    bad = await client.post(f"/api/orders/{reference}/verify-payment", headers=USER, json={
        "razorpayOrderId": "order_1", "razorpayPaymentId": "pay_1", "razorpaySignature": "nope",
    })
    bad_body = await bad.json()
    assert bad.status == 400
    assert bad_body["data"]["paymentStatus"] == "failed"
    assert bad_body["data"]["status"] == "pending"

    good = await client.post(f"/api/orders/{reference}/verify-payment", headers=USER, json={
        "razorpayOrderId": "order_1",
        "razorpayPaymentId": "pay_2",
        "razorpaySignature": sign_gateway_payment("order_1", "pay_2", GATEWAY_SECRET),
    })
    good_body = await good.json()
    assert good.status == 200
    assert good_body["data"]["order"]["status"] == "confirmed"


async def test_order_details_and_cancel(client):
    created = await (await client.post("/api/orders", json=_cart(), headers=USER)).json()
    order_id = created["data"]["order"]["id"]

    details = await client.get(f"/api/orders/{order_id}", headers=USER)
    assert details.status == 200
    assert (await details.json())["data"]["order"]["restaurantName"] == "Spice Route"

    stranger = await client.get(f"/api/orders/{order_id}", headers={"X-User-Id": "999"})
    assert stranger.status == 404

    cancelled = await client.patch(f"/api/orders/{order_id}/cancel", headers=USER, json={"reason": "Oops"})
    assert cancelled.status == 200
    assert (await cancelled.json())["data"]["order"]["status"] == "cancelled"


async def test_order_history(client):
    await client.post("/api/orders", json=_cart(), headers=USER)
    response = await client.get("/api/orders?page=1&limit=5", headers=USER)
    body = await response.json()

    assert response.status == 200
    assert body["data"]["pagination"]["total"] == 1

    bad_page = await client.get("/api/orders?page=first", headers=USER)
    assert bad_page.status == 400


async def test_status_update_is_admin_only(client):
    created = await (await client.post("/api/orders", json=_cart(), headers=USER)).json()
    order_id = created["data"]["order"]["id"]

    denied = await client.patch(f"/api/orders/{order_id}/status", headers=USER, json={"status": "preparing"})
    assert denied.status == 403

    allowed = await client.patch(f"/api/orders/{order_id}/status", headers=ADMIN, json={"status": "preparing"})
    assert allowed.status == 200
    assert (await allowed.json())["data"]["order"]["status"] == "preparing"


async def test_wallet_endpoints(client):
    wallet = await (await client.get("/api/wallet", headers=USER)).json()
    assert wallet["data"]["wallet"]["balance"] == "1000"

    denied = await client.post(f"/api/admin/wallet/{USER_ID}/credit", headers=USER, json={"amount": 50})
    assert denied.status == 403

    credited = await client.post(
        f"/api/admin/wallet/{USER_ID}/credit", headers=ADMIN, json={"amount": 50, "reason": "Goodwill"}
    )
    assert credited.status == 201
    assert (await credited.json())["data"]["transaction"]["balanceAfter"] == "1050"

    invalid = await client.post(f"/api/admin/wallet/{USER_ID}/credit", headers=ADMIN, json={"amount": "lots"})
    assert invalid.status == 400


async def test_fee_settings_endpoints(client):
    public = await client.get("/api/fee-settings")
    assert public.status == 200
    assert (await public.json())["data"]["platformFee"] == 5

    overlapping = await client.post("/api/admin/fee-settings", headers=ADMIN, json={
        "deliveryFee": 30, "platformFee": 5, "gstRate": 5,
        "distanceConfig": {"slabs": [
            {"minKm": 0, "maxKm": 6, "fee": 20},
            {"minKm": 5, "maxKm": 10, "fee": 30},
        ]},
    })
    assert overlapping.status == 400

    created = await client.post("/api/admin/fee-settings", headers=ADMIN, json={
        "deliveryFee": 30, "platformFee": 7, "gstRate": 5,
    })
    assert created.status == 201
    settings_id = (await created.json())["data"]["settings"]["id"]

    updated = await client.patch(f"/api/admin/fee-settings/{settings_id}", headers=ADMIN, json={"gstRate": 12})
    assert updated.status == 200
    assert (await updated.json())["data"]["settings"]["gstRate"] == "12"

    history = await (await client.get("/api/admin/fee-settings/history", headers=ADMIN)).json()
    assert [record["id"] for record in history["data"]["history"]] == [settings_id, 1]

    denied = await client.get("/api/admin/fee-settings", headers=USER)
    assert denied.status == 403


async def test_unknown_route_uses_envelope(client):
    response = await client.get("/api/nothing-here")
    body = await response.json()

    assert response.status == 404
    assert body["success"] is False


async def test_unexpected_error_is_500(client, stack, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(stack.order_service, "get_order", broken)
    response = await client.get("/api/orders/1", headers=USER)
    body = await response.json()

    assert response.status == 500
    assert body == {"success": False, "message": "Internal server error", "data": None}
