"""Tests for the FastAPI surface."""

from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends

from storefront.application.verify_payment import VerifyPaymentUseCase
from storefront.database import get_session_factory
from storefront.domain.models import UserRole, PaymentStatus
from storefront.domain.signature import compute_signature
from storefront.main import create_app
from storefront.presentation.api import get_verify_payment_use_case
from storefront.presentation.dependencies import get_api_token, get_payment_gateway, get_uow

API_TOKEN = "test-token"

ADDRESS = {
    "fullname": "Asha Rao",
    "phone": "9876543210",
    "street": "12 MG Road",
    "city": "Pune",
    "state": "Maharashtra",
    "pincode": "411001",
}


@pytest_asyncio.fixture
async def api(session_factory, gateway, key_secret):
    app = create_app(with_lifespan=False)

    def verify_use_case(uow=Depends(get_uow)):
        return VerifyPaymentUseCase(uow, key_secret)

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_api_token] = lambda: API_TOKEN
    app.dependency_overrides[get_verify_payment_use_case] = verify_use_case

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def _headers(user_id=None):
    headers = {"X-API-Key": API_TOKEN}
    if user_id:
        headers["X-User-Id"] = user_id
    return headers


class TestAccess:
    @pytest.mark.asyncio
    async def test_health_is_open(self, api):
        response = await api.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_api_key_required(self, api):
        response = await api.get("/api/products")
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_wrong_api_key(self, api):
        response = await api.get("/api/products", headers={"X-API-Key": "nope"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cart_needs_known_user(self, api):
        assert (await api.get("/api/cart", headers=_headers())).status_code == 401
        assert (await api.get("/api/cart", headers=_headers("ghost"))).status_code == 401

    @pytest.mark.asyncio
    async def test_admin_routes_need_admin(self, api, make_user):
        user = await make_user()
        response = await api.get("/api/admin/dashboard", headers=_headers(user.id))
        assert response.status_code == 403


class TestCatalogApi:
    @pytest.mark.asyncio
    async def test_list_and_detail(self, api, make_product):
        p = await make_product(name="Physics Notes", price=Decimal("100"), discount_price=Decimal("80"))

        listing = await api.get("/api/products", headers=_headers())
        detail = await api.get(f"/api/products/{p.id}", headers=_headers())

        assert listing.status_code == 200
        body = listing.json()
        assert body["total"] == 1
        assert Decimal(body["products"][0]["effective_price"]) == Decimal("80")
        assert body["products"][0]["discount_percent"] == 20
        assert detail.status_code == 200
        assert detail.json()["product"]["name"] == "Physics Notes"

    @pytest.mark.asyncio
    async def test_missing_product_is_404(self, api):
        response = await api.get("/api/products/nope", headers=_headers())
        assert response.status_code == 404
        assert response.json()["reason"] == "not_found"
        assert response.json()["success"] is False


class TestRegistrationApi:
    @pytest.mark.asyncio
    async def test_register_then_duplicate(self, api):
        payload = {"fullname": "Asha Rao", "email": "asha@example.com", "phone": "9876543210"}

        created = await api.post("/api/users", json=payload, headers=_headers())
        duplicate = await api.post("/api/users", json=payload, headers=_headers())

        assert created.status_code == 201
        assert created.json()["role"] == "user"
        assert duplicate.status_code == 409
        assert duplicate.json()["reason"] == "email_already_registered"

    @pytest.mark.asyncio
    async def test_view_and_edit_own_profile(self, api, make_user):
        user = await make_user()
        other = await make_user()
        headers = _headers(user.id)

        profile = await api.get("/api/users/me", headers=headers)
        assert profile.status_code == 200
        assert profile.json()["email"] == user.email

        updated = await api.patch("/api/users/me", json={
            "phone": "9000000000",
            "address": {"street": "7 FC Road", "city": "Pune", "state": "Maharashtra", "pincode": "411004"},
        }, headers=headers)
        assert updated.status_code == 200
        assert updated.json()["phone"] == "9000000000"
        assert updated.json()["address"]["city"] == "Pune"
        assert updated.json()["fullname"] == user.fullname

        clash = await api.patch("/api/users/me", json={"email": other.email}, headers=headers)
        assert clash.status_code == 409

        assert (await api.get("/api/users/me", headers=_headers())).status_code == 401


class TestCheckoutFlow:
    @pytest.mark.asyncio
    async def test_full_purchase(self, api, uow, make_user, make_product, key_secret):
        user = await make_user()
        a = await make_product(price=Decimal("100"), stock=10)
        b = await make_product(price=Decimal("100"), discount_price=Decimal("80"), stock=5)
        headers = _headers(user.id)

        assert (await api.post("/api/cart/items", json={"product_id": a.id, "quantity": 1},
                               headers=headers)).status_code == 204
        assert (await api.post("/api/cart/items", json={"product_id": a.id, "quantity": 1},
                               headers=headers)).status_code == 204
        assert (await api.post("/api/cart/items", json={"product_id": b.id},
                               headers=headers)).status_code == 204

        cart = (await api.get("/api/cart", headers=headers)).json()
        assert [line["quantity"] for line in cart["lines"]] == [2, 1]
        assert Decimal(cart["total"]) == Decimal("280")

        created = await api.post("/api/checkout/create-order", json=ADDRESS, headers=headers)
        assert created.status_code == 201
        handle = created.json()
        assert handle["amount"] == 28000
        assert handle["currency"] == "INR"

        payment = {
            "order_id": handle["order_id"],
            "razorpay_order_id": handle["gateway_order_id"],
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": compute_signature(key_secret, handle["gateway_order_id"], "pay_1"),
        }
        verified = await api.post("/api/checkout/verify-payment", json=payment, headers=headers)
        assert verified.status_code == 200
        assert verified.json() == {"success": True, "reason": "paid", "order_id": handle["order_id"]}

        repeat = await api.post("/api/checkout/verify-payment", json=payment, headers=headers)
        assert repeat.status_code == 200
        assert repeat.json()["reason"] == "already_finalized"

        order = (await api.get(f"/api/orders/{handle['order_id']}", headers=headers)).json()
        assert order["payment_status"] == "Paid"
        assert order["status"] == "Confirmed"
        assert "gateway_signature" not in order

        assert (await api.get("/api/cart", headers=headers)).json()["lines"] == []
        async with uow() as tx:
            assert (await tx.products.get_by_id(a.id)).stock == 8
            assert (await tx.products.get_by_id(b.id)).stock == 4

    @pytest.mark.asyncio
    async def test_bad_signature(self, api, uow, make_user, make_product, add_to_cart):
        user = await make_user()
        p = await make_product()
        await add_to_cart(user.id, p.id, 1)
        headers = _headers(user.id)
        handle = (await api.post("/api/checkout/create-order", json=ADDRESS, headers=headers)).json()

        response = await api.post("/api/checkout/verify-payment", json={
            "order_id": handle["order_id"],
            "razorpay_order_id": handle["gateway_order_id"],
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": "forged",
        }, headers=headers)

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["reason"] == "signature_mismatch"
        async with uow() as tx:
            order = await tx.orders.get_by_id(handle["order_id"])
        assert order.payment_status == PaymentStatus.FAILED

    @pytest.mark.asyncio
    async def test_empty_cart(self, api, make_user):
        user = await make_user()

        response = await api.post("/api/checkout/create-order", json=ADDRESS, headers=_headers(user.id))

        assert response.status_code == 400
        assert response.json()["reason"] == "empty_cart"

    @pytest.mark.asyncio
    async def test_gateway_failure_is_generic(self, api, gateway, make_user, make_product, add_to_cart):
        user = await make_user()
        p = await make_product()
        await add_to_cart(user.id, p.id, 1)
        gateway.fail = True

        response = await api.post("/api/checkout/create-order", json=ADDRESS, headers=_headers(user.id))

        assert response.status_code == 502
        assert response.json() == {
            "success": False,
            "reason": "payment_gateway_error",
            "detail": "Failed to create order"
        }

    @pytest.mark.asyncio
    async def test_out_of_stock(self, api, make_user, make_product):
        user = await make_user()
        p = await make_product(stock=0)

        response = await api.post("/api/cart/items", json={"product_id": p.id}, headers=_headers(user.id))

        assert response.status_code == 409
        assert response.json()["reason"] == "out_of_stock"

    @pytest.mark.asyncio
    async def test_other_users_order_is_404(self, api, make_user, make_product, add_to_cart):
        owner = await make_user()
        other = await make_user()
        p = await make_product()
        await add_to_cart(owner.id, p.id, 1)
        handle = (await api.post("/api/checkout/create-order", json=ADDRESS,
                                 headers=_headers(owner.id))).json()

        response = await api.get(f"/api/orders/{handle['order_id']}", headers=_headers(other.id))

        assert response.status_code == 404
        assert (await api.get("/api/orders", headers=_headers(other.id))).json() == []


class TestAdminApi:
    @pytest.mark.asyncio
    async def test_product_and_order_management(self, api, make_user, add_to_cart):
        admin = await make_user(role=UserRole.ADMIN)
        customer = await make_user()
        admin_headers = _headers(admin.id)

        created = await api.post("/api/admin/products", json={
            "name": "NEET Combo",
            "description": "Books and tests",
            "price": "2500",
            "category": "Combo Packs",
            "stock": 3,
        }, headers=admin_headers)
        assert created.status_code == 201
        product_id = created.json()["id"]

        edited = await api.patch(f"/api/admin/products/{product_id}", json={"price": "2000", "stock": 5},
                                 headers=admin_headers)
        assert edited.status_code == 200
        assert Decimal(edited.json()["price"]) == Decimal("2000")
        assert edited.json()["stock"] == 5
        assert edited.json()["name"] == "NEET Combo"
        assert (await api.patch("/api/admin/products/nope", json={"stock": 1},
                                headers=admin_headers)).status_code == 404
        assert (await api.patch(f"/api/admin/products/{product_id}", json={"stock": 1},
                                headers=_headers(customer.id))).status_code == 403

        await add_to_cart(customer.id, product_id, 1)
        handle = (await api.post("/api/checkout/create-order", json=ADDRESS,
                                 headers=_headers(customer.id))).json()

        updated = await api.patch(f"/api/admin/orders/{handle['order_id']}/status",
                                  json={"status": "Shipped"}, headers=admin_headers)
        assert updated.status_code == 200
        assert updated.json()["status"] == "Shipped"

        bad_status = await api.patch(f"/api/admin/orders/{handle['order_id']}/status",
                                     json={"status": "Lost"}, headers=admin_headers)
        assert bad_status.status_code == 422

        dashboard = (await api.get("/api/admin/dashboard", headers=admin_headers)).json()
        assert dashboard["total_orders"] == 1
        assert dashboard["total_users"] == 2
        assert Decimal(dashboard["total_revenue"]) == Decimal("0")

        toggled = await api.post(f"/api/admin/products/{product_id}/toggle", headers=admin_headers)
        assert toggled.json()["is_active"] is False
        assert (await api.get(f"/api/products/{product_id}", headers=_headers())).status_code == 404

        assert (await api.delete(f"/api/admin/products/{product_id}",
                                 headers=admin_headers)).status_code == 204
        assert (await api.get("/api/admin/products", headers=admin_headers)).json() == []
