"""API tests for the cart and checkout flow."""
import httpx
import pytest

from app.core.config import settings
from app.core.dependencies import get_http_client
from app.main import app


GCASH_ID = "11111111-1111-1111-1111-111111111111"
PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 128
MESSENGER_UA = "Mozilla/5.0 (iPhone) Mobile/15E148 [FBAN/MessengerForiOS;FBAV/440.0]"


def _add(client, menu_item_id, **extra):
    return client.post("/api/cart/items", json={"menu_item_id": menu_item_id, **extra})


def _ready_for_order(client):
    """Cart, payment method, IGN and receipt in place."""
    assert _add(client, "steam-wallet").status_code == 200
    assert client.put("/api/checkout/payment-method", json={"payment_method_id": GCASH_ID}).status_code == 200
    assert client.put("/api/checkout/fields", json={"value": "Kirito"}).status_code == 200
    response = client.post("/api/checkout/receipt", files={"file": ("receipt.png", PNG, "image/png")})
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def direct_orders(monkeypatch):
    monkeypatch.setattr(settings, "order_option", "place_order")


class TestCartAPI:
    """Test cart endpoints."""

    def test_add_item_with_package(self, test_client):
        response = _add(test_client, "mobile-legends", variation_id="ml-172", quantity=2)

        assert response.status_code == 200
        data = response.json()
        assert data["total_price"] == 340
        assert data["total_items"] == 2
        assert data["items"][0]["id"].startswith("mobile-legends:::CART:::")
        assert test_client.get("/api/storefront").json()["view"] == "cart"

    def test_add_unknown_item(self, test_client):
        assert _add(test_client, "nope").status_code == 404

    def test_add_unknown_package(self, test_client):
        assert _add(test_client, "mobile-legends", variation_id="ml-9999").status_code == 404

    def test_add_bad_quantity(self, test_client):
        assert _add(test_client, "steam-wallet", quantity=0).status_code == 422

    def test_update_and_remove(self, test_client):
        item_id = _add(test_client, "steam-wallet").json()["items"][0]["id"]

        data = test_client.patch(f"/api/cart/items/{item_id}", json={"quantity": 3}).json()
        assert data["total_price"] == 750

        data = test_client.delete(f"/api/cart/items/{item_id}").json()
        assert data["items"] == []
        assert test_client.delete(f"/api/cart/items/{item_id}").status_code == 404

    def test_clear_cart(self, test_client):
        _add(test_client, "steam-wallet")
        assert test_client.delete("/api/cart").json()["total_items"] == 0

    def test_cart_is_per_session(self, test_client):
        _add(test_client, "steam-wallet")
        test_client.cookies.clear()

        assert test_client.get("/api/cart").json()["items"] == []


class TestCheckoutState:
    """Test checkout form endpoints."""

    def test_initial_state(self, test_client):
        _add(test_client, "steam-wallet")

        data = test_client.get("/api/checkout").json()

        assert [m["id"] for m in data["payment_methods"]] == [GCASH_ID]
        assert data["payment_method_id"] is None
        assert data["items_with_custom_fields"] == []
        assert data["is_details_valid"] is False
        assert data["has_order_in_flight"] is False
        assert data["total_price"] == 250

    def test_unknown_payment_method(self, test_client):
        response = test_client.put("/api/checkout/payment-method", json={"payment_method_id": "nope"})
        assert response.status_code == 404

    def test_state_survives_reload(self, test_client):
        _add(test_client, "mobile-legends", variation_id="ml-86")
        test_client.put("/api/checkout/payment-method", json={"payment_method_id": GCASH_ID})
        test_client.put(
            "/api/checkout/fields",
            json={"item_id": "mobile-legends", "field_index": 0, "value": "123"},
        )

        data = test_client.get("/api/checkout").json()

        assert data["payment_method_id"] == GCASH_ID
        assert data["custom_field_values"] == {"mobile-legends_0_user_id": "123"}
        assert data["is_details_valid"] is False

    def test_field_errors(self, test_client):
        _add(test_client, "mobile-legends")

        missing_index = test_client.put(
            "/api/checkout/fields", json={"item_id": "mobile-legends", "value": "1"}
        )
        unknown = test_client.put(
            "/api/checkout/fields", json={"item_id": "steam-wallet", "field_index": 0, "value": "1"}
        )

        assert missing_index.status_code == 422
        assert unknown.status_code == 404

    def test_bulk_input(self, test_client):
        _add(test_client, "mobile-legends", variation_id="ml-86")
        item_id = _add(test_client, "honkai-star-rail", variation_id="hsr-60").json()["items"][1]["id"]

        test_client.put("/api/checkout/bulk/games", json={"item_id": "mobile-legends", "selected": True})
        test_client.put("/api/checkout/bulk/games", json={"item_id": item_id, "selected": True})
        data = test_client.put("/api/checkout/bulk/values", json={"field_index": 0, "value": "800123"}).json()

        assert data["bulk_mode_available"] is True
        assert data["bulk_selected_games"] == ["mobile-legends", "honkai-star-rail"]
        assert [f["label"] for f in data["bulk_fields"]] == ["User ID", "Zone ID", "Field 3"]
        assert data["custom_field_values"]["mobile-legends_0_user_id"] == "800123"
        assert data["custom_field_values"]["honkai-star-rail_0_uid"] == "800123"

        negative = test_client.put("/api/checkout/bulk/values", json={"field_index": -1, "value": "x"})
        assert negative.status_code == 422

    def test_receipt_upload_and_remove(self, test_client):
        data = _ready_for_order(test_client)

        assert "/uploads/payment-receipts/" in data["receipt_image_url"]
        assert data["receipt_preview"].startswith("data:image/png;base64,")
        assert data["receipt_error"] is None

        data = test_client.delete("/api/checkout/receipt").json()
        assert data["receipt_image_url"] is None
        assert data["receipt_preview"] is None
        assert data["has_copied_message"] is False

    def test_receipt_rejects_non_images(self, test_client):
        response = test_client.post(
            "/api/checkout/receipt", files={"file": ("receipt.pdf", b"%PDF-1.4", "application/pdf")}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Please upload a JPEG, PNG, WebP, or GIF image"
        assert test_client.get("/api/checkout").json()["receipt_image_url"] is None


class TestPlaceOrderViaMessenger:
    """Test submission through the messaging client."""

    def test_rejected_without_payment_method(self, test_client):
        _add(test_client, "steam-wallet")

        response = test_client.post("/api/checkout/orders")

        assert response.status_code == 400
        assert response.json()["detail"] == "Please select a payment method"

    def test_requires_copied_message(self, test_client):
        _ready_for_order(test_client)

        response = test_client.post("/api/checkout/orders")

        assert response.status_code == 400
        assert response.json()["detail"] == "Please copy the order message first"

    def test_full_flow(self, test_client):
        receipt_url = _ready_for_order(test_client)["receipt_image_url"]

        copied = test_client.post("/api/checkout/message/copy").json()
        assert copied["copied"] is True
        assert "🎮 IGN: Kirito" in copied["message"]
        assert f"📸 Payment Receipt: {receipt_url}" in copied["message"]
        assert "💳 Payment: GCash" in copied["message"]

        message = test_client.get("/api/checkout/message").json()
        assert message == copied

        response = test_client.post("/api/checkout/orders")

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "order_via_messenger"
        assert data["redirect_url"].startswith("https://m.me/779999235186541?text=")
        assert data["order"] is None


class TestPlaceOrderDirect:
    """Test direct order creation."""

    def test_creates_and_tracks_order(self, test_client, direct_orders):
        _ready_for_order(test_client)

        response = test_client.post("/api/checkout/orders")

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["status"] == "pending"
        assert order["total_price"] == 250
        assert order["customer_info"] == {"Payment Method": "GCash", "IGN": "Kirito"}

        state = test_client.get("/api/checkout").json()
        assert state["order_id"] == order["id"]
        assert state["existing_order_status"] == "pending"
        assert state["has_order_in_flight"] is True

    def test_incomplete_details_rejected(self, test_client, direct_orders):
        _ready_for_order(test_client)
        test_client.put("/api/checkout/fields", json={"value": "  "})

        response = test_client.post("/api/checkout/orders")

        assert response.status_code == 400
        assert response.json()["detail"] == "Please fill in all required details"

    def test_second_order_blocked_while_pending(self, test_client, direct_orders):
        _ready_for_order(test_client)
        order_id = test_client.post("/api/checkout/orders").json()["order"]["id"]

        response = test_client.post("/api/checkout/orders")

        assert response.status_code == 400
        assert response.json()["detail"] == "You already have an order being processed"
        assert test_client.get("/api/checkout").json()["order_id"] == order_id

    def test_empty_cart_rejected(self, test_client, direct_orders):
        _ready_for_order(test_client)
        test_client.delete("/api/cart")

        response = test_client.post("/api/checkout/orders")

        assert response.status_code == 400
        assert response.json()["detail"] == "Your cart is empty"

    def test_acknowledge_clears_order_and_cart(self, test_client, direct_orders):
        _ready_for_order(test_client)
        test_client.post("/api/checkout/orders")

        state = test_client.post("/api/checkout/orders/status/acknowledge").json()

        assert state["order_id"] is None
        assert state["has_order_in_flight"] is False
        assert test_client.get("/api/cart").json()["items"] == []
        assert test_client.get("/api/storefront").json()["view"] == "menu"

    def test_close_status_keeps_pending_order(self, test_client, direct_orders):
        _ready_for_order(test_client)
        order_id = test_client.post("/api/checkout/orders").json()["order"]["id"]

        state = test_client.post("/api/checkout/orders/status/close").json()

        assert state["is_order_modal_open"] is False
        assert state["order_id"] == order_id


class TestQrCodeDownload:
    """Test QR code download endpoint."""

    @pytest.fixture
    def qr_client(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"qr-png", headers={"content-type": "image/png"})

        async def _override_client():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                yield client

        app.dependency_overrides[get_http_client] = _override_client
        yield
        app.dependency_overrides.pop(get_http_client, None)

    def test_download(self, test_client, qr_client):
        response = test_client.get("/api/checkout/qr-code", params={"payment_method_id": GCASH_ID})

        assert response.status_code == 200
        assert response.content == b"qr-png"
        assert response.headers["content-disposition"] == 'attachment; filename="qr-code-gcash.png"'

    def test_in_app_browser_redirects(self, test_client, qr_client):
        response = test_client.get(
            "/api/checkout/qr-code",
            params={"payment_method_id": GCASH_ID},
            headers={"User-Agent": MESSENGER_UA},
            follow_redirects=False,
        )

        assert response.status_code == 307
        assert response.headers["location"] == "https://cdn.example.com/qr/gcash.png"

    def test_unknown_method(self, test_client, qr_client):
        response = test_client.get("/api/checkout/qr-code", params={"payment_method_id": "nope"})
        assert response.status_code == 404
