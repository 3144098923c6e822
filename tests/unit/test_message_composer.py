"""Unit tests for the order message composer."""
from urllib.parse import unquote

import pytest

from app.services.checkout.composer import OrderMessageComposer, format_amount, join_labels
from app.services.menu.base import CustomField, Variation


@pytest.fixture
def composer():
    return OrderMessageComposer(
        shop_name="Reina Shop",
        currency_symbol="₱",
        messenger_recipient_id="779999235186541",
    )


@pytest.fixture
def ml_fields():
    return [
        CustomField(key="user_id", label="User ID", required=True),
        CustomField(key="zone_id", label="Zone ID", required=True),
    ]


class TestCustomFieldsSection:
    """Test grouping of collected details."""

    def test_items_with_identical_answers_share_one_block(self, composer, make_cart_item, ign_field):
        """Two items with the same IGN are listed together once."""
        items = [
            make_cart_item("game-a", "A", [ign_field]),
            make_cart_item("game-b", "B", [ign_field]),
        ]
        values = {"game-a_0_ign": "X", "game-b_0_ign": "X"}

        section = composer.custom_fields_section(items, values)

        assert section == "A\nB\nIGN: X"
        assert section.count("IGN: X") == 1

    def test_items_with_different_answers_get_separate_blocks(self, composer, make_cart_item, ign_field):
        items = [
            make_cart_item("game-a", "A", [ign_field]),
            make_cart_item("game-b", "B", [ign_field]),
        ]
        values = {"game-a_0_ign": "X", "game-b_0_ign": "Y"}

        assert composer.custom_fields_section(items, values) == "A\nIGN: X\nB\nIGN: Y"

    def test_same_value_across_fields_is_combined(self, composer, make_cart_item):
        fields = [
            CustomField(key="uid", label="UID"),
            CustomField(key="server", label="Server"),
            CustomField(key="nick", label="Nickname"),
        ]
        item = make_cart_item("hsr", "Honkai Star Rail", fields)
        values = {"hsr_0_uid": "800", "hsr_1_server": "800", "hsr_2_nick": "800"}

        section = composer.custom_fields_section([item], values)

        assert section == "Honkai Star Rail\nUID, Server & Nickname: 800"

    def test_different_values_listed_one_per_line(self, composer, make_cart_item, ml_fields):
        item = make_cart_item("ml", "Mobile Legends", ml_fields)
        values = {"ml_0_user_id": "123", "ml_1_zone_id": "4567"}

        section = composer.custom_fields_section([item], values)

        assert section == "Mobile Legends\nUser ID: 123\nZone ID: 4567"

    def test_single_field_is_not_combined(self, composer, make_cart_item, ign_field):
        item = make_cart_item("game-a", "A", [ign_field])
        assert composer.custom_fields_section([item], {"game-a_0_ign": "Z"}) == "A\nIGN: Z"

    def test_items_without_values_are_omitted(self, composer, make_cart_item, ign_field, ml_fields):
        items = [
            make_cart_item("game-a", "A", [ign_field]),
            make_cart_item("ml", "Mobile Legends", ml_fields),
        ]
        values = {"game-a_0_ign": "X", "ml_0_user_id": ""}

        assert composer.custom_fields_section(items, values) == "A\nIGN: X"

    def test_partially_filled_item_lists_only_filled_fields(self, composer, make_cart_item, ml_fields):
        item = make_cart_item("ml", "Mobile Legends", ml_fields)
        section = composer.custom_fields_section([item], {"ml_1_zone_id": "4567"})
        assert section == "Mobile Legends\nZone ID: 4567"

    def test_cart_instances_of_same_game_counted_once(self, composer, make_cart_item, ign_field):
        items = [
            make_cart_item("game-a", "A", [ign_field], instance="1-a"),
            make_cart_item("game-a", "A", [ign_field], instance="2-b"),
        ]
        assert composer.custom_fields_section(items, {"game-a_0_ign": "X"}) == "A\nIGN: X"

    def test_fallback_ign_line_without_custom_fields(self, composer, make_cart_item):
        items = [make_cart_item("steam", "Steam Wallet Code")]
        assert composer.custom_fields_section(items, {"default_ign": "Reina"}) == "🎮 IGN: Reina"

    def test_fallback_ign_line_when_blank(self, composer, make_cart_item):
        items = [make_cart_item("steam", "Steam Wallet Code")]
        assert composer.custom_fields_section(items, {}) == "🎮 IGN: "


class TestCompose:
    """Test the full order message."""

    def test_full_message_layout(self, composer, make_cart_item, ml_fields, gcash):
        item = make_cart_item(
            "ml",
            "Mobile Legends",
            ml_fields,
            price=85,
            quantity=2,
            variation=Variation(id="ml-86", name="86 Diamonds", price=85),
        )
        values = {"ml_0_user_id": "123", "ml_1_zone_id": "4567"}

        message = composer.compose([item], values, 170, gcash, "https://r.example.com/1.png")

        assert message == (
            "🛒 Reina Shop ORDER\n"
            "\n"
            "Mobile Legends\n"
            "User ID: 123\n"
            "Zone ID: 4567\n"
            "\n"
            "📋 ORDER DETAILS:\n"
            "• Mobile Legends (86 Diamonds) x2 - ₱170\n"
            "\n"
            "💰 TOTAL: ₱170\n"
            "\n"
            "💳 Payment: GCash\n"
            "\n"
            "📸 Payment Receipt: https://r.example.com/1.png\n"
            "\n"
            "Please confirm this order to proceed. Thank you for choosing Reina Shop! 🎮"
        )

    def test_message_without_fields_contains_ign_line(self, composer, make_cart_item):
        items = [make_cart_item("steam", "Steam Wallet Code", price=250)]

        message = composer.compose(items, {"default_ign": "Kirito"}, 250, None, None)

        assert "🎮 IGN: Kirito" in message
        assert "• Steam Wallet Code x1 - ₱250" in message
        assert "💳 Payment: \n" in message
        assert "📸 Payment Receipt: \n" in message

    def test_message_is_trimmed(self, composer, make_cart_item):
        message = composer.compose([make_cart_item("steam", "Steam")], {}, 100, None, None)
        assert message == message.strip()
        assert message.startswith("🛒 Reina Shop ORDER")
        assert message.endswith("🎮")

    def test_one_line_per_cart_item(self, composer, make_cart_item):
        items = [
            make_cart_item("steam", "Steam", price=100, quantity=1, instance="1-a"),
            make_cart_item("steam", "Steam", price=100, quantity=3, instance="2-b"),
        ]
        message = composer.compose(items, {}, 400, None, None)
        assert "• Steam x1 - ₱100\n• Steam x3 - ₱300" in message


class TestAmountsAndLabels:
    """Test number and label formatting helpers."""

    @pytest.mark.parametrize(
        "value,expected",
        [(170, "170"), (170.0, "170"), (49.5, "49.5"), (0, "0"), (99.99, "99.99")],
    )
    def test_format_amount(self, value, expected):
        assert format_amount(value) == expected

    def test_join_labels(self):
        assert join_labels(["A"]) == "A"
        assert join_labels(["A", "B"]) == "A & B"
        assert join_labels(["A", "B", "C"]) == "A, B & C"


class TestOrderPayload:
    """Test the structured order payload."""

    def test_customer_info_with_custom_fields(self, composer, make_cart_item, ml_fields, gcash):
        item = make_cart_item("ml", "Mobile Legends", ml_fields)
        values = {"ml_0_user_id": "123", "ml_1_zone_id": ""}

        info = composer.build_customer_info([item], values, gcash)

        assert info == {"Payment Method": "GCash", "User ID": "123"}

    def test_customer_info_with_fallback_ign(self, composer, make_cart_item, gcash):
        items = [make_cart_item("steam", "Steam")]
        assert composer.build_customer_info(items, {"default_ign": "Kirito"}, gcash) == {
            "Payment Method": "GCash",
            "IGN": "Kirito",
        }

    def test_customer_info_skips_blank_fallback(self, composer, make_cart_item, gcash):
        items = [make_cart_item("steam", "Steam")]
        assert composer.build_customer_info(items, {"default_ign": ""}, gcash) == {
            "Payment Method": "GCash",
        }

    def test_build_order_payload(self, composer, make_cart_item, gcash):
        items = [make_cart_item("steam", "Steam", price=250)]

        payload = composer.build_order_payload(
            items, {"default_ign": "Kirito"}, 250, gcash, "https://r.example.com/1.png"
        )

        assert payload.order_items == items
        assert payload.payment_method_id == gcash.id
        assert payload.receipt_url == "https://r.example.com/1.png"
        assert payload.total_price == 250
        assert payload.customer_info["IGN"] == "Kirito"


class TestMessengerLink:
    """Test the messaging deep link."""

    def test_link_encodes_message(self, composer):
        message = "🛒 Reina Shop ORDER\n\nA & B: x?y=1"

        link = composer.messenger_link(message)

        prefix = "https://m.me/779999235186541?text="
        assert link.startswith(prefix)
        encoded = link[len(prefix):]
        assert " " not in encoded
        assert "\n" not in encoded
        assert "&" not in encoded
        assert unquote(encoded) == message

    def test_link_keeps_unreserved_characters(self, composer):
        link = composer.messenger_link("it's (ok)!")
        assert link.endswith("?text=it's%20(ok)!")
