"""Constants for the checkout flow and durable client storage."""

# Cart item ids look like "<menu item id>:::CART:::<timestamp>-<random>"
CART_INSTANCE_SEPARATOR = ":::CART:::"

# Field value map key for the fallback in-game name field
DEFAULT_IGN_KEY = "default_ign"
DEFAULT_IGN_LABEL = "IGN"

PAYMENT_METHOD_LABEL = "Payment Method"

RECEIPT_FOLDER = "payment-receipts"
ALLOWED_RECEIPT_TYPES = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
)

MESSENGER_LINK_TEMPLATE = "https://m.me/{recipient}?text={text}"

# User agent markers of the Messenger / Facebook in-app browser
IN_APP_BROWSER_MARKERS = ("FBAN", "FBAV", "FB_IAB")

ORDER_VIA_MESSENGER = "order_via_messenger"
PLACE_ORDER = "place_order"

# Error strings shown next to the receipt upload
ERROR_SELECT_PAYMENT_METHOD = "Please select a payment method"
ERROR_UPLOAD_RECEIPT = "Please upload your payment receipt before placing the order"
ERROR_INCOMPLETE_DETAILS = "Please fill in all required details"
ERROR_COPY_MESSAGE_FIRST = "Please copy the order message first"
ERROR_UPLOAD_FAILED = "Failed to upload receipt"
ERROR_PLACE_ORDER_FAILED = "Failed to place order. Please try again."
ERROR_EMPTY_CART = "Your cart is empty"
ERROR_ORDER_IN_FLIGHT = "You already have an order being processed"


class CheckoutStorageKeys:
    """Durable storage keys for checkout session state."""

    PAYMENT_METHOD_ID = "reina_checkout_paymentMethodUuid"
    CUSTOM_FIELD_VALUES = "reina_checkout_customFieldValues"
    RECEIPT_IMAGE_URL = "reina_checkout_receiptImageUrl"
    RECEIPT_PREVIEW = "reina_checkout_receiptPreview"
    BULK_INPUT_VALUES = "reina_checkout_bulkInputValues"
    BULK_SELECTED_GAMES = "reina_checkout_bulkSelectedGames"
    MESSAGE_COPIED = "reina_checkout_hasCopiedMessage"
    CURRENT_ORDER_ID = "current_order_id"


class StorefrontStorageKeys:
    """Durable storage keys for storefront navigation and cart."""

    VIEW = "reina_customer_view"
    CATEGORY = "reina_customer_category"
    SEARCH = "reina_customer_search"
    CART = "reina_cart"
