"""
Machine-readable statuses and human-readable messages returned by the API.

Every response body produced by the tracker is ``{"status": ..., "message": ...}``
built from one of these pairs.
"""

from typing import Dict


def _message(status: str, message: str) -> Dict[str, str]:
    return {"status": status, "message": message}


UNHANDLED_ERROR = _message("unhandled_error", "Unexpected error. The report has been sent to developers.")

# Crawler authentication
MISSING_AUTHORIZATION_HEADER = _message("missing_authorization_header", "Authorization is required to access this section.")
MISSING_BEARER_KEY = _message("missing_bearer_key", "Bearer is missing in the Authorization header.")
MISSING_TOKEN = _message("missing_token", "Token is missing.")
INVALID_TOKEN_UUID = _message("invalid_token_uuid", "Token must be a UUID.")
CRAWLER_DOES_NOT_EXIST = _message("crawler_does_not_exist", "Crawler does not exist.")

# Crawl report fields
MISSING_STATUS = _message("missing_status", "Field status is required.")
INVALID_PRODUCT_STATUS = _message("invalid_product_status", "Product status is not supported.")
MISSING_IN_STOCK = _message("missing_in_stock", "Field in_stock is required.")
IN_STOCK_MUST_BE_BOOLEAN = _message("in_stock_must_be_boolean", "Field in_stock must be a boolean.")
MISSING_TITLE = _message("missing_title", "Field title is required.")
MISSING_REQUESTED_BY = _message("missing_requested_by", "Field requested_by is required.")
MISSING_URL_HASH = _message("missing_url_hash", "Field url_hash is required.")
MISSING_SHOP = _message("missing_shop", "Field shop is required.")
MISSING_URL = _message("missing_url", "Field url is required.")
UNKNOWN_FIELD = _message("unknown_field", "Report contains a field which is not allowed for its status.")
MISSING_PRICES = _message("missing_prices", "Product in stock must have at least one price.")
ORIGINAL_PRICE_MUST_BE_A_NUMBER = _message("original_price_must_be_a_number", "Original price must be a number.")
ORIGINAL_PRICE_MUST_BE_POSITIVE = _message("original_price_must_be_positive", "Original price must be positive.")
DISCOUNT_PRICE_MUST_BE_A_NUMBER = _message("discount_price_must_be_a_number", "Discount price must be a number.")
DISCOUNT_PRICE_MUST_BE_POSITIVE = _message("discount_price_must_be_positive", "Discount price must be positive.")
ORIGINAL_PRICE_IS_TOO_LARGE = _message("original_price_is_too_large", "Original price must not exceed 9999999999.99.")
DISCOUNT_PRICE_IS_TOO_LARGE = _message("discount_price_is_too_large", "Discount price must not exceed 9999999999.99.")

# URLs
INVALID_URL = _message("invalid_url", "URL is not valid.")
SHOP_IS_NOT_SUPPORTED_YET = _message("shop_is_not_supported_yet", "This shop is not supported yet.")
IT_IS_NOT_A_SINGLE_PRODUCT_URL = _message("it_is_not_a_single_product_url", "URL does not point to a single product page.")

# Lookups
PRODUCT_DOES_NOT_EXIST = _message("product_does_not_exist", "Product does not exist.")
INVALID_PRODUCT_UUID = _message("invalid_product_uuid", "Product ID must be a UUID.")
INVALID_USER_ID = _message("invalid_user_id", "Field requested_by must be a user ID.")
USER_DOES_NOT_EXIST = _message("user_does_not_exist", "User does not exist.")
PRODUCT_QUEUE_DOES_NOT_EXIST = _message("product_queue_does_not_exist", "Product is not in the queue.")
USER_DOES_NOT_HAVE_PRODUCT = _message("user_does_not_have_product", "You do not track this product.")
PRODUCT_SUBSCRIPTION_DOES_NOT_EXIST = _message("product_subscription_does_not_exist", "Subscription does not exist.")

# Ingestion outcomes
REPORT_ACCEPTED = _message("report_accepted", "Report accepted.")
PRODUCT_HISTORY_CREATED = _message("product_history_created", "Product history record created.")
PRODUCT_CREATED = _message("product_created", "Product created.")
PRODUCT_ALREADY_EXISTS = _message("product_already_exists", "Product already exists.")
PRODUCT_MOVED_TO_CHANGE_LOCATION = _message("product_moved_to_change_location", "Product will be served by another crawler.")
PRODUCT_REMOVED_FROM_QUEUE = _message("product_removed_from_queue", "Product has been removed from the queue.")

# Tracking
PRODUCT_ADDED_TO_USER = _message("product_added_to_user", "Product has been added to your list.")
PRODUCT_ADDED_TO_QUEUE = _message("product_added_to_queue", "Product has been added to the queue.")
YOU_ARE_ALREADY_HAVE_THIS_PRODUCT = _message("you_are_already_have_this_product", "You already track this product.")
UNABLE_TO_ADD_PRODUCT_RIGHT_NOW = _message(
    "unable_to_add_product_to_user_right_now_because_of_missing_price",
    "Product is in stock but its price is not known yet. Try again later.",
)
PRODUCT_REMOVED_FROM_USER = _message("product_removed_from_user", "Product has been removed from your list.")

# Subscriptions
MISSING_SUBSCRIPTION_TYPE = _message("missing_subscription_type", "Field subscription_type is required.")
SUBSCRIPTION_TYPE_IS_NOT_VALID = _message("subscription_type_is_not_valid", "Subscription type is not valid.")
USER_ALREADY_SUBSCRIBED_TO_SUBSCRIPTION_TYPE = _message(
    "user_already_subscribed_to_subscription_type",
    "You are already subscribed to this event.",
)
USER_DOES_NOT_HAVE_LINKED_TELEGRAM_ACCOUNT = _message(
    "user_does_not_have_linked_telegram_account",
    "Link a Telegram account to receive notifications.",
)
SUBSCRIPTION_CREATED = _message("subscription_created", "Subscription created.")
SUBSCRIPTION_REMOVED = _message("subscription_removed", "Subscription removed.")

# Persistence
STORE_UNAVAILABLE = _message("store_unavailable", "Storage is unavailable. Try again later.")
