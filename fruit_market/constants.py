CART_STORAGE_KEY = "cart"

# cus_id sent with a bill when checkout has no customer attached
GUEST_CUSTOMER_ID = 0

# who wrote a cart line's weight
SOURCE_MANUAL = "manual"
SOURCE_SCALE = "scale"

LATEST_FILES_OK = "success"
