from decimal import Decimal

# Fee policy used when no active fee settings record can be read
DEFAULT_DELIVERY_FEE = Decimal(25)
DEFAULT_FREE_DELIVERY_THRESHOLD = Decimal(149)
DEFAULT_PLATFORM_FEE = Decimal(5)
DEFAULT_GST_RATE = Decimal(5)
DEFAULT_MAX_DELIVERY_DISTANCE_KM = Decimal(20)

EARTH_RADIUS_KM = 6371.0

ORDER_NUMBER_PREFIX = "ORD"
PAYMENT_NUMBER_PREFIX = "PAY"
