"""QuickBite order placement and fee settlement service."""

__version__ = "0.1.0"
