"""
Top-level models import shim for the Orders app.

Is file ka kaam sirf itna hai ki:
    from apps.orders.models import Order
jaise imports kaam karein.
"""

from .order import *  # noqa: F401,F403  Order, OrderStatus, OrderCategory, ReturnType, TRACKING_FIELDS
