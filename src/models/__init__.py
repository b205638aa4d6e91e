"""Database model type definitions."""

from src.models.catalog import Booking, Course, CourseProgress, DigitalProduct, Event
from src.models.order import ItemType, Order, OrderItem, OrderStatus, OrderWithItems
from src.models.user import User

__all__ = [
    "Booking",
    "Course",
    "CourseProgress",
    "DigitalProduct",
    "Event",
    "ItemType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderWithItems",
    "User",
]
