from .base import BaseModel, TimestampMixin
from .user import User, UserRole, ASSIGNABLE_ROLES
from .order import (
    Order, OrderProduct, OrderType, Company, DispatchLocation, PaymentMethod, PaymentTerms,
    SOStatus, FulfillingStatus, DispatchStatus, InstallationStatus, PaymentReceived,
    BillStatus, CompletionStatus, DEPOT_FULFILLMENT_LOCATIONS, FACTORY_LOCATION,
)
from .notification import Notification, BROADCAST_ROLE
from .counter import Counter

__all__ = [
    "BaseModel", "TimestampMixin",
    "User", "UserRole", "ASSIGNABLE_ROLES",
    "Order", "OrderProduct", "OrderType", "Company", "DispatchLocation", "PaymentMethod",
    "PaymentTerms", "SOStatus", "FulfillingStatus", "DispatchStatus", "InstallationStatus",
    "PaymentReceived", "BillStatus", "CompletionStatus", "DEPOT_FULFILLMENT_LOCATIONS",
    "FACTORY_LOCATION",
    "Notification", "BROADCAST_ROLE",
    "Counter",
]
