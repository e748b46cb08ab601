from .common import CamelModel, ErrorResponse, envelope
from .user import UserSummary, UserResponse, TeamAssignment
from .notification import NotificationResponse
from .order import (
    ProductIn, OrderCreate, OrderUpdate, ProductOut, OrderResponse,
    EDITABLE_FIELDS, GST_INCLUDED,
)
