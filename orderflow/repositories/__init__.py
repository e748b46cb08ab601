from .base import CRUDBase
from .counter_repo import CounterRepository
from .order_repo import OrderRepository
from .notification_repo import NotificationRepository
from .user_repo import UserRepository
