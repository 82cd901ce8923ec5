from .auth import User, SessionToken
from .inventory import Product
from .deliveries import DeliveryPoint, Delivery, ProofOfDelivery, DeliveryLog
from .communications import Notification

__all__ = [
    'User', 'SessionToken',
    'Product',
    'DeliveryPoint', 'Delivery', 'ProofOfDelivery', 'DeliveryLog',
    'Notification',
]
