"""ORM models. Importing this package registers every table on ``Base.metadata``."""
from .base import Base
from .user import User
from .vehicle import Vehicle
from .inspection import Inspection
from .spare_part import SparePart
from .ticket import Ticket, PartRequest, derive_status
from .notification import Notification
from .audit import AuditLog

__all__ = [
    'Base', 'User', 'Vehicle', 'Inspection', 'SparePart', 'Ticket', 'PartRequest',
    'derive_status', 'Notification', 'AuditLog',
]
