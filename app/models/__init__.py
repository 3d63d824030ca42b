# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    user, institution, officer,
    leave_application, attendance,
    payroll, salary_component,
    job, notification, audit_log
)

# Explicit class exports for cleaner imports
from .user import User, UserRole, StaffPosition
from .institution import Institution
from .officer import Officer
from .leave_application import LeaveApplication
from .notification import Notification

__all__ = [
    "User",
    "UserRole",
    "StaffPosition",
    "Institution",
    "Officer",
    "LeaveApplication",
    "Notification",
]
