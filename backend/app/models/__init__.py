from backend.app.models.admin_audit_log import AdminAuditLog
from backend.app.models.admin_user import AdminUser
from backend.app.models.draw_settings import DrawSettings
from backend.app.models.eligibility_window import EligibilityWindow
from backend.app.models.enums import DrawType, PrizeCategory
from backend.app.models.prize import Prize
from backend.app.models.prize_inventory import PrizeInventory
from backend.app.models.spin_record import SpinRecord

__all__ = [
    "AdminAuditLog",
    "AdminUser",
    "DrawSettings",
    "DrawType",
    "EligibilityWindow",
    "Prize",
    "PrizeCategory",
    "PrizeInventory",
    "SpinRecord",
]
