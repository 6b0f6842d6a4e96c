from .asset import Asset, MaintenanceLog
from .batch_order import BatchOrder, PartOrder
from .complaint import Complaint
from .inventory import EquipmentRequest, InventoryItem
from .part import Part
from .permission import Permission
from .role import Role, RolePermission, UserRole
from .supplier import Supplier
from .user import User

__all__ = [
    "Asset",
    "BatchOrder",
    "Complaint",
    "EquipmentRequest",
    "InventoryItem",
    "MaintenanceLog",
    "Part",
    "PartOrder",
    "Permission",
    "Role",
    "RolePermission",
    "Supplier",
    "User",
    "UserRole",
]
