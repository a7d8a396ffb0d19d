"""
Database models for ProdTrack
"""
from prodtrack.models.user import User
from prodtrack.models.operation_step import OperationStep
from prodtrack.models.operation_line import OperationLine
from prodtrack.models.production_order import ProductionOrder, Operation
from prodtrack.models.defect import MasterDefect, OperationDefect
from prodtrack.models.edit_request import DefectEditRequest
from prodtrack.models.notification import Notification
from prodtrack.models.audit_log import AuditLog

__all__ = [
    # Users
    "User",
    # Step chain
    "OperationStep",
    "OperationLine",
    # Production
    "ProductionOrder",
    "Operation",
    # Defects
    "MasterDefect",
    "OperationDefect",
    "DefectEditRequest",
    # Events
    "Notification",
    "AuditLog",
]
