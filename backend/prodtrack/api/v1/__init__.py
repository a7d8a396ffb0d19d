"""
API v1 Router - ProdTrack
"""
from fastapi import APIRouter
from prodtrack.api.v1.endpoints import (
    audit_logs,
    edit_requests,
    locks,
    master_defects,
    notifications,
    operation_defects,
    operation_lines,
    operation_steps,
    operations,
    production_orders,
)

router = APIRouter()

# Step chain
router.include_router(
    operation_steps.router,
    prefix="/operation-steps",
    tags=["steps"]
)

router.include_router(
    operation_lines.router,
    prefix="/operation-lines",
    tags=["steps"]
)

# Production Orders
router.include_router(
    production_orders.router,
    prefix="/production-orders",
    tags=["production"]
)

# Operations and defects (addressed through their production order)
router.include_router(
    operations.router,
    prefix="/production-orders",
    tags=["operations"]
)

router.include_router(
    operation_defects.router,
    prefix="/operation-defects",
    tags=["operations"]
)

# Defect edit requests
router.include_router(
    edit_requests.router,
    prefix="/defect-edit-requests",
    tags=["edit-requests"]
)

# Edit locks
router.include_router(
    locks.router,
    prefix="/locks",
    tags=["locks"]
)

# Defect catalog
router.include_router(
    master_defects.router,
    prefix="/master-defects",
    tags=["defects"]
)

# Notifications
router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["notifications"]
)

# Audit trail
router.include_router(
    audit_logs.router,
    prefix="/audit-logs",
    tags=["audit"]
)


@router.get("/health", tags=["health"])
def health_check():
    return {"status": "healthy"}
