"""API v1: versioned router.

Router structure
----------------
PUBLIC (no auth):
  /health                 → health checks (liveness, readiness)
  /auth/login             → email + password login
  /auth/password/*        → forgot / reset password
  /admin/users/seed       → first-admin bootstrap (self-disabling)
  /blobs/{bucket}/{path}  → attachment download

STAFF (any active user):
  /auth/me, /dashboard
  /patients/*             → CRUD + report image (soft delete is admin-only)

ADMIN:
  /doctors/*              → CRUD + profile image + soft delete
  /deleted-records/*      → deleted rows + restore
  /audit-logs             → audit history
  /admin/users/*          → staff user management
  /blobs/stats, /sweep    → storage stats + orphan sweep

Role checks live on each endpoint through ``CurrentSession`` /
``AdminSession``; no router here carries an auth dependency.
"""
from fastapi import APIRouter

from .endpoints import (
    admin_users,
    audit_logs,
    auth,
    blobs,
    dashboard,
    deleted_records,
    doctors,
    health,
    patients,
)

router = APIRouter(prefix="/api/v1")

# =========================================================================
# PUBLIC ENDPOINTS
# =========================================================================

router.include_router(health.router, tags=["Health"])

# /auth/me inside this router requires a session; the rest are public.
router.include_router(auth.router)

# Images are loaded through plain <img> tags, so reads carry no token.
# /blobs/stats and /blobs/sweep declare AdminSession individually.
router.include_router(blobs.router)

# =========================================================================
# STAFF ENDPOINTS
# =========================================================================

router.include_router(dashboard.router)
router.include_router(patients.router)

# =========================================================================
# ADMIN ENDPOINTS
# =========================================================================

router.include_router(doctors.router)
router.include_router(deleted_records.router)
router.include_router(audit_logs.router)

# !! /admin/users/seed is public; every other endpoint in admin_users
# declares AdminSession on its own.
router.include_router(admin_users.router)
