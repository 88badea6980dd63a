"""
RBAC (Role-Based Access Control) application.

Provides per-business access control with:
- Flat role catalog with default permission sets
- Per-user permission overrides (deviations from role defaults)
- Per-request business context resolution and fail-closed enforcement
- Append-only audit logging of membership changes
"""
