"""Roles module - role lifecycle and role-permission assignment."""

from fastapi import APIRouter


router = APIRouter(prefix="/roles", tags=["roles"])

# Module metadata
__module_info__ = {
    "name": "roles",
    "version": "1.0.0",
    "description": "Roles and the catalog permissions they grant",
    "dependencies": ["permissions", "users"],
}

from taller.modules.roles import routes  # noqa: F401, E402
