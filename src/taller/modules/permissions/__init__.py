"""Permissions module - catalog administration and per-user overrides."""

from fastapi import APIRouter


router = APIRouter(prefix="/permissions", tags=["permissions"])

# Module metadata
__module_info__ = {
    "name": "permissions",
    "version": "1.0.0",
    "description": "Permission catalog, user overrides and effective permission views",
    "dependencies": ["users"],
}

from taller.modules.permissions import routes  # noqa: F401, E402
