"""Users module - the account slice used by access control.

Exposes no routes of its own; permission views for users live under the
permissions module.
"""

# Module metadata
__module_info__ = {
    "name": "users",
    "version": "1.0.0",
    "description": "User accounts and role membership",
    "dependencies": [],
}
