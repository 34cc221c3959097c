"""API layer - routing and dependencies."""


def get_api_router():
    """Import the root router lazily; module routers import from this package."""
    from taller.api.router import api_router  # noqa: PLC0415

    return api_router


__all__ = ["get_api_router"]
