"""tallerctl commands."""
