"""tallerctl - administrative CLI for the taller access-control service."""

__version__ = "0.1.0"
