"""CLI commands for screenforge."""

from . import generate, screen

__all__ = ["generate", "screen"]
