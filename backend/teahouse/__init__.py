"""Teahouse floor backend: orders, kitchen stages, tables and settlement."""

__version__ = "0.1.0"
