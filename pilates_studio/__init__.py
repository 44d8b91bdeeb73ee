"""Pilates studio management: members, classes, reservations, packages and payments."""

__version__ = "1.0.0"
