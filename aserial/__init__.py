"""Framed serial packet protocol for controller and device roles, with serial port helpers."""

__version__ = "1.0.0"