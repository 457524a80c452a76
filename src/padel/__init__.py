"""Padel match sign-ups, lifecycle and peer level feedback."""

__version__ = "0.1.0"
