"""Booking backend for chiva (minibus) excursions."""

__version__ = "1.0.0"
