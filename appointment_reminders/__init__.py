"""Appointment reminder push notifications."""

__version__ = "0.1.0"
