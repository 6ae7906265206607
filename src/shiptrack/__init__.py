"""Shipment tracking service with an admin API and email notifications."""

__version__ = "0.1.0"
