"""Outbound services (email delivery)."""
