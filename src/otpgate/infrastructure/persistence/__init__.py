"""Persistence layer: engine management, models and repositories."""
