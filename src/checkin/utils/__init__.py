"""Utility helpers for the check-in service."""
