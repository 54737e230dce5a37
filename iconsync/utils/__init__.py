"""Utility helpers for environment and request handling."""
