"""Shared utility helpers for adroast (imaging, logging)."""
