"""Utility helpers: logging setup and sync report files."""
