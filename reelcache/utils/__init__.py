"""Helpers for paths, URL parsing and human-readable formatting."""
