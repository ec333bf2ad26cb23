"""Offline command-line tools."""
