"""Tierboard command-line interface."""
