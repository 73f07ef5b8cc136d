"""
Utility modules for the clinic allocation backend.

This package contains shared utility functions and helpers used across
the application, chiefly clinic timezone and datetime helpers.
"""
