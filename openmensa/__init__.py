"""
OpenMensa - cafeteria and meal management with a small token-authenticated API.
"""

__version__ = "0.1.0"
