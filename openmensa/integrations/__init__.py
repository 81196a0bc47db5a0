"""
External services: OAuth identity providers and error tracking.
"""
