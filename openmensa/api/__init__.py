"""
HTTP API: app factory, versioned routes and response shaping.
"""
