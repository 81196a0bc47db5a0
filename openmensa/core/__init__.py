"""
Domain core: users and roles, meals, validation and errors.
"""
