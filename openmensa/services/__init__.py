"""
Use cases operating on the repositories on behalf of a RequestContext.
"""

from openmensa.services.meals import MealService
from openmensa.services.users import UserService

__all__ = ["MealService", "UserService"]
