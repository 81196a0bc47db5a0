"""
Meal lifecycle.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import pydantic

from openmensa.auth.abilities import Action
from openmensa.auth.context import RequestContext
from openmensa.core.errors import FieldError, NotFound, ValidationError
from openmensa.core.models import Meal
from openmensa.core.validation import validate_meal
from openmensa.storage.repositories import MealRepository

logger = logging.getLogger(__name__)

MEAL_FIELDS = frozenset({"cafeteria_id", "date", "name", "category", "description", "prices"})


class MealService:
    """Operations on meals."""

    def __init__(self, meals: MealRepository):
        self.meals = meals

    async def list(
        self,
        ctx: RequestContext,
        cafeteria_id: str | None = None,
        day: date | None = None,
    ) -> list[Meal]:
        ctx.require(Action.INDEX, Meal)
        return await self.meals.find(cafeteria_id=cafeteria_id, day=day)

    async def get(self, ctx: RequestContext, meal_id: str) -> Meal:
        meal = await self.meals.get(meal_id)
        if meal is None:
            ctx.require(Action.SHOW, Meal)
            raise NotFound("Meal", meal_id)
        ctx.require(Action.SHOW, meal)
        return meal

    async def create(self, ctx: RequestContext, attributes: dict[str, Any]) -> Meal:
        ctx.require(Action.CREATE, Meal)
        data = {k: v for k, v in attributes.items() if k in MEAL_FIELDS}
        try:
            meal = Meal.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError([
                FieldError(str(err["loc"][0]) if err["loc"] else "base", err["msg"])
                for err in e.errors()
            ])
        validate_meal(meal).raise_for_errors()
        await self.meals.save(meal)
        logger.info(f"Meal '{meal.name}' added to {meal.cafeteria_id} on {meal.date}")
        return meal

    async def destroy(self, ctx: RequestContext, meal_id: str) -> bool:
        meal = await self.get(ctx, meal_id)
        ctx.require(Action.DESTROY, meal)
        return await self.meals.delete(meal.id)
