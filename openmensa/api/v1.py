"""
Version 1 of the JSON/XML/msgpack API.

Every route takes the response format as path suffix, e.g.
`GET /api/v1/users.json` or `GET /api/v1/meals/meal_123.msgpack`.
"""

from __future__ import annotations

from datetime import date as Date
from typing import Any

from fastapi import APIRouter, Body, Depends, Response

from openmensa.api.formats import negotiate, render
from openmensa.api.state import AppState, get_state
from openmensa.auth.context import RequestContext, current_client, current_user
from openmensa.auth.policies import get_request_context
from openmensa.config import get_settings
from openmensa.core.errors import AccessDenied

router = APIRouter(prefix="/api/v1", tags=["api"])


def response_format(fmt: str) -> str:
    return negotiate(fmt)


def respond(data: Any, fmt: str, status_code: int = 200, root: str = "response") -> Response:
    return render(
        data,
        fmt,
        status_code=status_code,
        root=root,
        headers={"api_version": get_settings().api_version},
    )


# =============================================================================
# Current user
# =============================================================================


@router.get("/me.{fmt}")
async def me(fmt: str = Depends(response_format)):
    """Who the API considers the caller to be."""
    client = current_client()
    return respond(
        {
            "user": current_user().to_public(),
            "client": {"id": client.id, "name": client.name} if client else None,
        },
        fmt,
        root="me",
    )


# =============================================================================
# Users
# =============================================================================


@router.get("/users.{fmt}")
async def list_users(
    fmt: str = Depends(response_format),
    limit: int = 100,
    offset: int = 0,
    ctx: RequestContext = Depends(get_request_context),
    state: AppState = Depends(get_state),
):
    users = await state.users.list(ctx, limit=limit, offset=offset)
    return respond([u.to_public() for u in users], fmt, root="users")


@router.post("/users.{fmt}")
async def create_user(
    fmt: str = Depends(response_format),
    attributes: dict[str, Any] = Body(...),
    ctx: RequestContext = Depends(get_request_context),
    state: AppState = Depends(get_state),
):
    user = await state.users.create(ctx, attributes)
    return respond(user.to_public(), fmt, status_code=201, root="user")


@router.get("/users/{user_id}.{fmt}")
async def show_user(
    user_id: str,
    fmt: str = Depends(response_format),
    ctx: RequestContext = Depends(get_request_context),
    state: AppState = Depends(get_state),
):
    user = await state.users.get(ctx, user_id)
    return respond(user.to_public(), fmt, root="user")


@router.patch("/users/{user_id}.{fmt}")
async def update_user(
    user_id: str,
    fmt: str = Depends(response_format),
    attributes: dict[str, Any] = Body(...),
    ctx: RequestContext = Depends(get_request_context),
    state: AppState = Depends(get_state),
):
    user = await state.users.update(ctx, user_id, attributes)
    return respond(user.to_public(), fmt, root="user")


@router.delete("/users/{user_id}.{fmt}")
async def destroy_user(
    user_id: str,
    fmt: str = Depends(response_format),
    ctx: RequestContext = Depends(get_request_context),
    state: AppState = Depends(get_state),
):
    if not await state.users.destroy(ctx, user_id):
        raise AccessDenied("This user cannot be destroyed.")
    return respond({"id": user_id, "destroyed": True}, fmt, root="user")


# =============================================================================
# Meals
# =============================================================================


@router.get("/meals.{fmt}")
async def list_meals(
    fmt: str = Depends(response_format),
    cafeteria_id: str | None = None,
    date: Date | None = None,
    ctx: RequestContext = Depends(get_request_context),
    state: AppState = Depends(get_state),
):
    meals = await state.meals.list(ctx, cafeteria_id=cafeteria_id, day=date)
    return respond([m.to_public() for m in meals], fmt, root="meals")


@router.post("/meals.{fmt}")
async def create_meal(
    fmt: str = Depends(response_format),
    attributes: dict[str, Any] = Body(...),
    ctx: RequestContext = Depends(get_request_context),
    state: AppState = Depends(get_state),
):
    meal = await state.meals.create(ctx, attributes)
    return respond(meal.to_public(), fmt, status_code=201, root="meal")


@router.get("/meals/{meal_id}.{fmt}")
async def show_meal(
    meal_id: str,
    fmt: str = Depends(response_format),
    ctx: RequestContext = Depends(get_request_context),
    state: AppState = Depends(get_state),
):
    meal = await state.meals.get(ctx, meal_id)
    return respond(meal.to_public(), fmt, root="meal")


@router.delete("/meals/{meal_id}.{fmt}")
async def destroy_meal(
    meal_id: str,
    fmt: str = Depends(response_format),
    ctx: RequestContext = Depends(get_request_context),
    state: AppState = Depends(get_state),
):
    await state.meals.destroy(ctx, meal_id)
    return respond({"id": meal_id, "destroyed": True}, fmt, root="meal")
