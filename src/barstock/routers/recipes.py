"""API routes for recipe costing."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from barstock.logging_config import get_logger
from barstock.services.costing import cost_recipe
from barstock.store import DataStore, RecordNotFoundError
from barstock.store.sql import get_store

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/recipes", tags=["recipes"])


# Request/Response schemas
class LineCostResponse(BaseModel):
    """Cost of one recipe line."""

    ingredient_name: str | None = None
    amount: float | None = None
    unit: str | None = None
    cost: float
    status: str
    ingredient_id: str | None = None
    sub_recipe_id: str | None = None


class RecipeCostEstimate(BaseModel):
    """Cost estimate for a recipe."""

    recipe_id: str
    recipe_name: str
    total_cost: float
    menu_price: float | None = None
    pour_cost_percent: float | None = None
    target_pour_cost: float | None = None
    suggested_price: float | None = None
    unpriced_count: int
    lines: list[LineCostResponse] = Field(default_factory=list)


@router.get("/{recipe_id}/cost", response_model=RecipeCostEstimate)
async def get_recipe_cost(
    recipe_id: str,
    user_id: Annotated[
        str | None, Query(description="User whose ounce interpretation and target apply")
    ] = None,
    store: DataStore = Depends(get_store),
) -> RecipeCostEstimate:
    """Cost a recipe line by line, with its pour cost percentage."""
    try:
        result = await cost_recipe(store, recipe_id, user_id=user_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return RecipeCostEstimate(**result.to_dict())
