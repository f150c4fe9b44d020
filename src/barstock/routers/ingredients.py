"""API routes for ingredients: saving, duplicates, merging, import and pour cost."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from barstock.logging_config import get_logger
from barstock.normalize.cost import default_pour_size
from barstock.schemas import Ingredient
from barstock.services.imports import ImportPreview, ImportRow, IngredientImporter
from barstock.services.ingredients import (
    find_duplicates,
    is_rename,
    merge_ingredients,
    save_ingredient,
    title_case,
)
from barstock.services.settings import AppSettingsHandle
from barstock.store import DataStore, Entity, RecordNotFoundError
from barstock.store.sql import get_store
from barstock.tasks.inventory import (
    merge_duplicate_groups_task,
    propagate_ingredient_rename_task,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/ingredients", tags=["ingredients"])


# Request/Response schemas
class SaveIngredientRequest(BaseModel):
    """Ingredient fields plus optional product variants."""

    ingredient: dict[str, Any]
    original_name: str | None = None
    variants: list[dict[str, Any]] | None = None


class DuplicateGroupResponse(BaseModel):
    primary: Ingredient
    duplicates: list[Ingredient]
    similarities: list[float]


class DuplicatesResponse(BaseModel):
    groups: list[DuplicateGroupResponse]
    total: int


class MergeRequest(BaseModel):
    primary_id: str
    secondary_ids: list[str] = Field(min_length=1)


class MergeGroup(BaseModel):
    primary_id: str
    member_ids: list[str]


class MergeGroupsRequest(BaseModel):
    groups: list[MergeGroup] = Field(min_length=1)


class TaskTriggerResponse(BaseModel):
    """Response when triggering a background task."""

    task_id: str
    status: str
    message: str


class ImportRequest(BaseModel):
    rows: list[ImportRow]


class PourCostResponse(BaseModel):
    ingredient_id: str
    ingredient_name: str
    pour_size: float
    pour_cost: float
    target_pour_cost: float
    suggested_price: float | None = None


# =============================================================================
# Ingredient Endpoints
# =============================================================================


@router.post("", response_model=Ingredient)
async def save(
    request: SaveIngredientRequest,
    background_rename: Annotated[
        bool, Query(description="Queue recipe rename updates instead of running them inline")
    ] = False,
    store: DataStore = Depends(get_store),
) -> Ingredient:
    """Create or update an ingredient, computing its cost per unit."""
    try:
        saved = await save_ingredient(
            store,
            request.ingredient,
            original_name=request.original_name,
            variants=request.variants,
            propagate_renames=not background_rename,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if background_rename and request.ingredient.get("id"):
        if is_rename(request.original_name, saved.name):
            old_name = title_case(request.original_name)
            task = propagate_ingredient_rename_task.delay(old_name, saved.name)
            logger.info(f"Queued rename {old_name!r} -> {saved.name!r} as task {task.id}")
    return saved


@router.get("/duplicates", response_model=DuplicatesResponse)
async def list_duplicates(
    threshold: Annotated[
        float | None, Query(ge=0.0, le=1.0, description="Minimum name similarity")
    ] = None,
    store: DataStore = Depends(get_store),
) -> DuplicatesResponse:
    """Groups of ingredients whose names look like the same product."""
    groups = await find_duplicates(store, threshold)
    return DuplicatesResponse(
        groups=[
            DuplicateGroupResponse(
                primary=g.primary, duplicates=g.duplicates, similarities=g.similarities
            )
            for g in groups
        ],
        total=len(groups),
    )


@router.post("/merge")
async def merge(
    request: MergeRequest,
    store: DataStore = Depends(get_store),
) -> dict[str, Any]:
    """Merge secondary ingredients into a primary one."""
    logger.info(f"Merge requested: {request.secondary_ids} -> {request.primary_id}")
    try:
        result = await merge_ingredients(store, request.primary_id, request.secondary_ids)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return result.to_dict()


@router.post("/merge-groups", response_model=TaskTriggerResponse)
async def merge_groups(request: MergeGroupsRequest) -> TaskTriggerResponse:
    """Merge several duplicate groups in the background."""
    try:
        task = merge_duplicate_groups_task.delay([g.model_dump() for g in request.groups])
    except Exception as e:
        logger.error(f"Failed to queue merge task: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Task queue unavailable",
        )
    return TaskTriggerResponse(
        task_id=task.id,
        status="queued",
        message=f"Merging {len(request.groups)} group(s)",
    )


@router.post("/import/preview", response_model=ImportPreview)
async def import_preview(
    request: ImportRequest,
    store: DataStore = Depends(get_store),
) -> ImportPreview:
    """Dry run of an import: which rows are new, changed or unchanged."""
    return await IngredientImporter(store).preview(request.rows)


@router.post("/import")
async def import_apply(
    request: ImportRequest,
    store: DataStore = Depends(get_store),
) -> dict[str, Any]:
    """Upsert ingredients and variants from import rows."""
    stats = await IngredientImporter(store).apply(request.rows)
    return stats.to_dict()


@router.get("/{ingredient_id}/pour-cost", response_model=PourCostResponse)
async def get_pour_cost(
    ingredient_id: str,
    user_id: Annotated[str, Query(description="User whose target pour cost applies")],
    pour_size: Annotated[
        float | None, Query(gt=0, description="Pour size; defaults by category")
    ] = None,
    store: DataStore = Depends(get_store),
) -> PourCostResponse:
    """Cost of one pour and the menu price that meets the target pour cost."""
    try:
        ingredient = Ingredient.model_validate(await store.get(Entity.INGREDIENT, ingredient_id))
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    handle = await AppSettingsHandle.load(store, user_id)
    size = pour_size if pour_size is not None else default_pour_size(ingredient.category)
    summary = handle.pour_cost_summary(ingredient, size)
    return PourCostResponse(
        ingredient_id=ingredient_id,
        ingredient_name=ingredient.name,
        **summary,
    )
