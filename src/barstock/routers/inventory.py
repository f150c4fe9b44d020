"""API routes for inventory: variant selection, counts and usage reports."""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from barstock.inventory.variants import ResolveMode, VariantCandidate, VariantResolver
from barstock.logging_config import LoggingContext, get_logger
from barstock.schemas import Ingredient, InventoryCountLog, parse_records
from barstock.services.bulk import BulkResult
from barstock.services.inventory import InventoryService
from barstock.store import DataStore, Entity, RecordNotFoundError
from barstock.store.sql import get_store
from barstock.tasks.inventory import add_menu_to_inventory_task

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])


# Request/Response schemas
class CandidateRequest(BaseModel):
    """Where candidates come from: a menu or explicit ingredients."""

    mode: ResolveMode = ResolveMode.INVENTORY
    account_id: str | None = None
    menu_id: str | None = None
    ingredient_ids: list[str] | None = None


class ConfirmRequest(CandidateRequest):
    # ingredient id -> chosen variant ids; omitted ingredients keep defaults
    selections: dict[str, list[str]] = Field(default_factory=dict)


class VariantOption(BaseModel):
    id: str | None
    size_ml: float | None = None
    purchase_price: float | None = None
    sku_number: str | None = None
    cost_per_oz: float
    is_best_value: bool
    is_tracked: bool
    selected: bool


class CandidateResponse(BaseModel):
    ingredient_id: str | None
    ingredient_name: str
    needs_choice: bool
    variants: list[VariantOption]


class CandidatesResponse(BaseModel):
    candidates: list[CandidateResponse]
    needs_choice: int
    auto_added: int


class CountRequest(BaseModel):
    counted_quantity: float = Field(ge=0)
    counted_by: str | None = None
    notes: str | None = None
    report_id: str | None = None


class ReportRequest(BaseModel):
    account_id: str
    name: str | None = None
    counted_by: str | None = None
    counts: dict[str, float]


class HistoryEntry(BaseModel):
    log: InventoryCountLog
    usage: float | None = None
    usage_display: str | None = None


class TaskTriggerResponse(BaseModel):
    """Response when triggering a background task."""

    task_id: str
    status: str
    message: str


def _candidate_response(candidate: VariantCandidate) -> CandidateResponse:
    return CandidateResponse(
        ingredient_id=candidate.ingredient.id,
        ingredient_name=candidate.ingredient.name,
        needs_choice=candidate.needs_choice,
        variants=[
            VariantOption(
                id=state.id,
                size_ml=state.variant.size_ml,
                purchase_price=state.variant.purchase_price,
                sku_number=state.variant.sku_number,
                cost_per_oz=round(state.cost_per_oz, 4),
                is_best_value=state.is_best_value,
                is_tracked=state.is_tracked,
                selected=state.selected,
            )
            for state in candidate.variants
        ],
    )


async def _load_resolver(request: CandidateRequest, store: DataStore) -> VariantResolver:
    resolver = VariantResolver(store, request.account_id, request.mode)
    ingredients = None
    if request.ingredient_ids is not None:
        wanted = set(request.ingredient_ids)
        ingredients = [
            i
            for i in parse_records(Ingredient, await store.list(Entity.INGREDIENT))
            if i.id in wanted
        ]
    try:
        await resolver.load(ingredients=ingredients, menu_id=request.menu_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return resolver


# =============================================================================
# Variant Selection Endpoints
# =============================================================================


@router.post("/candidates", response_model=CandidatesResponse)
async def list_candidates(
    request: CandidateRequest,
    store: DataStore = Depends(get_store),
) -> CandidatesResponse:
    """Ingredients and variants that can be added, with default selections."""
    resolver = await _load_resolver(request, store)
    return CandidatesResponse(
        candidates=[_candidate_response(c) for c in resolver.candidates],
        needs_choice=len(resolver.needs_choice),
        auto_added=resolver.auto_added_count,
    )


@router.post("/confirm")
async def confirm(
    request: ConfirmRequest,
    store: DataStore = Depends(get_store),
) -> dict[str, Any]:
    """
    Apply a variant selection.

    Inventory mode creates the inventory items; order mode returns the
    selected variants with their ingredient.
    """
    if request.mode is ResolveMode.INVENTORY and not request.account_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="account_id is required in inventory mode",
        )

    with LoggingContext(account_id=request.account_id):
        resolver = await _load_resolver(request, store)
        for candidate in resolver.candidates:
            chosen = request.selections.get(candidate.ingredient.id or "")
            if chosen is None:
                continue
            for state in candidate.variants:
                state.selected = state.id in chosen

        outcome = await resolver.confirm()

    if isinstance(outcome, BulkResult):
        return outcome.to_dict()
    return {"selected": outcome, "total": len(outcome)}


@router.post("/menus/{menu_id}")
async def add_menu(
    menu_id: str,
    account_id: Annotated[str, Query(description="Account to add inventory to")],
    background: Annotated[bool, Query(description="Run as a background task")] = False,
    store: DataStore = Depends(get_store),
) -> dict[str, Any]:
    """Track every untracked variant of a menu's inventory ingredients."""
    if background:
        task = add_menu_to_inventory_task.delay(menu_id, account_id)
        return TaskTriggerResponse(
            task_id=task.id,
            status="queued",
            message=f"Adding menu {menu_id} to inventory",
        ).model_dump()

    try:
        result = await InventoryService(store).add_menu_to_inventory(menu_id, account_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return result.to_dict()


# =============================================================================
# Count Endpoints
# =============================================================================


@router.post("/items/{item_id}/counts", response_model=InventoryCountLog)
async def record_count(
    item_id: str,
    request: CountRequest,
    store: DataStore = Depends(get_store),
) -> InventoryCountLog:
    """Record a stock count for one item."""
    try:
        return await InventoryService(store).record_count(
            item_id,
            request.counted_quantity,
            counted_by=request.counted_by,
            notes=request.notes,
            report_id=request.report_id,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/items/{item_id}/history", response_model=list[HistoryEntry])
async def item_history(
    item_id: str,
    store: DataStore = Depends(get_store),
) -> list[HistoryEntry]:
    """Counts of an item, newest first, with usage since the previous count."""
    rows = await InventoryService(store).item_history(item_id)
    return [
        HistoryEntry(log=row.log, usage=row.usage, usage_display=row.usage_display)
        for row in rows
    ]


@router.post("/reports")
async def create_report(
    request: ReportRequest,
    store: DataStore = Depends(get_store),
) -> dict[str, Any]:
    """Record a full stock count as one report."""
    report, result = await InventoryService(store).create_report(
        request.account_id,
        request.counts,
        name=request.name,
        counted_by=request.counted_by,
    )
    return {"report": report.model_dump(), "counts": result.to_dict()}


@router.get("/reports/compare")
async def compare_reports(
    start_report_id: Annotated[str, Query(description="Earlier report")],
    end_report_id: Annotated[str, Query(description="Later report")],
    store: DataStore = Depends(get_store),
) -> dict[str, Any]:
    """Usage per item between two reports."""
    rows = await InventoryService(store).compare_reports(start_report_id, end_report_id)
    return {"items": [row.to_dict() for row in rows], "total": len(rows)}
