"""API routers for the barstock application."""

from barstock.routers.ingredients import router as ingredients_router
from barstock.routers.inventory import router as inventory_router
from barstock.routers.recipes import router as recipes_router

__all__ = [
    "ingredients_router",
    "inventory_router",
    "recipes_router",
]
