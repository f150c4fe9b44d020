"""Per-user application settings."""

from typing import Any

from barstock.config import get_settings
from barstock.logging_config import get_logger
from barstock.normalize.cost import pour_cost, suggested_menu_price
from barstock.schemas import AppSetting, Ingredient
from barstock.store import DataStore, Entity

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"oz_interpretation", "target_pour_cost", "default_unit_preference"})


class AppSettingsHandle:
    """
    A user's stored settings, loaded once and passed to whatever needs them.

    The first load for a user creates their settings with defaults.
    """

    def __init__(self, store: DataStore, setting: AppSetting):
        self.store = store
        self.setting = setting

    @classmethod
    async def load(cls, store: DataStore, user_id: str) -> "AppSettingsHandle":
        rows = await store.filter(Entity.APP_SETTING, user_id=user_id)
        if rows:
            return cls(store, AppSetting.model_validate(rows[0]))

        defaults = get_settings()
        logger.info(f"Creating default app settings for user {user_id}")
        row = await store.create(
            Entity.APP_SETTING,
            {
                "user_id": user_id,
                "oz_interpretation": defaults.default_oz_interpretation,
                "target_pour_cost": defaults.default_target_pour_cost,
                "default_unit_preference": defaults.default_unit_preference,
            },
        )
        return cls(store, AppSetting.model_validate(row))

    @property
    def oz_interpretation(self) -> str:
        return self.setting.oz_interpretation

    @property
    def target_pour_cost(self) -> float:
        return self.setting.target_pour_cost or get_settings().default_target_pour_cost

    @property
    def default_unit_preference(self) -> str:
        return self.setting.default_unit_preference

    async def update(self, changes: dict[str, Any]) -> AppSetting:
        """
        Save changed settings.

        Raises:
            ValueError: A field is unknown or a value is invalid.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown settings: {sorted(unknown)}")
        candidate = AppSetting.model_validate({**self.setting.model_dump(), **changes})
        row = await self.store.update(
            Entity.APP_SETTING,
            self.setting.id,
            {k: getattr(candidate, k) for k in changes},
        )
        self.setting = AppSetting.model_validate(row)
        return self.setting

    def pour_cost_summary(
        self,
        ingredient: Ingredient,
        pour_size: float,
    ) -> dict[str, float | None]:
        """Pour cost and the menu price that hits this user's target pour cost."""
        cost = pour_cost(ingredient, pour_size)
        return {
            "pour_size": pour_size,
            "pour_cost": round(cost, 4),
            "target_pour_cost": self.target_pour_cost,
            "suggested_price": suggested_menu_price(cost, self.target_pour_cost),
        }
