"""Cost categories and revenue-source apps."""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from .category import Category
from .earnings import RevenueApp
from .errors import ValidationError
from .ids import new_id
from .state import AppState, synchronized
from .validation import require_text

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    "Fuel",
    "Maintenance",
    "Food",
    "Vehicle tax",
    "Insurance",
    "Cleaning",
)

# (name, color, icon)
DEFAULT_APPS = (
    ("Uber", "#000000", "car"),
    ("99", "#FFD700", "taxi"),
    ("iFood", "#EA1D2C", "burger"),
    ("Rappi", "#FF6B35", "scooter"),
    ("Blablacar", "#00AFF5", "suv"),
)


class CatalogService:
    """Categories (unique by name among active ones) and revenue apps."""

    def __init__(self, state: AppState, clock: Callable[[], datetime]):
        self.state = state
        self.clock = clock

    @synchronized
    def seed_defaults(self) -> None:
        """Insert default categories and apps into an empty store."""
        tx = self.state.begin()
        if not self.state.categories:
            for name in DEFAULT_CATEGORIES:
                tx.insert("categories", Category(new_id(), name, created_at=self.clock()))
        if not self.state.apps:
            for name, color, icon in DEFAULT_APPS:
                tx.insert("apps", RevenueApp(new_id(), name, color, icon, created_at=self.clock()))
        if not tx.empty:
            self.state.commit(tx)
            logger.info("Seeded default categories and revenue apps")

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def categories(self, active_only: bool = True) -> List[Category]:
        return [c for c in self.state.categories if c.active or not active_only]

    def find_category(self, name: str) -> Optional[Category]:
        for category in self.state.categories:
            if category.active and category.matches(name):
                return category
        return None

    def _check_unique_category(self, name: str, exclude_id: Optional[str] = None) -> None:
        existing = self.find_category(name)
        if existing is not None and existing.id != exclude_id:
            raise ValidationError(f"Category '{name}' already exists")

    @synchronized
    def add_category(self, name: str) -> Category:
        name = require_text(name, "Category name")
        self._check_unique_category(name)
        category = Category(new_id(), name, created_at=self.clock())
        tx = self.state.begin()
        tx.insert("categories", category)
        self.state.commit(tx)
        return category

    @synchronized
    def update_category(self, category_id: str, name: str) -> Category:
        """Rename. Existing ledger rows keep their category name snapshot."""
        name = require_text(name, "Category name")
        self.state.require("categories", category_id)
        self._check_unique_category(name, exclude_id=category_id)
        tx = self.state.begin()
        category = tx.update("categories", category_id, name=name)
        self.state.commit(tx)
        return category

    @synchronized
    def delete_category(self, category_id: str) -> None:
        tx = self.state.begin()
        tx.delete("categories", category_id)
        self.state.commit(tx)

    # -------------------------------------------------------------------------
    # Revenue apps
    # -------------------------------------------------------------------------

    def apps(self, active_only: bool = False) -> List[RevenueApp]:
        return [a for a in self.state.apps if a.active or not active_only]

    def _check_unique_app(self, name: str, exclude_id: Optional[str] = None) -> None:
        for app in self.state.apps:
            if app.id != exclude_id and app.name.lower() == name.lower():
                raise ValidationError(f"App '{name}' already exists")

    @synchronized
    def add_app(self, name: str, color: str = "#6B7280", icon: str = "") -> RevenueApp:
        name = require_text(name, "App name")
        self._check_unique_app(name)
        app = RevenueApp(new_id(), name, color, icon, created_at=self.clock())
        tx = self.state.begin()
        tx.insert("apps", app)
        self.state.commit(tx)
        return app

    @synchronized
    def update_app(
        self,
        app_id: str,
        name: str,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> RevenueApp:
        name = require_text(name, "App name")
        current = self.state.require("apps", app_id)
        self._check_unique_app(name, exclude_id=app_id)
        tx = self.state.begin()
        app = tx.update(
            "apps",
            app_id,
            name=name,
            color=color if color is not None else current.color,
            icon=icon if icon is not None else current.icon,
        )
        self.state.commit(tx)
        return app

    @synchronized
    def delete_app(self, app_id: str) -> None:
        """Delete an app together with its earnings records."""
        self.state.require("apps", app_id)
        tx = self.state.begin()
        for record in self.state.earnings:
            if record.app_id == app_id:
                tx.delete("earnings", record.id)
        tx.delete("apps", app_id)
        self.state.commit(tx)

    @synchronized
    def toggle_app(self, app_id: str) -> RevenueApp:
        app = self.state.require("apps", app_id)
        tx = self.state.begin()
        app = tx.update("apps", app_id, active=not app.active)
        self.state.commit(tx)
        return app
