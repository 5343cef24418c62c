from __future__ import annotations

from .models.base import Base  # noqa: F401  re-export for Alembic
from .models.food import FoodItem  # noqa: F401
from .models.household import Household  # noqa: F401
from .models.meal import MealRecord, MealReview, MealSelection  # noqa: F401
from .models.menu import KidSelection, Menu  # noqa: F401
from .models.profile import KidProfile  # noqa: F401
from .models.shared_menu import SharedMenu, SharedMenuResponse  # noqa: F401
