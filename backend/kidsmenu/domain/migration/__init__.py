"""Legacy document normalization and the JSON-to-database import.

The normalizers are re-exported so live request handlers can upgrade payloads
cached by old clients. The loader lives in ``kidsmenu.domain.migration.loader``.
"""

from .normalizer import (  # noqa: F401
    has_canonical_completions,
    has_canonical_groups,
    has_canonical_selections,
    has_canonical_tags,
    normalize_food,
    normalize_meal,
    normalize_menu,
    normalize_profile,
    normalize_review,
    normalize_selection,
    normalize_shared_menu,
    normalize_shared_response,
)
from .remapper import EntityType, IdRemapper, remap_completion_keys, remap_group_food_ids, remap_selections  # noqa: F401
