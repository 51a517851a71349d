"""Infrastructure layer exports."""

from .areas import AreaRepository, InMemoryAreaRepository
from .supabase import SupabaseAreaRepository

__all__ = [
    "AreaRepository",
    "InMemoryAreaRepository",
    "SupabaseAreaRepository",
]
