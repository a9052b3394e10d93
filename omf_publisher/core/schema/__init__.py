"""Schema layer - Esquema conocido por el receptor."""

from .state_tracker import KnownSchemaRegistry, diff

__all__ = ["KnownSchemaRegistry", "diff"]
