"""Equipstock Admin with Unfold theme."""

# Lazy imports: unfold is only needed once this contrib is in INSTALLED_APPS

__all__ = [
    "BaseModelAdmin",
    "BaseTabularInline",
    "format_datetime",
]


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name in __all__:
        from equipstock.contrib.admin_unfold import base
        return getattr(base, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
