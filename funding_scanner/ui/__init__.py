from .tables import display_snapshot

__all__ = ["display_snapshot"]
