from .bootstrap import apply_global_settings, seed_everything

__all__ = ["apply_global_settings", "seed_everything"]
