from kitchen_ops.config.settings import settings, Settings

__all__ = ["settings", "Settings"]
