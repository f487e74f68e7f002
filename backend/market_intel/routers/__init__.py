# API Routers

from . import dashboard, health

__all__ = ["dashboard", "health"]
