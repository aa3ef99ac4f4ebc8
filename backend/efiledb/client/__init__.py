from .api import ApiError, EfilingClient
from .cascade import CascadeLoader, IntakeCascade

__all__ = ["ApiError", "CascadeLoader", "EfilingClient", "IntakeCascade"]
