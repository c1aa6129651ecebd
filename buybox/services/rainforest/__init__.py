from .client import RainforestClient

__all__ = ["RainforestClient"]
