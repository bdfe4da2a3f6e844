from . import health, state

__all__ = ["health", "state"]
