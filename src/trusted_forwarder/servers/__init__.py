from .apps import RelayServer

__all__ = [
    "RelayServer",
]
