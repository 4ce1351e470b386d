from . import public, replication

__all__ = ["public", "replication"]
