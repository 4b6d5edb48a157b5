from .onto import PostgresConfig

__all__ = [
    "PostgresConfig",
]
