"""Phone duty scheduler client: session, schedule cache and batch editing."""

__version__ = "1.0.0"
