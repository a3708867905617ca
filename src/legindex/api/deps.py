"""Engine lookup for request handlers."""

from __future__ import annotations

from legindex.core.engine import BillIndexEngine

# Set by the app lifespan; replaced directly in tests.
_engine: BillIndexEngine | None = None


def set_engine(engine: BillIndexEngine | None) -> None:
    global _engine
    _engine = engine


def get_engine() -> BillIndexEngine:
    """FastAPI dependency returning the running engine.

    Raises:
        RuntimeError: If no engine has been set (the lifespan has not run).
    """
    if _engine is None:
        raise RuntimeError("LegIndex engine not initialized. Is the server running?")
    return _engine
