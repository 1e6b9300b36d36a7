from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI

from ..core import feature_flags
from ..core.cache import TTLCache
from ..data.catalog import FileNodeLoader, scan_spots_directory
from ..data.tree_store import DecisionTreeStore
from ..features.session import SessionManager, create_session_router

__all__ = ["create_app", "main"]

logger = logging.getLogger(__name__)

_SPOTS_ENV = "SPOTTRAINER_SPOTS_DIR"


def build_manager(spots_dir: str | Path | None = None) -> SessionManager:
    """Session manager over the solutions found in ``spots_dir`` (env fallback)."""

    root = spots_dir or os.environ.get(_SPOTS_ENV)
    cache = TTLCache()
    solutions = scan_spots_directory(root, cache) if root else []
    if not solutions:
        logger.warning("No solutions loaded; set %s to a spots directory", _SPOTS_ENV)
    store = DecisionTreeStore(solutions, FileNodeLoader(solutions, cache))
    return SessionManager(store)


def create_app(spots_dir: str | Path | None = None, *, manager: SessionManager | None = None) -> FastAPI:
    manager = manager or build_manager(spots_dir)
    app = FastAPI(title="Spot Trainer")
    app.state.manager = manager

    @app.get("/healthz")
    def healthz() -> dict[str, object]:
        return {
            "status": "ok",
            "solutions": len(manager.store.solutions),
            "features": feature_flags.enabled_flags(),
        }

    @app.get("/api/v1/solutions")
    def list_solutions() -> list[dict[str, object]]:
        return [
            {
                "id": solution.id,
                "name": solution.name,
                "phase": solution.tournament_phase,
                "players": solution.num_players,
                "avg_stack_bb": round(solution.average_stack_bb, 1),
            }
            for solution in manager.store.solutions
        ]

    app.include_router(create_session_router(manager))
    return app


def main() -> None:  # pragma: no cover - runner
    import uvicorn

    host = os.environ.get("BIND", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":  # pragma: no cover
    main()
