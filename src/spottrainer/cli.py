from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Callable, Sequence

from .core import feature_flags
from .core.errors import GenerationExhaustedError
from .dynamic.seating import SPOT_TYPES
from .features.session import SessionConfig, SessionManager
from .ui.presenters import RichPresenter
from .web.app import build_manager


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="spottrainer", description="Preflop tournament spot trainer (CLI)")
    p.add_argument("--spots", required=True, metavar="DIR", help="Directory of solved spots")
    p.add_argument("--phase", action="append", default=None, help="Tournament phase to draw from (repeatable)")
    p.add_argument(
        "--type",
        action="append",
        default=None,
        choices=SPOT_TYPES,
        dest="spot_types",
        help="Spot type to train (repeatable)",
    )
    p.add_argument("--players", type=int, default=None, help="Only use solutions with this many seats")
    p.add_argument("--spots-count", type=int, default=10, help="Number of spots to deal")
    # If omitted, runs with a random seed for variety. Pass an int to reproduce.
    p.add_argument("--seed", type=int, default=None, help="RNG seed (random if omitted)")
    p.add_argument("--timebank", type=float, default=0.0, help="Seconds per decision (0 disables)")
    p.add_argument("--no-color", action="store_true", help="Disable colored output (default is colored)")
    p.add_argument(
        "--feature",
        action="append",
        default=None,
        choices=sorted(feature_flags.KNOWN_FLAGS),
        help="Enable an optional behaviour for this run (repeatable)",
    )
    p.add_argument("--verbose", action="store_true", help="Log generation details")
    return p


def run_drill(
    manager: SessionManager,
    config: SessionConfig,
    spots: int,
    presenter: RichPresenter,
) -> None:
    session_id = manager.create_session(config)
    presenter.start_session(spots)
    for _ in range(spots):
        try:
            response = asyncio.run(manager.next_spot(session_id))
        except GenerationExhaustedError as exc:
            presenter.error(str(exc))
            continue
        spot = response.spot
        if spot is None:
            continue
        presenter.show_spot(spot)
        choice = presenter.prompt_choice(len(spot.options))
        if presenter.quit_requested:
            break
        presenter.feedback(manager.answer(session_id, spot.options[choice]))
    presenter.summary(manager.summary(session_id))


def main(argv: Sequence[str] | None = None, *, input_fn: Callable[[str], str] = input) -> None:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    manager = build_manager(args.spots)
    config = SessionConfig(
        phases=tuple(args.phase or ()),
        spot_types=tuple(args.spot_types or ()),
        player_count=args.players,
        seed=args.seed,
        timebank_seconds=args.timebank or None,
    )
    presenter = RichPresenter(no_color=args.no_color, input_fn=input_fn)
    with feature_flags.override(enable=args.feature or ()):
        run_drill(manager, config, max(1, args.spots_count), presenter)


if __name__ == "__main__":
    main()
