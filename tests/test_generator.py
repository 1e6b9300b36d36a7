from __future__ import annotations

import asyncio
import random

import pytest

from conftest import MemoryLoader, build_tree, make_solution
from spottrainer.core.errors import GenerationExhaustedError, StructuralInvariantError, TraversalError
from spottrainer.data.tree_store import DecisionTreeStore
from spottrainer.dynamic.cards import hand_name_for_combo
from spottrainer.dynamic.generator import GeneratorConfig, SpotGenerator
from spottrainer.dynamic.villain import VillainSimulator


STABLE_TYPES = ["RFI", "vs Open", "vs Shove"]


def _store(*solutions):
    solutions = solutions or (make_solution(),)
    trees = {solution.id: build_tree() for solution in solutions}
    loader = MemoryLoader(trees, solutions)
    return DecisionTreeStore(solutions, loader), loader


def _generate(generator: SpotGenerator, **kwargs):
    return asyncio.run(generator.generate(**kwargs))


def _assert_dealt(spot) -> None:
    node = spot.node
    assert node is not None
    assert node.player == spot.hero_seat
    assert spot.hand_name in node.hands
    assert hand_name_for_combo(spot.combo) == spot.hand_name


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_rfi_folds_to_hero(seed):
    store, _ = _store()
    spot = _generate(SpotGenerator(store, rng=random.Random(seed)), spot_types=["RFI"])
    _assert_dealt(spot)
    assert spot.spot_type == "RFI"
    assert spot.hero_seat in (0, 1, 2)
    assert [action.seat for action in spot.villain_actions] == list(range(spot.hero_seat))
    assert all(action.action == "Fold" for action in spot.villain_actions)


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_vs_open_has_single_opener(seed):
    store, _ = _store()
    spot = _generate(SpotGenerator(store, rng=random.Random(seed)), spot_types=["vs Open"])
    _assert_dealt(spot)
    assert spot.raiser_seat is not None and spot.raiser_seat < spot.hero_seat
    for action in spot.villain_actions:
        expected = "Raise 2.0" if action.seat == spot.raiser_seat else "Fold"
        assert action.action == expected


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_vs_shove_records_shover(seed):
    store, _ = _store()
    spot = _generate(SpotGenerator(store, rng=random.Random(seed)), spot_types=["vs Shove"])
    _assert_dealt(spot)
    assert spot.shover_seats == (spot.raiser_seat,)
    shove = next(action for action in spot.villain_actions if action.seat == spot.raiser_seat)
    assert shove.action == "Allin"
    assert [action.type for action in spot.node.actions] == ["F", "C"]


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_multiway_has_two_or_more_shovers(seed):
    store, _ = _store()
    spot = _generate(SpotGenerator(store, rng=random.Random(seed)), spot_types=["vs Multiway"])
    _assert_dealt(spot)
    assert spot.hero_seat in (2, 3)
    assert len(spot.shover_seats) >= 2
    assert list(spot.shover_seats) == sorted(spot.shover_seats)
    assert all(seat < spot.hero_seat for seat in spot.shover_seats)
    by_seat = {action.seat: action.action for action in spot.villain_actions}
    assert by_seat[spot.shover_seats[0]] == "Allin"
    assert all(by_seat[seat] == "Call" for seat in spot.shover_seats[1:])


def test_any_follows_sampled_combos():
    store, _ = _store()
    rng = random.Random(5)
    simulator = VillainSimulator(rng, combo_source=lambda: "AsAh")
    spot = _generate(SpotGenerator(store, rng=rng, simulator=simulator), spot_types=["Any"])
    _assert_dealt(spot)
    labels = [action.action for action in spot.villain_actions]
    assert labels == (["Allin"] + ["Call"] * (spot.hero_seat - 1) if spot.hero_seat else [])
    assert all(action.combo == "AsAh" for action in spot.villain_actions)


def test_same_seed_same_spot():
    first_store, _ = _store()
    second_store, _ = _store()
    first = _generate(SpotGenerator(first_store, rng=random.Random(11)), spot_types=STABLE_TYPES)
    second = _generate(SpotGenerator(second_store, rng=random.Random(11)), spot_types=STABLE_TYPES)
    assert (first.spot_type, first.hero_seat, first.node_id, first.combo) == (
        second.spot_type,
        second.hero_seat,
        second.node_id,
        second.combo,
    )


class _FailingSimulator:
    def __init__(self) -> None:
        self.calls = 0
        self.generator: SpotGenerator | None = None
        self.nested = "unset"

    async def advance_to_hero(self, store, solution_id, start_node_id, hero_seat, policy):
        self.calls += 1
        if self.generator is not None and self.nested == "unset":
            self.nested = await self.generator.generate()
        raise TraversalError("hand ended early")


def test_retries_are_bounded():
    store, _ = _store()
    simulator = _FailingSimulator()
    generator = SpotGenerator(store, GeneratorConfig(max_retries=5), rng=random.Random(1), simulator=simulator)
    with pytest.raises(GenerationExhaustedError) as excinfo:
        _generate(generator, spot_types=["RFI"])
    assert simulator.calls == 5
    assert excinfo.value.attempts == 5
    assert isinstance(excinfo.value.last_error, TraversalError)
    assert not generator.is_generating


def test_second_request_while_generating_is_ignored():
    store, _ = _store()
    simulator = _FailingSimulator()
    generator = SpotGenerator(store, GeneratorConfig(max_retries=1), rng=random.Random(1), simulator=simulator)
    simulator.generator = generator
    with pytest.raises(GenerationExhaustedError):
        _generate(generator, spot_types=["RFI"])
    assert simulator.nested is None
    assert simulator.calls == 1


def test_unknown_spot_type_rejected():
    store, _ = _store()
    with pytest.raises(ValueError):
        _generate(SpotGenerator(store), spot_types=["3bet"])


def test_filters_that_match_nothing_exhaust():
    store, _ = _store()
    generator = SpotGenerator(store, GeneratorConfig(max_retries=2), rng=random.Random(1))
    with pytest.raises(GenerationExhaustedError):
        _generate(generator, phases=["Bubble"])
    with pytest.raises(GenerationExhaustedError):
        _generate(generator, player_count=6)


def test_structurally_broken_solution_is_excluded():
    broken = make_solution("final_table/broken")
    healthy = make_solution("final_table/healthy")
    tree = build_tree()
    calls: list[str] = []

    class Loader(MemoryLoader):
        async def __call__(self, solution_id, node_ids):
            calls.append(solution_id)
            if solution_id == broken.id:
                raise StructuralInvariantError("played and actions disagree")
            return await super().__call__(solution_id, node_ids)

    loader = Loader({healthy.id: tree}, [broken, healthy])
    store = DecisionTreeStore([broken, healthy], loader)
    for seed in range(6):
        del calls[:]
        spot = _generate(SpotGenerator(store, rng=random.Random(seed)), spot_types=["RFI"])
        assert spot.solution.id == healthy.id
        assert calls.count(broken.id) <= 1
