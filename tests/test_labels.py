from __future__ import annotations

from spottrainer.core.labels import (
    display_label,
    format_bb,
    resolve_action_index,
    scoring_label,
    scoring_labels,
    villain_label,
)
from spottrainer.core.models import Action, DecisionNode

BB = 100.0


def _node(*actions: Action) -> DecisionNode:
    return DecisionNode(player=0, street=0, actions=tuple(actions), hands={})


def test_scoring_labels_use_one_decimal_raise_sizes():
    node = _node(Action("F"), Action("C", 100.0), Action("R", 250.0), Action("X"))
    assert scoring_labels(node, BB) == ["Fold", "Call", "Raise 2.5", "Check"]


def test_villain_label_flags_allin_past_half_stack():
    assert villain_label(Action("R", 200.0), BB, 2000.0) == ("Raise 2.0", 200.0)
    assert villain_label(Action("R", 1500.0), BB, 2000.0) == ("Allin", 1500.0)
    assert villain_label(Action("F"), BB, 2000.0) == ("Fold", None)


def test_display_label_detects_allin_by_commitment_and_short_stack():
    assert display_label(Action("R", 1900.0), BB, 2000.0) == "All-in 19"
    assert display_label(Action("R", 250.0), BB, 2000.0) == "Raise 2.5"
    # covers a shorter opponent exactly
    assert display_label(Action("R", 800.0), BB, 2000.0, [2000.0, 800.0]) == "All-in 8"
    assert display_label(Action("C", 1990.0), BB, 2000.0) == "All-in 19.9"


def test_format_bb_drops_trailing_zero():
    assert format_bb(2.0) == "2"
    assert format_bb(2.25) == "2.2"


def test_resolve_action_index_matches_types_and_sizes():
    node = _node(Action("F"), Action("C", 100.0), Action("R", 200.0), Action("R", 2000.0))
    assert resolve_action_index(node, "Fold", BB) == 0
    assert resolve_action_index(node, "call", BB) == 1
    assert resolve_action_index(node, "Raise 2", BB) == 2
    assert resolve_action_index(node, "Raise 2.0", BB) == 2
    assert resolve_action_index(node, "raise 20bb", BB) == 3
    assert resolve_action_index(node, "All-in 20", BB) == 3
    assert resolve_action_index(node, "Allin", BB) == 3
    assert resolve_action_index(node, "Raise 3", BB) == -1
    assert resolve_action_index(node, "Raise", BB) == -1
    assert resolve_action_index(node, "Check", BB) == -1
    assert resolve_action_index(node, "nonsense", BB) == -1


def test_scoring_label_round_trips_through_resolver():
    node = _node(Action("F"), Action("R", 230.0))
    label = scoring_label(node.actions[1], BB)
    assert label == "Raise 2.3"
    assert resolve_action_index(node, label, BB) == 1
