"""Unit tests for the bias quiz classifier: decision table and tag building."""

from __future__ import annotations

import itertools

import pytest

from bias_journal.bias_classifier import (
    LOCATION_INSIDE_VALUE,
    LOCATION_OPTIONS,
    LOCATION_OUTSIDE_VALUE,
    LOCATION_UNDECIDED,
    LOCATION_VWAP_RECLAIM,
    OF_ABSORPTION,
    OF_BIG_PRINTS,
    OF_CVD_WITH_MOVE,
    OF_IMBALANCES_WITH_MOVE,
    OF_NONE,
    STRUCTURE_FAILED_BREAKOUT,
    STRUCTURE_IMPULSE,
    STRUCTURE_OPTIONS,
    STRUCTURE_RANGE,
    BiasAnswers,
    classify,
    toggle_order_flow,
)
from bias_journal.models.bias import Bias, Confidence, Direction, MarketState
from bias_journal.sessions import TRADING_SESSIONS

ORDER_FLOW_SETS = [
    [],
    [OF_NONE],
    [OF_CVD_WITH_MOVE],
    [OF_IMBALANCES_WITH_MOVE, OF_BIG_PRINTS],
    [OF_ABSORPTION],
    [OF_CVD_WITH_MOVE, OF_ABSORPTION],
]


# ---------------------------------------------------------------------------
# Known reads
# ---------------------------------------------------------------------------


class TestKnownReads:
    def test_outside_value_with_flow_and_impulse_is_oob(self):
        result = classify(
            BiasAnswers(
                location=LOCATION_OUTSIDE_VALUE,
                order_flow=[OF_CVD_WITH_MOVE],
                structure=STRUCTURE_IMPULSE,
                direction=Direction.LONG,
            )
        )
        assert result.bias == Bias.OOB_LONG
        assert result.market_state == MarketState.OUT_OF_BALANCE

    def test_failed_breakout_short_is_mean_reversion(self):
        result = classify(
            BiasAnswers(structure=STRUCTURE_FAILED_BREAKOUT, direction=Direction.SHORT, order_flow=[])
        )
        assert result.bias == Bias.MR_SHORT
        assert result.market_state == MarketState.IN_BALANCE

    def test_undecided_everywhere_overrides_direction(self):
        result = classify(
            BiasAnswers(
                location=LOCATION_UNDECIDED,
                order_flow=[OF_NONE],
                structure=STRUCTURE_RANGE,
                direction=Direction.LONG,
            )
        )
        assert result.bias == Bias.NONE
        assert result.market_state is None


# ---------------------------------------------------------------------------
# Decision order
# ---------------------------------------------------------------------------


class TestDecisionOrder:
    def test_absorption_blocks_out_of_balance(self):
        result = classify(
            BiasAnswers(
                location=LOCATION_OUTSIDE_VALUE,
                order_flow=[OF_CVD_WITH_MOVE, OF_ABSORPTION],
                structure=STRUCTURE_IMPULSE,
                direction=Direction.SHORT,
            )
        )
        assert result.bias == Bias.MR_SHORT
        assert result.market_state == MarketState.IN_BALANCE

    def test_imbalances_count_as_flow_with_move(self):
        result = classify(
            BiasAnswers(
                location=LOCATION_OUTSIDE_VALUE,
                order_flow=[OF_IMBALANCES_WITH_MOVE],
                structure=STRUCTURE_IMPULSE,
                direction=Direction.SHORT,
            )
        )
        assert result.bias == Bias.OOB_SHORT

    def test_inside_value_is_in_balance(self):
        result = classify(
            BiasAnswers(
                location=LOCATION_INSIDE_VALUE,
                order_flow=[OF_BIG_PRINTS],
                structure=STRUCTURE_IMPULSE,
                direction=Direction.LONG,
            )
        )
        assert result.bias == Bias.MR_LONG

    def test_direction_without_resolvable_state_is_none(self):
        result = classify(
            BiasAnswers(
                location=LOCATION_VWAP_RECLAIM,
                order_flow=[OF_BIG_PRINTS],
                structure=STRUCTURE_IMPULSE,
                direction=Direction.LONG,
            )
        )
        assert result.bias == Bias.NONE
        assert result.market_state is None

    def test_undecided_with_other_flow_still_classifies(self):
        result = classify(
            BiasAnswers(
                location=LOCATION_UNDECIDED,
                order_flow=[OF_CVD_WITH_MOVE],
                structure=STRUCTURE_RANGE,
                direction=Direction.SHORT,
            )
        )
        assert result.bias == Bias.MR_SHORT

    def test_empty_answers_do_not_raise(self):
        result = classify(BiasAnswers(session=""))
        assert result.bias == Bias.NONE
        assert result.market_state is None
        assert result.confidence is None
        assert result.tags == []

    def test_confidence_is_passed_through(self):
        result = classify(
            BiasAnswers(structure=STRUCTURE_RANGE, direction=Direction.LONG, confidence=Confidence.MEDIUM)
        )
        assert result.confidence == Confidence.MEDIUM


# ---------------------------------------------------------------------------
# Exhaustive table
# ---------------------------------------------------------------------------


COMBINATIONS = list(
    itertools.product(
        LOCATION_OPTIONS, ORDER_FLOW_SETS, STRUCTURE_OPTIONS, [Direction.LONG, Direction.SHORT, None]
    )
)


class TestExhaustive:
    @pytest.mark.parametrize("location,order_flow,structure,direction", COMBINATIONS)
    def test_invariants_hold(self, location, order_flow, structure, direction):
        answers = BiasAnswers(
            location=location, order_flow=order_flow, structure=structure, direction=direction
        )
        result = classify(answers)

        if direction is None:
            assert result.bias == Bias.NONE
        if result.bias == Bias.NONE:
            assert result.market_state is None
        else:
            assert result.market_state is not None
        if result.bias in (Bias.OOB_LONG, Bias.OOB_SHORT):
            assert result.market_state == MarketState.OUT_OF_BALANCE
        if result.bias in (Bias.MR_LONG, Bias.MR_SHORT):
            assert result.market_state == MarketState.IN_BALANCE
        if result.bias != Bias.NONE:
            assert result.bias.value.endswith(direction.value)

        assert classify(answers).model_dump_json() == result.model_dump_json()


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


class TestTags:
    def test_tags_follow_answer_order(self):
        result = classify(
            BiasAnswers(
                location=LOCATION_OUTSIDE_VALUE,
                order_flow=[OF_CVD_WITH_MOVE, OF_IMBALANCES_WITH_MOVE],
                structure=STRUCTURE_IMPULSE,
                session="London Killzone",
                direction=Direction.LONG,
            )
        )
        assert result.tags == [
            LOCATION_OUTSIDE_VALUE,
            OF_CVD_WITH_MOVE,
            OF_IMBALANCES_WITH_MOVE,
            STRUCTURE_IMPULSE,
            "London Killzone",
        ]

    def test_undecided_and_none_flow_are_omitted(self):
        result = classify(
            BiasAnswers(
                location=LOCATION_UNDECIDED, order_flow=[OF_NONE], structure=STRUCTURE_RANGE, session=""
            )
        )
        assert result.tags == [STRUCTURE_RANGE]

    def test_session_defaults_to_active_session(self, monkeypatch):
        overlap = next(s for s in TRADING_SESSIONS if s.id == "london_ny_overlap")
        monkeypatch.setattr("bias_journal.bias_classifier.active_session", lambda: overlap)

        answers = BiasAnswers(structure=STRUCTURE_RANGE, direction=Direction.LONG)
        assert answers.session == "London vs. New York"
        assert classify(answers).tags == [STRUCTURE_RANGE, "London vs. New York"]

    def test_no_active_session_leaves_session_blank(self, monkeypatch):
        monkeypatch.setattr("bias_journal.bias_classifier.active_session", lambda: None)

        answers = BiasAnswers(structure=STRUCTURE_RANGE, direction=Direction.LONG)
        assert answers.session == ""
        assert classify(answers).tags == [STRUCTURE_RANGE]

    def test_explicit_session_wins(self, monkeypatch):
        monkeypatch.setattr("bias_journal.bias_classifier.active_session", lambda: None)
        assert BiasAnswers(session="Asian Range").session == "Asian Range"


# ---------------------------------------------------------------------------
# Order-flow toggling
# ---------------------------------------------------------------------------


class TestToggleOrderFlow:
    def test_add_and_remove(self):
        selected = toggle_order_flow([], OF_CVD_WITH_MOVE)
        assert selected == [OF_CVD_WITH_MOVE]
        assert toggle_order_flow(selected, OF_CVD_WITH_MOVE) == []

    def test_none_clears_others(self):
        assert toggle_order_flow([OF_CVD_WITH_MOVE, OF_ABSORPTION], OF_NONE) == [OF_NONE]

    def test_other_flag_clears_none(self):
        assert toggle_order_flow([OF_NONE], OF_BIG_PRINTS) == [OF_BIG_PRINTS]

    def test_none_toggles_off(self):
        assert toggle_order_flow([OF_NONE], OF_NONE) == []

    def test_is_complete(self):
        answers = BiasAnswers(
            location=LOCATION_INSIDE_VALUE,
            order_flow=[OF_ABSORPTION],
            structure=STRUCTURE_RANGE,
        )
        assert answers.is_complete is False
        assert answers.model_copy(update={"direction": Direction.SHORT}).is_complete is True
