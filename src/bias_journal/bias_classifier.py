"""Five-step bias quiz: answer options and the classification decision table."""

from __future__ import annotations

from pydantic import BaseModel, Field

from bias_journal.models.bias import (
    Bias,
    BiasResult,
    Confidence,
    Direction,
    MarketState,
)
from bias_journal.sessions import active_session

LOCATION_OUTSIDE_VALUE = "Outside value & holding beyond edge (σ1→σ2)"
LOCATION_INSIDE_VALUE = "Inside value / reclaimed VAH/VAL"
LOCATION_VWAP_RECLAIM = "Just reclaimed VWAP after stretch"
LOCATION_UNDECIDED = "Undecided (skip)"

LOCATION_OPTIONS = (
    LOCATION_OUTSIDE_VALUE,
    LOCATION_INSIDE_VALUE,
    LOCATION_VWAP_RECLAIM,
    LOCATION_UNDECIDED,
)

OF_CVD_WITH_MOVE = "CVD with move"
OF_IMBALANCES_WITH_MOVE = "Footprint imbalances with move"
OF_ABSORPTION = "Absorption/exhaustion against move"
OF_BIG_PRINTS = "Big prints in trend direction"
OF_NONE = "None/unclear"

ORDER_FLOW_OPTIONS = (
    OF_CVD_WITH_MOVE,
    OF_IMBALANCES_WITH_MOVE,
    OF_ABSORPTION,
    OF_BIG_PRINTS,
    OF_NONE,
)

STRUCTURE_IMPULSE = "Impulse + shallow PB"
STRUCTURE_FAILED_BREAKOUT = "Failed breakout & reclaim"
STRUCTURE_RANGE = "Range rotation"

STRUCTURE_OPTIONS = (
    STRUCTURE_IMPULSE,
    STRUCTURE_FAILED_BREAKOUT,
    STRUCTURE_RANGE,
)


def _current_session_name() -> str:
    session = active_session()
    return session.name if session else ""


class BiasAnswers(BaseModel):
    location: str = ""
    order_flow: list[str] = []
    structure: str = ""
    session: str = Field(default_factory=_current_session_name)  # defaults to the session trading now
    direction: Direction | None = None
    confidence: Confidence | None = None

    @property
    def is_complete(self) -> bool:
        """All answers needed to submit the quiz are present."""
        return bool(
            self.location and self.order_flow and self.structure and self.direction
        )


def toggle_order_flow(selected: list[str], choice: str) -> list[str]:
    """Toggle one order-flow flag.

    "None/unclear" is exclusive: picking it clears every other flag, and
    picking any other flag clears it.
    """
    exists = choice in selected
    if choice == OF_NONE:
        return [] if exists else [OF_NONE]
    if exists:
        updated = [item for item in selected if item != choice]
    else:
        updated = [*selected, choice]
    return [item for item in updated if item != OF_NONE]


def classify(answers: BiasAnswers) -> BiasResult:
    """Map quiz answers to a BiasResult. Never raises."""
    location = answers.location or ""
    structure = answers.structure or ""
    order_flow = list(answers.order_flow or [])

    outside_value = location.startswith("Outside value")
    inside_value = location.startswith("Inside value")
    failed_breakout = structure == STRUCTURE_FAILED_BREAKOUT
    impulse = structure == STRUCTURE_IMPULSE
    range_rotation = structure == STRUCTURE_RANGE

    of_with_move = OF_CVD_WITH_MOVE in order_flow or OF_IMBALANCES_WITH_MOVE in order_flow
    of_absorption = OF_ABSORPTION in order_flow

    undecided_everywhere = (
        location == LOCATION_UNDECIDED
        and (not order_flow or OF_NONE in order_flow)
        and range_rotation
    )

    market_state: MarketState | None = None
    if outside_value and of_with_move and impulse and not of_absorption:
        market_state = MarketState.OUT_OF_BALANCE
    elif failed_breakout or inside_value or of_absorption or range_rotation:
        market_state = MarketState.IN_BALANCE

    direction = answers.direction
    if direction is None or undecided_everywhere:
        bias = Bias.NONE
    elif market_state == MarketState.OUT_OF_BALANCE:
        bias = Bias.OOB_LONG if direction == Direction.LONG else Bias.OOB_SHORT
    elif market_state == MarketState.IN_BALANCE:
        bias = Bias.MR_LONG if direction == Direction.LONG else Bias.MR_SHORT
    else:
        bias = Bias.NONE

    # A NONE bias never carries a market state.
    if bias == Bias.NONE:
        market_state = None

    candidates = [
        location if location != LOCATION_UNDECIDED else None,
        *(option for option in order_flow if option != OF_NONE),
        structure,
        answers.session,
    ]
    tags = [item for item in candidates if item]

    return BiasResult(
        bias=bias,
        market_state=market_state,
        confidence=answers.confidence,
        tags=tags,
    )
