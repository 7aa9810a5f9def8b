"""Entry rules checked before a trade is sent to the backend."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

from bias_journal.models.trade import DIRECTIONS, RISK_TIERS

if TYPE_CHECKING:
    from bias_journal.execution_gate import ExecutionContextGate
    from bias_journal.models.trade import TradeDraft

logger = structlog.get_logger()


class EntryCheck(BaseModel):
    passed: bool
    rule: str
    reason: str


class EntryResult(BaseModel):
    approved: bool
    failures: list[EntryCheck] = []
    override_required: bool = False


class EntryRules:
    """
    | Rule               | Condition                                   |
    |--------------------|---------------------------------------------|
    | Day loss limit     | < N losing closed trades today, or override |
    | Base fields        | entry, stop, asset, location, aggression    |
    | Known values       | direction long/short, configured risk tier  |
    | Bias active        | actionable bias + market state              |
    | Model selected     | an execution model is chosen                |
    | Model matches bias | model allowed for the active market state   |
    | Checklist complete | every checklist item is checked             |
    """

    def __init__(self, daily_loss_limit: int = 3, risk_tiers: Iterable[str] = RISK_TIERS) -> None:
        self.daily_loss_limit = daily_loss_limit
        self.risk_tiers = frozenset(risk_tiers)

    def validate(self, draft: TradeDraft, gate: ExecutionContextGate, daily_losses: int) -> EntryResult:
        loss_check = self._check_day_loss_limit(daily_losses, draft.override_reason)
        if not loss_check.passed:
            logger.warning("entry_blocked_by_loss_limit", daily_losses=daily_losses)
            return EntryResult(approved=False, failures=[loss_check], override_required=True)

        failures: list[EntryCheck] = []
        for check in [
            self._check_base_fields(draft),
            self._check_bias_active(gate),
            self._check_model_selected(gate),
            self._check_model_matches_bias(gate),
            self._check_checklist_complete(gate),
        ]:
            if not check.passed:
                failures.append(check)

        approved = len(failures) == 0
        if not approved:
            logger.warning("entry_rejected", failures=[f.rule for f in failures])
        return EntryResult(approved=approved, failures=failures)

    def _check_day_loss_limit(self, daily_losses: int, override_reason: str | None) -> EntryCheck:
        if daily_losses < self.daily_loss_limit:
            return EntryCheck(passed=True, rule="day_loss_limit", reason="OK")
        if override_reason and override_reason.strip():
            return EntryCheck(passed=True, rule="day_loss_limit", reason="Overridden")
        return EntryCheck(
            passed=False,
            rule="day_loss_limit",
            reason=f"{daily_losses} losing trades today, override reason required",
        )

    def _check_base_fields(self, draft: TradeDraft) -> EntryCheck:
        missing = [
            name
            for name, present in (
                ("entry_price", draft.entry_price is not None),
                ("stop_loss", draft.stop_loss is not None),
                ("asset", bool(draft.asset)),
                ("locations", bool(draft.locations)),
                ("aggression", bool(draft.aggression)),
            )
            if not present
        ]
        problems = [f"Missing: {', '.join(missing)}"] if missing else []
        if draft.direction not in DIRECTIONS:
            problems.append(f"Invalid direction: {draft.direction!r}")
        if draft.risk_tier not in self.risk_tiers:
            problems.append(f"Invalid risk tier: {draft.risk_tier!r}")
        if problems:
            return EntryCheck(passed=False, rule="base_fields", reason="; ".join(problems))
        return EntryCheck(passed=True, rule="base_fields", reason="OK")

    def _check_bias_active(self, gate: ExecutionContextGate) -> EntryCheck:
        if not gate.can_use_execution_model:
            return EntryCheck(
                passed=False,
                rule="bias_active",
                reason="Select a bias and market state before logging a trade",
            )
        return EntryCheck(passed=True, rule="bias_active", reason="OK")

    def _check_model_selected(self, gate: ExecutionContextGate) -> EntryCheck:
        if gate.selected_model is None:
            return EntryCheck(passed=False, rule="model_selected", reason="No execution model chosen")
        return EntryCheck(passed=True, rule="model_selected", reason="OK")

    def _check_model_matches_bias(self, gate: ExecutionContextGate) -> EntryCheck:
        if gate.selected_model is not None and gate.selected_model not in gate.allowed_models():
            return EntryCheck(
                passed=False,
                rule="model_matches_bias",
                reason=f"{gate.selected_model.value} does not fit the active market state",
            )
        return EntryCheck(passed=True, rule="model_matches_bias", reason="OK")

    def _check_checklist_complete(self, gate: ExecutionContextGate) -> EntryCheck:
        if not gate.checklist_complete:
            unchecked = sum(1 for item in gate.checklist if not item.checked)
            return EntryCheck(
                passed=False,
                rule="checklist_complete",
                reason=f"{unchecked} checklist item(s) unchecked" if gate.checklist else "Checklist empty",
            )
        return EntryCheck(passed=True, rule="checklist_complete", reason="OK")
