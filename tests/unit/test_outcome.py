"""Tests for outcome resolution: result, balance impact, reputation step."""

from decimal import Decimal

import pytest

from src.bo_common.enums import OrderResult
from src.bo_order.domain.outcome import (
    REPUTATION_STEP,
    Outcome,
    resolve_outcome,
    resolve_result,
)

ENTRY = Decimal("50000.00")
UP = Decimal("50010.00")
DOWN = Decimal("49990.00")


class TestResolveResult:
    @pytest.mark.parametrize(
        ("direction", "exit_price", "expected"),
        [
            ("Buy Up", UP, OrderResult.WIN),
            ("Buy Up", DOWN, OrderResult.LOSS),
            ("Buy Down", DOWN, OrderResult.WIN),
            ("Buy Down", UP, OrderResult.LOSS),
            ("Buy Up", ENTRY, OrderResult.DRAW),
            ("Buy Down", ENTRY, OrderResult.DRAW),
        ],
    )
    def test_truth_table(
        self, direction: str, exit_price: Decimal, expected: OrderResult
    ) -> None:
        assert resolve_result(direction, ENTRY, exit_price) is expected

    def test_tiny_move_still_decides(self) -> None:
        assert resolve_result("Buy Up", ENTRY, ENTRY + Decimal("0.00000001")) is OrderResult.WIN

    def test_unknown_direction(self) -> None:
        with pytest.raises(ValueError):
            resolve_result("Sideways", ENTRY, UP)


class TestResolveOutcome:
    def test_win(self) -> None:
        outcome = resolve_outcome("Buy Up", ENTRY, UP, 200000, 60)
        assert outcome == Outcome(OrderResult.WIN, 60000, REPUTATION_STEP)
        assert outcome.principal_return(200000) == 260000

    def test_loss(self) -> None:
        outcome = resolve_outcome("Buy Up", ENTRY, DOWN, 200000, 60)
        assert outcome == Outcome(OrderResult.LOSS, -60000, -REPUTATION_STEP)
        assert outcome.principal_return(200000) == 140000

    def test_draw_returns_principal(self) -> None:
        outcome = resolve_outcome("Buy Down", ENTRY, ENTRY, 200000, 240)
        assert outcome == Outcome(OrderResult.DRAW, 0, 0)
        assert outcome.principal_return(200000) == 200000

    def test_down_win_uses_duration_percentage(self) -> None:
        outcome = resolve_outcome("Buy Down", ENTRY, DOWN, 100000, 240)
        assert outcome.balance_impact == 60000
