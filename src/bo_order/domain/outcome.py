"""Outcome resolution — pure function of direction and price movement.

    direction   exit vs entry   result   balance impact   reputation
    Buy Up      exit > entry    win      +base profit     +5
    Buy Down    exit < entry    win      +base profit     +5
    either      exit == entry   draw     0                0
    otherwise                   loss     -base profit     -5

The displayed profit_loss is the signed balance impact; there is no separate
display figure.
"""

from dataclasses import dataclass
from decimal import Decimal

from src.bo_common.enums import OrderDirection, OrderResult
from src.bo_order.domain.payout import base_profit

REPUTATION_STEP = 5


@dataclass(frozen=True)
class Outcome:
    result: OrderResult
    balance_impact: int  # cents, signed
    reputation_delta: int

    def principal_return(self, amount: int) -> int:
        """Credit to available balance: escrowed principal plus/minus the impact."""
        return amount + self.balance_impact


def resolve_result(direction: str, entry_price: Decimal, exit_price: Decimal) -> OrderResult:
    if exit_price == entry_price:
        return OrderResult.DRAW
    moved_up = exit_price > entry_price
    if direction == OrderDirection.BUY_UP.value:
        return OrderResult.WIN if moved_up else OrderResult.LOSS
    if direction == OrderDirection.BUY_DOWN.value:
        return OrderResult.LOSS if moved_up else OrderResult.WIN
    raise ValueError(f"Unknown order direction: {direction!r}")


def resolve_outcome(
    direction: str,
    entry_price: Decimal,
    exit_price: Decimal,
    amount_cents: int,
    duration: int,
) -> Outcome:
    result = resolve_result(direction, entry_price, exit_price)
    profit = base_profit(amount_cents, duration)
    if result is OrderResult.WIN:
        return Outcome(result, profit, REPUTATION_STEP)
    if result is OrderResult.LOSS:
        return Outcome(result, -profit, -REPUTATION_STEP)
    return Outcome(result, 0, 0)
