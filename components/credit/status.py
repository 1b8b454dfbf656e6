"""Credit lifecycle: statuses, settlement arithmetic and transition rules.

A credit's status changes from two sources:

* settlement transitions, computed from the amount and the payments made
  against it (``pending`` -> ``partial`` -> ``paid``);
* operator transitions, explicit actions taken by a shop (flagging a
  customer as ``defaulter`` or resetting the flag back to ``pending``).

Both go through :func:`authorize_transition` before anything is written.
"""

import enum
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

from components.core.exceptions import InvalidStatusTransitionError

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


class CreditStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    DEFAULTER = "defaulter"


class TransitionSource(str, enum.Enum):
    SETTLEMENT = "settlement"
    OPERATOR = "operator"


# Targets an operator may set directly. Partial and paid only ever follow
# from payments.
OPERATOR_TARGETS = frozenset({CreditStatus.DEFAULTER, CreditStatus.PENDING})
SETTLEMENT_TARGETS = frozenset({
    CreditStatus.PENDING,
    CreditStatus.PARTIAL,
    CreditStatus.PAID,
    CreditStatus.DEFAULTER,
})


def to_money(value: Number) -> Decimal:
    """Normalise any numeric value to a two-decimal Decimal."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def outstanding(amount: Number, total_paid: Number) -> Decimal:
    """Amount still owed, never negative."""
    remaining = to_money(amount) - to_money(total_paid)
    return max(remaining, Decimal("0.00"))


def settlement_status(amount: Number, total_paid: Number, current: CreditStatus) -> CreditStatus:
    """Status a credit should hold once ``total_paid`` has been paid on it.

    Any payment short of the amount reads as partial, a defaulter flag
    included.
    """
    amount = to_money(amount)
    total_paid = to_money(total_paid)
    if total_paid > 0 and total_paid >= amount:
        return CreditStatus.PAID
    if total_paid > 0:
        return CreditStatus.PARTIAL
    return CreditStatus.PENDING


def authorize_transition(current: CreditStatus, target: CreditStatus, source: TransitionSource) -> bool:
    """Check a status change; returns False when it is a no-op.

    Raises InvalidStatusTransitionError when ``source`` may not set ``target``.
    """
    current = CreditStatus(current)
    target = CreditStatus(target)
    allowed = OPERATOR_TARGETS if source == TransitionSource.OPERATOR else SETTLEMENT_TARGETS
    if target not in allowed:
        raise InvalidStatusTransitionError(
            f"Status '{target.value}' cannot be set by a {source.value} action"
        )
    if source == TransitionSource.SETTLEMENT and target == CreditStatus.DEFAULTER \
            and current != CreditStatus.DEFAULTER:
        raise InvalidStatusTransitionError("Payments cannot mark a credit as defaulter")
    return current != target


def aggregate_status(statuses: Iterable[Union[CreditStatus, str]]) -> CreditStatus:
    """Customer-level status over all of a customer's credits.

    Precedence: any defaulter, then all paid, then any partial, then any
    pending. A customer without credits reads as paid.
    """
    found = {CreditStatus(status) for status in statuses}
    if CreditStatus.DEFAULTER in found:
        return CreditStatus.DEFAULTER
    if found <= {CreditStatus.PAID}:
        return CreditStatus.PAID
    if CreditStatus.PARTIAL in found:
        return CreditStatus.PARTIAL
    return CreditStatus.PENDING
