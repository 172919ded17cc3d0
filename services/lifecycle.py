"""
Booking state machine, pricing and refund rules.

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled | no_show
    cancelled, completed, no_show are terminal
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from services.errors import CancellationWindowExpired, InvalidTransition

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"
NO_SHOW = "no_show"

STATUSES = (PENDING, CONFIRMED, CANCELLED, COMPLETED, NO_SHOW)

# Only these take part in conflict detection
ACTIVE_STATUSES = frozenset({PENDING, CONFIRMED})

TRANSITIONS = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({COMPLETED, CANCELLED, NO_SHOW}),
    CANCELLED: frozenset(),
    COMPLETED: frozenset(),
    NO_SHOW: frozenset(),
}

# Payment is tracked as a status only
PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_REFUNDED = "refunded"
PAYMENT_FAILED = "failed"


DEFAULT_REFUND_WINDOW_HOURS = 24

_CENTS = Decimal("0.01")


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def initial_status(auto_confirm: bool = False, default: str = PENDING) -> str:
    if auto_confirm:
        return CONFIRMED
    if default not in (PENDING, CONFIRMED):
        raise ValueError(f"Bookings cannot start as {default!r}")
    return default


def price_for(hourly_rate, duration_minutes: int) -> Decimal:
    """Hourly rate times duration, frozen on the booking when it is created."""
    rate = Decimal(str(hourly_rate))
    return (rate * Decimal(duration_minutes) / Decimal(60)).quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CancellationPolicy:
    """
    How much notice a cancellation needs for a full refund.

    ``enforce_window`` decides what happens inside the window: the player-facing
    entry point refuses the cancellation, the operator entry point allows it
    without a refund.
    """

    refund_window_hours: int = DEFAULT_REFUND_WINDOW_HOURS
    enforce_window: bool = True

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.refund_window_hours)

    def within_refund_window(self, starts_at: datetime, now: datetime) -> bool:
        return (starts_at - now) >= self.window

    def refund_for(self, total_amount, starts_at: datetime, now: datetime) -> Decimal:
        if self.within_refund_window(starts_at, now):
            return Decimal(str(total_amount)).quantize(_CENTS)
        return Decimal("0.00")


def transition(booking, target: str, *, now: datetime, acting_user_id=None, policy: CancellationPolicy = None, reason=None):
    """
    Moves ``booking`` to ``target`` in place.

    Returns the refund amount for cancellations and None otherwise. Raises
    InvalidTransition or CancellationWindowExpired; the booking is left
    untouched when it raises.
    """
    current = booking.status
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot move a {current} booking to {target}",
            field="status",
            current=current,
            requested=target,
        )

    starts_at = booking.starts_at

    if target in (COMPLETED, NO_SHOW) and starts_at > now:
        raise InvalidTransition(
            f"Booking cannot be marked {target} before it starts",
            field="status",
            current=current,
            requested=target,
        )

    if target != CANCELLED:
        booking.status = target
        return None

    policy = policy or CancellationPolicy()
    in_window = policy.within_refund_window(starts_at, now)
    if policy.enforce_window and not in_window:
        raise CancellationWindowExpired(
            f"Booking cannot be cancelled within {policy.refund_window_hours} hours of its start",
            refund_window_hours=policy.refund_window_hours,
            starts_at=starts_at.isoformat(),
        )

    refund = policy.refund_for(booking.total_amount, starts_at, now)
    booking.status = CANCELLED
    booking.cancelled_at = now
    booking.cancelled_by = acting_user_id
    booking.cancellation_reason = reason
    booking.refund_amount = refund
    if in_window:
        booking.payment_status = PAYMENT_REFUNDED
    return refund
