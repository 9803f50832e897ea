"""
Status rules for bookings, delivery assignments and payments.

Every place that changes one of the three status fields asks this module
first. The booking and assignment statuses move together: a change on one
side yields the matching change on the other through ``booking_status_for``
and ``assignment_status_for``.
"""

from typing import Optional

from ..core.exceptions import InvalidTransitionError, ValidationError
from ..models.booking import BookingStatus, PaymentMethod
from ..models.delivery import AssignmentStatus
from ..models.payment import PaymentStatus

BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.APPROVED, BookingStatus.CANCELLED}),
    BookingStatus.APPROVED: frozenset({
        BookingStatus.OUT_FOR_DELIVERY,
        BookingStatus.DELIVERED,
        BookingStatus.CANCELLED,
    }),
    # Back to APPROVED only when a delivery attempt fails
    BookingStatus.OUT_FOR_DELIVERY: frozenset({BookingStatus.DELIVERED, BookingStatus.APPROVED}),
    BookingStatus.DELIVERED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# Statuses an admin may request directly through the status endpoint
ADMIN_TARGET_STATUSES = frozenset({
    BookingStatus.APPROVED,
    BookingStatus.OUT_FOR_DELIVERY,
    BookingStatus.DELIVERED,
    BookingStatus.CANCELLED,
})

CANCELLABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.APPROVED})

# Booking statuses that need a delivery assignment before they can be entered
REQUIRES_ASSIGNMENT = frozenset({BookingStatus.OUT_FOR_DELIVERY, BookingStatus.DELIVERED})

ASSIGNMENT_TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    AssignmentStatus.ASSIGNED: frozenset({
        AssignmentStatus.PICKED_UP,
        AssignmentStatus.OUT_FOR_DELIVERY,
        AssignmentStatus.DELIVERED,
        AssignmentStatus.FAILED,
    }),
    AssignmentStatus.PICKED_UP: frozenset({
        AssignmentStatus.OUT_FOR_DELIVERY,
        AssignmentStatus.DELIVERED,
        AssignmentStatus.FAILED,
    }),
    AssignmentStatus.OUT_FOR_DELIVERY: frozenset({AssignmentStatus.DELIVERED, AssignmentStatus.FAILED}),
    AssignmentStatus.DELIVERED: frozenset(),
    AssignmentStatus.FAILED: frozenset(),
}

OPEN_ASSIGNMENT_STATUSES = frozenset({
    AssignmentStatus.ASSIGNED,
    AssignmentStatus.PICKED_UP,
    AssignmentStatus.OUT_FOR_DELIVERY,
})

_ASSIGNMENT_TO_BOOKING: dict[AssignmentStatus, BookingStatus] = {
    AssignmentStatus.PICKED_UP: BookingStatus.APPROVED,
    AssignmentStatus.OUT_FOR_DELIVERY: BookingStatus.OUT_FOR_DELIVERY,
    AssignmentStatus.DELIVERED: BookingStatus.DELIVERED,
    AssignmentStatus.FAILED: BookingStatus.APPROVED,
}

_BOOKING_TO_ASSIGNMENT: dict[BookingStatus, AssignmentStatus] = {
    BookingStatus.OUT_FOR_DELIVERY: AssignmentStatus.OUT_FOR_DELIVERY,
    BookingStatus.DELIVERED: AssignmentStatus.DELIVERED,
    BookingStatus.CANCELLED: AssignmentStatus.FAILED,
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.SUCCESS, PaymentStatus.FAILED, PaymentStatus.CANCELLED}),
    PaymentStatus.SUCCESS: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}


def is_terminal(status: BookingStatus) -> bool:
    return not BOOKING_TRANSITIONS[BookingStatus(status)]


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in BOOKING_TRANSITIONS[BookingStatus(current)]


def ensure_booking_transition(
    current: BookingStatus,
    target: BookingStatus,
    has_assignment: bool = False,
) -> None:
    """
    Validate a booking status change.

    Args:
        current: Status the booking is in now
        target: Requested status
        has_assignment: Whether the booking has an open delivery assignment

    Raises:
        InvalidTransitionError: If the move is not in the transition table or
            needs a delivery assignment the booking does not have
    """
    current = BookingStatus(current)
    target = BookingStatus(target)

    if target == BookingStatus.CANCELLED and current not in CANCELLABLE_STATUSES:
        raise InvalidTransitionError(
            "booking",
            current.value,
            target.value,
            detail=f"Only pending or approved bookings can be cancelled (booking is {current.value})",
        )

    if target in REQUIRES_ASSIGNMENT and not has_assignment:
        raise InvalidTransitionError(
            "booking",
            current.value,
            target.value,
            detail=f"Cannot mark as {target.value} without a delivery assignment",
        )

    if not can_transition(current, target):
        raise InvalidTransitionError("booking", current.value, target.value)


def ensure_admin_target(target: str) -> BookingStatus:
    """Parse a status requested by an admin; only the four admin targets are accepted."""
    try:
        status = BookingStatus(target)
    except ValueError:
        status = None
    if status not in ADMIN_TARGET_STATUSES:
        raise ValidationError(
            detail="Invalid status. Must be APPROVED, OUT_FOR_DELIVERY, DELIVERED, or CANCELLED"
        )
    return status


def ensure_admin_transition(current: BookingStatus, target: BookingStatus, has_assignment: bool = False) -> None:
    """Like ``ensure_booking_transition``, minus the moves reserved for delivery failures."""
    current = BookingStatus(current)
    target = BookingStatus(target)
    if current == BookingStatus.OUT_FOR_DELIVERY and target == BookingStatus.APPROVED:
        raise InvalidTransitionError(
            "booking",
            current.value,
            target.value,
            detail="A booking out for delivery returns to APPROVED only when the delivery fails",
        )
    ensure_booking_transition(current, target, has_assignment=has_assignment)


def ensure_assignable(booking_status: BookingStatus, existing: Optional[AssignmentStatus]) -> None:
    """
    Validate that a delivery partner may be assigned.

    A booking with a FAILED assignment may be assigned again; any other
    existing assignment blocks a second one.
    """
    if BookingStatus(booking_status) != BookingStatus.APPROVED:
        raise InvalidTransitionError(
            "booking",
            BookingStatus(booking_status).value,
            AssignmentStatus.ASSIGNED.value,
            detail="Can only assign delivery to approved bookings",
        )
    if existing is not None and AssignmentStatus(existing) != AssignmentStatus.FAILED:
        raise InvalidTransitionError(
            "assignment",
            AssignmentStatus(existing).value,
            AssignmentStatus.ASSIGNED.value,
            detail="Delivery already assigned",
        )


def ensure_assignment_transition(current: AssignmentStatus, target: AssignmentStatus) -> None:
    current = AssignmentStatus(current)
    target = AssignmentStatus(target)
    if target not in ASSIGNMENT_TRANSITIONS[current]:
        raise InvalidTransitionError("assignment", current.value, target.value)


def booking_status_for(assignment_status: AssignmentStatus) -> Optional[BookingStatus]:
    """Booking status implied by an assignment status, or None if it implies nothing."""
    return _ASSIGNMENT_TO_BOOKING.get(AssignmentStatus(assignment_status))


def assignment_status_for(booking_status: BookingStatus) -> Optional[AssignmentStatus]:
    """Assignment status implied by a booking status, or None if it implies nothing."""
    return _BOOKING_TO_ASSIGNMENT.get(BookingStatus(booking_status))


def ensure_payment_reviewable(
    payment_status: Optional[PaymentStatus],
    payment_method: Optional[str],
) -> None:
    """
    Only a pending UPI payment can be confirmed or rejected.

    Raises:
        ValidationError: If there is no payment, it is not UPI or not pending
    """
    if payment_status is None:
        raise ValidationError(detail="No payment found for this booking")
    if payment_method != PaymentMethod.UPI:
        raise ValidationError(detail="Only UPI payments can be reviewed")
    if PaymentStatus(payment_status) != PaymentStatus.PENDING:
        raise InvalidTransitionError(
            "payment",
            PaymentStatus(payment_status).value,
            "REVIEWED",
            detail=f"Only pending payments can be reviewed (payment is {PaymentStatus(payment_status).value})",
        )


def ensure_payment_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    current = PaymentStatus(current)
    target = PaymentStatus(target)
    if current != target and target not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransitionError("payment", current.value, target.value)


def display_payment_status(booking_status: BookingStatus, latest: Optional[PaymentStatus]) -> PaymentStatus:
    """Payment status shown on booking listings."""
    if latest is not None:
        return PaymentStatus(latest)
    if BookingStatus(booking_status) == BookingStatus.CANCELLED:
        return PaymentStatus.CANCELLED
    return PaymentStatus.PENDING
