from decimal import Decimal

from renolink.common.enums import BidStatus
from renolink.common.exceptions import InvalidTransitionError

VALID_TRANSITIONS: dict[BidStatus, list[BidStatus]] = {
    BidStatus.SUBMITTED: [BidStatus.ACCEPTED, BidStatus.REJECTED],
    BidStatus.ACCEPTED: [],
    BidStatus.REJECTED: [],
}


def is_terminal(status: BidStatus | str) -> bool:
    return not VALID_TRANSITIONS[BidStatus(status)]


def check_transition(current: BidStatus | str, target: BidStatus | str) -> BidStatus:
    """Return the target status, or raise when the bid state machine forbids the move."""
    current, target = BidStatus(current), BidStatus(target)
    if target not in VALID_TRANSITIONS[current]:
        raise InvalidTransitionError("bid", current.value, target.value)
    return target


def compute_total(items: list[dict]) -> Decimal:
    return sum((Decimal(str(item["cost"])) for item in items), Decimal("0.00")).quantize(Decimal("0.01"))
