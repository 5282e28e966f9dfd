"""Package selection and deduction planning for the prepaid-hours ledger.

Planning is pure: it looks at a snapshot of a student's packages and decides
how many hours to take from each. Writing the plan is the service's job.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from drivedesk.modules.ledger.models import HourPackage
from drivedesk.shared.exceptions import InsufficientHoursException, ValidationException

ZERO_HOURS = Decimal("0.00")

SelectionPolicy = Callable[[Sequence[HourPackage]], list[HourPackage]]


def _purchase_order_key(package: HourPackage) -> tuple:
    return (package.purchase_date, package.created_at, str(package.id))


def oldest_first(packages: Sequence[HourPackage]) -> list[HourPackage]:
    """Consume the earliest purchased hours before newer ones."""
    return sorted(packages, key=_purchase_order_key)


def newest_first(packages: Sequence[HourPackage]) -> list[HourPackage]:
    return sorted(packages, key=_purchase_order_key, reverse=True)


SELECTION_POLICIES: dict[str, SelectionPolicy] = {
    "oldest_first": oldest_first,
    "newest_first": newest_first,
}


def get_selection_policy(name: str) -> SelectionPolicy:
    try:
        return SELECTION_POLICIES[name]
    except KeyError as exc:
        raise ValidationException(f"Unknown package selection policy: {name}") from exc


@dataclass(frozen=True, slots=True)
class Allocation:
    """Hours to take from one package, with the balance the plan was based on."""

    package: HourPackage
    hours: Decimal
    remaining_before: Decimal

    @property
    def remaining_after(self) -> Decimal:
        return self.remaining_before - self.hours


def total_remaining(packages: Sequence[HourPackage]) -> Decimal:
    return sum((package.remaining_hours for package in packages), ZERO_HOURS)


def plan_deduction(
    packages: Sequence[HourPackage],
    hours_needed: Decimal,
    policy: SelectionPolicy = oldest_first,
) -> list[Allocation]:
    """Split ``hours_needed`` across packages in policy order.

    Raises ``InsufficientHoursException`` when the packages together cannot
    cover the request; a booking is never partially charged.
    """
    if hours_needed <= 0:
        raise ValidationException("Hours to deduct must be positive")

    open_packages = [package for package in packages if package.remaining_hours > 0]
    available = total_remaining(open_packages)
    if available < hours_needed:
        raise InsufficientHoursException(
            f"Not enough prepaid hours remaining: {available} available, {hours_needed} needed",
            available=available,
            requested=hours_needed,
        )

    allocations: list[Allocation] = []
    still_needed = hours_needed
    for package in policy(open_packages):
        if still_needed <= 0:
            break
        take = min(package.remaining_hours, still_needed)
        allocations.append(
            Allocation(package=package, hours=take, remaining_before=package.remaining_hours),
        )
        still_needed -= take
    return allocations
