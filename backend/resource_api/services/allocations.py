"""Validation and normalisation of expense allocations across projects.

An allocation request names a project and carries its share either as a
fixed amount or as a percentage of the expense total, never both. The
request is modelled as a small tagged union so that the rest of the code
only ever sees one of the two shapes. Normalising a request converts a
percentage into an amount using the total known at that moment; the
original percentage is kept alongside for display.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional, Sequence, Union

from ..errors import ValidationError

CENT = Decimal("0.01")
PERCENT_QUANTUM = Decimal("0.0001")
HUNDRED = Decimal("100")
SUM_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid decimal value: {value!r}") from exc


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FixedAmount:
    amount: Decimal


@dataclass(frozen=True)
class Percentage:
    value: Decimal


AllocationShare = Union[FixedAmount, Percentage]


@dataclass(frozen=True)
class AllocationRequest:
    """A project and the share of the expense it should receive."""

    project_id: str
    share: AllocationShare

    @classmethod
    def from_fields(
        cls,
        project_id: str,
        allocated_amount: Optional[Decimal | int | float | str] = None,
        allocated_percentage: Optional[Decimal | int | float | str] = None,
    ) -> "AllocationRequest":
        """Build a request from the two nullable wire fields.

        Exactly one of ``allocated_amount`` and ``allocated_percentage`` must
        be given.
        """

        has_amount = allocated_amount is not None
        has_percentage = allocated_percentage is not None
        if has_amount == has_percentage:
            raise ValidationError(
                "Each allocation must provide exactly one of allocatedAmount "
                "or allocatedPercentage",
                details={"projectId": project_id},
            )
        if has_amount:
            return cls(project_id=project_id, share=FixedAmount(to_decimal(allocated_amount)))
        return cls(project_id=project_id, share=Percentage(to_decimal(allocated_percentage)))


@dataclass(frozen=True)
class NormalizedAllocation:
    """Allocation row ready to be stored; ``allocated_amount`` is always set."""

    project_id: str
    allocated_amount: Decimal
    allocated_percentage: Optional[Decimal] = None


def _share_amount(total_amount: Decimal, request: AllocationRequest) -> Decimal:
    """Unrounded amount ``request`` claims out of ``total_amount``."""

    share = request.share
    if isinstance(share, FixedAmount):
        if share.amount <= 0:
            raise ValidationError(
                "Allocated amount must be greater than zero",
                details={"projectId": request.project_id},
            )
        return share.amount

    if share.value < 0 or share.value > HUNDRED:
        raise ValidationError(
            "Allocated percentage must be between 0 and 100",
            details={"projectId": request.project_id},
        )
    return total_amount * share.value / HUNDRED


def _stored_percentage(request: AllocationRequest) -> Optional[Decimal]:
    if isinstance(request.share, Percentage):
        return request.share.value.quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)
    return None


def normalize_allocation(
    total: Decimal | int | float | str, request: AllocationRequest
) -> NormalizedAllocation:
    """Resolve ``request`` against ``total`` into a storable allocation."""

    amount = _share_amount(to_decimal(total), request)
    return NormalizedAllocation(
        project_id=request.project_id,
        allocated_amount=quantize_money(amount),
        allocated_percentage=_stored_percentage(request),
    )


def validate_allocation_set(
    total: Decimal | int | float | str, requests: Sequence[AllocationRequest]
) -> list[NormalizedAllocation]:
    """Normalise every request and check the set as a whole.

    The set must be non-empty, reference each project at most once and add
    up to ``total`` within :data:`SUM_TOLERANCE`. The check uses the exact
    percentage products; once it passes, the cent left over from rounding
    them goes to the last percentage row so the stored amounts add up to
    the rounded total.
    """

    if not requests:
        raise ValidationError("At least one allocation is required")

    seen: set[str] = set()
    duplicates: list[str] = []
    for request in requests:
        if request.project_id in seen and request.project_id not in duplicates:
            duplicates.append(request.project_id)
        seen.add(request.project_id)
    if duplicates:
        raise ValidationError(
            "Duplicate project IDs in allocations", details={"projectIds": duplicates}
        )

    total_amount = to_decimal(total)
    exact = [_share_amount(total_amount, request) for request in requests]
    allocated_total = sum(exact, Decimal("0"))
    if abs(total_amount - allocated_total) >= SUM_TOLERANCE:
        raise ValidationError(
            "Sum of allocations must equal total amount",
            details={
                "totalAmount": str(quantize_money(total_amount)),
                "allocatedTotal": str(quantize_money(allocated_total)),
            },
        )

    normalized = [
        NormalizedAllocation(
            project_id=request.project_id,
            allocated_amount=quantize_money(amount),
            allocated_percentage=_stored_percentage(request),
        )
        for request, amount in zip(requests, exact)
    ]
    percentage_rows = [
        index for index, item in enumerate(normalized) if item.allocated_percentage is not None
    ]
    remainder = quantize_money(total_amount) - sum(
        (item.allocated_amount for item in normalized), Decimal("0")
    )
    if remainder and percentage_rows:
        last = percentage_rows[-1]
        normalized[last] = replace(
            normalized[last], allocated_amount=normalized[last].allocated_amount + remainder
        )
    return normalized


def effective_allocation_amount(
    total: Optional[Decimal],
    allocated_amount: Optional[Decimal],
    allocated_percentage: Optional[Decimal],
) -> Decimal:
    """Amount a stored allocation represents, tolerating rows without an amount."""

    if allocated_amount:
        return to_decimal(allocated_amount)
    if allocated_percentage and total:
        return quantize_money(to_decimal(total) * to_decimal(allocated_percentage) / HUNDRED)
    return Decimal("0")


def requests_from_payload(items: Iterable[Any]) -> list[AllocationRequest]:
    """Convert objects exposing ``project_id``/``allocated_*`` attributes into requests."""

    return [
        AllocationRequest.from_fields(
            item.project_id,
            item.allocated_amount,
            item.allocated_percentage,
        )
        for item in items
    ]
