from __future__ import annotations

from decimal import Decimal

import pytest

from backend.resource_api.errors import ValidationError
from backend.resource_api.services.allocations import (
    AllocationRequest,
    FixedAmount,
    Percentage,
    effective_allocation_amount,
    normalize_allocation,
    validate_allocation_set,
)


def test_from_fields_builds_fixed_amount_share():
    request = AllocationRequest.from_fields("p-1", allocated_amount="250.50")

    assert request.project_id == "p-1"
    assert request.share == FixedAmount(Decimal("250.50"))


def test_from_fields_builds_percentage_share():
    request = AllocationRequest.from_fields("p-1", allocated_percentage=25)

    assert request.share == Percentage(Decimal("25"))


@pytest.mark.parametrize(
    "amount, percentage",
    [(None, None), (Decimal("10"), Decimal("10"))],
    ids=["neither", "both"],
)
def test_from_fields_requires_exactly_one_share(amount, percentage):
    with pytest.raises(ValidationError) as excinfo:
        AllocationRequest.from_fields("p-1", amount, percentage)

    assert "exactly one" in excinfo.value.message
    assert excinfo.value.details == {"projectId": "p-1"}


def test_normalize_percentage_computes_amount_and_keeps_percentage():
    normalized = normalize_allocation(
        Decimal("1000"), AllocationRequest.from_fields("p-1", allocated_percentage="60")
    )

    assert normalized.allocated_amount == Decimal("600.00")
    assert normalized.allocated_percentage == Decimal("60.0000")


def test_normalize_fixed_amount_leaves_percentage_empty():
    normalized = normalize_allocation(
        Decimal("1000"), AllocationRequest.from_fields("p-1", allocated_amount="400")
    )

    assert normalized.allocated_amount == Decimal("400.00")
    assert normalized.allocated_percentage is None


def test_normalize_rounds_percentage_amount_to_cents():
    normalized = normalize_allocation(
        Decimal("100.00"), AllocationRequest.from_fields("p-1", allocated_percentage="33.335")
    )

    assert normalized.allocated_amount == Decimal("33.34")


@pytest.mark.parametrize("percentage", ["-1", "100.01"])
def test_normalize_rejects_percentage_out_of_range(percentage):
    with pytest.raises(ValidationError, match="between 0 and 100"):
        normalize_allocation(
            Decimal("1000"), AllocationRequest.from_fields("p-1", allocated_percentage=percentage)
        )


@pytest.mark.parametrize("amount", ["0", "-5"])
def test_normalize_rejects_non_positive_amount(amount):
    with pytest.raises(ValidationError, match="greater than zero"):
        normalize_allocation(
            Decimal("1000"), AllocationRequest.from_fields("p-1", allocated_amount=amount)
        )


def test_validate_set_accepts_fixed_amounts_matching_total():
    normalized = validate_allocation_set(
        Decimal("2500"),
        [
            AllocationRequest.from_fields("a", allocated_amount="1000"),
            AllocationRequest.from_fields("b", allocated_amount="1500"),
        ],
    )

    assert [item.allocated_amount for item in normalized] == [
        Decimal("1000.00"),
        Decimal("1500.00"),
    ]


def test_validate_set_accepts_mixed_modes():
    normalized = validate_allocation_set(
        Decimal("1000"),
        [
            AllocationRequest.from_fields("a", allocated_percentage="25"),
            AllocationRequest.from_fields("b", allocated_amount="750"),
        ],
    )

    assert sum(item.allocated_amount for item in normalized) == Decimal("1000.00")


def test_validate_set_rejects_sum_mismatch():
    with pytest.raises(ValidationError) as excinfo:
        validate_allocation_set(
            Decimal("1000"),
            [
                AllocationRequest.from_fields("a", allocated_amount="700"),
                AllocationRequest.from_fields("b", allocated_amount="400"),
            ],
        )

    assert excinfo.value.message == "Sum of allocations must equal total amount"
    assert excinfo.value.details == {"totalAmount": "1000.00", "allocatedTotal": "1100.00"}


def test_validate_set_tolerates_sub_cent_difference():
    normalized = validate_allocation_set(
        Decimal("100.004"), [AllocationRequest.from_fields("a", allocated_amount="100")]
    )

    assert normalized[0].allocated_amount == Decimal("100.00")


def test_validate_set_rejects_difference_of_one_cent():
    with pytest.raises(ValidationError, match="Sum of allocations"):
        validate_allocation_set(
            Decimal("1000"),
            [
                AllocationRequest.from_fields("a", allocated_amount="333.33"),
                AllocationRequest.from_fields("b", allocated_amount="333.33"),
                AllocationRequest.from_fields("c", allocated_amount="333.33"),
            ],
        )


def test_validate_set_accepts_thirds_and_stores_whole_cents():
    normalized = validate_allocation_set(
        Decimal("100"),
        [
            AllocationRequest.from_fields("a", allocated_percentage="33.3333"),
            AllocationRequest.from_fields("b", allocated_percentage="33.3333"),
            AllocationRequest.from_fields("c", allocated_percentage="33.3334"),
        ],
    )

    assert [item.allocated_amount for item in normalized] == [
        Decimal("33.33"),
        Decimal("33.33"),
        Decimal("33.34"),
    ]
    assert sum(item.allocated_amount for item in normalized) == Decimal("100.00")


def test_validate_set_takes_rounding_excess_off_last_percentage_row():
    normalized = validate_allocation_set(
        Decimal("100.00"),
        [
            AllocationRequest.from_fields("a", allocated_percentage="33.335"),
            AllocationRequest.from_fields("b", allocated_percentage="66.665"),
        ],
    )

    assert [item.allocated_amount for item in normalized] == [
        Decimal("33.34"),
        Decimal("66.66"),
    ]
    assert [item.allocated_percentage for item in normalized] == [
        Decimal("33.3350"),
        Decimal("66.6650"),
    ]


def test_validate_set_leaves_fixed_amounts_alone_when_balancing():
    normalized = validate_allocation_set(
        Decimal("100.00"),
        [
            AllocationRequest.from_fields("a", allocated_percentage="33.335"),
            AllocationRequest.from_fields("b", allocated_amount="66.665"),
        ],
    )

    assert normalized[0].allocated_amount == Decimal("33.33")
    assert normalized[1].allocated_amount == Decimal("66.67")


def test_validate_set_rejects_duplicate_projects():
    with pytest.raises(ValidationError) as excinfo:
        validate_allocation_set(
            Decimal("1000"),
            [
                AllocationRequest.from_fields("a", allocated_amount="500"),
                AllocationRequest.from_fields("a", allocated_amount="500"),
            ],
        )

    assert excinfo.value.message == "Duplicate project IDs in allocations"
    assert excinfo.value.details == {"projectIds": ["a"]}


def test_validate_set_requires_at_least_one_allocation():
    with pytest.raises(ValidationError, match="At least one allocation"):
        validate_allocation_set(Decimal("1000"), [])


def test_effective_amount_prefers_stored_amount():
    assert effective_allocation_amount(
        Decimal("1000"), Decimal("300.00"), Decimal("50")
    ) == Decimal("300.00")


def test_effective_amount_falls_back_to_percentage():
    assert effective_allocation_amount(Decimal("1000"), None, Decimal("12.5")) == Decimal(
        "125.00"
    )


def test_effective_amount_is_zero_without_data():
    assert effective_allocation_amount(Decimal("1000"), None, None) == Decimal("0")
