import pytest

from visit_dzaleka.domain.bookings.pricing import (
    DEFAULT_ADDITIONAL_HOUR_PRICE,
    DEFAULT_BASE_PRICES,
    calculate_price,
    price_for_booking,
)
from visit_dzaleka.domain.bookings.references import REFERENCE_PATTERN, generate_reference
from visit_dzaleka.domain.bookings.state_machine import (
    BOOKING_STATUSES,
    available_actions,
    ensure_transition,
    is_terminal,
    validate_status_transition,
)
from visit_dzaleka.models import PricingConfig


@pytest.mark.parametrize(
    "current,new",
    [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("confirmed", "in_progress"),
        ("confirmed", "cancelled"),
        ("in_progress", "completed"),
        ("in_progress", "cancelled"),
    ],
)
def test_allowed_transitions(current, new):
    assert validate_status_transition(current, new)
    ensure_transition(current, new)


@pytest.mark.parametrize(
    "current,new",
    [
        ("pending", "in_progress"),
        ("pending", "completed"),
        ("confirmed", "pending"),
        ("completed", "cancelled"),
        ("cancelled", "pending"),
        ("in_progress", "confirmed"),
    ],
)
def test_rejected_transitions_name_both_states(current, new):
    assert not validate_status_transition(current, new)
    with pytest.raises(ValueError) as exc:
        ensure_transition(current, new)
    assert current in str(exc.value)
    assert new in str(exc.value)


def test_same_status_is_a_noop():
    for status in BOOKING_STATUSES:
        assert validate_status_transition(status, status)


def test_unknown_status_rejected():
    with pytest.raises(ValueError):
        ensure_transition("pending", "archived")


def test_terminal_statuses_offer_no_actions():
    assert is_terminal("completed")
    assert is_terminal("cancelled")
    assert not is_terminal("confirmed")
    assert available_actions("completed") == []
    assert available_actions("cancelled") == []
    assert "no_show" in available_actions("confirmed")
    assert "check_in" in available_actions("pending")


def test_standard_price_is_base_price():
    assert calculate_price("individual") == 15000
    assert calculate_price("small_group") == 50000
    assert calculate_price("large_group") == 80000
    assert calculate_price("custom") == 100000


def test_extended_tour_adds_two_hours():
    assert calculate_price("small_group", "extended") == 50000 + 2 * DEFAULT_ADDITIONAL_HOUR_PRICE


def test_custom_tour_charges_hours_beyond_two():
    assert calculate_price("individual", "custom", 5) == 15000 + 3 * 10000
    assert calculate_price("individual", "custom", 2) == 15000
    assert calculate_price("individual", "custom", 1) == 15000
    assert calculate_price("individual", "custom", None) == 15000


def test_unknown_group_size_raises():
    with pytest.raises(ValueError):
        calculate_price("busload")


def test_custom_base_prices_override_defaults():
    prices = dict(DEFAULT_BASE_PRICES, individual=20000)
    assert calculate_price("individual", "extended", base_prices=prices, additional_hour_price=5000) == 30000


def test_price_for_booking_uses_active_pricing_rows(db):
    db.add(
        PricingConfig(
            name="Individual",
            group_size="individual",
            min_people=1,
            max_people=1,
            base_price=18000,
            additional_hour_price=6000,
        )
    )
    db.add(
        PricingConfig(
            name="Small Group",
            group_size="small_group",
            base_price=99999,
            is_active=False,
        )
    )
    db.commit()

    assert price_for_booking(db, "individual", "extended", None) == 18000 + 2 * 6000
    assert price_for_booking(db, "small_group", "standard", None) == 50000


def test_reference_format():
    reference = generate_reference(2026)
    assert reference.startswith("DVS-2026-")
    assert REFERENCE_PATTERN.match(reference)


def test_references_are_random():
    references = {generate_reference(2026) for _ in range(50)}
    assert len(references) > 45


def test_available_actions_follow_status():
    assert set(available_actions("in_progress")) == {"complete", "cancel", "check_out"}
