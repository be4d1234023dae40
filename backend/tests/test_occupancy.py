import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from backend.app.models import MANUAL_BLOCK_PREFIX
from backend.app.occupancy import compute_occupancy, load_occupancy, summarize_day
from backend.tests.helpers import SUNDAY, make_reservation, make_restaurant, run, seeded_store


def test_reservation_fills_every_slot_of_its_service():
    restaurant = make_restaurant(service_duration_minutes=60)
    occupancy = compute_occupancy(restaurant, [make_reservation("18:00", 4)])
    assert occupancy == {"18:00": 4, "18:15": 4, "18:30": 4, "18:45": 4}


def test_start_is_snapped_to_grid():
    restaurant = make_restaurant(service_duration_minutes=30)
    occupancy = compute_occupancy(restaurant, [make_reservation("18:07", 2)])
    assert occupancy == {"18:00": 2, "18:15": 2}


def test_overlapping_reservations_add_up():
    restaurant = make_restaurant(service_duration_minutes=60)
    occupancy = compute_occupancy(
        restaurant, [make_reservation("18:00", 4), make_reservation("18:30", 3)]
    )
    assert occupancy["18:15"] == 4
    assert occupancy["18:30"] == 7
    assert occupancy["18:45"] == 7
    assert occupancy["19:15"] == 3
    assert "19:30" not in occupancy


def test_service_stops_at_midnight():
    restaurant = make_restaurant(service_duration_minutes=120)
    occupancy = compute_occupancy(restaurant, [make_reservation("23:00", 2)])
    assert sorted(occupancy) == ["23:00", "23:15", "23:30", "23:45"]


def test_counts_whatever_it_is_given():
    restaurant = make_restaurant(service_duration_minutes=15)
    occupancy = compute_occupancy(
        restaurant,
        [make_reservation("12:00", 2, status="canceled"), make_reservation("12:00", 3)],
    )
    assert occupancy == {"12:00": 5}


def test_unparsable_time_is_skipped():
    restaurant = make_restaurant(service_duration_minutes=15)
    occupancy = compute_occupancy(
        restaurant, [make_reservation("noon", 2), make_reservation("12:00", 3)]
    )
    assert occupancy == {"12:00": 3}


def test_rejects_bad_grid():
    with pytest.raises(ValueError):
        compute_occupancy(make_restaurant(slot_interval_minutes=0), [])
    with pytest.raises(ValueError):
        compute_occupancy(make_restaurant(service_duration_minutes=0), [])


def test_load_occupancy_ignores_canceled_reservations():
    store = seeded_store(
        make_restaurant(service_duration_minutes=15),
        [make_reservation("12:00", 2, status="canceled"), make_reservation("12:00", 3)],
    )
    occupancy = run(load_occupancy(store, make_restaurant(service_duration_minutes=15), SUNDAY))
    assert occupancy == {"12:00": 3}


def test_summarize_day():
    restaurant = make_restaurant(capacity=8, service_duration_minutes=30)
    summary = summarize_day(
        restaurant,
        [
            make_reservation("18:00", 4),
            make_reservation("18:15", 2),
            make_reservation("18:15", 3, status="canceled"),
            make_reservation("18:15", 2, status="blocked", user_id=f"{MANUAL_BLOCK_PREFIX}anna"),
        ],
    )
    assert summary.total_reservations == 2
    assert summary.total_guests == 6
    assert summary.manual_blocks == 1
    assert summary.blocked_seats == 2
    assert summary.canceled == 1
    assert summary.occupancy == {"18:00": 4, "18:15": 8, "18:30": 4}
    assert summary.peak_slot == "18:15"
    assert summary.peak_seats == 8
    assert summary.peak_occupancy_percent == 100


def test_summarize_empty_day():
    summary = summarize_day(make_restaurant(), [])
    assert summary.peak_slot is None
    assert summary.peak_occupancy_percent == 0
    assert summary.occupancy == {}


@settings(max_examples=40, deadline=None)
@given(
    people=st.lists(st.integers(min_value=1, max_value=6), min_size=1, max_size=8),
    minute=st.integers(min_value=600, max_value=1200),
)
def test_total_seat_minutes_are_conserved(people, minute):
    restaurant = make_restaurant(service_duration_minutes=60)
    time = f"{minute // 60:02d}:{minute % 60:02d}"
    occupancy = compute_occupancy(restaurant, [make_reservation(time, p) for p in people])
    # 60 minute service on a 15 minute grid covers four slots
    assert sum(occupancy.values()) == 4 * sum(people)


@settings(max_examples=60, deadline=None)
@given(
    booked=st.lists(
        st.tuples(st.integers(min_value=0, max_value=1439), st.integers(min_value=1, max_value=8)),
        max_size=10,
    ),
    step=st.sampled_from([5, 10, 15, 20, 30]),
    duration=st.sampled_from([15, 45, 90, 120]),
    rnd=st.randoms(use_true_random=False),
)
def test_input_order_does_not_change_the_map(booked, step, duration, rnd):
    restaurant = make_restaurant(slot_interval_minutes=step, service_duration_minutes=duration)
    reservations = [make_reservation(f"{m // 60:02d}:{m % 60:02d}", p) for m, p in booked]
    shuffled = list(reservations)
    rnd.shuffle(shuffled)
    assert compute_occupancy(restaurant, shuffled) == compute_occupancy(restaurant, reservations)
