from datetime import timedelta

import pytest

from auth.models import AdminActionLog
from classes.models import GymClass, ClassBooking, BOOKING_CHECKED_IN
from classes.schemas import ClassCreate, ClassUpdate
from classes.services import ClassService
from database import utcnow
from errors import InvalidState, NotFound
from conftest import auth_headers, make_user


def schedule(db, admin, starts_in=timedelta(days=1), length=timedelta(hours=1), capacity=20, title="Spin"):
    start = utcnow() + starts_in
    return ClassService.create_class(
        ClassCreate(title=title, start_time=start, end_time=start + length, capacity=capacity),
        admin.id,
        db,
    )


def test_create_class_defaults_and_rejects_inverted_times(db, admin):
    created = schedule(db, admin)
    assert created.capacity == 20
    assert created.available_slots == 20

    start = utcnow() + timedelta(days=1)
    with pytest.raises(InvalidState):
        ClassService.create_class(ClassCreate(title="Yoga", start_time=start, end_time=start), admin.id, db)
    assert db.query(AdminActionLog).count() == 1


def test_booking_fills_capacity(db, admin, member):
    gym_class = schedule(db, admin, capacity=1)
    booking = ClassService.book_class(gym_class.id, member, db)
    assert booking.status == "booked"
    assert booking.checkin_code

    other = make_user(db, "other@example.com")
    with pytest.raises(InvalidState, match="full"):
        ClassService.book_class(gym_class.id, other, db)

    listed = ClassService.find_upcoming(db)
    assert [(c.booked_count, c.available_slots) for c in listed] == [(1, 0)]


def test_duplicate_booking_is_rejected_until_cancelled(db, admin, member):
    gym_class = schedule(db, admin)
    booking = ClassService.book_class(gym_class.id, member, db)
    with pytest.raises(InvalidState, match="already booked"):
        ClassService.book_class(gym_class.id, member, db)

    ClassService.cancel_booking(booking.id, admin.id, db)
    again = ClassService.book_class(gym_class.id, member, db)
    assert again.id != booking.id
    assert ClassService.find_upcoming(db)[0].booked_count == 1


def test_started_class_cannot_be_booked(db, admin, member):
    gym_class = schedule(db, admin, starts_in=timedelta(minutes=-10))
    with pytest.raises(InvalidState, match="started"):
        ClassService.book_class(gym_class.id, member, db)
    with pytest.raises(NotFound):
        ClassService.book_class(9999, member, db)


def test_checkin_by_code(db, admin, member):
    gym_class = schedule(db, admin)
    booking = ClassService.book_class(gym_class.id, member, db)

    first = ClassService.checkin_by_code(booking.checkin_code, db)
    assert first.message == "Check-in successful."
    assert first.booking.status == BOOKING_CHECKED_IN
    assert first.booking.checked_in_at is not None

    second = ClassService.checkin_by_code(booking.checkin_code, db)
    assert second.message == "Already checked in."

    with pytest.raises(NotFound):
        ClassService.checkin_by_code("no-such-code", db)


def test_cancelled_booking_cannot_check_in(db, admin, member):
    gym_class = schedule(db, admin)
    booking = ClassService.book_class(gym_class.id, member, db)
    ClassService.cancel_booking(booking.id, admin.id, db)
    with pytest.raises(InvalidState):
        ClassService.checkin_by_code(booking.checkin_code, db)
    with pytest.raises(InvalidState):
        ClassService.force_checkin(booking.id, admin.id, db)


def test_capacity_cannot_drop_below_bookings(db, admin, member):
    gym_class = schedule(db, admin, capacity=5)
    ClassService.book_class(gym_class.id, member, db)
    ClassService.book_class(gym_class.id, make_user(db, "second@example.com"), db)

    with pytest.raises(InvalidState):
        ClassService.update_class(gym_class.id, ClassUpdate(capacity=1), admin.id, db)
    updated = ClassService.update_class(gym_class.id, ClassUpdate(capacity=2, title="Spin Pro"), admin.id, db)
    assert (updated.title, updated.available_slots) == ("Spin Pro", 0)


def test_admin_status_filter(db, admin):
    schedule(db, admin, title="Later")
    schedule(db, admin, starts_in=timedelta(minutes=-30), title="Now")
    schedule(db, admin, starts_in=timedelta(days=-2), title="Done")

    assert [c.title for c in ClassService.find_all("upcoming", db)] == ["Later"]
    assert [c.title for c in ClassService.find_all("ongoing", db)] == ["Now"]
    assert [c.title for c in ClassService.find_all("finished", db)] == ["Done"]
    assert len(ClassService.find_all(None, db)) == 3
    with pytest.raises(InvalidState):
        ClassService.find_all("someday", db)


def test_class_routes(client, db, admin, member):
    start = utcnow() + timedelta(days=3)
    created = client.post(
        "/admin/classes",
        json={"title": "HIIT", "start_time": start.isoformat(), "end_time": (start + timedelta(hours=1)).isoformat(), "capacity": 2},
        headers=auth_headers(admin),
    )
    assert created.status_code == 200
    class_id = created.json()["id"]

    assert client.post("/admin/classes", json={}, headers=auth_headers(member)).status_code == 403

    booked = client.post(f"/classes/{class_id}/book", headers=auth_headers(member))
    assert booked.status_code == 200
    code = booked.json()["checkin_code"]
    assert client.post(f"/classes/{class_id}/book", headers=auth_headers(member)).status_code == 400

    mine = client.get("/classes/bookings/me", headers=auth_headers(member)).json()
    assert mine[0]["gym_class"]["title"] == "HIIT"
    assert mine[0]["gym_class"]["available_slots"] == 1

    roster = client.get(f"/admin/classes/{class_id}/bookings", headers=auth_headers(admin)).json()
    assert [b["user"]["email"] for b in roster] == ["member@example.com"]

    checked = client.post("/classes/checkin", json={"code": code})
    assert checked.json()["message"] == "Check-in successful."

    assert client.delete(f"/admin/classes/{class_id}", headers=auth_headers(admin)).status_code == 200
    assert db.query(GymClass).count() == 0
    assert db.query(ClassBooking).count() == 0
    assert client.get("/classes").json() == []
