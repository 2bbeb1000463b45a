"""Tests for booking status transitions."""

import pytest

from marketplace.domain.bookings.state_machine import (
    BookingStateMachine,
    can_transition,
    ensure_transition,
    is_terminal,
    parse_status,
)
from marketplace.errors import InvalidTransitionError, ValidationError
from marketplace.models import AgentStatus, BookingStatus

from tests.conftest import make_booking

S = BookingStatus

ALLOWED = [
    (S.PENDING, S.ASSIGNED),
    (S.PENDING, S.CANCELLED),
    (S.ASSIGNED, S.IN_PROGRESS),
    (S.ASSIGNED, S.CANCELLED),
    (S.ASSIGNED, S.COMPLETED),
    (S.IN_PROGRESS, S.COMPLETED),
    (S.IN_PROGRESS, S.CANCELLED),
]

ALL_PAIRS = [(a, b) for a in S for b in S]


class TestTransitionTable:
    @pytest.mark.parametrize("current,target", ALLOWED)
    def test_listed_transitions_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [p for p in ALL_PAIRS if p not in ALLOWED])
    def test_unlisted_transitions_rejected(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(current, target)
        assert exc_info.value.from_status == current.value
        assert exc_info.value.to_status == target.value

    def test_terminal_statuses(self):
        assert is_terminal(S.COMPLETED)
        assert is_terminal(S.CANCELLED)
        assert not is_terminal(S.IN_PROGRESS)


class TestParseStatus:
    @pytest.mark.parametrize("raw", ["IN_PROGRESS", "in progress", "In Progress", "in-progress", " in_progress "])
    def test_spellings_of_in_progress(self, raw):
        assert parse_status(raw) == S.IN_PROGRESS

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            parse_status("done-ish")


class TestStateMachineEffects:
    def test_generic_update_to_assigned_rejected(self, db, world):
        booking = make_booking(db, world["client"], world["service"])
        with pytest.raises(InvalidTransitionError):
            BookingStateMachine(db).transition(booking, "ASSIGNED")
        assert booking.status == S.PENDING

    def test_completion_releases_agent(self, db, world):
        agent = world["agent"]
        agent.status = AgentStatus.BUSY
        db.commit()
        booking = make_booking(db, world["client"], world["service"], status=S.IN_PROGRESS, agent=agent)

        BookingStateMachine(db).transition(booking, S.COMPLETED)
        db.commit()

        assert booking.status == S.COMPLETED
        assert agent.status == AgentStatus.FREE

    def test_cancellation_releases_agent(self, db, world):
        agent = world["agent"]
        agent.status = AgentStatus.BUSY
        db.commit()
        booking = make_booking(db, world["client"], world["service"], status=S.ASSIGNED, agent=agent)

        BookingStateMachine(db).transition(booking, "cancelled")
        db.commit()

        assert agent.status == AgentStatus.FREE

    def test_offline_agent_stays_offline(self, db, world):
        agent = world["agent"]
        agent.status = AgentStatus.OFFLINE
        db.commit()
        booking = make_booking(db, world["client"], world["service"], status=S.IN_PROGRESS, agent=agent)

        BookingStateMachine(db).transition(booking, S.COMPLETED)
        db.commit()

        assert agent.status == AgentStatus.OFFLINE

    def test_mark_completed_is_idempotent(self, db, world):
        booking = make_booking(db, world["client"], world["service"], status=S.ASSIGNED, agent=world["agent"])
        machine = BookingStateMachine(db)
        assert machine.mark_completed(booking) is True
        assert machine.mark_completed(booking) is False

    def test_mark_completed_rejects_cancelled(self, db, world):
        booking = make_booking(db, world["client"], world["service"], status=S.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            BookingStateMachine(db).mark_completed(booking)
