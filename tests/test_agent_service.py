"""Tests for the agent-facing operations."""

from decimal import Decimal

import pytest

from marketplace.domain.agents.service import AgentService
from marketplace.errors import InvalidStateError, InvalidTransitionError, NotFoundError, ValidationError
from marketplace.models import AgentStatus, BookingStatus, PaymentStatus

from tests.conftest import make_agent, make_booking


@pytest.fixture
def agent_service(db, notifier):
    return AgentService(db, notifier)


@pytest.fixture
def assigned_booking(db, world):
    world["agent"].status = AgentStatus.BUSY
    db.commit()
    return make_booking(
        db,
        world["client"],
        world["service"],
        status=BookingStatus.ASSIGNED,
        agent=world["agent"],
        extra_tasks=[("wiring", "20")],
    )


class TestExtraTasks:
    def test_add_recomputes_total(self, agent_service, world, assigned_booking):
        booking = agent_service.add_extra_task(world["agent"].id, assigned_booking.id, "outlet", "15.50")
        assert booking.total_price == Decimal("135.50")
        assert [t.description for t in booking.extra_tasks] == ["wiring", "outlet"]

    def test_update_recomputes_total(self, agent_service, world, assigned_booking):
        task_id = assigned_booking.extra_tasks[0].id
        booking = agent_service.update_extra_task(world["agent"].id, assigned_booking.id, task_id, "rewiring", 45)
        assert booking.total_price == Decimal("145.00")
        assert booking.extra_tasks[0].description == "rewiring"

    def test_delete_recomputes_total(self, agent_service, world, assigned_booking):
        task_id = assigned_booking.extra_tasks[0].id
        booking = agent_service.delete_extra_task(world["agent"].id, assigned_booking.id, task_id)
        assert booking.total_price == Decimal("100.00")
        assert booking.extra_tasks == []

    def test_total_uses_current_base_price(self, db, agent_service, world, assigned_booking):
        world["service"].base_price = Decimal("110.00")
        db.commit()
        booking = agent_service.add_extra_task(world["agent"].id, assigned_booking.id, "outlet", "10")
        assert booking.total_price == Decimal("140.00")

    def test_paid_booking_demoted(self, db, agent_service, world, assigned_booking):
        assigned_booking.payment_status = PaymentStatus.PAID
        db.commit()
        booking = agent_service.add_extra_task(world["agent"].id, assigned_booking.id, "outlet", "5")
        assert booking.payment_status == PaymentStatus.UNPAID

    def test_negative_price_rejected(self, agent_service, world, assigned_booking):
        with pytest.raises(ValidationError):
            agent_service.add_extra_task(world["agent"].id, assigned_booking.id, "refund", "-5")
        assert assigned_booking.total_price == Decimal("120.00")

    @pytest.mark.parametrize("status", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
    def test_terminal_booking_locked(self, db, agent_service, world, status):
        booking = make_booking(db, world["client"], world["service"], status=status, agent=world["agent"])
        with pytest.raises(InvalidStateError):
            agent_service.add_extra_task(world["agent"].id, booking.id, "late add", "5")

    def test_unbound_agent_sees_nothing(self, db, agent_service, world, assigned_booking):
        stranger = make_agent(db, world["provider"], name="Carol", email="carol@agent.test")
        with pytest.raises(NotFoundError):
            agent_service.add_extra_task(stranger.id, assigned_booking.id, "outlet", "5")

    def test_unknown_task(self, agent_service, world, assigned_booking):
        with pytest.raises(NotFoundError):
            agent_service.delete_extra_task(world["agent"].id, assigned_booking.id, 9999)


class TestStatusUpdates:
    def test_start_then_complete(self, agent_service, world, assigned_booking):
        agent_service.update_status(world["agent"].id, assigned_booking.id, "In Progress")
        assert assigned_booking.status == BookingStatus.IN_PROGRESS
        assert world["agent"].status == AgentStatus.BUSY

        agent_service.update_status(world["agent"].id, assigned_booking.id, "COMPLETED")
        assert assigned_booking.status == BookingStatus.COMPLETED
        assert world["agent"].status == AgentStatus.FREE

    def test_illegal_transition(self, db, agent_service, world):
        booking = make_booking(db, world["client"], world["service"], status=BookingStatus.COMPLETED, agent=world["agent"])
        with pytest.raises(InvalidTransitionError):
            agent_service.update_status(world["agent"].id, booking.id, "IN_PROGRESS")

    def test_cannot_self_assign(self, agent_service, world, assigned_booking):
        with pytest.raises(InvalidTransitionError):
            agent_service.update_status(world["agent"].id, assigned_booking.id, "ASSIGNED")

    def test_other_agents_booking_not_found(self, db, agent_service, world, assigned_booking):
        stranger = make_agent(db, world["provider"], name="Carol", email="carol@agent.test")
        with pytest.raises(NotFoundError):
            agent_service.update_status(stranger.id, assigned_booking.id, "IN_PROGRESS")


class TestMarkPaid:
    def test_mark_paid_twice(self, agent_service, world, assigned_booking):
        first = agent_service.mark_paid(world["agent"].id, assigned_booking.id)
        second = agent_service.mark_paid(world["agent"].id, assigned_booking.id)

        for booking in (first, second):
            assert booking.payment_status == PaymentStatus.PAID
            assert booking.status == BookingStatus.COMPLETED
            assert booking.total_price == Decimal("120.00")


class TestAvailability:
    def test_free_to_offline_and_back(self, agent_service, world):
        assert agent_service.set_availability(world["agent"].id, "offline").status == AgentStatus.OFFLINE
        assert agent_service.set_availability(world["agent"].id, "FREE").status == AgentStatus.FREE

    def test_busy_agent_cannot_change(self, agent_service, world, assigned_booking):
        with pytest.raises(InvalidStateError):
            agent_service.set_availability(world["agent"].id, "OFFLINE")

    def test_cannot_set_busy_directly(self, agent_service, world):
        with pytest.raises(ValidationError):
            agent_service.set_availability(world["agent"].id, "BUSY")

    def test_unknown_status(self, agent_service, world):
        with pytest.raises(ValidationError):
            agent_service.set_availability(world["agent"].id, "napping")


class TestDashboard:
    def test_groups_bookings(self, db, agent_service, world, assigned_booking):
        make_booking(db, world["client"], world["service"], status=BookingStatus.COMPLETED, agent=world["agent"])
        make_booking(db, world["client"], world["service"], status=BookingStatus.IN_PROGRESS, agent=world["agent"])

        dashboard = agent_service.get_dashboard(world["agent"].id)

        assert dashboard["stats"] == {"total": 3, "pending": 1, "inProgress": 1, "completed": 1}
        assert [b.id for b in dashboard["pendingJobs"]] == [assigned_booking.id]

    def test_pending_group_holds_assigned_jobs_only(self, db, agent_service, world, assigned_booking):
        make_booking(db, world["client"], world["service"], status=BookingStatus.PENDING, agent=world["agent"])

        dashboard = agent_service.get_dashboard(world["agent"].id)

        assert dashboard["stats"]["pending"] == 1
        assert [b.status for b in dashboard["pendingJobs"]] == [BookingStatus.ASSIGNED]

    def test_unknown_agent(self, agent_service):
        with pytest.raises(NotFoundError):
            agent_service.get_dashboard(12345)
