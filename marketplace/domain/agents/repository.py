"""Agent repository - Database operations for agents"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from ...models import Agent, AgentStatus, Booking, BookingStatus, utcnow


class AgentRepository:
    """Repository for agent database operations"""

    @staticmethod
    def get_agent_by_id(db: Session, agent_id: int) -> Optional[Agent]:
        return db.query(Agent).filter(Agent.id == agent_id).first()

    @staticmethod
    def get_agent_for_provider(db: Session, agent_id: int, service_provider_id: int) -> Optional[Agent]:
        """Get an agent only if it belongs to the given provider"""
        return (
            db.query(Agent)
            .filter(Agent.id == agent_id, Agent.service_provider_id == service_provider_id)
            .first()
        )

    @staticmethod
    def get_agents_for_provider(db: Session, service_provider_id: int) -> list[Agent]:
        return (
            db.query(Agent)
            .filter(Agent.service_provider_id == service_provider_id)
            .order_by(Agent.created_at.desc(), Agent.id.desc())
            .all()
        )

    @staticmethod
    def get_agent_by_email(db: Session, email: str) -> Optional[Agent]:
        return db.query(Agent).filter(Agent.email == email).first()

    @staticmethod
    def create_agent(db: Session, service_provider_id: int, **agent_data) -> Agent:
        agent = Agent(service_provider_id=service_provider_id, **agent_data)
        db.add(agent)
        db.flush()
        return agent

    @staticmethod
    def delete_agent(db: Session, agent: Agent) -> None:
        db.delete(agent)

    @staticmethod
    def _set_status_if(db: Session, agent_id: int, expected: AgentStatus, new_status: AgentStatus) -> bool:
        """
        Conditional write: change status only if it currently equals ``expected``.

        Returns False when another writer got there first.
        """
        result = db.execute(
            update(Agent)
            .where(Agent.id == agent_id, Agent.status == expected)
            .values(status=new_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        # Loaded instances must not keep the pre-update status
        agent = db.identity_map.get(db.identity_key(Agent, agent_id))
        if agent is not None:
            db.expire(agent, ["status", "updated_at"])
        return result.rowcount == 1

    @classmethod
    def claim_agent(cls, db: Session, agent_id: int) -> bool:
        """FREE → BUSY, atomically"""
        return cls._set_status_if(db, agent_id, AgentStatus.FREE, AgentStatus.BUSY)

    @classmethod
    def release_agent(cls, db: Session, agent_id: int) -> bool:
        """BUSY → FREE, atomically; OFFLINE agents stay OFFLINE"""
        return cls._set_status_if(db, agent_id, AgentStatus.BUSY, AgentStatus.FREE)

    @staticmethod
    def get_agent_bookings(db: Session, agent_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.client), joinedload(Booking.service))
            .filter(Booking.agent_id == agent_id)
            .order_by(Booking.booking_date.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def get_active_booking(db: Session, agent_id: int) -> Optional[Booking]:
        """The booking currently keeping the agent BUSY, if any"""
        return (
            db.query(Booking)
            .filter(
                Booking.agent_id == agent_id,
                Booking.status.in_([BookingStatus.ASSIGNED, BookingStatus.IN_PROGRESS]),
            )
            .first()
        )

    @classmethod
    def set_availability(cls, db: Session, agent_id: int, expected: AgentStatus, new_status: AgentStatus) -> bool:
        """Self-service FREE ↔ OFFLINE switch; loses to a concurrent claim"""
        return cls._set_status_if(db, agent_id, expected, new_status)
