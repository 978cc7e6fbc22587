"""Ticket repository - Database operations for support tickets"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Ticket


class TicketRepository:
    """Repository for ticket database operations"""

    @staticmethod
    def get_ticket(db: Session, ticket_id: str) -> Optional[Ticket]:
        return db.query(Ticket).filter(Ticket.id == ticket_id).first()

    @staticmethod
    def add_ticket(db: Session, **ticket_data) -> Ticket:
        ticket = Ticket(**ticket_data)
        db.add(ticket)
        db.flush()
        return ticket

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> list[Ticket]:
        """Tickets filed by or against the user"""
        return (
            db.query(Ticket)
            .filter(or_(Ticket.from_id == user_id, Ticket.against_id == user_id))
            .order_by(Ticket.created_at.desc())
            .all()
        )

    @staticmethod
    def list_tickets(db: Session, status: Optional[str] = None) -> list[Ticket]:
        query = db.query(Ticket)
        if status:
            query = query.filter(Ticket.status == status)
        return query.order_by(Ticket.created_at.desc()).all()
