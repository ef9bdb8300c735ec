# app/models/content/meeting.py
"""
Réunions publiques et inscriptions.

Données opérationnelles : supprimées physiquement avec le tenant,
inscriptions d'abord (clé étrangère vers la réunion).
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TimestampMixin


class Meeting(Base, TimestampMixin):
    """Réunion organisée par un tenant."""

    __tablename__ = "meetings"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    registrations: Mapped[List["MeetingRegistration"]] = relationship(
        "MeetingRegistration",
        back_populates="meeting",
    )


class MeetingRegistration(Base, TimestampMixin):
    """Inscription d'un habitant à une réunion."""

    __tablename__ = "meeting_registrations"

    id: Mapped[int] = mapped_column(primary_key=True)
    meeting_id: Mapped[int] = mapped_column(
        ForeignKey("meetings.id"),
        nullable=False,
        index=True,
    )
    attendee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    attendee_email: Mapped[Optional[str]] = mapped_column(String(255))

    meeting: Mapped[Meeting] = relationship("Meeting", back_populates="registrations")
