"""
Module Content - Contenus opérationnels des tenants (réunions).
"""

from app.models.content.meeting import Meeting, MeetingRegistration

__all__ = [
    "Meeting",
    "MeetingRegistration",
]
