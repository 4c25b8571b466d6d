"""Database and API models."""

from clinic_scheduler.models.db_model import Doctor, Event, Patient

__all__ = ["Doctor", "Event", "Patient"]
