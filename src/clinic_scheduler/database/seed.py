"""Demo directory data: the doctors and patients a fresh installation starts with."""

from loguru import logger
from sqlalchemy import delete
from sqlmodel import Session, select

from clinic_scheduler.models.db_model import Doctor, Event, Patient

SEED_DOCTORS = [
    {"name": "Dr. Sarah Chen", "email": "sarah.chen@nova-medicine.com"},
    {"name": "Dr. Marcus Webb", "email": "marcus.webb@nova-medicine.com"},
]

SEED_PATIENTS = [
    {"name": "Emma Johnson", "email": "emma.johnson@email.com"},
    {"name": "James Wilson", "email": "james.wilson@email.com"},
    {"name": "Olivia Martinez", "email": "olivia.martinez@email.com"},
]


def seed_directory(session: Session, reset: bool = False) -> tuple[int, int]:
    """Insert the demo doctors and patients that are not present yet (matched by email).

    Args:
        session: Database session; committed on success
        reset: Delete every event, doctor and patient first

    Returns:
        Number of doctors and patients inserted
    """
    if reset:
        logger.warning("Deleting all events, doctors and patients before seeding")
        session.exec(delete(Event))
        session.exec(delete(Doctor))
        session.exec(delete(Patient))

    existing_doctors = set(session.exec(select(Doctor.email)).all())
    existing_patients = set(session.exec(select(Patient.email)).all())

    doctors = [Doctor(**d) for d in SEED_DOCTORS if d["email"] not in existing_doctors]
    patients = [Patient(**p) for p in SEED_PATIENTS if p["email"] not in existing_patients]
    session.add_all(doctors)
    session.add_all(patients)
    session.commit()

    logger.info("Seeded {} doctor(s) and {} patient(s)", len(doctors), len(patients))
    return len(doctors), len(patients)
