"""Service for patient lookups and the doctor's patient directory."""

from functools import lru_cache
from uuid import UUID

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session, select

from clinic_scheduler.cache import KeyedCache, get_directory_cache
from clinic_scheduler.constants import PATIENTS_DIRECTORY_KEY
from clinic_scheduler.models.api_model import PatientDirectoryEntry, PatientDirectoryResponse
from clinic_scheduler.models.db_model import Patient as PatientModel


class PatientService:
    """Read-side access to patients; patients are managed outside this service."""

    def __init__(self, directory_cache: KeyedCache | None = None):
        self.directory_cache = directory_cache or get_directory_cache()

    def get_patient(self, session: Session, patient_id: UUID) -> PatientModel | None:
        """Get a patient by id, or None."""
        return session.get(PatientModel, patient_id)

    def patient_exists(self, session: Session, patient_id: UUID) -> bool:
        return self.get_patient(session, patient_id) is not None

    def list_directory(self, session: Session) -> PatientDirectoryResponse:
        """List every patient's display fields, served from cache when possible."""
        cached = self.directory_cache.get(PATIENTS_DIRECTORY_KEY)
        if cached is not None:
            try:
                return PatientDirectoryResponse.model_validate_json(cached)
            except PydanticValidationError as e:
                logger.warning("Discarding unreadable patient directory cache entry: {}", e)
                self.directory_cache.delete(PATIENTS_DIRECTORY_KEY)

        patients = session.exec(select(PatientModel).order_by(PatientModel.name)).all()
        response = PatientDirectoryResponse(
            patients=[PatientDirectoryEntry(id=p.id, name=p.name, email=p.email, timezone=p.timezone or "") for p in patients]
        )
        logger.debug("Service: list_directory loaded {} patients", len(patients))

        self.directory_cache.put(PATIENTS_DIRECTORY_KEY, response.model_dump_json(by_alias=True))
        return response

    def invalidate_directory(self) -> None:
        """Drop the cached directory (after patients were added or changed)."""
        self.directory_cache.delete(PATIENTS_DIRECTORY_KEY)


@lru_cache
def get_patient_service() -> PatientService:
    """Get the patient service singleton."""
    return PatientService()
