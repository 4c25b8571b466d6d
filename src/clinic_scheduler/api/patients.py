"""
Patient API - the patient directory and the patient's own calendar.

This module provides REST endpoints for:
- The doctor's patient picker (cached directory)
- A patient's events, with the doctor's name
- Single-use tokens for opening the notification socket
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import Session

from clinic_scheduler.api.dependencies import require_doctor, require_patient, service
from clinic_scheduler.database import get_db_session
from clinic_scheduler.models.api_model import PatientDirectoryResponse, PatientEventListResponse, SocketTokenResponse
from clinic_scheduler.realtime import EphemeralTokenStore
from clinic_scheduler.services.event_service import EventService
from clinic_scheduler.services.patient_service import PatientService

router = APIRouter()


@router.get("/doctors/patients", response_model=PatientDirectoryResponse, tags=["doctors"])
def list_patients(
    _doctor_id: UUID = Depends(require_doctor),
    patient_service: PatientService = Depends(service(PatientService)),
    session: Session = Depends(get_db_session),
) -> PatientDirectoryResponse:
    """List every patient for the doctor's patient picker."""
    return patient_service.list_directory(session)


@router.get("/patients/events", response_model=PatientEventListResponse)
def list_my_events(
    patient_id: UUID = Depends(require_patient),
    event_service: EventService = Depends(service(EventService)),
    session: Session = Depends(get_db_session),
) -> PatientEventListResponse:
    """List the calling patient's events in ascending start order."""
    return event_service.list_by_patient(session, patient_id)


@router.get("/patients/socket-token", response_model=SocketTokenResponse)
def issue_socket_token(
    patient_id: UUID = Depends(require_patient),
    token_store: EphemeralTokenStore = Depends(service(EphemeralTokenStore)),
) -> SocketTokenResponse:
    """Issue a single-use token valid for one socket connection within its TTL."""
    return SocketTokenResponse(token=token_store.issue(str(patient_id)))
