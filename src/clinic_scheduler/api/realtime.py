"""Notification socket.

A patient opens ``/patients/socket?token=...`` with a token obtained from
``GET /patients/socket-token``. The token is consumed on connect; a missing,
unknown or expired token closes the socket with a policy violation. Once
joined, the patient's channel receives ``{"type": ..., "data": ...}`` messages
until the socket closes.
"""

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from loguru import logger

from clinic_scheduler.realtime import EphemeralTokenStore, NotificationDispatcher
from clinic_scheduler.services.registry import get_service_registry

router = APIRouter()


@router.websocket("/patients/socket")
async def patient_socket(websocket: WebSocket, token: str = "") -> None:
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Missing auth token")
        return

    registry = get_service_registry()
    token_store = registry.get(EphemeralTokenStore)
    dispatcher = registry.get(NotificationDispatcher)

    patient_id = await asyncio.to_thread(token_store.consume, token)
    if patient_id is None:
        logger.debug("Refusing socket connection without a valid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid or expired token")
        return

    await websocket.accept()
    channel = await dispatcher.join_patient(patient_id, websocket)
    logger.info("Patient {} connected to {}", patient_id, channel)
    try:
        # Clients never send anything meaningful; reading only detects the disconnect.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Patient {} disconnected", patient_id)
    finally:
        await dispatcher.leave_patient(patient_id, websocket)
