"""Global constants for the scheduling server.

Cache key layouts, channel names and signal names shared between the REST
layer, the notification dispatcher and the reminder scanner.
"""

# Cache keys
EVENTS_KEY_PREFIX = "events:doctor:"
EVENTS_KEYS_SET_PREFIX = "events:keys:doctor:"
PATIENTS_DIRECTORY_KEY = "patients:list"
SOCKET_TOKEN_PREFIX = "socket-token:"

# Real-time channels
PATIENT_CHANNEL_PREFIX = "patient:"

# Signals pushed to patient channels
SIGNAL_EVENT_CREATED = "event:created"
SIGNAL_EVENT_UPDATED = "event:updated"
SIGNAL_EVENT_DELETED = "event:deleted"
SIGNAL_EVENT_REMINDER = "event:reminder"

# Identity types stored on the session
IDENTITY_DOCTOR = "doctor"
IDENTITY_PATIENT = "patient"
SESSION_USER_KEY = "user"


def patient_channel(patient_id: str) -> str:
    """Channel name for a patient's broadcast group."""
    return f"{PATIENT_CHANNEL_PREFIX}{patient_id}"
