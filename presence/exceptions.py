# presence/exceptions.py
"""
Domain errors raised by the services and mapped to HTTP responses in main.py.

Four families: NotFound, Conflict, PolicyViolation, InvalidInput.
Every concrete error has a stable `code` that is also written as the
`reason` of a denied AccessEvent.
"""


class PresenceError(Exception):
    """Base class for every business-rule failure."""

    status_code = 400
    code = "PRESENCE_ERROR"
    default_message = "Request rejected"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(PresenceError):
    status_code = 404
    code = "NOT_FOUND"


class Conflict(PresenceError):
    status_code = 409
    code = "CONFLICT"


class PolicyViolation(PresenceError):
    status_code = 403
    code = "POLICY_VIOLATION"


class InvalidInput(PresenceError):
    status_code = 400
    code = "INVALID_INPUT"


# ── NotFound ─────────────────────────────────────────────────────────────────
class UnknownCard(NotFound):
    code = "UNKNOWN_CARD"
    default_message = "Invalid RFID card"


class IdentityNotFound(NotFound):
    code = "IDENTITY_NOT_FOUND"
    default_message = "User not found"


class FacilityNotFound(NotFound):
    code = "FACILITY_NOT_FOUND"
    default_message = "Facility not found"


class EventNotFound(NotFound):
    code = "EVENT_NOT_FOUND"
    default_message = "Event not found"


class NotRegistered(NotFound):
    code = "NOT_REGISTERED"
    default_message = "User is not registered for this event"


# ── Conflict ─────────────────────────────────────────────────────────────────
class AlreadyRegistered(Conflict):
    code = "ALREADY_REGISTERED"
    default_message = "User is already registered for this event"


class CardInUse(Conflict):
    code = "CARD_IN_USE"
    default_message = "RFID card is already assigned to another user"


class UsernameTaken(Conflict):
    code = "USERNAME_TAKEN"
    default_message = "Username is already taken"


class SlugTaken(Conflict):
    code = "SLUG_TAKEN"
    default_message = "An event with this slug already exists"


class FacilityNameTaken(Conflict):
    code = "FACILITY_NAME_TAKEN"
    default_message = "A facility with this name already exists"


# ── PolicyViolation ──────────────────────────────────────────────────────────
class FacilityInactive(PolicyViolation):
    code = "FACILITY_INACTIVE"
    default_message = "Facility not available"


class CapacityExceeded(PolicyViolation):
    code = "CAPACITY_EXCEEDED"
    default_message = "Facility at capacity"


class AlreadyCheckedIn(PolicyViolation):
    code = "ALREADY_CHECKED_IN"
    default_message = "Already checked in to another facility"


class EventAlreadyStarted(PolicyViolation):
    code = "EVENT_ALREADY_STARTED"
    default_message = "Event has already started"


class CapacityBelowOccupancy(PolicyViolation):
    code = "CAPACITY_BELOW_OCCUPANCY"
    default_message = "Capacity cannot be lowered below the current occupancy"


# ── InvalidInput ─────────────────────────────────────────────────────────────
class ClockSkew(InvalidInput):
    code = "CLOCK_SKEW"
    default_message = "Scan timestamp is earlier than the session start"
