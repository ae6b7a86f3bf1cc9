from typing import Any, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field

# Accepted argument keys per logical field, in lookup order.
AVAILABILITY_DATE_KEYS = ("requested_date", "date")
AVAILABILITY_TIME_KEYS = ("requested_time", "time")
BOOKING_NAME_KEYS = ("name", "patient_name", "userName")
BOOKING_PHONE_KEYS = ("phone", "phone_number", "phoneNumber")
BOOKING_DATE_KEYS = ("date", "requested_date")
BOOKING_TIME_KEYS = ("time", "requested_time")
BOOKING_ISSUE_KEYS = ("issue", "reason", "description", "notes", "query")

DEFAULT_NAME = "Unknown"
DEFAULT_PHONE = "Unknown"
DEFAULT_ISSUE = "General Consultation"


def first_present(args: Mapping[str, Any], keys: Sequence[str], default: Optional[str] = None) -> Optional[str]:
    """Return the first non-empty value among ``keys`` as a string, else ``default``."""
    for key in keys:
        value = args.get(key)
        if value:
            return str(value)
    return default


class AvailabilityQuery(BaseModel):
    date: Optional[str] = None
    time: Optional[str] = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "AvailabilityQuery":
        return cls(
            date=first_present(args, AVAILABILITY_DATE_KEYS),
            time=first_present(args, AVAILABILITY_TIME_KEYS),
        )


class BookingRequest(BaseModel):
    name: str = DEFAULT_NAME
    phone: str = DEFAULT_PHONE
    date: Optional[str] = None
    time: Optional[str] = None  # as spoken, echoed back in the confirmation
    issue: str = DEFAULT_ISSUE

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "BookingRequest":
        return cls(
            name=first_present(args, BOOKING_NAME_KEYS, DEFAULT_NAME),
            phone=first_present(args, BOOKING_PHONE_KEYS, DEFAULT_PHONE),
            date=first_present(args, BOOKING_DATE_KEYS),
            time=first_present(args, BOOKING_TIME_KEYS),
            issue=first_present(args, BOOKING_ISSUE_KEYS, DEFAULT_ISSUE),
        )


class Appointment(BaseModel):
    """Row of the ``appointments`` table."""
    patient_name: str
    phone_number: str
    issue_description: str
    appointment_time: str  # {date}THH:MM:00, no timezone
    status: Literal["confirmed"] = "confirmed"


class BookingEvent(Appointment):
    """Realtime ``new_booking`` payload; never persisted."""
    id: str


# Vapi tool-call envelope ---------------------------------------------------

class VapiFunction(BaseModel):
    name: Any = None  # dispatched only when it names a known operation
    arguments: Union[str, dict[str, Any]] = "{}"  # usually a JSON-encoded string


class VapiToolCall(BaseModel):
    id: str
    function: VapiFunction


class VapiMessage(BaseModel):
    type: Any = None
    tool_calls: list[VapiToolCall] = Field(default_factory=list, alias="toolCalls")

    model_config = {
        "populate_by_name": True
    }


class VapiWebhook(BaseModel):
    message: VapiMessage


class VapiToolResult(BaseModel):
    tool_call_id: str = Field(alias="toolCallId")
    result: str  # JSON-encoded operation result

    model_config = {
        "populate_by_name": True
    }


class VapiResponse(BaseModel):
    results: list[VapiToolResult]


# Retell function-call envelope ---------------------------------------------

class RetellCall(BaseModel):
    name: Any = None
    args: Any = None
