from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, Dict, Any, List

EVENT_LEAD_TAG = "Event Registration Lead"


class RegistrationRequest(BaseModel):
    """Inbound registration body. Everything is optional here; required fields are checked by the handler."""

    model_config = ConfigDict(extra="ignore")

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    jobTitle: Optional[str] = None
    eventId: Optional[str] = None
    identifier: Optional[str] = None
    # Extended variant
    city: Optional[str] = None
    state: Optional[str] = None
    region: Optional[str] = None
    zipCode: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def coerce_scalars(cls, value: Any) -> Any:
        # Forms and some clients send numeric ids and zip codes
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class RegistrantRecord(BaseModel):
    """Payload for Zoom's create-registrant endpoint."""

    email: str
    first_name: str
    last_name: str
    org: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    zip: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    job_title: Optional[str] = None


class MailingListMember(BaseModel):
    """Payload for Mailchimp's list member endpoint."""

    email_address: str
    status: str = "subscribed"
    status_if_new: str = "subscribed"
    merge_fields: Dict[str, Optional[str]]
    tags: List[str] = [EVENT_LEAD_TAG]


class MailingListTarget(BaseModel):
    """One configured Mailchimp audience."""

    error_at: str
    api_key: Optional[str] = None
    server_prefix: Optional[str] = None
    list_id: Optional[str] = None


class RegistrationResponse(BaseModel):
    message: str = "Registration successful"
    join_url: Optional[str] = None
