"""
Webinar registration route.

Flow for POST /register:
1. Validate the request body
2. Fetch a fresh Zoom access token
3. Create the Zoom webinar registrant
4. Upsert the registrant into the configured Mailchimp audience(s)
5. Return the Zoom join URL

Any RegistrationError raised along the way is turned into the structured
error body by the handler installed in main.py.
"""

import logging
import re
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response
from pydantic import ValidationError

from webinar_signup.core.config import Settings, get_settings
from webinar_signup.core.errors import RegistrationError, RequestValidationError
from webinar_signup.core.http_client import HttpClientFactory, get_http_client_factory
from webinar_signup.core.mailchimp import configured_targets, sync_mailing_lists
from webinar_signup.core.zoom import create_registrant, get_zoom_access_token
from webinar_signup.models.registration import (
    MailingListMember,
    MailingListTarget,
    RegistrantRecord,
    RegistrationRequest,
    RegistrationResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

BASE_REQUIRED_FIELDS = ("firstName", "lastName", "email", "eventId", "company")
EXTENDED_REQUIRED_FIELDS = BASE_REQUIRED_FIELDS + (
    "jobTitle",
    "city",
    "state",
    "region",
    "zipCode",
    "phone",
)

REGION_ALIASES = {"United States": "US"}


async def parse_registration(request: Request) -> RegistrationRequest:
    """Read the JSON body. Anything that is not a JSON object counts as an empty request."""
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    try:
        return RegistrationRequest.model_validate(body)
    except ValidationError as e:
        logger.warning(f"Unusable registration body: {str(e)}")
        raise RequestValidationError("Missing required fields", status_code=500)


def validate_registration(registration: RegistrationRequest, extended: bool) -> None:
    required = EXTENDED_REQUIRED_FIELDS if extended else BASE_REQUIRED_FIELDS
    missing = [name for name in required if not getattr(registration, name)]
    if missing:
        logger.warning(f"Registration rejected, missing fields: {missing}")
        raise RequestValidationError("Missing required fields", status_code=500)

    if not EMAIL_PATTERN.fullmatch(registration.email):
        logger.warning(f"Registration rejected, invalid email: {registration.email}")
        raise RequestValidationError("Invalid email format", status_code=400)


def normalize_region(region: Optional[str]) -> Optional[str]:
    return REGION_ALIASES.get(region, region)


def build_registrant_record(registration: RegistrationRequest, extended: bool) -> RegistrantRecord:
    record = RegistrantRecord(
        email=registration.email,
        first_name=registration.firstName,
        last_name=registration.lastName,
        org=registration.company,
    )
    if extended:
        record.city = registration.city
        record.country = registration.region
        record.zip = registration.zipCode
        record.state = registration.state
        record.phone = registration.phone
        record.job_title = registration.jobTitle
    return record


def build_mailing_list_member(registration: RegistrationRequest, extended: bool) -> MailingListMember:
    merge_fields = {
        "FNAME": registration.firstName,
        "LNAME": registration.lastName,
        "COMPANY": registration.company,
        "JOBTITLE": registration.jobTitle,
    }
    if extended:
        merge_fields.update({
            "CITY": registration.city,
            "PHONE": registration.phone,
            "STATE": registration.state,
            "ZIP": registration.zipCode,
            "REGION": registration.region,
        })
    merge_fields = {key: value for key, value in merge_fields.items() if value is not None}
    return MailingListMember(email_address=registration.email, merge_fields=merge_fields)


async def sync_mailing_lists_detached(
    client_factory: HttpClientFactory,
    targets: List[MailingListTarget],
    member: MailingListMember,
) -> None:
    """
    List sync run after the response has been sent.

    The caller never sees the outcome, so failures are only logged. Work in
    flight is lost if the process shuts down first.
    """
    try:
        async with client_factory() as client:
            await sync_mailing_lists(client, targets, member)
    except RegistrationError as e:
        logger.error(f"❌ Background list sync failed at {e.error_at}: {e.text}")
    except Exception as e:
        logger.exception(f"❌ Background list sync crashed for {member.email_address}: {str(e)}")


@router.options("/register")
async def acknowledge_preflight(settings: Settings = Depends(get_settings)):
    """Plain OPTIONS requests. Full CORS preflights are answered by the middleware."""
    if not settings.cors_enabled:
        raise HTTPException(status_code=405, detail="Method Not Allowed")
    return Response(status_code=204)


@router.post("/register")
async def register(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    client_factory: HttpClientFactory = Depends(get_http_client_factory),
):
    registration = await parse_registration(request)
    extended = settings.is_extended
    validate_registration(registration, extended)

    if extended:
        registration = registration.model_copy(update={"region": normalize_region(registration.region)})

    logger.info(f"Processing registration for {registration.email} on webinar {registration.eventId}")

    record = build_registrant_record(registration, extended)
    member = build_mailing_list_member(registration, extended)
    targets = configured_targets(settings)

    async with client_factory() as client:
        access_token = await get_zoom_access_token(client, settings)
        zoom_data = await create_registrant(client, settings, access_token, registration.eventId, record)

        if not settings.is_background_sync:
            await sync_mailing_lists(client, targets, member)

    if settings.is_background_sync:
        background_tasks.add_task(sync_mailing_lists_detached, client_factory, targets, member)
        logger.info(f"🚀 List sync for {registration.email} scheduled after response")

    return RegistrationResponse(join_url=zoom_data.get("join_url")).model_dump()
