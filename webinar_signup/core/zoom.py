"""
Zoom API calls used by the registration flow: the account-credentials token
exchange and webinar registrant creation.
"""

import logging
from typing import Any, Dict

import httpx

from webinar_signup.core.config import Settings
from webinar_signup.core.errors import RegistrantCreationError, TokenAcquisitionError
from webinar_signup.models.registration import RegistrantRecord

logger = logging.getLogger(__name__)


async def get_zoom_access_token(client: httpx.AsyncClient, settings: Settings) -> str:
    """
    Exchange the client id/secret for a fresh bearer token.

    Tokens are never cached; every registration fetches its own.
    """
    params = {
        "grant_type": "account_credentials",
        "account_id": settings.zoom_account_id or "",
    }
    try:
        response = await client.post(
            settings.zoom_oauth_url,
            params=params,
            auth=(settings.zoom_client_id or "", settings.zoom_client_secret or ""),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
    except httpx.HTTPError as e:
        raise TokenAcquisitionError(f"Failed to fetch Zoom access token: {str(e)}")

    if not response.is_success:
        logger.error(f"❌ Zoom token request failed ({response.status_code}): {response.text}")
        raise TokenAcquisitionError(response.text)

    try:
        return response.json()["access_token"]
    except (ValueError, KeyError, TypeError):
        raise TokenAcquisitionError(response.text)


async def create_registrant(
    client: httpx.AsyncClient,
    settings: Settings,
    access_token: str,
    event_id: str,
    record: RegistrantRecord,
) -> Dict[str, Any]:
    """Register a person for a Zoom webinar and return Zoom's response (contains join_url)."""
    url = f"{settings.zoom_api_base_url}/webinars/{event_id}/registrants"
    try:
        response = await client.post(
            url,
            json=record.model_dump(exclude_none=True),
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
        )
    except httpx.HTTPError as e:
        raise RegistrantCreationError(f"Zoom API error: {str(e)}")

    if not response.is_success:
        logger.error(f"❌ Zoom registrant creation failed for webinar {event_id} ({response.status_code}): {response.text}")
        raise RegistrantCreationError(response.text)

    try:
        data = response.json()
    except ValueError:
        raise RegistrantCreationError(response.text)
    if not isinstance(data, dict):
        raise RegistrantCreationError(response.text)

    logger.info(f"✅ Zoom registrant created for {record.email} on webinar {event_id}")
    return data
