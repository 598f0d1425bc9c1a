"""
Mailchimp audience synchronization.

Members are upserted by email address. Mailchimp answers 400 when the address
is already on the list; that is treated as success.
"""

import asyncio
import logging
from typing import List, Optional

import httpx

from webinar_signup.core.config import Settings
from webinar_signup.core.errors import (
    ERROR_AT_MAILCHIMP,
    ERROR_AT_MAILCHIMP_SECONDARY,
    ListSyncError,
)
from webinar_signup.models.registration import MailingListMember, MailingListTarget

logger = logging.getLogger(__name__)

MEMBER_EXISTS_STATUS = 400


def configured_targets(settings: Settings) -> List[MailingListTarget]:
    """Audiences to sync, in the order their calls are issued."""
    targets = [
        MailingListTarget(
            error_at=ERROR_AT_MAILCHIMP,
            api_key=settings.mailchimp_api_key,
            server_prefix=settings.mailchimp_server_prefix,
            list_id=settings.mailchimp_list_id,
        )
    ]
    if settings.is_extended:
        targets.append(
            MailingListTarget(
                error_at=ERROR_AT_MAILCHIMP_SECONDARY,
                api_key=settings.effective_secondary_api_key,
                server_prefix=settings.effective_secondary_server_prefix,
                list_id=settings.mailchimp_secondary_list_id,
            )
        )
    return targets


def member_url(target: MailingListTarget) -> str:
    return f"https://{target.server_prefix}.api.mailchimp.com/3.0/lists/{target.list_id}/members"


async def upsert_member(
    client: httpx.AsyncClient,
    target: MailingListTarget,
    member: MailingListMember,
) -> None:
    """Send one member to one audience, raising ListSyncError tagged with the audience on failure."""
    try:
        response = await client.post(
            member_url(target),
            json=member.model_dump(),
            headers={
                "Authorization": f"apikey {target.api_key}",
                "Content-Type": "application/json",
            },
        )
    except httpx.HTTPError as e:
        raise ListSyncError(f"Mailchimp API error: {str(e)}", error_at=target.error_at)

    if response.status_code == MEMBER_EXISTS_STATUS:
        logger.info(f"⚠️ Mailchimp {target.error_at}: {member.email_address} already a member")
        return

    if not response.is_success:
        logger.error(f"❌ Mailchimp {target.error_at} sync failed ({response.status_code}): {response.text}")
        raise ListSyncError(response.text, error_at=target.error_at)

    logger.info(f"✅ Mailchimp {target.error_at} synced {member.email_address}")


async def sync_mailing_lists(
    client: httpx.AsyncClient,
    targets: List[MailingListTarget],
    member: MailingListMember,
) -> None:
    """
    Upsert the member into every target concurrently.

    All calls are awaited before any failure is reported. Failures are then
    checked in the order the calls were issued, so when several audiences fail
    together the first configured one is reported.
    """
    results = await asyncio.gather(
        *(upsert_member(client, target, member) for target in targets),
        return_exceptions=True,
    )

    first_error: Optional[BaseException] = None
    for target, result in zip(targets, results):
        if isinstance(result, BaseException):
            if first_error is None:
                first_error = result
            else:
                logger.error(f"❌ Mailchimp {target.error_at} also failed: {str(result)}")

    if first_error is not None:
        raise first_error
