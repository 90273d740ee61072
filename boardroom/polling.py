"""Client-side polling: fetch a discussion until it settles or attempts run out."""

import asyncio
import logging
from collections.abc import Callable

from boardroom.models import Discussion, DiscussionStatus
from config.config_loader import PollingConfig

logger = logging.getLogger(__name__)


async def poll_discussion(
    fetch: Callable[[str], Discussion],
    discussion_id: str,
    policy: PollingConfig,
    on_update: Callable[[Discussion], None] | None = None,
) -> Discussion:
    """Poll ``fetch`` every ``policy.interval_ms`` while the discussion is active.

    Stops after ``policy.max_attempts`` follow-up polls regardless of outcome and
    returns the last snapshot seen. ``on_update`` fires whenever new events
    arrive or the status changes.
    """
    discussion = fetch(discussion_id)
    last_seen = (len(discussion.events), discussion.status)
    if on_update:
        on_update(discussion)

    attempts = 0
    while discussion.status is DiscussionStatus.ACTIVE and attempts < policy.max_attempts:
        attempts += 1
        await asyncio.sleep(policy.interval_ms / 1000)
        discussion = fetch(discussion_id)
        current = (len(discussion.events), discussion.status)
        if current != last_seen:
            logger.debug("Discussion %s: %d events, status %s", discussion_id, current[0], current[1].value)
            last_seen = current
            if on_update:
                on_update(discussion)

    if discussion.status is DiscussionStatus.ACTIVE:
        logger.warning("Discussion %s still active after %d polls, giving up", discussion_id, attempts)
    return discussion
