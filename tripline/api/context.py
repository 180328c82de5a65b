"""Stub actor context for plan version authorship.

Identity comes from the X-Actor-Id header. Authentication itself belongs to an upstream
gateway; this service only records who created each version.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Header, HTTPException, status

ANONYMOUS_ACTOR = "anonymous"
_MAX_ACTOR_LENGTH = 200


@dataclass(frozen=True)
class ActorContext:
    """Who is making the request."""

    actor_id: str


async def get_actor_context(
    x_actor_id: Annotated[str | None, Header()] = None,
) -> ActorContext:
    """Extract the actor from the X-Actor-Id header.

    Args:
        x_actor_id: Actor identifier header (e.g., "user-42")

    Returns:
        ActorContext, anonymous when the header is absent

    Raises:
        HTTPException: If the header is blank or too long
    """
    if x_actor_id is None:
        return ActorContext(actor_id=ANONYMOUS_ACTOR)

    actor_id = x_actor_id.strip()
    if not actor_id or len(actor_id) > _MAX_ACTOR_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Actor-Id header",
        )

    return ActorContext(actor_id=actor_id)
