"""
LiveKit media-service glue

Access tokens and room management go through LiveKit's server SDK
(`livekit-api`): tokens are signed locally with the API secret, rooms are
created through the server's RoomService.
"""
import datetime as dt
import logging
from typing import Callable, Optional

from livekit import api

from meetlingo.config import Settings
from meetlingo.core.errors import TokenIssueError

logger = logging.getLogger("meetlingo.livekit")

TOKEN_TTL_SEC = 300  # 5 minutes


def join_grants(room_name: str) -> api.VideoGrants:
    return api.VideoGrants(
        room=room_name,
        room_join=True,
        can_publish=True,
        can_publish_data=True,
        can_subscribe=True,
    )


def create_token(
    settings: Settings,
    identity: str,
    name: Optional[str],
    grants: api.VideoGrants,
    ttl_sec: int = TOKEN_TTL_SEC,
) -> str:
    """
    Sign a LiveKit access token.

    Raises:
        TokenIssueError: when the API key or secret is not configured, or the
            SDK refuses the claims (e.g. a join grant without identity)
    """
    if not settings.livekit_api_key or not settings.livekit_api_secret:
        logger.error("[livekit] Missing LiveKit API key or secret")
        raise TokenIssueError("LiveKit configuration error")
    if not identity:
        raise TokenIssueError("Missing identity for LiveKit token")

    token = (
        api.AccessToken(settings.livekit_api_key, settings.livekit_api_secret)
        .with_identity(identity)
        .with_grants(grants)
        .with_ttl(dt.timedelta(seconds=ttl_sec))
    )
    if name:
        token = token.with_name(name)
    try:
        return token.to_jwt()
    except ValueError as e:
        raise TokenIssueError(str(e))


ApiFactory = Callable[..., "api.LiveKitAPI"]


class RoomServiceClient:
    """Creates media-service rooms through the SDK's RoomService."""

    def __init__(self, settings: Settings, api_factory: ApiFactory = api.LiveKitAPI):
        self.settings = settings
        self.api_factory = api_factory

    async def create_room(self, name: str):
        if not self.settings.livekit_api_url:
            raise RuntimeError("LIVEKIT_API_URL is not configured")
        # the SDK opens an aiohttp session, so build it inside the running loop
        lkapi = self.api_factory(
            url=self.settings.livekit_api_url,
            api_key=self.settings.livekit_api_key,
            api_secret=self.settings.livekit_api_secret,
        )
        try:
            return await lkapi.room.create_room(api.CreateRoomRequest(name=name))
        finally:
            await lkapi.aclose()
