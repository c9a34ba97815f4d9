"""
Unit tests for services.livekit module.
Tokens are decoded with PyJWT; the RoomService API object is replaced by a mock.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock

import jwt
import pytest
from livekit import api

from meetlingo.config import Settings
from meetlingo.core.errors import TokenIssueError
from meetlingo.services.livekit import (
    RoomServiceClient,
    create_token,
    join_grants,
)

SETTINGS = Settings(
    livekit_api_key="lk-key",
    livekit_api_secret="lk-secret",
    livekit_url="wss://meet.livekit.test",
    livekit_api_url="https://meet.livekit.test",
)


def decode(token: str) -> dict:
    return jwt.decode(token, "lk-secret", algorithms=["HS256"], options={"verify_aud": False})


class TestCreateToken:

    def test_join_token_claims(self):
        token = create_token(SETTINGS, identity="user-1", name="Asha", grants=join_grants("abc-defg-hij"))
        claims = decode(token)

        assert claims["iss"] == "lk-key"
        assert claims["sub"] == "user-1"
        assert claims["name"] == "Asha"
        video = claims["video"]
        assert video["room"] == "abc-defg-hij"
        assert video["roomJoin"] is True
        assert video["canPublish"] is True
        assert video["canPublishData"] is True
        assert video["canSubscribe"] is True

    def test_token_lifetime(self):
        claims = decode(create_token(SETTINGS, "user-1", None, join_grants("r"), ttl_sec=300))
        assert 300 <= claims["exp"] - claims["nbf"] <= 301
        assert not claims.get("name")

    @pytest.mark.parametrize("field", ["livekit_api_key", "livekit_api_secret"])
    def test_missing_credentials(self, field):
        settings = SETTINGS.model_copy(update={field: None})
        with pytest.raises(TokenIssueError):
            create_token(settings, "user-1", "Asha", join_grants("r"))

    def test_missing_identity(self):
        with pytest.raises(TokenIssueError):
            create_token(SETTINGS, "", "Asha", join_grants("r"))

    def test_join_grant_without_room_is_refused(self):
        with pytest.raises(TokenIssueError):
            create_token(SETTINGS, "user-1", "Asha", join_grants(""))


class FakeLiveKitAPI:
    """Stands in for api.LiveKitAPI; records constructor arguments."""

    instances: list = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.room = SimpleNamespace(create_room=AsyncMock(return_value=api.Room(name="abc-defg-hij", sid="RM_1")))
        self.aclose = AsyncMock()
        FakeLiveKitAPI.instances.append(self)


class TestRoomService:

    @pytest.mark.asyncio
    async def test_create_room_uses_room_service(self):
        FakeLiveKitAPI.instances = []
        service = RoomServiceClient(SETTINGS, api_factory=FakeLiveKitAPI)

        room = await service.create_room("abc-defg-hij")

        assert room.sid == "RM_1"
        lkapi = FakeLiveKitAPI.instances[0]
        assert lkapi.kwargs == {
            "url": "https://meet.livekit.test",
            "api_key": "lk-key",
            "api_secret": "lk-secret",
        }
        lkapi.room.create_room.assert_awaited_once_with(api.CreateRoomRequest(name="abc-defg-hij"))
        lkapi.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_room_closes_client_on_error(self):
        class FailingLiveKitAPI(FakeLiveKitAPI):
            def __init__(self, **kwargs):
                super().__init__(**kwargs)
                self.room.create_room = AsyncMock(side_effect=RuntimeError("twirp error"))

        FakeLiveKitAPI.instances = []
        service = RoomServiceClient(SETTINGS, api_factory=FailingLiveKitAPI)

        with pytest.raises(RuntimeError):
            await service.create_room("abc-defg-hij")
        FakeLiveKitAPI.instances[0].aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_room_requires_api_url(self):
        service = RoomServiceClient(SETTINGS.model_copy(update={"livekit_api_url": None}), api_factory=FakeLiveKitAPI)
        with pytest.raises(RuntimeError):
            await service.create_room("abc")
