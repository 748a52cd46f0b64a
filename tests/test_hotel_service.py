from datetime import timedelta

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.hotel.entity.hotel import HotelNotFoundError, SessionAuthorizationError
from app.hotel.service.hotel_service import HotelService
from fakes import FIXED_NOW, HOTEL_ID, OTHER_HOTEL_ID, SESSION_ID, FakeRedis, make_session


def clock():
    return FIXED_NOW


class BrokenRedis(FakeRedis):
    async def async_get_value(self, key, default=None):
        raise RedisConnectionError("down")

    async def async_set_value(self, key, value, expiry=None):
        raise RedisConnectionError("down")


async def test_context_is_cached(hotel_repo):
    redis = FakeRedis()
    service = HotelService(hotel_repo, redis, cache_ttl_seconds=60, clock=clock)

    first = await service.get_chat_context(HOTEL_ID)
    second = await service.get_chat_context(HOTEL_ID)

    assert hotel_repo.hotel_reads == 1
    assert second == first
    assert f"hotel_context:{HOTEL_ID}" in redis.values


async def test_cache_outage_falls_back_to_the_database(hotel_repo):
    service = HotelService(hotel_repo, BrokenRedis(), clock=clock)
    context = await service.get_chat_context(HOTEL_ID)
    assert context.hotel.name == "Casa Azul"


async def test_corrupt_cache_entry_is_ignored(hotel_repo):
    redis = FakeRedis()
    redis.values[f"hotel_context:{HOTEL_ID}"] = {"hotel": {"name": "missing fields"}}
    service = HotelService(hotel_repo, redis, clock=clock)
    context = await service.get_chat_context(HOTEL_ID)
    assert context.hotel.city == "Lisbon"
    assert hotel_repo.hotel_reads == 1


async def test_unknown_hotel(hotel_service):
    with pytest.raises(HotelNotFoundError):
        await hotel_service.get_chat_context(OTHER_HOTEL_ID)


async def test_service_names_follow_language(hotel_service):
    context = await hotel_service.get_chat_context(HOTEL_ID)
    assert context.service_names("pt") == ["Toalhas Extras", "Checkout Tardio"]
    assert context.service_names("es") == ["Extra Towels", "Late Checkout"]
    assert context.resolve_service_type(" LATE checkout ").name == "Late Checkout"
    assert context.resolve_service_type("Spa") is None


async def test_valid_session(hotel_service):
    session = await hotel_service.verify_session(SESSION_ID, HOTEL_ID)
    assert session.room_number == "204"


@pytest.mark.parametrize("expires_at", [FIXED_NOW, FIXED_NOW - timedelta(minutes=5)])
async def test_expired_session(hotel_repo, expires_at):
    hotel_repo.sessions[SESSION_ID] = make_session(expires_at=expires_at)
    with pytest.raises(SessionAuthorizationError):
        await HotelService(hotel_repo, clock=clock).verify_session(SESSION_ID, HOTEL_ID)


async def test_naive_expiry_is_read_as_utc(hotel_repo):
    hotel_repo.sessions[SESSION_ID] = make_session(expires_at=(FIXED_NOW + timedelta(hours=1)).replace(tzinfo=None))
    session = await HotelService(hotel_repo, clock=clock).verify_session(SESSION_ID, HOTEL_ID)
    assert session.id == SESSION_ID


async def test_foreign_session_looks_like_a_missing_one(hotel_service):
    with pytest.raises(SessionAuthorizationError) as exc:
        await hotel_service.verify_session(SESSION_ID, OTHER_HOTEL_ID)
    assert exc.value.message == "Invalid session"
