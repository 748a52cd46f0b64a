import pytest

from app.chat.service.chat_service import ConciergeChatService
from app.chat.service.tool_executor import ToolExecutor
from app.hotel.service.hotel_service import HotelService
from app.itinerary.service.itinerary_service import ItineraryService
from app.service_request.service.events import RequestEventPublisher
from app.service_request.service.request_service import RequestService
from fakes import (
    FIXED_NOW,
    FakeChatRepository,
    FakeHotelRepository,
    FakeItineraryRepository,
    FakeRedis,
    FakeServiceRequestRepository,
)


def fixed_clock():
    return FIXED_NOW


@pytest.fixture
def hotel_repo():
    return FakeHotelRepository()


@pytest.fixture
def chat_repo():
    return FakeChatRepository()


@pytest.fixture
def request_repo():
    return FakeServiceRequestRepository()


@pytest.fixture
def itinerary_repo():
    return FakeItineraryRepository()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def publisher(fake_redis):
    return RequestEventPublisher(fake_redis)


@pytest.fixture
def hotel_service(hotel_repo):
    return HotelService(hotel_repo, clock=fixed_clock)


@pytest.fixture
def request_service(request_repo, publisher):
    return RequestService(request_repo, publisher, clock=fixed_clock)


@pytest.fixture
def itinerary_service(itinerary_repo):
    return ItineraryService(itinerary_repo)


@pytest.fixture
def executor(hotel_service, request_service, itinerary_service):
    return ToolExecutor(hotel_service, request_service, itinerary_service, clock=fixed_clock)


@pytest.fixture
def make_chat_service(hotel_service, chat_repo, executor):
    def _make(transport, tool_executor=None):
        return ConciergeChatService(
            hotel_service, chat_repo, transport, tool_executor or executor, clock=fixed_clock
        )
    return _make
