"""Shared fixtures: an engine wired to a fresh in-memory backend."""
import pytest
from clinicflow.adapters.memory import InMemoryBlobStore
from clinicflow.actions.rooms import Room, RoomDirectory
from clinicflow.config import Settings
from clinicflow.main import create_app
from clinicflow.services.engine_factory import build_engine


@pytest.fixture
def blob():
    return InMemoryBlobStore()


@pytest.fixture
def rooms():
    return RoomDirectory([
        Room(id="room-1", name="Room 1", type="general"),
        Room(id="room-cardio", name="Cardio 1", type="cardiology", equipment=["ecg"]),
    ])


@pytest.fixture
def handle(blob, rooms):
    return build_engine(settings=Settings(), blob=blob, rooms=rooms)


@pytest.fixture
def engine(handle):
    return handle.engine


@pytest.fixture
def app(blob):
    return create_app(blob=blob)
