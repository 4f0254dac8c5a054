"""
Shared test fixtures for the GeoGossip backend and client.
"""
import os
from datetime import datetime, timedelta, timezone

import pytest

# main.py builds a module-level app on import; keep it off DynamoDB
os.environ["GOSSIP_STORAGE"] = "memory"

from geogossip.config import Settings
from geogossip.database import GossipDatabase
from geogossip.service import GossipService


T0 = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable replacement for the server clock."""

    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db():
    return GossipDatabase("gossips-test", use_in_memory=True)


@pytest.fixture
def service(db, clock):
    return GossipService(db, clock=clock, author_id="user#test")


@pytest.fixture
def settings():
    return Settings(storage="memory", table_name="gossips-test")


@pytest.fixture
def payload():
    """A valid submission payload, as sent by the composer."""
    return {
        "subject": "Speed trap",
        "description": "Checking till 9pm",
        "gossipType": "Safety",
        "locationPreference": "map",
        "location": {"latitude": 17.4435, "longitude": 78.3772},
        "expiresInHours": 1,
    }
