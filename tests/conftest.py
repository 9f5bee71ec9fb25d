"""Shared fixtures for the dispatcher, state and web tests."""

from __future__ import annotations

import pytest

from media_controller.dispatcher import CommandDispatcher
from media_controller.player.resolver import PlayerResolver
from media_controller.player.state import StateStore

from fakes import CHROMIUM, SELF, SELF_BUS_NAME, VLC, FakeBusClient, FakeMixer, FakePublisher


@pytest.fixture
def bus() -> FakeBusClient:
    return FakeBusClient([VLC, CHROMIUM, SELF])


@pytest.fixture
def mixer() -> FakeMixer:
    return FakeMixer()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def state(publisher: FakePublisher) -> StateStore:
    return StateStore(publisher)


@pytest.fixture
def resolver(bus: FakeBusClient) -> PlayerResolver:
    return PlayerResolver(bus, "chromium", exclude_bus_names={SELF_BUS_NAME})


@pytest.fixture
def dispatcher(
    bus: FakeBusClient,
    mixer: FakeMixer,
    state: StateStore,
    resolver: PlayerResolver,
) -> CommandDispatcher:
    return CommandDispatcher(bus, mixer, state, resolver, seek_seconds=30, volume_step=5)
