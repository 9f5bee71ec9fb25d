"""
Tests for StateStore.

Tests cover:
- Initial state
- Status set/toggle and publisher sync
- Metadata replacement and change detection
- Consistency of snapshots under concurrent writers
"""

import asyncio

from media_controller.player.models import PlaybackStatus, TrackMetadata
from media_controller.player.state import StateSnapshot, StateStore

from fakes import FakePublisher


class TestStateStore:
    async def test_initial_state_is_paused_and_unknown(self) -> None:
        snapshot = await StateStore().snapshot()
        assert snapshot == StateSnapshot(PlaybackStatus.PAUSED, TrackMetadata())
        assert snapshot.metadata.title is None

    async def test_set_status_publishes(self) -> None:
        publisher = FakePublisher()
        store = StateStore(publisher)

        snapshot = await store.set_playback_status(PlaybackStatus.PLAYING)

        assert snapshot.playback_status == PlaybackStatus.PLAYING
        assert publisher.statuses == [PlaybackStatus.PLAYING]

    async def test_toggle_twice_returns_to_original(self) -> None:
        store = StateStore(FakePublisher())
        await store.toggle_playback_status()
        snapshot = await store.toggle_playback_status()
        assert snapshot.playback_status == PlaybackStatus.PAUSED

    async def test_concurrent_toggles_lose_no_update(self) -> None:
        store = StateStore()
        await asyncio.gather(*(store.toggle_playback_status() for _ in range(10)))
        assert (await store.snapshot()).playback_status == PlaybackStatus.PAUSED

    async def test_metadata_published_only_when_changed(self) -> None:
        publisher = FakePublisher()
        store = StateStore(publisher)
        metadata = TrackMetadata(title="A", artist="B", album="C")

        await store.set_metadata(metadata)
        await store.set_metadata(TrackMetadata(title="A", artist="B", album="C"))

        assert publisher.metadata == [metadata]

    async def test_publish_all_pushes_full_state(self) -> None:
        publisher = FakePublisher()
        store = StateStore(publisher, playback_status=PlaybackStatus.PLAYING)

        await store.publish_all()

        assert publisher.statuses == [PlaybackStatus.PLAYING]
        assert publisher.metadata == [TrackMetadata()]

    async def test_snapshots_are_never_torn(self) -> None:
        """Readers see either the old or the new metadata record, never a mix."""
        store = StateStore()
        old = TrackMetadata(title="Old", artist="Old", album="Old")
        new = TrackMetadata(title="New", artist="New", album="New")
        await store.set_metadata(old)

        async def writer() -> None:
            for i in range(50):
                await store.set_metadata(new if i % 2 == 0 else old)
                await asyncio.sleep(0)

        async def reader() -> list[StateSnapshot]:
            seen = []
            for _ in range(50):
                seen.append(await store.snapshot())
                await asyncio.sleep(0)
            return seen

        _, seen = await asyncio.gather(writer(), reader())
        for snapshot in seen:
            assert snapshot.metadata in (old, new)


class TestTrackMetadata:
    def test_empty_strings_become_unknown(self) -> None:
        metadata = TrackMetadata(title="", artist="  ", album="Album")
        assert metadata.title is None
        assert metadata.artist is None
        assert metadata.album == "Album"

    def test_from_mpris_joins_artists(self) -> None:
        metadata = TrackMetadata.from_mpris(
            {
                "xesam:title": "Alison",
                "xesam:artist": ["Slowdive", "Guest"],
                "xesam:album": "Souvlaki",
            }
        )
        assert metadata == TrackMetadata("Alison", "Slowdive, Guest", "Souvlaki")

    def test_from_mpris_missing_fields(self) -> None:
        metadata = TrackMetadata.from_mpris({"xesam:title": "Only Title", "xesam:artist": [""]})
        assert metadata.to_dict() == {"title": "Only Title", "artist": None, "album": None}
