"""
Store tests: document patches, JSON-backed user and track stores, sessions.

Run:
----
    pytest tests/test_stores.py -v
"""

import asyncio
import json
import threading

import pytest

from juke.errors import PersistenceError, SessionPersistError, UnknownUser
from juke.models import DocumentPatch, InteractionRecord, TokenSet, TrackSnapshot, UserRecord, apply_patch
from juke.services import InMemorySessionStore, JsonTrackStore, JsonUserStore, SessionContext, TokenStore
from juke.services.json_file import JsonFile

from conftest import run


class TestApplyPatch:
    def test_dotted_increment_creates_nested_fields(self):
        doc = {}
        apply_patch(doc, DocumentPatch(inc={"swipes.likes": 1}))
        apply_patch(doc, DocumentPatch(inc={"swipes.likes": 2, "swipes.dislikes": 1}))
        assert doc == {"swipes": {"likes": 3, "dislikes": 1}}

    def test_push_and_add_to_set(self):
        doc = {"tags": ["a"]}
        apply_patch(doc, DocumentPatch(push={"history": 1}, add_to_set={"tags": "a"}))
        apply_patch(doc, DocumentPatch(push={"history": 1}, add_to_set={"tags": "b"}))
        assert doc == {"tags": ["a", "b"], "history": [1, 1]}

    def test_unset_ignores_missing_fields(self):
        doc = {"playlist_id": "pl", "swipes": {"likes": 1}}
        apply_patch(doc, DocumentPatch(unset=["playlist_id", "missing", "nested.missing"]))
        assert doc == {"swipes": {"likes": 1}}
        assert "nested" not in doc

    def test_empty_patch(self):
        assert DocumentPatch().is_empty()
        assert not DocumentPatch(unset=["x"]).is_empty()


class TestJsonUserStore:
    def test_insert_only_when_absent(self, user_store):
        assert run(user_store.insert(UserRecord(id="u1", name="First")))
        assert not run(user_store.insert(UserRecord(id="u1", name="Second")))
        assert run(user_store.find_by_id("u1")).name == "First"

    def test_find_unknown(self, user_store):
        assert run(user_store.find_by_id("nobody")) is None

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "users.json"
        store = JsonUserStore(path)
        run(store.insert(UserRecord(id="u1", name="Ann")))
        run(store.append_interaction("u1", InteractionRecord(track_id="t1", action="like")))

        reloaded = JsonUserStore(path)
        user = run(reloaded.find_by_id("u1"))
        assert user.swipes.likes == 1
        assert user.has_track("t1")
        assert "id" not in json.loads(path.read_text())["users"]["u1"]

    def test_append_interaction_is_conditional(self, user_store, registered_user):
        assert run(user_store.append_interaction("user-1", InteractionRecord(track_id="t1", action="like")))
        assert not run(user_store.append_interaction("user-1", InteractionRecord(track_id="t1", action="dislike")))

        user = run(user_store.find_by_id("user-1"))
        assert len(user.recommendations) == 1
        assert user.swipes.likes == 1 and user.swipes.dislikes == 0
        assert run(user_store.has_interaction("user-1", "t1"))
        assert not run(user_store.has_interaction("user-1", "t2"))

    def test_append_interaction_unknown_user(self, user_store):
        with pytest.raises(UnknownUser):
            run(user_store.append_interaction("ghost", InteractionRecord(track_id="t1", action="like")))

    def test_update_by_id(self, user_store, registered_user):
        assert run(user_store.update_by_id("user-1", DocumentPatch(set={"playlist_id": "pl"})))
        assert run(user_store.find_by_id("user-1")).playlist_id == "pl"
        assert not run(user_store.update_by_id("ghost", DocumentPatch(set={"playlist_id": "pl"})))

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceError):
            JsonUserStore(path)


    def test_concurrent_writes_all_reach_disk(self, tmp_path):
        path = tmp_path / "users.json"
        store = JsonUserStore(path)
        run(store.insert(UserRecord(id="u1")))

        async def many():
            await asyncio.gather(*(
                store.append_interaction("u1", InteractionRecord(track_id=f"t{i}", action="like"))
                for i in range(20)
            ))

        run(many())

        user = run(JsonUserStore(path).find_by_id("u1"))
        assert len(user.recommendations) == 20
        assert user.swipes.likes == 20
        assert not (tmp_path / "users.json.tmp").exists()


class TestJsonFile:
    def test_write_runs_off_the_event_loop_thread(self, tmp_path, monkeypatch):
        threads = []
        original = JsonFile._write_snapshot

        def recording(self, text, version):
            threads.append(threading.get_ident())
            return original(self, text, version)

        monkeypatch.setattr(JsonFile, "_write_snapshot", recording)
        file = JsonFile(tmp_path / "data.json")

        run(file.write({"a": 1}))

        assert threads and threads[0] != threading.get_ident()
        assert file.read() == {"a": 1}

    def test_older_snapshot_never_overwrites_newer(self, tmp_path):
        file = JsonFile(tmp_path / "data.json")
        file._write_snapshot(json.dumps({"v": 2}), 2)
        file._write_snapshot(json.dumps({"v": 1}), 1)
        assert file.read() == {"v": 2}

    def test_missing_file_reads_as_none(self, tmp_path):
        assert JsonFile(tmp_path / "nested" / "data.json").read() is None


class TestJsonTrackStore:
    def test_first_vote_seeds_snapshot(self, track_store):
        track = TrackSnapshot(id="t1", name="Song", artists=["Band"], likes=["stale"])
        assert run(track_store.record_vote(track, "u1", "like"))

        snapshot = run(track_store.find_by_id("t1"))
        assert snapshot.name == "Song"
        assert snapshot.likes == ["u1"] and snapshot.dislikes == []

    def test_user_never_in_both_sets(self, track_store):
        track = TrackSnapshot(id="t1")
        run(track_store.record_vote(track, "u1", "like"))
        assert not run(track_store.record_vote(track, "u1", "dislike"))
        assert not run(track_store.record_vote(track, "u1", "like"))
        run(track_store.record_vote(track, "u2", "dislike"))

        snapshot = run(track_store.find_by_id("t1"))
        assert snapshot.likes == ["u1"]
        assert snapshot.dislikes == ["u2"]
        assert not set(snapshot.likes) & set(snapshot.dislikes)

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "songs.json"
        run(JsonTrackStore(path).record_vote(TrackSnapshot(id="t1"), "u1", "dislike"))
        assert run(JsonTrackStore(path).find_by_id("t1")).dislikes == ["u1"]

    def test_insert_and_update(self, track_store):
        assert run(track_store.insert(TrackSnapshot(id="t1")))
        assert not run(track_store.insert(TrackSnapshot(id="t1")))
        assert run(track_store.update_by_id("t1", DocumentPatch(set={"name": "Renamed"})))
        assert run(track_store.find_by_id("t1")).name == "Renamed"
        assert not run(track_store.update_by_id("t2", DocumentPatch(set={"name": "x"})))


class TestSessions:
    def test_save_and_load_round_trip(self):
        store = InMemorySessionStore()
        ctx = SessionContext(store, "sid")
        ctx.set("loggedIn", True)
        run(ctx.save())

        loaded = run(store.load("sid"))
        assert loaded == {"loggedIn": True}
        # loads return a copy
        loaded["loggedIn"] = False
        assert run(store.load("sid")) == {"loggedIn": True}

    def test_unserializable_data_fails_to_save(self):
        ctx = SessionContext(InMemorySessionStore(), "sid")
        ctx.set("bad", object())
        with pytest.raises(SessionPersistError):
            run(ctx.save())

    def test_expired_sessions_are_dropped(self):
        store = InMemorySessionStore(ttl_seconds=-1)
        run(store.save("sid", {"a": 1}))
        assert run(store.load("sid")) is None
        run(store.save("sid", {"a": 1}))
        assert store.purge_expired() == 1
        assert len(store) == 0

    def test_save_sweeps_sessions_that_never_return(self):
        now = [1000.0]
        store = InMemorySessionStore(ttl_seconds=60, purge_interval=30, clock=lambda: now[0])
        run(store.save("abandoned-1", {"state": "s1"}))
        run(store.save("abandoned-2", {"state": "s2"}))

        now[0] += 10
        run(store.save("active", {"loggedIn": True}))
        assert len(store) == 3

        now[0] += 55
        run(store.save("active", {"loggedIn": True}))

        # the abandoned ids were never loaded again
        assert len(store) == 1
        assert run(store.load("active")) == {"loggedIn": True}

    def test_sweep_is_throttled(self):
        now = [0.0]
        store = InMemorySessionStore(ttl_seconds=1, purge_interval=100, clock=lambda: now[0])
        run(store.save("old", {}))
        now[0] = 50
        run(store.save("new", {}))
        assert len(store) == 2
        now[0] = 100
        run(store.save("new", {}))
        assert len(store) == 1

    def test_destroy_clears_cookie_and_blocks_save(self):
        store = InMemorySessionStore()
        cookie = {"sid": "sid"}
        ctx = SessionContext(store, "sid", {"loggedIn": True}, cookie)
        run(ctx.save())

        run(ctx.destroy())
        run(ctx.save())

        assert cookie == {}
        assert run(store.load("sid")) is None
        assert not ctx.logged_in

    def test_token_store(self):
        ctx = SessionContext(InMemorySessionStore(), "sid")
        tokens = TokenStore(ctx)
        assert tokens.get() is None

        tokens.set(TokenSet(access_token="a", expires_in=100))
        stored = tokens.get()
        assert stored.access_token == "a"
        assert stored.expires_at is not None and not stored.is_expired()

        tokens.clear()
        assert tokens.get() is None
        ctx.set("token", {"access_token": ""})
        assert tokens.get() is None
