"""
Recommendation engine tests.

Run:
----
    pytest tests/test_recommendations.py -v
"""

import httpx
import pytest

from juke.models import InteractionRecord
from juke.services import RecommendationEngine, UpstreamClient

from conftest import make_track, run


async def _recommend(spotify, user_store, session, seeds, n, **kw):
    async with httpx.AsyncClient(transport=spotify.transport()) as http:
        engine = RecommendationEngine(UpstreamClient(http), user_store, **kw)
        return await engine.get_recommendations(session, "user-1", seeds, n)


def _see(user_store, *track_ids):
    for tid in track_ids:
        run(user_store.append_interaction("user-1", InteractionRecord(track_id=tid, action="dislike")))


class TestRecommendationEngine:
    def test_mixed_candidates_keep_valid_novel_tracks_in_order(self, spotify, user_store, registered_user, session):
        _see(user_store, "seen")
        spotify.recommendation_rounds = [[
            make_track("no-preview-1", preview=None),
            make_track("good-1"),
            make_track("seen"),
            make_track("no-preview-2", preview=""),
            make_track("good-2"),
        ]]

        tracks = run(_recommend(spotify, user_store, session, ["seed-1"], 2))

        assert [t.id for t in tracks] == ["good-1", "good-2"]
        assert spotify.count("/v1/recommendations") == 1

    def test_tops_up_until_target_reached(self, spotify, user_store, registered_user, session):
        spotify.recommendation_rounds = [
            [make_track("a"), make_track("x", preview=None), make_track("y", preview=None)],
            [make_track("b"), make_track("c")],
        ]

        tracks = run(_recommend(spotify, user_store, session, ["seed-1"], 3))

        assert [t.id for t in tracks] == ["a", "b", "c"]
        limits = [r.url.params["limit"] for r in spotify.calls if r.url.path == "/v1/recommendations"]
        assert limits == ["3", "2"]

    def test_stall_bound_returns_short_result(self, spotify, user_store, registered_user, session):
        _see(user_store, "old-1", "old-2")
        spotify.recommendation_rounds = [[make_track("old-1"), make_track("old-2")]]

        tracks = run(_recommend(spotify, user_store, session, ["seed-1"], 2, max_stalled_rounds=4))

        assert tracks == []
        assert spotify.count("/v1/recommendations") == 4

    def test_partial_progress_then_exhaustion(self, spotify, user_store, registered_user, session):
        spotify.recommendation_rounds = [[make_track("fresh")], [make_track("fresh")]]

        tracks = run(_recommend(spotify, user_store, session, ["seed-1"], 3, max_stalled_rounds=2))

        # the repeated track is not returned twice
        assert [t.id for t in tracks] == ["fresh"]
        assert spotify.count("/v1/recommendations") == 3

    def test_never_returns_more_than_requested(self, spotify, user_store, registered_user, session):
        spotify.recommendation_rounds = [[make_track(str(i)) for i in range(5)]]

        tracks = run(_recommend(spotify, user_store, session, ["seed-1"], 2))

        assert len(tracks) == 2

    def test_history_from_store_is_consulted_each_call(self, spotify, user_store, registered_user, session):
        spotify.recommendation_rounds = [[make_track("t1"), make_track("t2")]]
        first = run(_recommend(spotify, user_store, session, ["seed-1"], 1))
        _see(user_store, first[0].id)

        second = run(_recommend(spotify, user_store, session, ["seed-1"], 1))

        assert first[0].id == "t1"
        assert second[0].id == "t2"

    @pytest.mark.parametrize("seeds,count", [([], 2), (["seed-1"], 0)])
    def test_no_upstream_call_without_seeds_or_count(self, spotify, user_store, registered_user, session, seeds, count):
        assert run(_recommend(spotify, user_store, session, seeds, count)) == []
        assert spotify.calls == []

    def test_seeds_from_top_tracks(self, spotify, user_store, session):
        async def scenario():
            async with httpx.AsyncClient(transport=spotify.transport()) as http:
                engine = RecommendationEngine(UpstreamClient(http), user_store, top_tracks_limit=5)
                return await engine.seeds_from_top_tracks(session)

        assert run(scenario()) == ["seed-1", "seed-2"]
        request = spotify.calls[0]
        assert request.url.params["time_range"] == "short_term"
        assert request.url.params["limit"] == "5"

    def test_rejects_zero_stall_bound(self, user_store):
        with pytest.raises(ValueError):
            RecommendationEngine(UpstreamClient(httpx.AsyncClient()), user_store, max_stalled_rounds=0)
