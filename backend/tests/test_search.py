from datetime import datetime, timedelta, timezone

import pytest

from app.schemas.pagination import SortMode
from app.schemas.search import ResultProjection, ResultType
from app.services.search_service import (
    REVIEW_TYPE_ORDER,
    SUBJECT_TYPE_ORDER,
    merge_ranked,
    to_match_expression,
)
from app.utils.timestamps import TIMESTAMP_FORMAT

URL = "/api/v1/search"


def _stamp(minutes):
    base = datetime(2024, 6, 1, tzinfo=timezone.utc)
    return (base + timedelta(minutes=minutes)).strftime(TIMESTAMP_FORMAT)


def _key(result):
    return (result["type"], result["review_id"] or result["subject_id"])


def _walk(client, limit, **params):
    pages = []
    r = client.get(URL, params={"limit": limit, **params})
    assert r.status_code == 200
    pages.append(r.json())
    while pages[-1]["next_cursor"]:
        r = client.get(URL, params={"limit": limit, "cursor": pages[-1]["next_cursor"], **params})
        assert r.status_code == 200
        pages.append(r.json())
    return pages


@pytest.fixture
def desert_catalog(seed):
    """Subjects and reviews mentioning "desert", with colliding timestamps."""
    user = seed.user()
    subjects = [
        seed.subject("Desert Planet", created_at=_stamp(0)),
        seed.subject("Desert Desert Storm", created_at=_stamp(0)),
        seed.subject("Desert Rose", created_at=_stamp(1)),
        seed.subject("Sahara Desert Guide", created_at=_stamp(2)),
        seed.subject("Arrakis", created_at=_stamp(2)),
    ]
    reviews = [
        seed.review(subjects[4], user, title="Desert power", content="The desert is everything.", created_at=_stamp(0)),
        seed.review(subjects[4], user, title="Spice", content="Long walks across the desert.", created_at=_stamp(1)),
        seed.review(subjects[0], user, title="Worth it", content="desert desert desert", created_at=_stamp(2)),
        seed.review(subjects[1], user, title="Meh", content="Too much sand in the desert.", created_at=_stamp(2)),
        seed.review(subjects[2], user, title="Flowers", content="Nothing about sand here.", created_at=_stamp(3)),
    ]
    return subjects, reviews


class TestSearchResults:
    def test_search_by_subject_name(self, client, seed):
        subject = seed.subject("Quantum Mechanics")
        r = client.get(URL, params={"query": "Quantum"})
        assert r.status_code == 200
        data = r.json()
        assert data["sort"] == "relevance"
        assert data["type"] == "all"
        assert len(data["results"]) == 1
        hit = data["results"][0]
        assert hit["type"] == "subject"
        assert hit["subject_id"] == subject.id
        assert hit["title"] == "Quantum Mechanics"
        assert hit["subtitle"] == "quantum-mechanics"
        assert hit["score"] > 0

    def test_search_in_review_content(self, client, seed):
        user = seed.user()
        subject = seed.subject("Dune")
        review = seed.review(subject, user, content="The spice must flow through every chapter")

        data = client.get(URL, params={"query": "spice"}).json()
        assert len(data["results"]) == 1
        hit = data["results"][0]
        assert hit["type"] == "review"
        assert hit["review_id"] == review.id
        assert hit["subject_id"] == subject.id
        # untitled reviews fall back to the subject name
        assert hit["title"] == "Dune"
        assert hit["subtitle"] == "Dune"
        assert "spice" in hit["excerpt"]

    def test_scope_subjects_only(self, client, desert_catalog):
        data = client.get(URL, params={"query": "desert", "type": "subjects"}).json()
        assert data["type"] == "subjects"
        assert len(data["results"]) == 4
        assert all(r["type"] == "subject" for r in data["results"])

    def test_scope_reviews_only(self, client, desert_catalog):
        data = client.get(URL, params={"query": "desert", "type": "reviews"}).json()
        assert len(data["results"]) == 4
        assert all(r["type"] == "review" for r in data["results"])

    def test_scope_all_includes_both_sources(self, client, desert_catalog):
        data = client.get(URL, params={"query": "desert"}).json()
        types = {r["type"] for r in data["results"]}
        assert types == {"subject", "review"}
        assert len(data["results"]) == 8
        assert data["has_more"] is False
        assert data["next_cursor"] is None

    def test_relevance_scores_descend(self, client, desert_catalog):
        results = client.get(URL, params={"query": "desert"}).json()["results"]
        scores = [r["score"] for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_latest_timestamps_descend(self, client, desert_catalog):
        results = client.get(URL, params={"query": "desert", "sort": "latest"}).json()["results"]
        stamps = [r["created_at"] for r in results]
        assert stamps == sorted(stamps, reverse=True)

    def test_reviews_outrank_subjects_on_equal_timestamps(self, client, seed):
        user = seed.user()
        subject = seed.subject("Tundra", created_at=_stamp(0))
        seed.review(subject, user, content="tundra notes", created_at=_stamp(0))

        results = client.get(URL, params={"query": "tundra", "sort": "latest"}).json()["results"]
        assert [r["type"] for r in results] == ["review", "subject"]

    def test_no_match(self, client, desert_catalog):
        data = client.get(URL, params={"query": "zzzznonexistent"}).json()
        assert data["results"] == []
        assert data["has_more"] is False
        assert data["next_cursor"] is None

    def test_deleted_subject_and_its_reviews_are_hidden(self, client, seed, db):
        user = seed.user()
        subject = seed.subject("Glacier")
        seed.review(subject, user, content="glacier review")
        subject.is_deleted = True
        db.commit()

        assert client.get(URL, params={"query": "glacier"}).json()["results"] == []

    def test_deleted_review_is_hidden(self, client, seed, db):
        user = seed.user()
        review = seed.review(seed.subject("Dune"), user, content="sandworm sighting")
        review.is_deleted = True
        db.commit()

        assert client.get(URL, params={"query": "sandworm"}).json()["results"] == []

    def test_query_syntax_is_treated_as_text(self, client, seed):
        seed.subject("Rock and Roll")
        for query in ['rock AND', '"unbalanced', "roll*", "NEAR(", "a OR b -c"]:
            r = client.get(URL, params={"query": query})
            assert r.status_code == 200, query


class TestSearchLimits:
    def test_default_limit(self, client, seed):
        for i in range(25):
            seed.subject(f"Canyon {i}", slug=f"canyon-{i}")
        data = client.get(URL, params={"query": "canyon"}).json()
        assert len(data["results"]) == 20
        assert data["has_more"] is True

    def test_non_positive_limit_uses_default(self, client, seed):
        for i in range(25):
            seed.subject(f"Canyon {i}", slug=f"canyon-{i}")
        data = client.get(URL, params={"query": "canyon", "limit": 0}).json()
        assert len(data["results"]) == 20

    def test_limit_is_clamped(self, client, seed):
        for i in range(55):
            seed.subject(f"Canyon {i}", slug=f"canyon-{i}")
        data = client.get(URL, params={"query": "canyon", "limit": 1000}).json()
        assert len(data["results"]) == 50
        assert data["has_more"] is True


class TestSearchCursor:
    @pytest.mark.parametrize("sort", ["relevance", "latest"])
    @pytest.mark.parametrize("limit", [1, 2, 3])
    def test_walk_matches_single_page(self, client, desert_catalog, sort, limit):
        full = client.get(URL, params={"query": "desert", "sort": sort, "limit": 50}).json()["results"]
        pages = _walk(client, limit, query="desert", sort=sort)
        walked = [r for page in pages for r in page["results"]]

        assert [_key(r) for r in walked] == [_key(r) for r in full]
        assert all(len(p["results"]) == limit for p in pages[:-1])
        assert pages[-1]["has_more"] is False

    def test_walk_within_one_type(self, client, desert_catalog):
        full = client.get(URL, params={"query": "desert", "type": "reviews", "limit": 50}).json()["results"]
        pages = _walk(client, 3, query="desert", type="reviews")
        walked = [r for page in pages for r in page["results"]]
        assert [_key(r) for r in walked] == [_key(r) for r in full]

    def test_exhausted_window_has_no_cursor(self, client, desert_catalog):
        data = client.get(URL, params={"query": "desert", "limit": 8}).json()
        assert len(data["results"]) == 8
        assert data["has_more"] is False
        assert data["next_cursor"] is None


class TestSearchErrors:
    def test_missing_query(self, client):
        r = client.get(URL)
        assert r.status_code == 400
        assert r.json()["detail"]["code"] == "SEARCH_QUERY_REQUIRED"

    def test_blank_query(self, client):
        r = client.get(URL, params={"query": "   "})
        assert r.status_code == 400
        assert r.json()["detail"]["code"] == "SEARCH_QUERY_REQUIRED"

    @pytest.mark.parametrize("query", ["a\x00b", "\x00", "bell\x07", "esc\x1b[0m"])
    def test_control_characters(self, client, seed, query):
        seed.subject("Alphabet")
        r = client.get(URL, params={"query": query})
        assert r.status_code == 400
        assert r.json()["detail"]["code"] == "SEARCH_INVALID_QUERY"

    def test_tabs_and_newlines_separate_terms(self, client, seed):
        subject = seed.subject("Desert Rose")
        r = client.get(URL, params={"query": "desert\trose\n"})
        assert r.status_code == 200
        assert [h["subject_id"] for h in r.json()["results"]] == [subject.id]

    def test_invalid_type(self, client):
        r = client.get(URL, params={"query": "x", "type": "users"})
        assert r.status_code == 422

    def test_invalid_sort(self, client):
        r = client.get(URL, params={"query": "x", "sort": "oldest"})
        assert r.status_code == 422

    def test_malformed_cursor(self, client):
        r = client.get(URL, params={"query": "x", "cursor": "%%%"})
        assert r.status_code == 400
        assert r.json()["detail"]["code"] == "SEARCH_INVALID_CURSOR"

    def test_cursor_from_other_sort(self, client, desert_catalog):
        cursor = client.get(URL, params={"query": "desert", "sort": "latest", "limit": 1}).json()["next_cursor"]
        r = client.get(URL, params={"query": "desert", "sort": "relevance", "cursor": cursor})
        assert r.status_code == 400
        assert r.json()["detail"]["code"] == "SEARCH_CURSOR_SORT_MISMATCH"


def _projection(score, primary_id, type_order=SUBJECT_TYPE_ORDER, created_at="2024-06-01T00:00:00Z"):
    return ResultProjection(
        type=ResultType.SUBJECT if type_order == SUBJECT_TYPE_ORDER else ResultType.REVIEW,
        type_order=type_order,
        primary_id=primary_id,
        title=f"#{primary_id}",
        score=score,
        created_at=created_at,
    )


class TestMergeRanked:
    def test_interleaves_by_score(self):
        subjects = [_projection(9, 1), _projection(5, 2), _projection(1, 3)]
        reviews = [_projection(8, 1, REVIEW_TYPE_ORDER), _projection(2, 2, REVIEW_TYPE_ORDER)]
        assert [r.score for r in merge_ranked([subjects, reviews], SortMode.RELEVANCE, 2)] == [9, 8]
        assert [r.score for r in merge_ranked([subjects, reviews], SortMode.RELEVANCE, 3)] == [9, 8, 5]

    def test_equal_keys_fall_back_to_type_order(self):
        subject = _projection(1.0, 7, SUBJECT_TYPE_ORDER)
        review = _projection(1.0, 7, REVIEW_TYPE_ORDER)
        merged = merge_ranked([[subject], [review]], SortMode.RELEVANCE, 2)
        assert merged == [review, subject]

    def test_latest_ignores_score(self):
        older = _projection(100.0, 1, created_at="2024-06-01T00:00:00Z")
        newer = _projection(0.1, 1, REVIEW_TYPE_ORDER, created_at="2024-06-02T00:00:00Z")
        merged = merge_ranked([[older], [newer]], SortMode.LATEST, 2)
        assert merged == [newer, older]

    def test_one_source_exhausted(self):
        subjects = [_projection(3, 1)]
        reviews = [_projection(s, i, REVIEW_TYPE_ORDER) for i, s in enumerate([9, 8, 7, 6], start=1)]
        merged = merge_ranked([subjects, reviews], SortMode.RELEVANCE, 5)
        assert [r.score for r in merged] == [9, 8, 7, 6, 3]


class TestMatchExpression:
    def test_terms_are_quoted(self):
        assert to_match_expression("desert rose") == '"desert" "rose"'

    def test_embedded_quotes_are_escaped(self):
        assert to_match_expression('say "hi"') == '"say" """hi"""'
