"""Has Many Through — tests for the pivot join and the relation contract.

Tests cover:
    - set stores any value verbatim; fill defaults falsy values to []
    - attach is a no-op on record and data
    - load returns exactly the two-hop join result, in related-table order
    - load returns [] when no through record matches
    - a parent missing its local key matches no through record, even null-keyed ones
    - load never leaks pivot data
    - eager-load constraints shape only the related query
    - make returns [] for empty payloads and bare identifiers
    - make builds related instances in input order
    - join keys are validated and immutable
    - unresolvable entity references raise UnknownEntityError
"""

import pytest
from pydantic import ValidationError

from normstore.core.collection_utils import UNDEFINED
from normstore.core.database import Database
from normstore.core.domain_types import RelationKind
from normstore.core.errors import InvalidRelationError, UnknownEntityError
from normstore.core.has_many_through import HasManyThrough
from normstore.core.model import Model
from normstore.core.relation import EagerLoad


def _posts_relation(database: Database) -> HasManyThrough:
    return database.model("countries").schema()["posts"]


# ─── set / fill / attach ─────────────────────────────────────────

def test_relation_carries_kind_tag(database):
    assert _posts_relation(database).kind == RelationKind.HAS_MANY_THROUGH


def test_set_stores_value_verbatim(database):
    relation = _posts_relation(database)
    bound = HasManyThrough(
        relation.model, relation.related, relation.through,
        "country_id", "user_id", "id", "id",
    )
    for value in (UNDEFINED, None, 5, "x", [{"id": 1}]):
        bound.set(value)
        assert bound.records is value


def test_fill_returns_value_when_truthy(database):
    relation = _posts_relation(database)
    payload = [{"id": 1}]
    assert relation.fill(payload) is payload


def test_fill_defaults_falsy_values_to_empty_list(database):
    relation = _posts_relation(database)
    for value in (None, UNDEFINED, [], 0, ""):
        assert relation.fill(value) == []


def test_attach_is_a_noop(database):
    relation = _posts_relation(database)
    record = {"id": 1}
    data = {"posts": {}}
    assert relation.attach([1, 2], record, data) is None
    assert record == {"id": 1}
    assert data == {"posts": {}}


# ─── load ────────────────────────────────────────────────────────

def test_load_returns_records_reachable_through_pivot(database, snapshot):
    relation = _posts_relation(database)
    result = relation.load(snapshot, {"id": 1, "name": "Japan"})
    assert [r["id"] for r in result] == [1, 3, 4]


def test_load_matches_brute_force_join(database, snapshot):
    relation = _posts_relation(database)
    users = snapshot.table("users").values()
    posts = snapshot.table("posts").values()
    for country in snapshot.table("countries").values():
        expected = [
            post for post in posts
            if any(
                user["country_id"] == country["id"] and post["user_id"] == user["id"]
                for user in users
            )
        ]
        assert relation.load(snapshot, country) == expected


def test_load_returns_empty_list_when_no_through_record_matches(database, snapshot):
    relation = _posts_relation(database)
    assert relation.load(snapshot, {"id": 3, "name": "Chile"}) == []
    assert relation.load(snapshot, {"id": 999}) == []


def test_load_parent_without_local_key_skips_unset_through_keys(database):
    snapshot = database.snapshot({
        "users": [{"id": 4, "name": "Nomad"}],
        "posts": [{"id": 1, "user_id": 4, "title": "Alpha"}],
    })
    assert snapshot.table("users")["4"]["country_id"] is None
    relation = _posts_relation(database)
    assert relation.load(snapshot, {"name": "Atlantis"}) == []


def test_load_contains_no_pivot_fields(database, snapshot):
    relation = _posts_relation(database)
    for record in relation.load(snapshot, {"id": 1}):
        assert "country_id" not in record
        assert "name" not in record


def test_load_does_not_mutate_snapshot(database, snapshot):
    relation = _posts_relation(database)
    result = relation.load(snapshot, {"id": 1})
    result[0]["title"] = "changed"
    assert snapshot.table("posts")["1"]["title"] == "Alpha"


def test_load_applies_constraint_to_related_query(database, snapshot):
    relation = _posts_relation(database)
    loads = [EagerLoad("posts", lambda query: query.order_by("title", "desc").limit(2))]
    result = relation.load(snapshot, {"id": 1}, loads)
    assert [r["title"] for r in result] == ["Delta", "Charlie"]


def test_load_forwards_nested_relation_to_related_query(database, snapshot):
    relation = _posts_relation(database)
    result = relation.load(snapshot, {"id": 1}, [EagerLoad("posts.tags")])
    tags_by_post = {r["id"]: [t["name"] for t in r["tags"]] for r in result}
    assert tags_by_post == {1: ["news", "tech"], 3: ["tech"], 4: []}


def test_load_pivot_with_explicit_second_local_key():
    class Related(Model):
        entity = "related"

        @classmethod
        def fields(cls):
            return {"id": cls.attr(None), "name": cls.attr("")}

    class Link(Model):
        entity = "links"

        @classmethod
        def fields(cls):
            return {
                "id": cls.attr(None),
                "parent_id": cls.attr(None),
                "related_id": cls.attr(None),
            }

    class Parent(Model):
        entity = "parents"

        @classmethod
        def fields(cls):
            return {
                "id": cls.attr(None),
                "items": cls.has_many_through(
                    Related, Link, "parent_id", "id", "id", "related_id",
                ),
            }

    database = Database([Related, Link, Parent])
    snapshot = database.snapshot({
        "parents": [{"id": 1}, {"id": 2}],
        "links": [
            {"id": 10, "parent_id": 1, "related_id": 100},
            {"id": 11, "parent_id": 2, "related_id": 200},
        ],
        "related": [{"id": 100, "name": "A"}, {"id": 200, "name": "B"}],
    })
    relation = Parent.schema()["items"]
    assert relation.load(snapshot, {"id": 1}) == [{"id": 100, "name": "A"}]


def test_load_tolerates_duplicate_candidate_ids(database):
    snapshot = database.snapshot({
        "posts": [{"id": 1, "user_id": 1, "title": "Alpha"}],
        "tags": [{"id": 2, "name": "tech"}],
        "post_tag": [
            {"id": 1, "post_id": 1, "tag_id": 2},
            {"id": 2, "post_id": 1, "tag_id": 2},
        ],
    })
    relation = database.model("posts").schema()["tags"]
    assert relation.load(snapshot, {"id": 1}) == [{"id": 2, "name": "tech"}]


# ─── make ────────────────────────────────────────────────────────

def _bound(database: Database, value) -> HasManyThrough:
    relation = _posts_relation(database)
    bound = HasManyThrough(
        relation.model, relation.related, relation.through,
        relation.first_key, relation.second_key,
        relation.local_key, relation.second_local_key,
    )
    bound.set(bound.fill(value))
    return bound


def test_make_returns_empty_list_for_empty_records(database):
    assert _bound(database, []).make({"id": 1}, "posts") == []


def test_make_returns_empty_list_for_bare_identifiers(database):
    assert _bound(database, [1, 2]).make({"id": 1}, "posts") == []
    assert _bound(database, ["1"]).make({"id": 1}, "posts") == []


def test_make_returns_empty_list_for_non_sequence_payload(database):
    assert _bound(database, {"id": 1}).make({"id": 1}, "posts") == []
    assert _bound(database, "abc").make({"id": 1}, "posts") == []


def test_make_builds_related_instances_in_order(database):
    Post = database.model("posts")
    payload = [{"id": 4, "title": "Delta"}, {"id": 1, "title": "Alpha"}]
    result = _bound(database, payload).make({"id": 1}, "posts")
    assert all(isinstance(post, Post) for post in result)
    assert [post.id for post in result] == [4, 1]
    assert [post.title for post in result] == ["Delta", "Alpha"]


def test_make_keeps_existing_instances(database):
    Post = database.model("posts")
    existing = Post({"id": 9})
    result = _bound(database, [existing]).make({"id": 1}, "posts")
    assert result[0] is existing


# ─── Construction ────────────────────────────────────────────────

def test_local_keys_default_to_primary_keys(database):
    relation = _posts_relation(database)
    assert relation.first_key == "country_id"
    assert relation.second_key == "user_id"
    assert relation.local_key == "id"
    assert relation.second_local_key == "id"


def test_related_and_through_resolve_by_entity_name(database):
    relation = database.model("posts").schema()["tags"]
    assert relation.related is database.model("tags")
    assert relation.through is database.model("post_tag")


def test_join_keys_are_immutable(database):
    relation = _posts_relation(database)
    with pytest.raises(ValidationError):
        relation.keys.first_key = "other"
    with pytest.raises(AttributeError):
        relation.first_key = "other"


def test_empty_key_name_raises_invalid_relation(database):
    Country = database.model("countries")
    with pytest.raises(InvalidRelationError) as exc_info:
        HasManyThrough(Country, "posts", "users", "", "user_id", "id", "id")
    assert exc_info.value.code == "INVALID_RELATION"


def test_unregistered_entity_reference_raises():
    class Orphan(Model):
        entity = "orphans"

        @classmethod
        def fields(cls):
            return {
                "id": cls.attr(None),
                "items": cls.has_many_through("missing", "also_missing", "a", "b"),
            }

    Database([Orphan])
    with pytest.raises(UnknownEntityError) as exc_info:
        Orphan.schema()
    assert exc_info.value.code == "UNKNOWN_ENTITY"
