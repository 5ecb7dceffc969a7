"""Root conftest — sample schema and seeded snapshot shared by all tests.

Schema:
    Country ──posts (through users)──▶ Post ──tags (through post_tag)──▶ Tag

Design Decisions:
    - Models declared once at module level; each test gets a fresh Database
      so registrations never leak between tests
    - Post.tags references its models by entity name to exercise registry lookup
"""

import os

import pytest

from normstore.core.database import Database
from normstore.core.model import Model

# Keep tests independent of any developer .env overrides
os.environ.setdefault("NORMSTORE_LOG_LEVEL", "INFO")
os.environ.setdefault("NORMSTORE_LOG_FORMAT", "json")


class User(Model):
    entity = "users"

    @classmethod
    def fields(cls):
        return {
            "id": cls.attr(None),
            "country_id": cls.attr(None),
            "name": cls.attr(""),
        }


class Tag(Model):
    entity = "tags"

    @classmethod
    def fields(cls):
        return {
            "id": cls.attr(None),
            "name": cls.attr(""),
        }


class PostTag(Model):
    entity = "post_tag"

    @classmethod
    def fields(cls):
        return {
            "id": cls.attr(None),
            "post_id": cls.attr(None),
            "tag_id": cls.attr(None),
        }


class Post(Model):
    entity = "posts"

    @classmethod
    def fields(cls):
        return {
            "id": cls.attr(None),
            "user_id": cls.attr(None),
            "title": cls.attr(""),
            "meta": cls.attr({"views": 0}),
            "tags": cls.has_many_through("tags", "post_tag", "post_id", "id", "id", "tag_id"),
        }


class Country(Model):
    entity = "countries"

    @classmethod
    def fields(cls):
        return {
            "id": cls.attr(None),
            "name": cls.attr(""),
            "posts": cls.has_many_through(Post, User, "country_id", "user_id"),
        }


SEED = {
    "countries": [
        {"id": 1, "name": "Japan"},
        {"id": 2, "name": "Brazil"},
        {"id": 3, "name": "Chile"},
    ],
    "users": [
        {"id": 1, "country_id": 1, "name": "John"},
        {"id": 2, "country_id": 1, "name": "Jane"},
        {"id": 3, "country_id": 2, "name": "Maria"},
    ],
    "posts": [
        {"id": 1, "user_id": 1, "title": "Alpha"},
        {"id": 2, "user_id": 3, "title": "Bravo"},
        {"id": 3, "user_id": 2, "title": "Charlie"},
        {"id": 4, "user_id": 1, "title": "Delta"},
    ],
    "tags": [
        {"id": 1, "name": "news"},
        {"id": 2, "name": "tech"},
    ],
    "post_tag": [
        {"id": 1, "post_id": 1, "tag_id": 1},
        {"id": 2, "post_id": 1, "tag_id": 2},
        {"id": 3, "post_id": 3, "tag_id": 2},
    ],
}


@pytest.fixture
def database() -> Database:
    return Database([User, Tag, PostTag, Post, Country])


@pytest.fixture
def snapshot(database):
    return database.snapshot(SEED)
