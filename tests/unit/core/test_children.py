"""Unit tests for the child expansion helpers."""

import pytest
from sqlalchemy import inspect, select

from indexquery.core.children import (
    child_relationship,
    children_of,
    eager_load,
    parent_attribute_for,
)
from indexquery.models.base import attach_parent
from indexquery.utils.exceptions import ConfigurationError


def test_child_relationship(models):
    relationship = child_relationship(models.Post, "comments")
    assert relationship.mapper.class_ is models.Comment


def test_child_relationship_missing(models):
    with pytest.raises(ConfigurationError) as exc_info:
        child_relationship(models.Post, "reviews")
    assert exc_info.value.details["config_key"] == "child_association"


def test_child_relationship_not_collection(models):
    with pytest.raises(ConfigurationError):
        child_relationship(models.Comment, "post")


def test_parent_attribute_from_back_populates(models):
    relationship = child_relationship(models.Post, "comments")
    assert parent_attribute_for(relationship) == "post"


def test_parent_attribute_explicit(models):
    relationship = child_relationship(models.Post, "tags")
    assert parent_attribute_for(relationship, "post") == "post"


def test_parent_attribute_required_without_inverse(models):
    relationship = child_relationship(models.Post, "tags")

    with pytest.raises(ConfigurationError) as exc_info:
        parent_attribute_for(relationship)
    assert exc_info.value.details["config_key"] == "parent_attribute"


def test_parent_attribute_must_be_relationship(models):
    relationship = child_relationship(models.Post, "comments")

    with pytest.raises(ConfigurationError):
        parent_attribute_for(relationship, "body")


def test_eager_load_loads_children_with_parents(session, blog, models):
    base = select(models.Post)
    statement = eager_load(base, models.Post, "comments")

    assert statement is not base
    posts = session.scalars(statement).unique().all()
    for post in posts:
        assert "comments" not in inspect(post).unloaded


def test_attach_parent_does_not_dirty_session(session, blog, models):
    post = session.get(models.Post, 2)
    tag = models.Tag(id=99, label="orm", post_id=2)
    session.add(tag)
    session.flush()
    session.expire(tag, ["post"])

    attach_parent(tag, "post", post)

    assert tag.post is post
    assert "post" not in inspect(tag).unloaded
    assert tag not in session.dirty


def test_children_of_flattens_in_order(session, blog, models):
    posts = session.scalars(
        eager_load(select(models.Post), models.Post, "comments").order_by(models.Post.id.desc())
    ).unique().all()

    children = children_of(posts, "comments", "post")

    assert [c.id for c in children] == [4, 5, 6, 3, 1, 2]
    for child in children:
        assert child.post.id == child.post_id

