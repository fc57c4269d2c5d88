"""Pytest configuration and fixtures for indexquery tests."""

import datetime
from types import SimpleNamespace
from typing import Callable, Generator, List, Optional

import pytest
import structlog
from sqlalchemy import Date, ForeignKey, Integer, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, sessionmaker

from indexquery.core.config import IndexQueryConfig, set_default_config
from indexquery.models import Base, ParentLinkMixin


class Author(Base):
    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self) -> str:
        return f"Author(id={self.id}, name='{self.name}')"


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    posted_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    author_id: Mapped[Optional[int]] = mapped_column(ForeignKey("authors.id"), nullable=True)

    author: Mapped[Optional["Author"]] = relationship()
    comments: Mapped[List["Comment"]] = relationship(
        back_populates="post", order_by="Comment.id"
    )
    tags: Mapped[List["Tag"]] = relationship(order_by="Tag.id", overlaps="post")

    def __repr__(self) -> str:
        return f"Post(id={self.id}, title='{self.title}')"


class Comment(ParentLinkMixin, Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    body: Mapped[str] = mapped_column(String(500), nullable=False)
    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id"), nullable=False)
    author_id: Mapped[int] = mapped_column(ForeignKey("authors.id"), nullable=False)

    post: Mapped["Post"] = relationship(back_populates="comments")
    author: Mapped["Author"] = relationship()

    def __repr__(self) -> str:
        return f"Comment(id={self.id}, post_id={self.post_id})"


class Tag(Base):
    """Child without a declared inverse relationship."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    label: Mapped[str] = mapped_column(String(50), nullable=False)
    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id"), nullable=False)

    post: Mapped["Post"] = relationship(overlaps="tags")


@pytest.fixture
def engine() -> Engine:
    """Create in-memory SQLite database engine."""
    return create_engine("sqlite:///:memory:")


@pytest.fixture
def tables(engine: Engine) -> Generator[None, None, None]:
    """Create all tables in the database."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def session(engine: Engine, tables: None) -> Generator[Session, None, None]:
    """Create a new database session for a test."""
    connection = engine.connect()
    transaction = connection.begin()

    session_factory = sessionmaker(bind=connection)
    session = session_factory()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def blog(session: Session) -> dict:
    """Seed posts, comments and tags.

    Posts 1 and 3 mention "dsl" in their titles; alice commented on posts 1
    and 3; post 4 has no comments.
    """
    alice = Author(id=1, name="alice")
    bob = Author(id=2, name="bob")

    posts = [
        Post(id=1, title="Writing a DSL in Python", subtitle="intro",
             posted_date=datetime.date(2020, 1, 5), view_count=10, author=alice),
        Post(id=2, title="SQLAlchemy tips", subtitle=None,
             posted_date=datetime.date(2020, 1, 20), view_count=50, author=bob),
        Post(id=3, title="Internal dsl patterns", subtitle="patterns",
             posted_date=datetime.date(2020, 2, 1), view_count=5, author=bob),
        Post(id=4, title="Release notes", subtitle=None,
             posted_date=datetime.date(2019, 12, 31), view_count=0, author=None),
    ]
    comments = [
        Comment(id=1, body="Great", post_id=1, author=alice),
        Comment(id=2, body="Thanks", post_id=1, author=bob),
        Comment(id=3, body="Useful", post_id=2, author=bob),
        Comment(id=4, body="More please", post_id=3, author=alice),
        Comment(id=5, body="Follow-up", post_id=3, author=alice),
        Comment(id=6, body="Agreed", post_id=3, author=bob),
    ]
    tags = [
        Tag(id=1, label="python", post_id=1),
        Tag(id=2, label="dsl", post_id=1),
        Tag(id=3, label="patterns", post_id=3),
    ]

    session.add_all([alice, bob, *posts, *comments, *tags])
    session.commit()
    session.expunge_all()

    return {"posts": posts, "comments": comments, "tags": tags}


@pytest.fixture(autouse=True)
def default_config() -> Generator[IndexQueryConfig, None, None]:
    """Reset the package configuration around every test."""
    config = set_default_config(IndexQueryConfig())
    yield config
    set_default_config(IndexQueryConfig())
    structlog.reset_defaults()


@pytest.fixture
def models() -> SimpleNamespace:
    """The mapped classes used by the tests."""
    return SimpleNamespace(Author=Author, Post=Post, Comment=Comment, Tag=Tag)


@pytest.fixture
def compile_sql(engine: Engine) -> Callable[[object], str]:
    """Render a statement with inlined parameters for structural comparison."""

    def _compile(statement) -> str:
        return str(statement.compile(engine, compile_kwargs={"literal_binds": True}))

    return _compile
