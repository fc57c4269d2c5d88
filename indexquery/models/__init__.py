"""Model helpers."""

from indexquery.models.base import Base, ParentLinkMixin
