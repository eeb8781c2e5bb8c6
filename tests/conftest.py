"""Pytest configuration and fixtures for schemasync tests."""

import pytest

from schemasync.models.schema import (
    Cardinality,
    CascadeAction,
    ForeignAttribute,
    NormalAttribute,
    PrimaryAttribute,
    Reference,
    Schema,
    Table,
)


def build_users_posts() -> Schema:
    """users(id serial pk, email, created_at) <- posts(user_id fk)."""
    users = Table(id="table-1", name="users", attributes=[
        PrimaryAttribute(name="id", data_type="SERIAL"),
        NormalAttribute(name="email", data_type="VARCHAR(255)", not_null=True, unique=True),
        NormalAttribute(name="created_at", data_type="TIMESTAMP", default="now()"),
    ])
    posts = Table(id="table-2", name="posts", attributes=[
        PrimaryAttribute(name="id", data_type="SERIAL"),
        ForeignAttribute(
            name="user_id",
            data_type="INTEGER",
            reference=Reference(table="users", attribute="id"),
            on_delete=CascadeAction.CASCADE,
        ),
        NormalAttribute(name="title", data_type="VARCHAR(200)", not_null=True),
        NormalAttribute(name="body", data_type="TEXT"),
    ])
    return Schema(tables=[users, posts])


def build_students_courses() -> Schema:
    """students and courses joined by a many-to-many foreign key."""
    students = Table(id="table-1", name="students", attributes=[
        PrimaryAttribute(name="id", data_type="INTEGER"),
        NormalAttribute(name="name", data_type="VARCHAR(100)", not_null=True),
        ForeignAttribute(
            name="course_id",
            data_type="INTEGER",
            reference=Reference(table="courses", attribute="id"),
            cardinality=Cardinality.MANY_TO_MANY,
        ),
    ])
    courses = Table(id="table-2", name="courses", attributes=[
        PrimaryAttribute(name="id", data_type="INTEGER"),
        NormalAttribute(name="title", data_type="VARCHAR(200)"),
    ])
    return Schema(tables=[students, courses])


@pytest.fixture
def users_posts() -> Schema:
    return build_users_posts()


@pytest.fixture
def students_courses() -> Schema:
    return build_students_courses()


class EventRecorder:
    """Listener that keeps every edge event it receives."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


class FakeMCP:
    """Collects the coroutines registered with ``@mcp.tool()``."""

    def __init__(self):
        self.tools = {}

    def tool(self):
        def decorator(fn):
            self.tools[fn.__name__] = fn
            return fn
        return decorator
