"""Shared test fixtures and fakes."""

import io

import pytest

from appSettings import ConnectionSettings, Settings
from databaseConnection import connect
from error import ResultSetAdvanceError
from messageHandler import MessagePrinter


class FakeResultSet:
    """A scripted result set. Chain several through ``next``."""

    def __init__(self, columns, rows=(), rowsAffected=None, returnStatus=None,
                 next=None, rowError=None, advanceError=None):
        self._columns = columns
        self._rows = list(rows)
        self._rowsAffected = rowsAffected
        self._returnStatus = returnStatus
        self._next = next
        self._rowError = rowError
        self._advanceError = advanceError
        self.fetched = 0

    def columns(self):
        return self._columns

    def rows(self):
        for row in self._rows:
            self.fetched += 1
            yield row
        if self._rowError is not None:
            raise self._rowError

    def rowsAffected(self):
        return self._rowsAffected

    def returnStatus(self):
        return self._returnStatus

    def hasNextResultSet(self):
        return self._next is not None or self._advanceError is not None

    def advanceToNextResultSet(self):
        if self._advanceError is not None:
            raise ResultSetAdvanceError(self._advanceError)
        return self._next


class FakeSession:
    """Records what the batch loop asks of the database."""

    serverType = "sqlite"

    def __init__(self, results=None, submitError=None):
        self.results = results or {}
        self.submitError = submitError
        self.submitted = []
        self.calls = []
        self.completed = 0
        self.labelQueries = 0
        self.database = "main"

    def submit(self, batch, token=None):
        self.submitted.append(batch)
        if self.submitError is not None:
            raise self.submitError
        return self.results.get(batch)

    def complete(self, resultSet=None):
        self.completed += 1

    def begin(self):
        self.calls.append("begin")

    def commit(self):
        self.calls.append("commit")

    def rollback(self):
        self.calls.append("rollback")

    def serverLabel(self):
        self.labelQueries += 1
        return "srv"


class FakePromptSession:
    """Stands in for prompt_toolkit's PromptSession.

    Each scripted item is returned as a line, or raised if it is an exception.
    Running out of items behaves like Ctrl-D.
    """

    def __init__(self, items):
        self.items = list(items)
        self.messages = []

    def prompt(self, message, style=None):
        self.messages.append("".join(text for _, text in message))
        if not self.items:
            raise EOFError
        item = self.items.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def messages():
    return io.StringIO()


@pytest.fixture
def sqlite_session(messages):
    """In-memory SQLite session with its messages captured."""
    session = connect(ConnectionSettings(dialect="sqlite", database=":memory:"))
    session.setMessageHandler(MessagePrinter(messages))
    yield session
    session.close()


def table_lines(text):
    """Output lines with the column padding removed."""
    return [line.rstrip() for line in text.splitlines()]
