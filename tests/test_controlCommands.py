"""Tests for the transaction shortcuts."""

from controlCommands import ControlCommandDispatcher
from error import EngineError
from messageHandler import Diagnostic


class RecordingSession:
    def __init__(self, failOn=()):
        self.calls = []
        self._failOn = failOn

    def _call(self, name):
        self.calls.append(name)
        if name in self._failOn:
            raise EngineError(Diagnostic(16, 3902, "no transaction"))

    def begin(self):
        self._call("begin")

    def commit(self):
        self._call("commit")

    def rollback(self):
        self._call("rollback")


def test_literals_map_to_session_primitives():
    session = RecordingSession()
    dispatcher = ControlCommandDispatcher(session)
    for batch in ("\\b", "\\c", "\\r"):
        assert dispatcher.dispatch(batch)
    assert session.calls == ["begin", "commit", "rollback"]


def test_only_exact_literals_match():
    session = RecordingSession()
    dispatcher = ControlCommandDispatcher(session)
    for batch in (" \\b", "\\b\n", "\\B", "\\commit", "select 1"):
        assert not dispatcher.dispatch(batch)
    assert session.calls == []


def test_engine_error_is_absorbed():
    session = RecordingSession(failOn=("commit",))
    dispatcher = ControlCommandDispatcher(session)
    assert dispatcher.dispatch("\\c")
    assert session.calls == ["commit"]

