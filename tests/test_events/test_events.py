"""Tests for the per-request event channel."""

from __future__ import annotations

import pytest

from tagrequest.events import EventChannel, RequestEvent
from tagrequest.exceptions import InvalidUsageError


class TestEventChannel:
    def test_emit_calls_listeners_in_order(self) -> None:
        calls: list[str] = []
        channel = EventChannel()
        channel.on("response", lambda value: calls.append(f"a:{value}"))
        channel.on(RequestEvent.RESPONSE, lambda value: calls.append(f"b:{value}"))
        channel.emit("response", 1)
        assert calls == ["a:1", "b:1"]

    def test_emit_without_listeners(self) -> None:
        EventChannel().emit("done", None, 1)

    def test_events_are_independent(self) -> None:
        calls: list[str] = []
        channel = EventChannel()
        channel.on("error", lambda exc: calls.append("error"))
        channel.emit("response", 1)
        assert calls == []

    def test_off_single_listener(self) -> None:
        calls: list[str] = []
        channel = EventChannel()

        def first(value: int) -> None:
            calls.append("first")

        def second(value: int) -> None:
            calls.append("second")

        channel.on("response", first)
        channel.on("response", second)
        channel.off("response", first)
        channel.emit("response", 1)
        assert calls == ["second"]

    def test_off_event(self) -> None:
        channel = EventChannel()
        channel.on("response", print)
        channel.on("done", print)
        channel.off("response")
        assert channel.listeners("response") == []
        assert channel.listeners("done") == [print]

    def test_off_everything(self) -> None:
        channel = EventChannel()
        channel.on("request", print)
        channel.on("done", print)
        channel.off()
        assert channel.listeners("request") == []
        assert channel.listeners("done") == []

    def test_off_unknown_listener_is_noop(self) -> None:
        channel = EventChannel()
        channel.off("response", print)

    def test_listener_removed_during_emit_still_runs_once(self) -> None:
        calls: list[str] = []
        channel = EventChannel()

        def remover(value: int) -> None:
            calls.append("remover")
            channel.off("response", other)

        def other(value: int) -> None:
            calls.append("other")

        channel.on("response", remover)
        channel.on("response", other)
        channel.emit("response", 1)
        assert calls == ["remover", "other"]

    def test_unknown_event_rejected(self) -> None:
        with pytest.raises(InvalidUsageError, match="Unknown event 'finish'"):
            EventChannel().on("finish", print)
