import pytest
from jstate.events import EventEmitter


class TestEventEmitter:

    def test_emit(self):
        emitter = EventEmitter()
        received = []
        emitter.on("change", received.append)
        emitter.on("change", lambda value: received.append(value * 2))
        emitter.emit("change", 3)
        assert received == [3, 6]

    def test_emit_without_listeners(self):
        emitter = EventEmitter()
        emitter.emit("change", 1)
        assert emitter.listenerCount("change") == 0

    def test_events_are_separate(self):
        emitter = EventEmitter()
        received = []
        emitter.on("undo", received.append)
        emitter.emit("redo", 1)
        emitter.emit("undo", 2)
        assert received == [2]

    def test_off(self):
        emitter = EventEmitter()
        received = []
        emitter.on("change", received.append)
        assert emitter.listenerCount("change") == 1
        emitter.off("change", received.append)
        emitter.off("change", received.append)  # not registered anymore: no-op
        emitter.emit("change", 1)
        assert received == []
        assert emitter.listenerCount("change") == 0

    def test_once(self):
        emitter = EventEmitter()
        received = []
        emitter.once("change", received.append)
        emitter.emit("change", 1)
        emitter.emit("change", 2)
        assert received == [1]

    def test_listener_error_propagates(self):
        emitter = EventEmitter()

        def failing(value):
            raise ValueError("test")

        emitter.on("change", failing)
        with pytest.raises(ValueError):
            emitter.emit("change", 1)
