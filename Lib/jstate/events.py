"""A minimal synchronous publish/subscribe channel.

    >>> emitter = EventEmitter()
    >>> received = []
    >>> emitter.on("change", received.append)
    >>> emitter.emit("change", 42)
    >>> received
    [42]
"""


class EventEmitter:

    """Calls the listeners registered for an event name, in registration
    order, whenever that event is emitted. Exceptions raised by listeners
    propagate to the emitting code.
    """

    def __init__(self):
        self._listeners = {}

    def on(self, event, callback):
        self._listeners.setdefault(event, []).append(callback)

    def off(self, event, callback):
        """Remove a listener. Removing a listener that isn't registered is a
        no-op.
        """
        listeners = self._listeners.get(event)
        if listeners and callback in listeners:
            listeners.remove(callback)
            if not listeners:
                del self._listeners[event]

    def once(self, event, callback):
        """Register a listener that is removed after its first call."""
        def wrapper(*args):
            self.off(event, wrapper)
            callback(*args)
        self.on(event, wrapper)

    def emit(self, event, *args):
        # iterate over a copy, listeners may remove themselves
        for callback in list(self._listeners.get(event, ())):
            callback(*args)

    def listenerCount(self, event):
        return len(self._listeners.get(event, ()))
