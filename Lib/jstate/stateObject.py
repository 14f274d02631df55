from collections.abc import Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
import json
import logging
import typing

from .events import EventEmitter
from .jsonDiff import JSONDiff
from .stateProxy import StateProxy
from .tree import cloneTree


logger = logging.getLogger(__name__)


class StateError(Exception):
    pass


class InvalidOperation(StateError):
    pass


@dataclass
class QueueConfig:

    """Configuration for a queued (batched) set of modifications.

    - emit: when True, every modification made while queued is still diffed
      and published as a "change" event (without being added to the
      history). When False, modifications are applied directly and only the
      net change is accounted for by unqueue().
    """

    emit: bool = False


@dataclass
class _Queue:

    config: QueueConfig
    baseline: typing.Any


class History:

    """A linear list of change records and a position into it. Records
    before the position have been applied to the current tree; records at
    or after the position have been undone (or never applied).
    """

    def __init__(self, changes=None, position=0):
        self.changes = list(changes) if changes is not None else []
        self.position = position

    def __len__(self):
        return len(self.changes)

    def commit(self, change):
        """Drop all redoable records, then add `change`."""
        del self.changes[self.position:]
        self.changes.append(change)
        self.position += 1

    def clear(self):
        self.changes = []
        self.position = 0

    def undoable(self):
        return self.position > 0

    def redoable(self):
        return self.position < len(self.changes)

    def stepBack(self, tree, provider):
        """Revert the record before the position. Return a (newTree, change)
        tuple, or None when there's nothing to undo or the provider fails. The
        position only moves on success.
        """
        if not self.undoable():
            return None
        change = self.changes[self.position - 1]
        newTree = provider.applyBackward(tree, change)
        if newTree is None:
            return None
        self.position -= 1
        return newTree, change

    def stepForward(self, tree, provider):
        """Apply the record at the position. Return a (newTree, change) tuple,
        or None when there's nothing to redo or the provider fails. The
        position only moves on success.
        """
        if not self.redoable():
            return None
        change = self.changes[self.position]
        newTree = provider.applyForward(tree, change)
        if newTree is None:
            return None
        self.position += 1
        return newTree, change

    def treeAt(self, tree, position, provider):
        """Given the tree at the current position, reconstruct the tree at
        `position` by walking the records backward or forward. Return None if
        the provider fails on any record.
        """
        if not (0 <= position <= len(self.changes)):
            raise IndexError(f"history position out of range: {position}")
        for index in reversed(range(position, self.position)):
            tree = provider.applyBackward(tree, self.changes[index])
            if tree is None:
                return None
        for index in range(self.position, position):
            tree = provider.applyForward(tree, self.changes[index])
            if tree is None:
                return None
        return tree


class StateObject:

    """A StateObject holds a JSON-like tree and records every modification
    made to it, so modifications can be undone and redone.

        >>> so = StateObject({"a": 0, "b": [1, 2]})

    The `state` attribute is a proxy for the tree. Modifying it, at any
    depth, records a change:

        >>> so.state["a"] = 1
        >>> so.state["b"].append(3)
        >>> so.rawState
        {'a': 1, 'b': [1, 2, 3]}
        >>> so.undo()
        True
        >>> so.rawState
        {'a': 1, 'b': [1, 2]}
        >>> so.redo()
        True
        >>> so.rawState
        {'a': 1, 'b': [1, 2, 3]}

    undo() and redo() return False when there is nothing to undo or redo:

        >>> so.redo()
        False

    Freezing ignores all modifications, as well as undo and redo, until
    thaw() is called:

        >>> so.freeze()
        >>> so.state["a"] = 1000
        >>> so.rawState["a"]
        1
        >>> so.thaw()

    Several modifications can be recorded as a single change by queueing
    them:

        >>> with so.transaction():
        ...     so.state["a"] = 2
        ...     so.state["b"].clear()
        ...
        >>> len(so.changes)
        3
        >>> so.undo()
        True
        >>> so.rawState
        {'a': 1, 'b': [1, 2, 3]}

    Change records are computed by a diff/patch provider; by default this is
    a jsonDiff.JSONDiff instance. A different provider can be passed with the
    `provider` argument.

    Whenever a change is recorded, undone or redone, the StateObject
    publishes a "change", "undo" or "redo" event on its emitter, with the
    change record as the argument. Listeners can be added with the on()
    method. The optional `changeMonitor` argument is a callable that is
    subscribed to all three events.
    """

    def __init__(self, state=None, *, provider=None, emitter=None, changeMonitor=None):
        self._tree = cloneTree(state) if state is not None else {}
        self._provider = provider if provider is not None else JSONDiff()
        self._emitter = emitter if emitter is not None else EventEmitter()
        self._history = History()
        self._frozen = False
        self._queue = None
        self._mutating = False
        if changeMonitor is not None:
            for event in ("change", "undo", "redo"):
                self._emitter.on(event, changeMonitor)

    @property
    def state(self):
        """A proxy for the tree. Scalar root values are returned as-is."""
        return StateProxy(self._tree, self, ())

    @state.setter
    def state(self, value):
        newTree = cloneTree(value)

        def mutator():
            self._tree = newTree
        self._mutate(mutator)

    @property
    def rawState(self):
        """The tree itself. Modifying it directly bypasses the history."""
        return self._tree

    @property
    def changes(self):
        return tuple(self._history.changes)

    @property
    def position(self):
        return self._history.position

    @property
    def frozen(self):
        return self._frozen

    @property
    def queued(self):
        return self._queue is not None

    @property
    def provider(self):
        return self._provider

    @property
    def emitter(self):
        return self._emitter

    def on(self, event, callback):
        self._emitter.on(event, callback)

    def off(self, event, callback):
        self._emitter.off(event, callback)

    def freeze(self):
        """Ignore all modifications, undo and redo until thaw() is called."""
        self._frozen = True
        logger.debug("state frozen")

    def thaw(self):
        self._frozen = False
        logger.debug("state thawed")

    def stringify(self, indent=None, sortKeys=False):
        """Return the tree as a JSON string."""
        return json.dumps(self._tree, indent=indent, sort_keys=sortKeys)

    def _mutate(self, mutator):
        """Perform a modification of the tree and record it. `mutator` is a
        callable taking no arguments that modifies the raw tree; its return
        value is passed on. Returns None without calling `mutator` when the
        state is frozen.
        """
        if self._frozen:
            logger.debug("state is frozen, ignoring modification")
            return None
        if self._mutating:
            raise InvalidOperation("can't modify the state while another modification is in progress")
        self._mutating = True
        try:
            if self._queue is not None and not self._queue.config.emit:
                return mutator()
            before = cloneTree(self._tree)
            try:
                result = mutator()
            except Exception:
                self._tree = before
                raise
            change = self._provider.diff(before, cloneTree(self._tree))
        finally:
            self._mutating = False
        if change is not None:
            if self._queue is None:
                self._history.commit(change)
                logger.debug("committed change, position is now %d", self._history.position)
            self._emitter.emit("change", change)
        return result

    def undoable(self):
        """Return True if undo() would revert a change: there is history to
        undo, and the state is neither frozen nor queued.
        """
        return not self._frozen and self._queue is None and self._history.undoable()

    def redoable(self):
        return not self._frozen and self._queue is None and self._history.redoable()

    def undo(self):
        """Revert the most recent change. Returns True if the state changed,
        False if there was nothing to undo, the state is frozen, or the
        provider failed to revert the change.
        """
        return self._performUndo(self._history.stepBack, "undo")

    def redo(self):
        """Re-apply the most recently undone change. Returns True if the state
        changed, False if there was nothing to redo, the state is frozen, or
        the provider failed to apply the change.
        """
        return self._performUndo(self._history.stepForward, "redo")

    def _performUndo(self, step, event):
        if self._frozen:
            return False
        if self._queue is not None:
            raise InvalidOperation(f"can't {event} while modifications are queued")
        canStep = self._history.undoable() if event == "undo" else self._history.redoable()
        if not canStep:
            return False
        result = step(self._tree, self._provider)
        if result is None:
            logger.warning("%s failed: the change record doesn't apply to the current state", event)
            return False
        self._tree, change = result
        logger.debug("%s, position is now %d", event, self._history.position)
        self._emitter.emit(event, change)
        return True

    def queue(self, emit=False):
        """Start recording all following modifications as a single change,
        until unqueue() is called. Queues can't be nested.
        """
        if self._queue is not None:
            raise InvalidOperation("modifications are already queued")
        self._queue = _Queue(QueueConfig(emit=emit), cloneTree(self._tree))
        logger.debug("queue started (emit=%s)", emit)

    def unqueue(self):
        """Record all modifications since queue() as a single change, and
        publish it as a "change" event.
        """
        if self._queue is None:
            raise InvalidOperation("there are no queued modifications")
        baseline = self._queue.baseline
        try:
            change = self._provider.diff(baseline, cloneTree(self._tree))
        finally:
            self._queue = None
        logger.debug("queue ended")
        if change is not None:
            self._history.commit(change)
            self._emitter.emit("change", change)

    @contextmanager
    def transaction(self, emit=False):
        """Return a context manager that handles a queue()/unqueue() pair.
        If an exception occurs, the tree is reset to what it was when the
        transaction started, nothing is recorded, and the exception is
        re-raised. When the body ends the queue itself (with unqueue(),
        clear() or restore()), the transaction leaves things as they are.
        """
        self.queue(emit=emit)
        queue = self._queue
        try:
            yield self.state
        except Exception:
            # a body that called unqueue(), clear() or restore() owns no queue
            if self._queue is queue:
                self._tree = queue.baseline
                self._queue = None
                logger.debug("queue rolled back")
            raise
        else:
            if self._queue is queue:
                self.unqueue()

    def stateAt(self, position):
        """Return a copy of the tree as it was (or will be, after redo) at
        history `position`, or None if it can't be reconstructed. The state
        and the history are not affected.
        """
        tree = self._history.treeAt(self._tree, position, self._provider)
        if tree is None:
            logger.warning("can't reconstruct the state at position %d", position)
            return None
        return cloneTree(tree)

    def clear(self):
        """Forget the history. The current tree becomes the only state."""
        self._history.clear()
        self._queue = None
        logger.debug("history cleared")

    def store(self):
        """Return a copy of the complete StateObject, including the history,
        that can be passed to restore(). With the default provider the result
        only contains JSON-compatible data.
        """
        encode = getattr(self._provider, "encodeChange", None)
        changes = self._history.changes
        return dict(
            state=cloneTree(self._tree),
            changes=[encode(c) for c in changes] if encode is not None else list(changes),
            position=self._history.position,
            frozen=self._frozen,
        )

    def restore(self, snapshot):
        """Replace the tree, the history and the frozen flag with what was
        stored in `snapshot` by store(). Any queue is discarded.
        """
        if not isinstance(snapshot, Mapping):
            raise InvalidOperation("snapshot must be a mapping")
        missing = {"state", "changes", "position", "frozen"} - set(snapshot)
        if missing:
            raise InvalidOperation(f"snapshot is missing {', '.join(sorted(missing))}")
        changes = snapshot["changes"]
        position = snapshot["position"]
        if not isinstance(changes, Sequence) or isinstance(changes, str):
            raise InvalidOperation("snapshot changes must be a sequence")
        if isinstance(position, bool) or not isinstance(position, int) or \
                not (0 <= position <= len(changes)):
            raise InvalidOperation(f"invalid snapshot position: {position!r}")
        decode = getattr(self._provider, "decodeChange", None)
        if decode is not None:
            try:
                changes = [decode(c) for c in changes]
            except (LookupError, TypeError, ValueError) as e:
                raise InvalidOperation(f"invalid snapshot change: {e}") from e
        self._tree = cloneTree(snapshot["state"])
        self._history = History(changes, position)
        self._frozen = bool(snapshot["frozen"])
        self._queue = None
        logger.debug("restored state with %d changes at position %d", len(changes), position)
