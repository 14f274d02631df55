"""The default diff/patch provider for StateObject.

A provider computes a change record between two tree snapshots, and applies
such a record forward or backward. StateObject never looks inside a change
record: any provider honoring the DiffProvider interface can be used.

The JSONDiff provider records changes as a ChangeSet: an ordered sequence of
jsonpatch-like Change deltas.

    >>> provider = JSONDiff()
    >>> change = provider.diff({"a": 1, "b": [1]}, {"a": 2, "b": [1, 2]})
    >>> for c in change:
    ...     print(c)
    Change(op='replace', path=('a',), value=2, previous=1)
    Change(op='add', path=('b', 1), value=2, previous=None)
    >>> provider.applyBackward({"a": 2, "b": [1, 2]}, change)
    {'a': 1, 'b': [1]}
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
import typing

from .tree import (
    PatchError,
    addNestedItem,
    cloneTree,
    getNestedItem,
    isContainer,
    removeNestedItem,
    replaceNestedItem,
    treesEqual,
)


logger = logging.getLogger(__name__)


class DiffProvider:

    """The interface StateObject expects from a diff/patch provider.

    The apply methods must not modify the tree passed in, and must signal
    failure by returning None rather than by raising.

    A provider may also implement encodeChange(change) and
    decodeChange(data) to turn its change records into JSON-safe data and
    back. StateObject.store() and StateObject.restore() use these when they
    are available.
    """

    def diff(self, before, after):
        """Return a change record describing how to get from `before` to
        `after`, or None if there is no difference.
        """
        raise NotImplementedError

    def applyForward(self, tree, change):
        """Return a new tree with `change` applied, or None on failure."""
        raise NotImplementedError

    def applyBackward(self, tree, change):
        """Return a new tree with `change` reverted, or None on failure."""
        raise NotImplementedError


# Change classes

_inverseOps = {"add": "remove", "remove": "add", "replace": "replace"}


@dataclass(frozen=True)
class Change:

    """A Change delta is an object with four fields:

    - op: the operation to be performed. One of "add", "replace" or "remove"
    - path: a path identifying a child object in the tree
    - value: the value to add or replace, or None when removing the child
    - previous: the value that is replaced or removed, or None when adding

    The path object is a tuple containing path elements. A path element is
    either a string (a mapping key) or an integer (a sequence index). An empty
    path represents the root object, which can only be replaced.

    Carrying the previous value makes every change invertible, and allows
    applyChange() to refuse a tree that doesn't match the change.
    """

    op: str
    path: tuple  # path elements are str or int
    value: typing.Any = None
    previous: typing.Any = None

    def inverted(self):
        return Change(_inverseOps[self.op], self.path, self.previous, self.value)

    def applyChange(self, tree):
        """Apply the change to `tree` in place, and return the new root; this
        is a different object only when the root itself gets replaced.
        """
        if self.op in ("replace", "remove"):
            current = getNestedItem(tree, self.path)
            if not treesEqual(current, self.previous):
                raise PatchError(f"unexpected value at {self.path}: {current!r}")
        if not self.path:
            if self.op != "replace":
                raise PatchError(f"can't {self.op} the root object")
            return cloneTree(self.value)
        if self.op == "add":
            addNestedItem(tree, self.path, cloneTree(self.value))
        elif self.op == "replace":
            replaceNestedItem(tree, self.path, cloneTree(self.value))
        elif self.op == "remove":
            removeNestedItem(tree, self.path)
        else:
            raise PatchError(f"unknown operation: {self.op!r}")
        return tree

    def toJSON(self):
        return dict(op=self.op, path=list(self.path), value=cloneTree(self.value),
                    previous=cloneTree(self.previous))

    @classmethod
    def fromJSON(cls, data):
        if not isinstance(data, Mapping):
            raise ValueError(f"change must be a mapping, not {type(data).__name__}")
        if data.get("op") not in _inverseOps:
            raise ValueError(f"unknown change operation: {data.get('op')!r}")
        path = data.get("path")
        if isinstance(path, (str, bytes)) or not isinstance(path, Sequence):
            raise ValueError(f"change path must be a sequence, not {path!r}")
        return cls(data["op"], tuple(path), cloneTree(data.get("value")),
                   cloneTree(data.get("previous")))


@dataclass(frozen=True)
class ChangeSet:

    changes: tuple = field(default_factory=tuple)

    def __iter__(self):
        return iter(self.changes)

    def __len__(self):
        return len(self.changes)

    def inverted(self):
        return ChangeSet(tuple(change.inverted() for change in reversed(self.changes)))

    def applyChanges(self, tree):
        for change in self:
            tree = change.applyChange(tree)
        return tree

    def isEmpty(self):
        return not self.changes

    def toJSON(self):
        return [change.toJSON() for change in self]

    @classmethod
    def fromJSON(cls, data):
        if isinstance(data, (str, bytes, Mapping)) or not isinstance(data, Sequence) or not data:
            raise ValueError("change set must be a non-empty sequence of changes")
        return cls(tuple(Change.fromJSON(item) for item in data))


def diffTrees(before, after, path=()):
    """Return the list of Change objects that turn `before` into `after`."""
    if treesEqual(before, after):
        return []
    if isinstance(before, Mapping) and isinstance(after, Mapping):
        changes = []
        for key, value in before.items():
            if key not in after:
                changes.append(Change("remove", path + (key,), None, cloneTree(value)))
        for key, value in after.items():
            if key not in before:
                changes.append(Change("add", path + (key,), cloneTree(value)))
            else:
                changes.extend(diffTrees(before[key], value, path + (key,)))
        return changes
    if isContainer(before) and isContainer(after) and \
            not isinstance(before, Mapping) and not isinstance(after, Mapping):
        changes = []
        numShared = min(len(before), len(after))
        for index in range(numShared):
            changes.extend(diffTrees(before[index], after[index], path + (index,)))
        for index in range(numShared, len(after)):
            changes.append(Change("add", path + (index,), cloneTree(after[index])))
        # remove from the end, so the indices stay valid
        for index in reversed(range(numShared, len(before))):
            changes.append(Change("remove", path + (index,), None, cloneTree(before[index])))
        return changes
    return [Change("replace", path, cloneTree(after), cloneTree(before))]


class JSONDiff(DiffProvider):

    """Diff/patch provider for JSON-like trees, recording changes as
    ChangeSet objects.
    """

    def diff(self, before, after):
        changes = diffTrees(before, after)
        if not changes:
            return None
        return ChangeSet(tuple(changes))

    def applyForward(self, tree, change):
        return self._apply(tree, change)

    def applyBackward(self, tree, change):
        return self._apply(tree, change.inverted())

    def _apply(self, tree, changeSet):
        try:
            return changeSet.applyChanges(cloneTree(tree))
        except (PatchError, LookupError, TypeError, ValueError) as e:
            logger.debug("can't apply change set: %s", e)
            return None

    def encodeChange(self, change):
        return change.toJSON()

    def decodeChange(self, data):
        return ChangeSet.fromJSON(data)
