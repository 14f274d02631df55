"""# jstate

Undo and redo for JSON-like data.

A StateObject holds a tree composed of dictionaries, lists, strings, numbers,
booleans and None. Every modification made to the tree, at any depth, is
recorded as a change, and the tree can be rewound and replayed through its
history.

The recording is done through proxy objects: the `state` attribute of a
StateObject is a proxy that looks and behaves like the tree it stands for.
Reading a nested dictionary or list returns another proxy, so modifications
are recorded no matter how deeply nested they are. The tree itself never
needs to be aware of any of this.

Changes are recorded by comparing a copy of the tree from before a
modification with the tree after it. The comparison is done by a diff/patch
provider, which also applies changes forward (redo) and backward (undo). The
default provider, jsonDiff.JSONDiff, records jsonpatch-like "add", "replace"
and "remove" deltas. Here is an example:

    >>> so = StateObject({"a": 0, "b": 1, "c": {}, "d": [0, 1, 2, 3, 4]})
    >>> so.state["c"] = 2
    >>> so.rawState["c"]
    2
    >>> so.undo()
    True
    >>> so.rawState["c"]
    {}
    >>> so.redo()
    True
    >>> so.rawState["c"]
    2
    >>> so.freeze()
    >>> so.state["c"] = 3
    >>> so.rawState["c"]
    2
    >>> so.thaw()
    >>> so.undoable(), so.redoable()
    (True, False)

The complete StateObject, history included, can be stored and restored:

    >>> snapshot = so.store()
    >>> other = StateObject()
    >>> other.restore(snapshot)
    >>> other.rawState == so.rawState
    True

### Acknowledgments

The change format draws inspiration from [jsonpatch](http://jsonpatch.com/).
"""

from .events import EventEmitter
from .jsonDiff import Change, ChangeSet, DiffProvider, JSONDiff
from .stateObject import History, InvalidOperation, QueueConfig, StateError, StateObject
from .stateProxy import unwrap
from .tree import cloneTree, treesEqual

__all__ = [
    "Change",
    "ChangeSet",
    "DiffProvider",
    "EventEmitter",
    "History",
    "InvalidOperation",
    "JSONDiff",
    "QueueConfig",
    "StateError",
    "StateObject",
    "cloneTree",
    "treesEqual",
    "unwrap",
]

try:
    from ._version import version as __version__
except ImportError:
    __version__ = "<unknown>"
