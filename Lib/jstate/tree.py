"""Helpers for JSON-like trees: structural cloning, structural equality and
path-based access to nested items.

A path is a tuple of path elements. A path element is either a string (a
mapping key) or an integer (a sequence index). The empty path represents the
root of the tree.

    >>> tree = {"a": [1, 2, {"b": 3}]}
    >>> getNestedItem(tree, ("a", 2, "b"))
    3
    >>> copy = cloneTree(tree)
    >>> copy["a"] is tree["a"]
    False
    >>> treesEqual(copy, tree)
    True
"""

from collections.abc import Mapping, Sequence
from functools import singledispatch


class PatchError(LookupError):
    pass


#
# Structural clone
#

@singledispatch
def cloneTree(value):
    """Return a deep copy of a JSON-like tree that shares no mutable
    containers with the input. Values that are not mappings or sequences are
    returned as-is.
    """
    return value


@cloneTree.register(Mapping)
def _cloneMapping(value):
    return {k: cloneTree(v) for k, v in value.items()}


@cloneTree.register(Sequence)
def _cloneSequence(value):
    return [cloneTree(v) for v in value]


def _cloneAtomic(value):
    return value


for _atomicType in (str, bytes, tuple, int, float, bool, type(None)):
    cloneTree.register(_atomicType, _cloneAtomic)


def treesEqual(a, b):
    """Compare two trees structurally. Unlike ==, booleans are never equal to
    numbers, as is the case for JSON values.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, Mapping):
        if not isinstance(b, Mapping) or len(a) != len(b):
            return False
        return all(k in b and treesEqual(v, b[k]) for k, v in a.items())
    if _isTreeSequence(a):
        if not _isTreeSequence(b) or len(a) != len(b):
            return False
        return all(treesEqual(x, y) for x, y in zip(a, b))
    if isinstance(b, Mapping) or _isTreeSequence(b):
        return False
    return a == b


def isContainer(value):
    return isinstance(value, Mapping) or _isTreeSequence(value)


def _isTreeSequence(value):
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, tuple))


#
# Functions for querying and modifying nested objects, using path tuples to
# specify a location in the tree.
#
# The modifier functions follow the Change operators and their semantics:
#
#   "add"       Add an item to the container, the item must not yet exist.
#               This corresponds to a new key/value pair for a mapping, or an
#               insert/append for a sequence.
#   "replace"   Replace an existing item.
#   "remove"    Remove an existing item.
#
# Precondition violations raise PatchError.
#

def getNestedItem(obj, path):
    for pathElement in path:
        obj = getItem(obj, pathElement)
    return obj


def addNestedItem(obj, path, value):
    obj = getNestedItem(obj, path[:-1])
    addItem(obj, path[-1], value)


def replaceNestedItem(obj, path, value):
    obj = getNestedItem(obj, path[:-1])
    replaceItem(obj, path[-1], value)


def removeNestedItem(obj, path):
    obj = getNestedItem(obj, path[:-1])
    removeItem(obj, path[-1])


@singledispatch
def hasItem(obj, key):
    return False


@singledispatch
def getItem(obj, key):
    raise PatchError(f"can't look up {key!r} in {type(obj).__name__} value")


@singledispatch
def addItem(obj, key, value):
    raise PatchError(f"can't add {key!r} to {type(obj).__name__} value")


@singledispatch
def replaceItem(obj, key, value):
    raise PatchError(f"can't replace {key!r} in {type(obj).__name__} value")


@singledispatch
def removeItem(obj, key):
    raise PatchError(f"can't remove {key!r} from {type(obj).__name__} value")


@hasItem.register(Mapping)
def _mappingHasItem(obj, key):
    return key in obj


@getItem.register(Mapping)
def _mappingGetItem(obj, key):
    try:
        return obj[key]
    except KeyError:
        raise PatchError(f"no such key: {key!r}")


@addItem.register(Mapping)
def _mappingAddItem(obj, key, value):
    if key in obj:
        raise PatchError(f"key already exists: {key!r}")
    obj[key] = value


@replaceItem.register(Mapping)
def _mappingReplaceItem(obj, key, value):
    if key not in obj:
        raise PatchError(f"no such key: {key!r}")
    obj[key] = value


@removeItem.register(Mapping)
def _mappingRemoveItem(obj, key):
    if key not in obj:
        raise PatchError(f"no such key: {key!r}")
    del obj[key]


def _checkIndex(obj, index, numItems):
    if isinstance(index, bool) or not isinstance(index, int):
        raise PatchError(f"sequence index must be an integer, not {index!r}")
    if not (0 <= index < numItems):
        raise PatchError(f"sequence index out of range: {index}")


@hasItem.register(Sequence)
def _sequenceHasItem(obj, index):
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(obj)


@getItem.register(Sequence)
def _sequenceGetItem(obj, index):
    _checkIndex(obj, index, len(obj))
    return obj[index]


@addItem.register(Sequence)
def _sequenceAddItem(obj, index, value):
    # index == len(obj) appends
    _checkIndex(obj, index, len(obj) + 1)
    obj.insert(index, value)


@replaceItem.register(Sequence)
def _sequenceReplaceItem(obj, index, value):
    _checkIndex(obj, index, len(obj))
    obj[index] = value


@removeItem.register(Sequence)
def _sequenceRemoveItem(obj, index):
    _checkIndex(obj, index, len(obj))
    del obj[index]


for _atomicType in (str, bytes, tuple):
    # strings and tuples are Sequences, but are leaves of the tree
    hasItem.register(_atomicType, hasItem.dispatch(object))
    getItem.register(_atomicType, getItem.dispatch(object))
    addItem.register(_atomicType, addItem.dispatch(object))
    replaceItem.register(_atomicType, replaceItem.dispatch(object))
    removeItem.register(_atomicType, removeItem.dispatch(object))
