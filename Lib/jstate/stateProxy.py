"""Proxy objects that make every modification of a StateObject's tree
observable.

A proxy refers to the raw container it stands for, its StateObject and the
path of the container in the tree. Every access checks that the path still
leads to that same container; when it doesn't (an item was inserted or
removed before it, it was replaced, or undo() or redo() replaced the tree)
the proxy is stale and raises LookupError instead of touching another
container. The root proxy always stands for the current tree. Reading a
container-valued item returns another proxy; scalars are returned as-is.

Every modification made through a proxy is handed to the StateObject as one
mutation, which the StateObject turns into a single change record.
"""

from collections.abc import MutableMapping, MutableSequence
from functools import singledispatch

from .tree import cloneTree, getNestedItem, treesEqual


_noDefault = object()


class StateProxyBase:

    def __init__(self, model, stateObject, path=()):
        self._modelObject = model
        self._stateObject = stateObject
        self._path = path

    def _rawTarget(self):
        tree = self._stateObject._tree
        if not self._path:
            # the root proxy follows the tree through undo and redo
            return tree
        try:
            current = getNestedItem(tree, self._path)
        except LookupError:
            current = None
        if current is not self._modelObject:
            raise LookupError(f"stale proxy: {self._path} no longer refers to the same container")
        return current

    def _wrap(self, key, value):
        return StateProxy(value, self._stateObject, self._path + (key,))

    def _mutate(self, mutator):
        return self._stateObject._mutate(mutator)

    def __eq__(self, other):
        return treesEqual(self._rawTarget(), unwrap(other))

    __hash__ = None

    def __repr__(self):
        return f"{self.__class__.__name__}({self._modelObject}, path={self._path})"


class StateProxySequence(StateProxyBase, MutableSequence):

    def __len__(self):
        return len(self._rawTarget())

    def _normalizeIndex(self, index):
        numItems = len(self._rawTarget())
        if index < 0:
            index += numItems
        if not (0 <= index < numItems):
            raise IndexError("sequence index out of range")
        return index

    def __getitem__(self, index):
        if isinstance(index, slice):
            return cloneTree(self._rawTarget()[index])
        index = self._normalizeIndex(index)
        return self._wrap(index, self._rawTarget()[index])

    def __setitem__(self, index, item):
        target = self._rawTarget()
        if isinstance(index, slice):
            items = [cloneTree(i) for i in item]
        else:
            index = self._normalizeIndex(index)
            items = cloneTree(item)

        def mutator():
            target[index] = items
        self._mutate(mutator)

    def __delitem__(self, index):
        target = self._rawTarget()
        if not isinstance(index, slice):
            index = self._normalizeIndex(index)

        def mutator():
            del target[index]
        self._mutate(mutator)

    def __iter__(self):
        for index, item in enumerate(list(self._rawTarget())):
            yield self._wrap(index, item)

    def __contains__(self, value):
        return unwrap(value) in self._rawTarget()

    def insert(self, index, item):
        target = self._rawTarget()
        item = cloneTree(item)
        self._mutate(lambda: target.insert(index, item))

    def append(self, item):
        target = self._rawTarget()
        item = cloneTree(item)
        self._mutate(lambda: target.append(item))

    def extend(self, items):
        target = self._rawTarget()
        items = [cloneTree(i) for i in items]
        self._mutate(lambda: target.extend(items))

    def __iadd__(self, items):
        self.extend(items)
        return self

    def pop(self, index=-1):
        target = self._rawTarget()
        return self._mutate(lambda: target.pop(index))

    def remove(self, value):
        target = self._rawTarget()
        value = unwrap(value)
        self._mutate(lambda: target.remove(value))

    def clear(self):
        target = self._rawTarget()
        self._mutate(target.clear)

    def reverse(self):
        target = self._rawTarget()
        self._mutate(target.reverse)

    def sort(self, *, key=None, reverse=False):
        target = self._rawTarget()
        self._mutate(lambda: target.sort(key=key, reverse=reverse))


class StateProxyMapping(StateProxyBase, MutableMapping):

    def __len__(self):
        return len(self._rawTarget())

    def __iter__(self):
        return iter(list(self._rawTarget()))

    def __contains__(self, key):
        return key in self._rawTarget()

    def __getitem__(self, key):
        return self._wrap(key, self._rawTarget()[key])

    def __setitem__(self, key, value):
        target = self._rawTarget()
        value = cloneTree(value)

        def mutator():
            target[key] = value
        self._mutate(mutator)

    def __delitem__(self, key):
        target = self._rawTarget()
        if key not in target:
            raise KeyError(key)

        def mutator():
            del target[key]
        self._mutate(mutator)

    def update(self, *args, **kwargs):
        target = self._rawTarget()
        items = {k: cloneTree(v) for k, v in dict(*args, **kwargs).items()}
        self._mutate(lambda: target.update(items))

    def pop(self, key, default=_noDefault):
        target = self._rawTarget()
        if key not in target:
            if default is _noDefault:
                raise KeyError(key)
            return default
        return self._mutate(lambda: target.pop(key))

    def popitem(self):
        target = self._rawTarget()
        if not target:
            raise KeyError("popitem(): mapping is empty")
        return self._mutate(target.popitem)

    def setdefault(self, key, default=None):
        if key not in self._rawTarget():
            self[key] = default
        return self.get(key)

    def clear(self):
        target = self._rawTarget()
        self._mutate(target.clear)


@singledispatch
def StateProxy(value, stateObject, path=()):
    # Scalars, tuples, read-only containers and anything else the proxies
    # can't write back to are handed out unwrapped.
    return value


@StateProxy.register(MutableSequence)
def _sequenceProxy(value, stateObject, path=()):
    return StateProxySequence(value, stateObject, path)


@StateProxy.register(MutableMapping)
def _mappingProxy(value, stateObject, path=()):
    return StateProxyMapping(value, stateObject, path)


def unwrap(value):
    """Return the raw data a proxy stands for, or the value itself if it
    isn't a proxy.
    """
    if isinstance(value, StateProxyBase):
        return value._rawTarget()
    return value


@cloneTree.register(StateProxyBase)
def _cloneProxy(value):
    return cloneTree(value._rawTarget())
