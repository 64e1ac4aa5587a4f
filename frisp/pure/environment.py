"""Environments for frisp: a chain of scopes used for name resolution with shadowing.

Scopes live in an arena (a plain list) and refer to their parent by index. An Environment is a handle on one scope of
an arena. Lookup walks the parent indices innermost first; inserting only ever touches the handle's own scope, so a
child never mutates its parents.

A call frame is released (the arena truncated back to it) once the call returns, unless a lambda created during the
call captured the frame or a scope above it: a captured scope lives as long as the arena.

Bindings form a closed set:
- Builtin: a Python function with an arity contract, invoked with (env, args). Has no constant value, so referencing
  it by name yields a SymbolRef.
- Constant: any Value. Referencing it yields the value; invoking it calls the value if it is callable (see
  Evaluator.invoke).
"""

import logging

from frisp.lang.error import ArgumentCountError


logger = logging.getLogger(__name__)


class Builtin:
    """Named builtin operation. arity is the exact number of arguments expected (or the minimum if at_least), None for
    unchecked variadic operations.
    """

    def __init__(self, name, function, arity=None, at_least=False):
        self.name = name
        self.function = function
        self.arity = arity
        self.at_least = at_least

    @property
    def constant(self):
        """Builtins have no constant value."""
        return None

    def check_arity(self, args):
        if self.arity is None:
            return
        if len(args) < self.arity or (not self.at_least and len(args) != self.arity):
            raise ArgumentCountError(self.arity, len(args), self.name, self.at_least)

    def __call__(self, env, args):
        self.check_arity(args)
        return self.function(env, args)

    def __repr__(self):
        return f"Builtin({self.name!r})"


class Constant:
    """Binding wrapping a Value."""

    def __init__(self, value):
        self.value = value

    @property
    def constant(self):
        return self.value

    def __repr__(self):
        return f"Constant({self.value!r})"


class Scope:
    """One link in a scope chain: its own bindings plus the arena index of its parent (None for the root). captured is
    set once a lambda holds on to the scope.
    """
    __slots__ = ("bindings", "parent", "captured")

    def __init__(self, parent=None):
        self.bindings = {}
        self.parent = parent
        self.captured = False


class Environment:
    """Handle on scope index of arena. Environment() creates a fresh arena with an empty root scope."""

    def __init__(self, arena=None, index=None):
        if arena is None:
            arena = [Scope()]
            index = 0
        self.arena = arena
        self.index = index

    @property
    def scope(self):
        return self.arena[self.index]

    @property
    def parent(self):
        """Handle on the parent scope, or None for the root scope."""
        parent = self.scope.parent
        return None if parent is None else Environment(self.arena, parent)

    def child(self):
        """Creates a new scope whose parent is this one and returns a handle on it."""
        self.arena.append(Scope(self.index))
        logger.debug("created scope #%d (parent #%d)", len(self.arena) - 1, self.index)
        return Environment(self.arena, len(self.arena) - 1)

    def release(self):
        """Discards this scope and every scope created after it. Only valid for the innermost call frame."""
        logger.debug("released scope #%d", self.index)
        del self.arena[self.index:]

    def capture(self):
        """Marks this scope as held by a lambda, so that it is never released."""
        self.scope.captured = True
        return self

    def captured(self):
        """Whether or not this scope, or any scope created after it, is held by a lambda."""
        return any(scope.captured for scope in self.arena[self.index:])

    def chain(self):
        """Yields the scopes visible from here, innermost first."""
        env = self
        while env is not None:
            yield env.scope
            env = env.parent

    def lookup(self, name):
        """Returns the innermost binding of name, or None if no scope defines it."""
        for scope in self.chain():
            if name in scope.bindings:
                return scope.bindings[name]
        return None

    def insert(self, name, binding):
        """Binds name in this scope only, overwriting any previous binding of name in this scope."""
        self.scope.bindings[name] = binding

    def define(self, name, value):
        """Shortcut for inserting a Constant."""
        self.insert(name, Constant(value))

    def local_names(self):
        return list(self.scope.bindings)

    def names(self):
        """Every name visible from this scope: local names first, then inherited ones (duplicates included)."""
        return [name for scope in self.chain() for name in scope.bindings]

    def __contains__(self, name):
        return self.lookup(name) is not None

    def __eq__(self, other):
        return isinstance(other, Environment) and self.arena is other.arena and self.index == other.index

    def __hash__(self):
        return hash((id(self.arena), self.index))

    def __repr__(self):
        return f"Environment(#{self.index}, {len(self.arena)} scope(s))"
