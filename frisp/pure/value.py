"""Runtime values of the frisp language, plus the numeric promotion rule shared by every arithmetic/comparison builtin.

Values are immutable tagged variants: equality is structural and type-strict, so Integer(1) != Float(1.0). Unit is
the default value.

Promotion rule for binary operations:

```
Integer ⊗ Integer -> Integer
Integer ⊗ Float   -> Float      ; the integer operand is widened
Float   ⊗ Integer -> Float
Float   ⊗ Float   -> Float
anything else     -> BindingError naming the operation and both operands
```
"""

import math
import operator
from dataclasses import dataclass, field

from frisp.lang.error import BindingError


INT_MIN = -2 ** 63
INT_MAX = 2 ** 63 - 1


class Value:
    """Superclass of every runtime value."""
    type_name = "value"


@dataclass(frozen=True)
class Unit(Value):
    type_name = "unit"

    def __str__(self):
        return ""


@dataclass(frozen=True)
class String(Value):
    value: str
    type_name = "string"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Integer(Value):
    value: int
    type_name = "integer"

    def __str__(self):
        return str(self.value)


@dataclass(frozen=True)
class Float(Value):
    value: float
    type_name = "float"

    def __str__(self):
        return repr(self.value)


@dataclass(frozen=True)
class List(Value):
    items: tuple = ()
    type_name = "list"

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))

    def __str__(self):
        return "(" + ",".join(str(item) for item in self.items) + ")"

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


@dataclass(frozen=True)
class Lambda(Value):
    """User function: owns its parameter names and body (a tuple of AST nodes). scope is the defining Environment when
    lambdas capture lexically and None otherwise; it takes no part in equality.
    """
    params: tuple
    body: tuple
    scope: object = field(default=None, compare=False, repr=False)
    type_name = "lambda"

    def __str__(self):
        parts = ["lambda", "(" + " ".join(self.params) + ")"] + [node.render() for node in self.body]
        return "(" + " ".join(parts) + ")"


@dataclass(frozen=True)
class SymbolRef(Value):
    """Deferred reference to a callable binding, resolved in the environment of the eventual call."""
    name: str
    type_name = "symbol-ref"

    def __str__(self):
        return f"@{self.name}"


@dataclass(frozen=True)
class Error(Value):
    """Script-visible error value. Only ever built explicitly by a script, never returned by a failing operation."""
    message: str
    type_name = "error"

    def __str__(self):
        return f"Error: {self.message}"


UNIT = Unit()
TRUE = Integer(1)
FALSE = Integer(0)


def boolean(condition):
    """Booleans are the integers 1 and 0."""
    return TRUE if condition else FALSE


def integer(value, name="integer"):
    """Returns Integer(value), raising a BindingError if value does not fit a signed machine word."""
    if not INT_MIN <= value <= INT_MAX:
        raise BindingError("'{}' overflowed: {}", (name, value))
    return Integer(value)


def _int_div(a, b):
    """Integer division truncating toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _int_mod(a, b):
    """Remainder with the sign of the dividend, matching truncating division."""
    return a - b * _int_div(a, b)


def _checked(int_op, float_op=None):
    """Wraps an (int_op, float_op) pair with a zero-divisor check."""

    def zero_checked(op):
        def checked(a, b):
            if b == 0:
                raise ZeroDivisionError
            return op(a, b)
        return checked

    return zero_checked(int_op), zero_checked(float_op)


OPERATIONS = {
    "+": (operator.add, operator.add),
    "-": (operator.sub, operator.sub),
    "*": (operator.mul, operator.mul),
    "/": _checked(_int_div, operator.truediv),
    "mod": _checked(_int_mod, math.fmod),
}


def promote(name, a, b):
    """Applies the promotion rule to a, b: returns (Value class, a', b') with both operands as Python numbers of the
    resulting kind.
    """
    if isinstance(a, Integer) and isinstance(b, Integer):
        return Integer, a.value, b.value
    elif isinstance(a, (Integer, Float)) and isinstance(b, (Integer, Float)):
        return Float, float(a.value), float(b.value)
    raise BindingError("'{}' cannot be applied to {} and {}", (name, repr(a), repr(b)))


def arithmetic(name, a, b):
    """Binary arithmetic operation name (see OPERATIONS) applied to Values a and b using the promotion rule."""
    int_op, float_op = OPERATIONS[name]
    kind, x, y = promote(name, a, b)

    try:
        if kind is Integer:
            return integer(int_op(x, y), name)
        return Float(float_op(x, y))
    except ZeroDivisionError:
        raise BindingError("'{}' division by zero: {} and {}", (name, repr(a), repr(b)))
    except OverflowError:
        raise BindingError("'{}' overflowed: {} and {}", (name, repr(a), repr(b)))


def compare(name, a, b):
    """Ordering comparison: only defined for pairs of integers."""
    if not (isinstance(a, Integer) and isinstance(b, Integer)):
        raise BindingError("'{}' expects two integers, got {} and {}", (name, repr(a), repr(b)))
    return boolean(a.value < b.value if name == "<" else a.value > b.value)
