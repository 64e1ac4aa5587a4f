"""Builtin library of the frisp language, registered into the default environment.

Every builtin is a Python function taking (env, args), where env is the calling Environment and args the already
evaluated argument Values. The @builtin decorator records it along with its arity contract; arity is checked before
the function runs, so the functions below can unpack args directly.

Families:

```
arithmetic     + - * / mod == < >
logical        not and or
list           list car cdr cons length endp begin
string         str-split str-lines str-concat str-join to-string
I/O            print read-line read-file parse-int system
introspection  debug type-of local-env global-env error
constants      pi
```
"""

import logging
import math
import re
import subprocess
import sys
from functools import reduce

from frisp.lang.error import BindingError
from frisp.pure.environment import Builtin
from frisp.pure.value import UNIT, Error, Float, Integer, List, String, Unit, arithmetic, boolean, compare, integer


logger = logging.getLogger(__name__)

BUILTINS = []
CONSTANTS = {"pi": Float(math.pi)}

DECIMAL = re.compile(r"[+-]?[0-9]+")


def builtin(name, arity=None, at_least=False):
    """Registers the decorated function as builtin name. See Builtin for the meaning of arity and at_least."""

    def register(function):
        BUILTINS.append(Builtin(name, function, arity, at_least))
        return function

    return register


def register(env, bindings=None):
    """Inserts bindings (default: the whole library and its constants) into env's own scope."""
    if bindings is None:
        bindings = BUILTINS
        for name, value in CONSTANTS.items():
            env.define(name, value)

    for binding in bindings:
        env.insert(binding.name, binding)


def expect(name, value, *kinds):
    """Returns value if it is one of kinds, else raises a BindingError naming the operation and the operand."""
    if not isinstance(value, kinds):
        expected = " or ".join(kind.type_name for kind in kinds)
        raise BindingError("'{}' expects {}, got {}", (name, expected, repr(value)))
    return value


# arithmetic

def _fold(name):
    def fold(env, args):
        for arg in args:
            expect(name, arg, Integer, Float)
        return reduce(lambda accu, value: arithmetic(name, accu, value), args)
    return fold


add = builtin("+", 1, at_least=True)(_fold("+"))
subtract = builtin("-", 1, at_least=True)(_fold("-"))
multiply = builtin("*", 1, at_least=True)(_fold("*"))
divide = builtin("/", 1, at_least=True)(_fold("/"))


@builtin("mod", 2)
def mod(env, args):
    return arithmetic("mod", *args)


@builtin("==", 2)
def equals(env, args):
    left, right = args
    return boolean(left == right)


@builtin("<", 2)
def less_than(env, args):
    return compare("<", *args)


@builtin(">", 2)
def greater_than(env, args):
    return compare(">", *args)


# logical

@builtin("not", 1)
def logical_not(env, args):
    value = expect("not", args[0], Integer)
    return boolean(value.value == 0)


def _boolean_operands(name, args):
    for arg in args:
        if not isinstance(arg, Integer) or arg.value not in (0, 1):
            raise BindingError("'{}' expects booleans (0 or 1), got {}", (name, repr(arg)))
    return [arg.value == 1 for arg in args]


@builtin("and", 2)
def logical_and(env, args):
    left, right = _boolean_operands("and", args)
    return boolean(left and right)


@builtin("or", 2)
def logical_or(env, args):
    left, right = _boolean_operands("or", args)
    return boolean(left or right)


# lists

@builtin("list")
def make_list(env, args):
    return List(args)


@builtin("car", 1)
def car(env, args):
    items = expect("car", args[0], List).items
    if not items:
        raise BindingError("'{}' list does not have an element", "car")
    return items[0]


@builtin("cdr", 1)
def cdr(env, args):
    return List(expect("cdr", args[0], List).items[1:])


@builtin("cons", 2)
def cons(env, args):
    element, rest = args
    return List((element,) + expect("cons", rest, List).items)


@builtin("length", 1)
def length(env, args):
    value = expect("length", args[0], Unit, String, List)
    if isinstance(value, String):
        return Integer(len(value.value.encode("utf-8")))
    elif isinstance(value, List):
        return Integer(len(value))
    return Integer(0)


@builtin("endp", 1)
def endp(env, args):
    return boolean(not expect("endp", args[0], List).items)


@builtin("begin")
def begin(env, args):
    """Arguments are evaluated before begin runs: sequencing comes from argument evaluation order."""
    return args[-1] if args else UNIT


# strings

def _strings(name, values):
    return [expect(name, value, String).value for value in values]


@builtin("str-split", 2)
def str_split(env, args):
    text, separator = _strings("str-split", args)
    if not separator:
        raise BindingError("'{}' separator cannot be empty", "str-split")
    return List(String(part) for part in text.split(separator))


@builtin("str-lines", 1)
def str_lines(env, args):
    """Splits on "\\n" only, dropping one trailing "\\r" per line. A final newline does not start an empty line."""
    text, = _strings("str-lines", args)
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return List(String(line[:-1] if line.endswith("\r") else line) for line in lines)


@builtin("str-concat")
def str_concat(env, args):
    return String("".join(_strings("str-concat", args)))


@builtin("str-join", 2)
def str_join(env, args):
    separator, = _strings("str-join", args[:1])
    parts = _strings("str-join", expect("str-join", args[1], List).items)
    return String(separator.join(parts))


@builtin("to-string", 1, at_least=True)
def to_string(env, args):
    strings = [String(str(arg)) for arg in args]
    return strings[0] if len(strings) == 1 else List(strings)


# I/O

@builtin("print")
def print_values(env, args):
    print("".join(str(arg) for arg in args))
    return UNIT


@builtin("read-line", 0)
def read_line(env, args):
    try:
        line = sys.stdin.readline()
    except OSError as error:
        raise BindingError("'{}' error while reading from stdin: {}", ("read-line", error))
    return String(line.rstrip("\r\n"))


@builtin("read-file", 1)
def read_file(env, args):
    path = expect("read-file", args[0], String).value
    try:
        with open(path, "r", encoding="utf-8") as file:
            return String(file.read())
    except (OSError, UnicodeDecodeError) as error:
        raise BindingError("'{}' could not read '{}': {}", ("read-file", path, error))


@builtin("parse-int", 1)
def parse_int(env, args):
    value = expect("parse-int", args[0], String, Integer)
    if isinstance(value, Integer):
        return value
    if not DECIMAL.fullmatch(value.value):
        raise BindingError("'{}' error parsing '{}'", ("parse-int", value.value))
    return integer(int(value.value), "parse-int")


@builtin("system", 1)
def system(env, args):
    command = expect("system", args[0], String).value
    logger.debug("running %r", command)
    try:
        completed = subprocess.run(command, shell=True, stdout=subprocess.PIPE, universal_newlines=True)
    except OSError as error:
        raise BindingError("'{}' could not run '{}': {}", ("system", command, error))

    output = completed.stdout
    if output.endswith("\n"):
        output = output[:-1]
    return String(output)


# introspection

@builtin("debug")
def debug(env, args):
    for idx, arg in enumerate(args):
        print(f"{idx}: {arg!r}")
    return UNIT


@builtin("type-of", 1, at_least=True)
def type_of(env, args):
    names = [String(arg.type_name) for arg in args]
    return names[0] if len(names) == 1 else List(names)


@builtin("local-env", 0)
def local_env(env, args):
    return List(String(name) for name in env.local_names())


@builtin("global-env", 0)
def global_env(env, args):
    return List(String(name) for name in env.names())


@builtin("error", 1)
def make_error(env, args):
    return Error(str(expect("error", args[0], String)))
