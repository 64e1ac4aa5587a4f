"""Script-level test harness for frisp.

A test file is any file whose name ends in "test.lisp". Each one is evaluated in its own child scope of a shared
environment that, on top of the default library, holds two assertion builtins:

```
(assert EXPR*)         ; every EXPR must be 1
(assert-eq LEFT RIGHT) ; LEFT and RIGHT must be structurally equal
```

Every name the file defines in its own scope that starts with "test-" is then called with no arguments; a test passes
if the call returns without raising.
"""

import os

from termcolor import colored

from frisp.interpreter import default_environment, eval_file_with_env, run_with_env
from frisp.lang import builtins
from frisp.lang.error import BindingError, GenericException
from frisp.pure.environment import Builtin
from frisp.pure.evaluator import Evaluator
from frisp.pure.value import TRUE, UNIT


TEST_FILE_SUFFIX = "test.lisp"
TEST_PREFIX = "test-"


def assert_true(env, args):
    for arg in args:
        if arg != TRUE:
            raise BindingError("assertion failed: {}", repr(arg))
    return UNIT


def assert_eq(env, args):
    left, right = args
    if left != right:
        raise BindingError("assertion failed: {} != {}", (repr(left), repr(right)))
    return UNIT


ASSERTIONS = [Builtin("assert", assert_true), Builtin("assert-eq", assert_eq, 2)]


def assertion_environment():
    """Default environment plus the assertion builtins."""
    env = default_environment()
    builtins.register(env, ASSERTIONS)
    return env


class Outcome:
    """Outcome of a single test-* definition. error is None if the test passed."""

    def __init__(self, path, name, error=None):
        self.path = path
        self.name = name
        self.error = error

    @property
    def passed(self):
        return self.error is None

    def __str__(self):
        label = f"{os.path.basename(self.path)}/{self.name}"
        if self.passed:
            return colored("PASS ", "green", attrs=["bold"]) + label
        return colored("FAIL ", "red", attrs=["bold"]) + f"{label}: {self.error.kind}: {self.error.msg}"

    def __repr__(self):
        return f"Outcome({self.path!r}, {self.name!r}, passed={self.passed})"


def find_test_files(directory):
    """Sorted paths of the test files directly inside directory."""
    return sorted(os.path.join(directory, name) for name in os.listdir(directory) if name.endswith(TEST_FILE_SUFFIX))


def run_test_file(path, env, evaluator):
    """Evaluates the test file at path in a child scope of env and runs each of its tests. Errors while loading the
    file itself propagate.
    """
    file_env = env.child()
    eval_file_with_env(path, file_env, evaluator)

    results = []
    for name in file_env.local_names():
        if not name.startswith(TEST_PREFIX):
            continue
        try:
            run_with_env(f"({name})", file_env, evaluator)
        except GenericException as error:
            results.append(Outcome(path, name, error))
        else:
            results.append(Outcome(path, name))
    return results


def run_tests(directory, evaluator=None):
    """Runs every test file in directory, returning a list of Outcomes."""
    if evaluator is None:
        evaluator = Evaluator()

    env = assertion_environment()
    results = []
    for path in find_test_files(directory):
        results.extend(run_test_file(path, env, evaluator))
    return results
