"""Error handling for the frisp language. Only GenericExceptions should be encountered during running: if another type
of error is raised and makes it all the way to ErrorHandler, it is assumed to be an internal issue.

Taxonomy:

```
GenericException
 ├── LexError            ; malformed token
 │    └── UnterminatedString  ; end of input inside a string literal
 ├── ParseError          ; unbalanced list, unexpected end of input
 ├── EvalError           ; special form misuse, unknown symbol/proc, non-callable head
 └── BindingError        ; a builtin or lambda failed on its own semantics (type mismatch, ...)
      └── ArgumentCountError  ; expected vs. actual number of arguments
```
"""

import sys

from termcolor import colored


class GenericException(Exception):
    """Templates an error message so that it can be used to throw a frisp error. exprs are the offending snippets: they
    are substituted into msg and highlighted when the error is displayed.
    """

    def __init__(self, msg, exprs=None, internal=False):
        if exprs is None:
            exprs = []
        if not isinstance(exprs, (list, tuple)):
            exprs = [exprs]

        self.template = msg
        self.exprs = [str(expr) for expr in exprs]
        self.msg = msg.format(*self.exprs)
        self.internal = internal

        super().__init__(self.msg)

    @property
    def colored_msg(self):
        """self.msg with every offending expr bolded."""
        return self.template.format(*(colored(expr, attrs=["bold"]) for expr in self.exprs))

    @property
    def kind(self):
        return type(self).__name__


class LexError(GenericException):
    """Raised by the lexer on a character it cannot tokenize."""


class UnterminatedString(LexError):
    """End of input inside a string literal. More input may complete it."""


class ParseError(GenericException):
    """Raised by the parser on unbalanced input."""


class EvalError(GenericException):
    """Raised by the evaluator when a form cannot be evaluated."""


class BindingError(GenericException):
    """Raised when invoking a binding fails on the binding's own semantics."""


class ArgumentCountError(BindingError):
    """Wrong number of arguments passed to a binding. Always carries both counts."""

    def __init__(self, expected, actual, name=None, at_least=False):
        self.expected = expected
        self.actual = actual
        self.name = name
        self.at_least = at_least

        qualifier = "at least " if at_least else ""
        if name is None:
            super().__init__(f"expected {qualifier}{expected} argument(s), got {actual}")
        else:
            super().__init__(f"'{{}}' expected {qualifier}{expected} argument(s), got {actual}", name)


class ErrorHandler:
    """Context manager that will silently suppress Python errors and raise custom frisp errors."""
    ERROR = "red"

    def __init__(self, fatal=True):
        self.fatal = fatal
        self.traceback = {}

    def register_file(self, path):
        """Registers path in traceback."""
        self.traceback[path] = (None, None)

    def register_line(self, path, line, line_num):
        """Registers line in traceback given path. Should be called prior to Session add/run."""
        self.traceback[path] = (line, line_num)

    def remove_line(self, path):
        """Removes line from traceback given path. Should be called after successful Session add/run."""
        self.traceback[path] = (None, None)

    def throw(self, error):
        """Prints error using self.traceback. error must be a GenericException, and self.traceback must be a dict of
        file: (line, line_num) representing origination of error.
        """
        error_msg = ""
        lines = 0
        for file, (line, line_num) in self.traceback.items():  # assumes dict is insertion-ordered
            if line:
                error_msg += f"  File '{file}', line {line_num}:\n"
                error_msg += f"    {line}\n"
                lines += 1

        if lines > 1:
            error_msg = "Traceback:\n" + error_msg

        if error.internal:
            error_msg += colored("[internal] ", ErrorHandler.ERROR, attrs=["bold"])

        error_msg += colored("error: ", ErrorHandler.ERROR, attrs=["bold"]) + error.colored_msg
        print(error_msg, file=sys.stderr)

        if self.fatal:
            sys.exit(1)
        self.traceback = {key: (None, None) for key in self.traceback}  # if error occurred, reset traceback

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(GenericException("keyboard interrupt"))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            # the host stack is exhausted: not recoverable, even in interactive mode
            self.fatal = True
            self.throw(GenericException("maximum recursion depth exceeded"))
        elif exc_type is not None and issubclass(exc_type, GenericException):
            self.throw(exc_val)
        elif exc_type is not None:
            self.throw(GenericException("unknown error: '{}: {}'", (exc_type.__name__, exc_val), internal=True))
            do_exit = True

        return not do_exit
