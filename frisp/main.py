"""Uses the frisp interpreter to run .lisp files or start command-line mode. Also uses error handling context manager.
Called from the frisp executable script.

Before any script runs, two host values are bound in the root scope:
- argv: list of the strings passed with -a/--arg
- environ: list of (name value) string pairs, one per process environment variable
"""

import argparse
import glob
import logging
import os
import sys

from frisp.interpreter import default_environment
from frisp.lang.error import ErrorHandler
from frisp.lang.harness import run_tests
from frisp.lang.session import Session
from frisp.lang.shell import Shell
from frisp.pure.evaluator import CAPABILITIES, Evaluator, Scoping
from frisp.pure.value import List, String


def expand_paths(patterns):
    """Glob-expands patterns. A pattern matching nothing is kept as is, so that opening it reports the error."""
    paths = []
    for pattern in patterns:
        paths.extend(sorted(glob.glob(pattern)) or [pattern])
    return paths


def bind_host_values(env, script_args, environ):
    """Binds argv and environ (see module docstring) in env."""
    env.define("argv", List(String(arg) for arg in script_args))
    env.define("environ", List(List((String(name), String(value))) for name, value in sorted(environ.items())))


def build_parser():
    parser = argparse.ArgumentParser(prog="frisp", description="frisp interpreter")
    parser.add_argument("files", help="files to run, glob patterns allowed (if empty, goes to command-line mode)",
                        nargs="*")
    parser.add_argument("-a", "--arg", help="string appended to argv (repeatable)", action="append", default=[],
                        dest="script_args")
    parser.add_argument("-i", "--interactive", help="go to command-line mode after running files",
                        action="store_true")
    parser.add_argument("--test", help="run the *test.lisp files in DIR and exit", metavar="DIR")
    parser.add_argument("--lexical", help="lambdas capture their defining scope", action="store_true")
    parser.add_argument("--no-eval", help="disable the eval special form", action="store_true")
    parser.add_argument("--no-include", help="disable the include special form", action="store_true")
    parser.add_argument("-v", "--verbose", help="log evaluation steps", action="store_true")
    return parser


def main(argv=None):
    """Runs frisp interpreter. Called from frisp executable script."""
    with ErrorHandler() as error_handler:
        args = build_parser().parse_args(argv)

        logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                            format="%(levelname)s:%(name)s: %(message)s")

        capabilities = set(CAPABILITIES)
        if args.no_eval:
            capabilities.discard("eval")
        if args.no_include:
            capabilities.discard("include")
        evaluator = Evaluator(capabilities, Scoping.LEXICAL if args.lexical else Scoping.DYNAMIC)

        if args.test is not None:
            results = run_tests(args.test, evaluator)
            for result in results:
                print(result)
            sys.exit(0 if all(result.passed for result in results) else 1)

        env = default_environment()
        bind_host_values(env, args.script_args, os.environ)

        paths = expand_paths(args.files)
        for path in paths:
            Session(error_handler, path, env, evaluator).run()

        if not paths or args.interactive:
            Shell(Session(error_handler, Session.SH_FILE, env, evaluator, cmd_line=True)).cmdloop()


if __name__ == "__main__":
    main()
