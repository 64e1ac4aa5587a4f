"""frisp interpreter: entry points for host applications.

For reference:
- "core": lexer (pure/lexical.py) -> parser (grammar/parser.py) -> values and environments (pure/value.py,
  pure/environment.py) -> evaluator (pure/evaluator.py) -> builtins (lang/builtins.py)
- "host": whatever supplies script text and reads results back (lang/session.py, lang/shell.py and main.py are the
  command-line host shipped with frisp)

Basic program flow:
    1. Lexing: the script text is turned into a lazy stream of tokens
    2. Parsing: tokens are grouped into one AST node per top-level form. The whole script is parsed before anything
       runs, so an unbalanced script fails with a ParseError without side effects
    3. Evaluation: every top-level form is evaluated in order against one Environment, and the value of the last one is
       returned

Every failure is raised as a GenericException subclass (see lang/error.py).
"""

from frisp.lang import builtins
from frisp.pure.environment import Environment
from frisp.pure.evaluator import Evaluator, read_source


def default_environment():
    """Returns a fresh Environment whose root scope holds the whole builtin library."""
    env = Environment()
    builtins.register(env)
    return env


def run(script_text, evaluator=None):
    """Runs script_text in a fresh default environment and returns the value of its last form."""
    return run_with_env(script_text, default_environment(), evaluator)


def run_with_env(script_text, environment, evaluator=None):
    """Runs script_text against environment, which keeps whatever the script defines."""
    if evaluator is None:
        evaluator = Evaluator()
    return evaluator.run(script_text, environment)


def eval_file(path, evaluator=None):
    return eval_file_with_env(path, default_environment(), evaluator)


def eval_file_with_env(path, environment, evaluator=None):
    """Runs the script at path against environment. A read failure is an EvalError naming path."""
    return run_with_env(read_source(path), environment, evaluator)
