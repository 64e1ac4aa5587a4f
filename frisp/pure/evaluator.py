"""Tree-walking evaluator for frisp.

There is no machine state besides the current node, the current Environment and the Python call stack: recursion in a
script is recursion in evaluate, so its depth is bounded by the host's recursion limit. Exhausting it raises
RecursionError, which propagates as is: it is fatal, not an EvalError.

Special forms (the argument list is not evaluated up front):

```
(if TEST CONSEQ ALT)        ; TEST == 1 selects CONSEQ, anything else ALT
(define SYMBOL EXPR)        ; binds in the current scope, yields Unit
(lambda (PARAM*) BODY*)     ; builds a Lambda, does not evaluate BODY
(progn EXPR+)               ; evaluates in order, yields the last value
(eval STRING)               ; capability "eval": evaluates STRING as a script in the current environment
(include PATH)              ; capability "include": evaluates the file at PATH in the current environment
```

Any other list with a symbol head is a call: arguments are evaluated left to right, then the head is looked up and
invoked through Evaluator.invoke.
"""

import enum
import logging

from frisp.grammar.parser import ListNode, SymbolNode, ValueNode, parse
from frisp.lang.error import ArgumentCountError, EvalError
from frisp.pure.value import UNIT, Lambda, String, SymbolRef, TRUE


logger = logging.getLogger(__name__)


class Scoping(enum.Enum):
    """Where a lambda's call scope is attached.

    DYNAMIC: child of the scope active at the call site, so free names resolve in the caller's environment.
    LEXICAL: child of the scope the lambda was created in.
    """
    DYNAMIC = "dynamic"
    LEXICAL = "lexical"


CAPABILITIES = frozenset({"eval", "include"})


def read_source(path):
    """Returns the text of the script at path, raising an EvalError naming path if it cannot be read."""
    try:
        with open(path, "r", encoding="utf-8") as file:
            return file.read()
    except (OSError, UnicodeDecodeError) as error:
        raise EvalError("'{}' could not be read: {}", (path, error))


class Evaluator:
    """Evaluates AST nodes against an Environment.

    capabilities is the set of optional special forms that are enabled ("eval", "include"); a disabled special form is
    treated like any other name. scoping selects how lambda scopes are chained (see Scoping).
    """

    def __init__(self, capabilities=CAPABILITIES, scoping=Scoping.DYNAMIC):
        self.capabilities = frozenset(capabilities)
        self.scoping = Scoping(scoping)

        self.special_forms = {
            "if": self._if,
            "define": self._define,
            "lambda": self._lambda,
            "progn": self._progn,
        }
        if "eval" in self.capabilities:
            self.special_forms["eval"] = self._eval
        if "include" in self.capabilities:
            self.special_forms["include"] = self._include

    def run(self, source, env):
        """Parses all of source, then evaluates every top-level form in env. Returns the value of the last form (Unit if
        there are none). Nothing is evaluated if source does not parse.
        """
        result = UNIT
        for node in list(parse(source)):
            result = self.evaluate(node, env)
        return result

    def evaluate(self, node, env):
        if isinstance(node, ListNode):
            return self._evaluate_list(node, env)

        elif isinstance(node, SymbolNode):
            binding = env.lookup(node.name)
            if binding is None:
                raise EvalError("symbol not found: '{}'", node.name)
            value = binding.constant
            return SymbolRef(node.name) if value is None else value

        elif isinstance(node, ValueNode):
            return node.value

        raise EvalError("cannot evaluate {}", repr(node))

    def _evaluate_list(self, node, env):
        if not node.nodes:
            return UNIT

        head = node.head
        if not isinstance(head, SymbolNode):
            raise EvalError("'{}' is not callable: list head must be a symbol", head.render())

        special_form = self.special_forms.get(head.name)
        if special_form is not None:
            logger.debug("special form %s", head.name)
            return special_form(node.tail, env)

        args = [self.evaluate(arg, env) for arg in node.tail]

        binding = env.lookup(head.name)
        if binding is None:
            raise EvalError("proc not found: '{}'", head.name)

        logger.debug("calling %s with %d argument(s)", head.name, len(args))
        return self.invoke(head.name, binding, args, env)

    def invoke(self, name, binding, args, env):
        """Single dispatch point for calls: invokes binding (bound to name) with args from the calling environment
        env.
        """
        value = binding.constant
        if value is None:
            return binding(env, args)

        if isinstance(value, Lambda):
            return self.call_lambda(name, value, args, env)

        elif isinstance(value, SymbolRef):
            target = env.lookup(value.name)
            if target is None:
                raise EvalError("unknown symbol: '{}'", value.name)
            if target is binding:
                raise EvalError("'{}' refers to itself", value.name)
            return self.invoke(value.name, target, args, env)

        if args:
            raise ArgumentCountError(0, len(args), name)
        return value

    def call_lambda(self, name, function, args, env):
        if len(function.params) != len(args):
            raise ArgumentCountError(len(function.params), len(args), name)
        if not function.body:
            raise EvalError("'{}' has an empty body", name)

        if self.scoping is Scoping.LEXICAL and function.scope is not None:
            frame = function.scope.child()
        else:
            frame = env.child()

        try:
            for param, arg in zip(function.params, args):
                frame.define(param, arg)

            result = UNIT
            for stmt in function.body:
                result = self.evaluate(stmt, frame)
            return result
        finally:
            if self.scoping is Scoping.DYNAMIC or not frame.captured():
                frame.release()

    def _if(self, args, env):
        if len(args) != 3:
            missing = ["test", "consequent", "alternative"][len(args):]
            if missing:
                raise EvalError("'if' is missing its {}", missing[0])
            raise EvalError("'if' expects exactly 3 arguments, got {}", len(args))

        test, conseq, alt = args
        if self.evaluate(test, env) == TRUE:
            return self.evaluate(conseq, env)
        return self.evaluate(alt, env)

    def _define(self, args, env):
        if not args:
            raise EvalError("no symbol for define")
        elif len(args) < 2:
            raise EvalError("no value for define")

        symbol, expr = args[0], args[1]
        if isinstance(symbol, SymbolNode):
            value = self.evaluate(expr, env)
            logger.debug("defined %s to be %r", symbol.name, value)
            env.define(symbol.name, value)
        return UNIT

    def _lambda(self, args, env):
        if not args:
            raise EvalError("no parameter list for lambda")

        params, *body = args
        if not isinstance(params, ListNode):
            raise EvalError("lambda parameters must be a list, got '{}'", params.render())

        names = []
        for param in params.nodes:
            if not isinstance(param, SymbolNode):
                raise EvalError("lambda parameter '{}' is not a symbol", param.render())
            names.append(param.name)

        scope = env.capture() if self.scoping is Scoping.LEXICAL else None
        return Lambda(tuple(names), tuple(body), scope)

    def _progn(self, args, env):
        if not args:
            raise EvalError("'progn' needs at least one expression")

        result = UNIT
        for arg in args:
            result = self.evaluate(arg, env)
        return result

    def _string_argument(self, form, args, env):
        """The single string argument of eval/include: a string literal, or an expression evaluating to a string."""
        if len(args) != 1:
            raise EvalError("'{}' expects exactly 1 argument, got {}", (form, len(args)))

        value = self.evaluate(args[0], env)
        if not isinstance(value, String):
            raise EvalError("'{}' expects a string, got {}", (form, repr(value)))
        return value.value

    def _eval(self, args, env):
        return self.run(self._string_argument("eval", args, env), env)

    def _include(self, args, env):
        path = self._string_argument("include", args, env)
        logger.debug("including %s", path)
        self.run(read_source(path), env)
        return UNIT
