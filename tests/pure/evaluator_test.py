import os
import tempfile
import unittest

from frisp.interpreter import default_environment, run, run_with_env
from frisp.lang.error import ArgumentCountError, BindingError, EvalError, ParseError
from frisp.pure.evaluator import Evaluator, Scoping
from frisp.pure.value import UNIT, Integer, Lambda, List, String, SymbolRef


FIB = """
(define fib (lambda (n)
    (if (< n 2)
        n
        (+ (fib (- n 1)) (fib (- n 2))))))
"""

FIB_ITER = """
(define fib-iter (lambda (a b n)
    (if (== n 0)
        a
        (fib-iter b (+ a b) (- n 1)))))
(define fib2 (lambda (n acc) (fib-iter 0 1 n)))
"""


class EvaluatorTestCase(unittest.TestCase):

    def test_end_to_end(self):
        cases = {
            "(+ 1 2)": Integer(3),
            "(define r 10) (* r r)": Integer(100),
            "(if (== 1 1) 7 8)": Integer(7),
            '(str-join "," (list "a" "b" "c"))': String("a,b,c"),
            FIB + "(fib 10)": Integer(55),
            FIB_ITER + "(fib2 10 0)": Integer(55),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, run(case), case)

    def test_self_evaluating(self):
        cases = {
            "": UNIT,
            "()": UNIT,
            "1": Integer(1),
            '"s"': String("s"),
            "1 2 3": Integer(3),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, run(case), case)

    def test_if(self):
        cases = {
            "(if 1 7 8)": Integer(7),
            "(if 0 7 8)": Integer(8),
            "(if 2 7 8)": Integer(8),  # only the integer 1 selects the consequent
            "(if 1.0 7 8)": Integer(8),
            "(if (list) 7 8)": Integer(8),
            "(if 1 7 (undefined))": Integer(7),  # only the selected branch is evaluated
        }
        for case, expected in cases.items():
            self.assertEqual(expected, run(case), case)

        should_raise = ["(if)", "(if 1)", "(if 1 2)", "(if 1 2 3 4)"]
        for case in should_raise:
            self.assertRaises(EvalError, run, case)

    def test_define(self):
        env = default_environment()
        self.assertEqual(UNIT, run_with_env("(define x (+ 1 1))", env))
        self.assertEqual(Integer(2), env.lookup("x").value)

        # non-symbol target: nothing is evaluated or bound
        self.assertEqual(UNIT, run_with_env("(define 1 (undefined))", env))
        self.assertEqual(UNIT, run_with_env("(define (y) 2)", env))
        self.assertNotIn("y", env)

        should_raise = ["(define)", "(define x)"]
        for case in should_raise:
            self.assertRaises(EvalError, run, case)

    def test_lambda(self):
        self.assertEqual(Lambda(("x",), tuple()), run("(lambda (x))"))
        self.assertEqual("(lambda (x y) (+ x y))", str(run("(lambda (x y) (+ x y))")))
        self.assertEqual(Integer(3), run("(define f (lambda (x) (define y 1) (+ x y))) (f 2)"))

        should_raise = ["(lambda)", "(lambda x x)", "(lambda (1) 1)", '(lambda ("a") 1)',
                        "(define f (lambda ())) (f)"]
        for case in should_raise:
            self.assertRaises(EvalError, run, case)

    def test_progn(self):
        self.assertEqual(Integer(3), run("(progn 1 2 3)"))
        self.assertEqual(Integer(4), run("(progn (define a 4) a)"))
        self.assertRaises(EvalError, run, "(progn)")

    def test_lookup_errors(self):
        with self.assertRaises(EvalError) as context:
            run("undefined")
        self.assertIn("symbol not found", context.exception.msg)

        with self.assertRaises(EvalError) as context:
            run("(undefined 1)")
        self.assertIn("proc not found", context.exception.msg)

        should_raise = ["(1 2)", '("f")', "((lambda (x) x) 1)"]
        for case in should_raise:
            self.assertRaises(EvalError, run, case)

    def test_arity_mismatch(self):
        for args, actual in (("1", 1), ("1 2 3", 3)):
            with self.assertRaises(ArgumentCountError) as context:
                run(f"(define f (lambda (a b) a)) (f {args})")
            self.assertEqual(2, context.exception.expected)
            self.assertEqual(actual, context.exception.actual)

    def test_constant_call(self):
        self.assertEqual(Integer(1), run("(define x 1) (x)"))
        with self.assertRaises(ArgumentCountError) as context:
            run("(define x 1) (x 2)")
        self.assertEqual((0, 1), (context.exception.expected, context.exception.actual))

    def test_symbol_refs(self):
        self.assertEqual(SymbolRef("car"), run("car"))
        self.assertEqual(Integer(1), run("(define first car) (first (list 1 2))"))

        apply_fn = "(define apply-fn (lambda (f x) (f x)))"
        self.assertEqual(Integer(5), run(apply_fn + "(apply-fn car (list 5 6))"))
        self.assertEqual(Integer(16), run(apply_fn + "(define sq (lambda (x) (* x x))) (apply-fn sq 4)"))

        self.assertRaises(EvalError, run, "(define car car) (car (list 1))")

    def test_errors_propagate_from_lambdas(self):
        self.assertRaises(BindingError, run, '(define f (lambda (x) (+ x "a"))) (f 1)')

    def test_parse_error_before_evaluation(self):
        env = default_environment()
        should_raise = ["(define x 1) (", "(define x 1))"]
        for case in should_raise:
            self.assertRaises(ParseError, run_with_env, case, env)
            self.assertNotIn("x", env)

    def test_recursion_exhaustion_is_not_eval_error(self):
        self.assertRaises(RecursionError, run, "(define f (lambda (n) (f n))) (f 1)")

    def test_local_env_in_call(self):
        self.assertEqual(List([String("a"), String("b")]), run("(define f (lambda (a b) (local-env))) (f 1 2)"))


class ScopingTestCase(unittest.TestCase):
    SHADOWING = "(begin (define x 1) (define f (lambda () x)) (define x 2) (f))"
    CALLER_BINDS = "(define x 1) (define f (lambda () x)) (define g (lambda (x) (f))) (g 2)"
    ADDER = "(define make-adder (lambda (n) (lambda (x) (+ x n)))) (define add2 (make-adder 2)) (add2 3)"

    def test_dynamic(self):
        evaluator = Evaluator(scoping=Scoping.DYNAMIC)

        # f is invoked after x is rebound in the same scope: 2
        self.assertEqual(Integer(2), run(self.SHADOWING, evaluator))
        # x resolves in the caller's frame, where g bound it to 2
        self.assertEqual(Integer(2), run(self.CALLER_BINDS, evaluator))
        # n belonged to make-adder's frame, gone by the time add2 runs
        self.assertRaises(EvalError, run, self.ADDER, evaluator)

    def test_lexical(self):
        evaluator = Evaluator(scoping=Scoping.LEXICAL)

        # the captured scope is the one x was rebound in: still 2
        self.assertEqual(Integer(2), run(self.SHADOWING, evaluator))
        # x resolves where f was defined
        self.assertEqual(Integer(1), run(self.CALLER_BINDS, evaluator))
        self.assertEqual(Integer(5), run(self.ADDER, evaluator))
        self.assertEqual(Integer(55), run(FIB + "(fib 10)", evaluator))

    def test_dynamic_frames_released(self):
        env = default_environment()
        run_with_env(FIB + "(fib 5)", env)
        self.assertEqual(1, len(env.arena))

        self.assertRaises(BindingError, run_with_env, '(define f (lambda (x) (car x))) (f 1)', env)
        self.assertEqual(1, len(env.arena))

    def test_lexical_frames_released(self):
        evaluator = Evaluator(scoping=Scoping.LEXICAL)
        env = default_environment()
        run_with_env(FIB, env, evaluator)

        for __ in range(3):
            self.assertEqual(Integer(610), run_with_env("(fib 15)", env, evaluator))
            self.assertEqual(1, len(env.arena))

        self.assertRaises(BindingError, run_with_env, '(define f (lambda (x) (car x))) (f 1)', env, evaluator)
        self.assertEqual(1, len(env.arena))

    def test_lexical_captured_frames_kept(self):
        evaluator = Evaluator(scoping=Scoping.LEXICAL)
        env = default_environment()
        run_with_env(self.ADDER, env, evaluator)
        self.assertEqual(2, len(env.arena))  # make-adder's frame, held by add2

        for __ in range(3):
            self.assertEqual(Integer(12), run_with_env("(add2 10)", env, evaluator))
        self.assertEqual(2, len(env.arena))


class CapabilitiesTestCase(unittest.TestCase):

    def test_eval(self):
        env = default_environment()
        self.assertEqual(Integer(3), run_with_env('(eval "(+ 1 2)")', env))
        self.assertEqual(Integer(5), run_with_env('(eval "(define z 5)") z', env))
        self.assertEqual(Integer(6), run_with_env('(eval (str-concat "(+ " "z 1)"))', env))

        should_raise = ['(eval)', '(eval 1)', '(eval "a" "b")']
        for case in should_raise:
            self.assertRaises(EvalError, run, case)
        self.assertRaises(ParseError, run, '(eval "(+ 1")')

    def test_include(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "lib.lisp")
            with open(path, "w") as file:
                file.write("# library\n(define sq (lambda (x) (* x x)))\n(define three 3)\n")

            env = default_environment()
            self.assertEqual(UNIT, run_with_env(f'(include "{path}")', env))
            self.assertEqual(Integer(9), run_with_env("(sq three)", env))

            with self.assertRaises(EvalError) as context:
                run(f'(include "{os.path.join(directory, "missing.lisp")}")')
            self.assertIn("missing.lisp", context.exception.msg)

    def test_disabled(self):
        evaluator = Evaluator(capabilities=())
        should_raise = ['(eval "1")', '(include "x.lisp")']
        for case in should_raise:
            with self.assertRaises(EvalError) as context:
                run(case, evaluator)
            self.assertIn("proc not found", context.exception.msg)

        self.assertEqual(Integer(1), run('(eval "1")', Evaluator(capabilities={"eval"})))


if __name__ == '__main__':
    unittest.main()
