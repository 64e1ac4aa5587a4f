import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

from frisp.lang.error import BindingError, ErrorHandler, GenericException
from frisp.lang.session import Session
from frisp.lang.shell import Shell
from frisp.pure.value import UNIT, Integer


SCRIPT = """# squares
(define sq (lambda (x)
    (* x x)))

(define r 4)
(sq r)
"""


class SessionTestCase(unittest.TestCase):

    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.addCleanup(self.directory.cleanup)

    def write(self, name, text):
        path = os.path.join(self.directory.name, name)
        with open(path, "w", encoding="utf-8") as file:
            file.write(text)
        return path

    def test_is_open(self):
        should_be_open = ["(", "(define f (lambda (x)", '(print "abc', '"', "((a) (b)"]
        for case in should_be_open:
            self.assertTrue(Session.is_open(case), case)

        should_be_closed = ["", "(a)", "x", "(a))", '(print "(")', "# (comment", "(a [)"]
        for case in should_be_closed:
            self.assertFalse(Session.is_open(case), case)

    def test_preprocess_line(self):
        exprs = []
        lines = ["(define f (lambda (x)", "  x))", "", "(f 1)"]

        add_to_prev = False
        for line_num, line in enumerate(lines):
            __, add_to_prev = Session.preprocess_line(line, line_num + 1, add_to_prev, exprs)

        self.assertFalse(add_to_prev)
        self.assertEqual([("(define f (lambda (x)\n  x))", 1), ("(f 1)", 4)], exprs)

    def test_file(self):
        sess = Session(ErrorHandler(), self.write("squares.lisp", SCRIPT))
        self.assertEqual([1, 2, 5, 6], list(sess.to_exec))

        sess.run()
        self.assertEqual(Integer(16), sess.pop())
        self.assertEqual({}, sess.to_exec)

    def test_missing_file(self):
        path = os.path.join(self.directory.name, "missing.lisp")
        with self.assertRaises(GenericException) as context:
            Session(ErrorHandler(), path)
        self.assertIn("missing.lisp", context.exception.msg)

    def test_reserved_filename(self):
        self.assertRaises(GenericException, Session, ErrorHandler(), Session.SH_FILE)

    def test_cmd_line(self):
        sess = Session(ErrorHandler(), Session.SH_FILE, cmd_line=True)
        self.assertFalse(sess.error_handler.fatal)

        sess.add("(define x 2)", 1)
        sess.add("(+ x 1)", 2)
        sess.run()
        self.assertEqual(Integer(3), sess.pop())
        self.assertEqual(UNIT, sess.pop())
        self.assertEqual(UNIT, sess.pop())

        sess.add("(car 1)", 3)
        self.assertRaises(BindingError, sess.run)
        self.assertEqual({}, sess.to_exec)  # failed source is not retried

    def test_shared_environment(self):
        first = Session(ErrorHandler(), self.write("a.lisp", "(define shared 7)\n"))
        first.run()
        second = Session(ErrorHandler(), self.write("b.lisp", "(* shared 2)\n"), first.environment)
        second.run()
        self.assertEqual(Integer(14), second.pop())


class ErrorHandlerTestCase(unittest.TestCase):

    def test_non_fatal(self):
        stderr = io.StringIO()
        handler = ErrorHandler(fatal=False)
        handler.register_file("f.lisp")
        handler.register_line("f.lisp", "(car 1)", 3)

        with redirect_stderr(stderr), handler:
            raise BindingError("'{}' failed", "car")

        output = stderr.getvalue()
        self.assertIn("File 'f.lisp', line 3", output)
        self.assertIn("(car 1)", output)
        self.assertIn("failed", output)
        self.assertEqual({"f.lisp": (None, None)}, handler.traceback)

    def test_fatal(self):
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as context:
            with ErrorHandler():
                raise GenericException("boom")
        self.assertEqual(1, context.exception.code)

    def test_unknown_error(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr), self.assertRaises(ValueError):
            with ErrorHandler(fatal=False):
                raise ValueError("{not a template}")
        self.assertIn("[internal]", stderr.getvalue())
        self.assertIn("{not a template}", stderr.getvalue())

    def test_recursion_is_fatal(self):
        handler = ErrorHandler(fatal=False)
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            with handler:
                raise RecursionError()

    def test_system_exit_passes_through(self):
        with self.assertRaises(SystemExit):
            with ErrorHandler(fatal=False):
                raise SystemExit(0)


class ShellTestCase(unittest.TestCase):

    def setUp(self):
        self.shell = Shell(Session(ErrorHandler(), Session.SH_FILE, cmd_line=True))

    def feed(self, *lines):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            for line in lines:
                self.shell.onecmd(line)
        return stdout.getvalue(), stderr.getvalue()

    def test_prints_results(self):
        stdout, __ = self.feed("(define r 10)", "(* r r)", "(list 1 2)")
        self.assertEqual("100\n(1,2)\n", stdout)

    def test_continuation(self):
        self.feed("(define f (lambda (x)")
        self.assertEqual(self.shell.continuation_prompt, self.shell.prompt)

        stdout, __ = self.feed("(+ x 1)))", "(f 1)")
        self.assertEqual("2\n", stdout)
        self.assertEqual("> ", self.shell.prompt)

    def test_errors_do_not_exit(self):
        stdout, stderr = self.feed("(car 1)", "(+ 1 1)")
        self.assertIn("error: ", stderr)
        self.assertEqual("2\n", stdout)

    def test_completion(self):
        self.feed("(define str-custom 1)")
        completions = self.shell.completedefault("str-", "(str-", 1, 5)
        self.assertIn("str-custom", completions)
        self.assertIn("str-split", completions)
        self.assertNotIn("car", completions)

    def test_exit(self):
        self.assertTrue(self.shell.onecmd("exit"))
        with redirect_stdout(io.StringIO()):
            self.assertTrue(self.shell.onecmd("EOF"))


if __name__ == '__main__':
    unittest.main()
