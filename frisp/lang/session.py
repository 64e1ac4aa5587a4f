"""Session control for the frisp language: feeds script text, line by line, to the evaluator, either in command-line
mode or file interpretation mode. Lines are joined while a form is still open, so a form may span several lines.
"""

from frisp.interpreter import default_environment
from frisp.lang.error import GenericException, LexError, UnterminatedString
from frisp.pure.evaluator import Evaluator
from frisp.pure.lexical import ListClose, ListOpen, TokenStream
from frisp.pure.value import UNIT


class Session:
    """Governs a frisp session: one environment shared by everything the session runs."""
    SH_FILE = "<in>"  # command-line interpreter filename

    def __init__(self, error_handler, path, environment=None, evaluator=None, cmd_line=False):
        self.error_handler = error_handler
        self.error_handler.register_file(path)

        self.path = path          # used for error messages
        self.cmd_line = cmd_line  # whether or not in command-line mode

        self.environment = environment if environment is not None else default_environment()
        self.evaluator = evaluator if evaluator is not None else Evaluator()

        self.to_exec = {}  # dict of line num: source to execute
        self.results = []  # values of executed sources, in order

        if self.cmd_line:
            self.error_handler.fatal = False

        if path != Session.SH_FILE:
            exprs = []
            add_to_prev = False

            try:
                with open(path, "r", encoding="utf-8") as file:
                    for line_num, line in enumerate(file):
                        __, add_to_prev = self.preprocess_line(line.rstrip("\n"), line_num + 1, add_to_prev, exprs)
            except (OSError, UnicodeDecodeError):
                raise GenericException("'{}' could not be opened", path)

            for expr in exprs:
                self.add(*expr)

        elif not cmd_line:
            raise GenericException("'<in>' is a reserved filename")

    @staticmethod
    def is_open(source):
        """Whether or not source ends inside a list or a string, i.e. more lines are needed to complete it. Other
        lexical errors are left for evaluation to report.
        """
        depth = 0
        try:
            for token in TokenStream(source):
                if isinstance(token, ListOpen):
                    depth += 1
                elif isinstance(token, ListClose):
                    depth -= 1
        except UnterminatedString:
            return True
        except LexError:
            return False
        return depth > 0

    @staticmethod
    def preprocess_line(line, line_num, add_to_prev, exprs=None):
        """Preprocesses a line from a file or command-line. In command-line mode, exprs can be ignored (used to keep
        track of file's exprs, as (source, first line num) tuples), but add_to_prev will indicate whether a line
        continuation is necessary. Returns updated value of line and add_to_prev. Must be called before calling add.
        """
        if exprs is not None:
            if add_to_prev:
                prev, start = exprs.pop()
                line = prev + "\n" + line
                exprs.append((line, start))
            elif line.strip():
                exprs.append((line, line_num))

        return line, Session.is_open(line)

    def add(self, expr, line_num):
        """Adds source to the current session. Evaluation is delayed until run is called."""
        self.to_exec[line_num] = expr

    def run(self):
        """Runs this session's queued sources in order, storing their values in self.results. Will raise any errors that
        are encountered.
        """
        for line_num, expr in list(self.to_exec.items()):
            self.error_handler.register_line(self.path, expr, line_num)  # in case error is raised

            try:
                self.results.append(self.evaluator.run(expr, self.environment))
            finally:
                if self.cmd_line:
                    del self.to_exec[line_num]

            self.error_handler.remove_line(self.path)  # error was not raised

        if not self.cmd_line:
            self.to_exec = {}

    def pop(self):
        """Removes and returns the latest result, Unit if there is none."""
        return self.results.pop() if self.results else UNIT
