"""Interactive frisp prompt on top of cmd. A form left open at the end of a line is continued on the next one."""

import cmd

from frisp.pure.value import Unit


class Shell(cmd.Cmd):
    """frisp REPL. Every line that is not a shell command is frisp source, evaluated in the session's environment."""
    intro = "frisp interpreter :: Python backend\nType '?' or 'help' for more information."
    prompt = "> "
    continuation_prompt = ". "

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.sess = sess
        self.pending = ""  # source of a form that is still open
        self.line_num = 0

    def default(self, line):
        """Feeds line to the session and prints the value of the form once it is complete."""
        with self.sess.error_handler:  # cmd.Cmd would exit on any exception
            self.line_num += 1
            source = f"{self.pending}\n{line}" if self.pending else line

            __, still_open = self.sess.preprocess_line(source, self.line_num, False)
            if still_open:
                self.pending = source
                self.prompt = self.continuation_prompt
                return

            self.pending = ""
            self.prompt = Shell.prompt
            self.evaluate(source)

    def evaluate(self, source):
        self.sess.add(source, self.line_num)
        self.sess.run()

        value = self.sess.pop()
        if not isinstance(value, Unit):
            print(value)

    def completedefault(self, text, line, begidx, endidx):
        """Tab-completes names bound in the session's environment."""
        return sorted({name for name in self.sess.environment.names() if name.startswith(text)})

    def completenames(self, text, *ignored):
        return self.completedefault(text, *ignored) + super().completenames(text, *ignored)

    def do_help(self, arg):
        """Short introduction to the language."""
        print("Welcome to the frisp interpreter!\n\n"
              "frisp is a small Lisp: everything is a parenthesized form such as '(+ 1 2)'.\n"
              "Bind values with '(define r 10)' and build functions with '(lambda (x) (* x x))'.\n"
              "Forms may span several lines: the prompt changes to '. ' until the form is closed.\n\n"
              "Try '(global-env)' to list every bound name, or press tab to complete one.")

    def emptyline(self):
        """An empty line does nothing (instead of repeating the last command)."""

    def do_EOF(self, arg):
        print()
        return True

    def do_exit(self, arg):
        """Leaves the interpreter."""
        return True
