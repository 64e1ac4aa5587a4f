"""Token generator for frisp source text.

The `pure` directory contains the language core (lexing, values, environments, evaluation). Tokens are loosely
defined as

```
<list-open>  ::= "("
<list-close> ::= ")"
<string>     ::= '"' (<char> | "\\" <char>)* '"'     ; backslash inserts the next character verbatim
<symbol>     ::= <symbol-char>+                       ; ASCII alphanumeric/punctuation, except '(', ')' and '"'

<comment>    ::= "#" <char>*                          ; runs to the next control character
```

Numbers are not lexed here: a number is a symbol token that the parser later classifies.
"""

import string

from frisp.lang.error import LexError, UnterminatedString


SYMBOL_CHARS = frozenset(string.ascii_letters + string.digits + string.punctuation) - set('()"')


def is_control(char):
    """Whether or not char is a control character (ends a comment)."""
    return ord(char) < 0x20 or ord(char) == 0x7f


class Token:
    """Superclass for every token produced by TokenStream."""
    text = ""

    def __init__(self, text=""):
        self.text = text
        self._cls = type(self).__name__

    def __repr__(self):
        if self.text:
            return f"{self._cls}({self.text!r})"
        return f"{self._cls}()"

    def __eq__(self, other):
        return isinstance(other, type(self)) and self.text == other.text

    def __hash__(self):
        return hash((self._cls, self.text))


class ListOpen(Token):
    """'('"""


class ListClose(Token):
    """')'"""


class StringLiteral(Token):
    """Double-quoted string, escapes already resolved."""


class SymbolToken(Token):
    """Bare run of symbol characters: an identifier or a number."""


class TokenStream:
    """Lazy, finite and non-restartable iterator of Tokens over a character source (any iterable of characters). Raises
    LexError on malformed input.
    """

    def __init__(self, source):
        self.chars = iter(source)
        self.line = 1
        self.col = 0
        self._pending = None  # parenthesis that terminated the last symbol run

    def _next_char(self):
        """Returns the next character or None at end of input. Keeps track of line/column for error messages."""
        char = next(self.chars, None)
        if char == "\n":
            self.line += 1
            self.col = 0
        elif char is not None:
            self.col += 1
        return char

    def __iter__(self):
        return self

    def __next__(self):
        if self._pending is not None:
            token, self._pending = self._pending, None
            return token

        char = self._next_char()
        while char is not None:
            if char.isspace():
                char = self._next_char()
            elif char == "#":
                while char is not None and not is_control(char):
                    char = self._next_char()
            elif char == "(":
                return ListOpen()
            elif char == ")":
                return ListClose()
            elif char == '"':
                return self._read_string()
            elif char in SYMBOL_CHARS:
                return self._read_symbol(char)
            else:
                raise LexError("invalid token {} at line {}, column {}", (repr(char), self.line, self.col))

        raise StopIteration

    def _read_string(self):
        line, col = self.line, self.col
        buf = []

        char = self._next_char()
        while char is not None:
            if char == '"':
                return StringLiteral("".join(buf))
            elif char == "\\":
                char = self._next_char()
                if char is None:
                    break
            buf.append(char)
            char = self._next_char()

        raise UnterminatedString("unterminated string starting at line {}, column {}", (line, col))

    def _read_symbol(self, first):
        buf = [first]

        char = self._next_char()
        while char is not None and not char.isspace():
            if char == "(":
                self._pending = ListOpen()
                break
            elif char == ")":
                self._pending = ListClose()
                break
            elif char not in SYMBOL_CHARS:
                msg = "invalid character {} in symbol '{}' at line {}, column {}"
                raise LexError(msg, (repr(char), "".join(buf), self.line, self.col))
            buf.append(char)
            char = self._next_char()

        return SymbolToken("".join(buf))
