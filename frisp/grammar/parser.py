"""frisp abstract syntax tree and parser.

Formally, frisp grammar can be succinctly defined as

```
<form>   ::= "(" <form>* ")"      ; ListNode, may be empty
           | <string>             ; ValueNode(String)
           | <symbol>             ; classified by the parser, see below
```

A bare symbol token is classified as

```
[+-]?[0-9]+                          -> ValueNode(Integer)
[+-]?([0-9]+\\.[0-9]*|\\.[0-9]+)      -> ValueNode(Float)
anything else                        -> SymbolNode
```

Parsing yields one node per balanced top-level form, lazily.
"""

import re

from frisp.lang.error import ParseError
from frisp.pure.lexical import ListClose, ListOpen, StringLiteral, SymbolToken, TokenStream
from frisp.pure.value import INT_MAX, INT_MIN, Float, Integer, String


INTEGER = re.compile(r"[+-]?[0-9]+")
FLOAT = re.compile(r"[+-]?([0-9]+\.[0-9]*|\.[0-9]+)")


class AstNode:
    """Superclass for AST nodes. Nodes are immutable once parsed."""

    def __init__(self):
        self._cls = type(self).__name__

    def render(self):
        """Renders this node back to frisp source."""
        raise NotImplementedError()

    def display(self, indents=0):
        """Recursively displays the tree with a readable format, one node per line."""
        return f"{'    ' * indents}{self!r}"

    def __str__(self):
        return self.render()


class ListNode(AstNode):
    """Parenthesized form."""

    def __init__(self, nodes=()):
        super().__init__()
        self.nodes = tuple(nodes)

    @property
    def head(self):
        """First node, or None if the list is empty."""
        return self.nodes[0] if self.nodes else None

    @property
    def tail(self):
        return self.nodes[1:]

    def render(self):
        return "(" + " ".join(node.render() for node in self.nodes) + ")"

    def display(self, indents=0):
        if not self.nodes:
            return f"{'    ' * indents}{self._cls}()"

        result = f"{'    ' * indents}{self._cls}(nodes=["
        for node in self.nodes:
            result += "\n" + node.display(indents + 1) + ","
        return result[:-1] + f"\n{'    ' * indents}])"

    def __repr__(self):
        return f"{self._cls}({list(self.nodes)!r})"

    def __eq__(self, other):
        return isinstance(other, ListNode) and self.nodes == other.nodes

    def __hash__(self):
        return hash(self.nodes)


class SymbolNode(AstNode):
    """Identifier."""

    def __init__(self, name):
        super().__init__()
        self.name = name

    def render(self):
        return self.name

    def __repr__(self):
        return f"{self._cls}({self.name!r})"

    def __eq__(self, other):
        return isinstance(other, SymbolNode) and self.name == other.name

    def __hash__(self):
        return hash(self.name)


class ValueNode(AstNode):
    """Self-evaluating literal: String, Integer or Float."""

    def __init__(self, value):
        super().__init__()
        self.value = value

    def render(self):
        if isinstance(self.value, String):
            escaped = self.value.value.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        return str(self.value)

    def __repr__(self):
        return f"{self._cls}({self.value!r})"

    def __eq__(self, other):
        return isinstance(other, ValueNode) and self.value == other.value

    def __hash__(self):
        return hash(self.value)


def classify(text):
    """Classifies a bare symbol token as an Integer/Float literal or a symbol."""
    if INTEGER.fullmatch(text):
        value = int(text)
        if not INT_MIN <= value <= INT_MAX:
            raise ParseError("integer literal '{}' out of range", text)
        return ValueNode(Integer(value))
    elif FLOAT.fullmatch(text):
        return ValueNode(Float(float(text)))
    return SymbolNode(text)


class Parser:
    """Lazy, finite and non-restartable iterator of top-level AstNodes over a token iterator. Raises ParseError on
    unbalanced input; LexErrors from the token iterator propagate unchanged.
    """

    def __init__(self, tokens):
        self.tokens = iter(tokens)

    def __iter__(self):
        return self

    def __next__(self):
        lists = []           # stack of enclosing in-progress lists
        current_list = None  # in-progress list, if any

        for token in self.tokens:
            if isinstance(token, ListOpen):
                if current_list is not None:
                    lists.append(current_list)
                current_list = []
                continue

            elif isinstance(token, ListClose):
                if current_list is None:
                    raise ParseError("list end without current list")

                node = ListNode(current_list)
                if not lists:
                    return node

                current_list = lists.pop()
                current_list.append(node)
                continue

            elif isinstance(token, StringLiteral):
                node = ValueNode(String(token.text))
            elif isinstance(token, SymbolToken):
                node = classify(token.text)
            else:
                raise ParseError("unexpected token {}", repr(token))

            if current_list is None:
                return node
            current_list.append(node)

        if current_list is not None:
            raise ParseError("reached end of input with {} unclosed list(s)", len(lists) + 1)
        raise StopIteration


def parse(source):
    """Returns a Parser over frisp source text."""
    return Parser(TokenStream(source))
