"""
Boolean expression language for group logic.

Grammar (NOT binds tightest, then AND, then OR):

    or_expr   := and_expr (OR and_expr)*
    and_expr  := not_expr (AND not_expr)*
    not_expr  := NOT not_expr | primary
    primary   := '(' or_expr ')' | REF

Keywords are case-insensitive; '&&', '||' and '!' are accepted as
symbolic forms. A REF is an alias, an identifier or a 1-based position.

Expressions are parsed once when criteria are compiled. Evaluation only
substitutes member outcomes into the tree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Union

from .errors import ConfigurationError, ExpressionEvaluationError, ExpressionSyntaxError


# =============================================================================
# AST nodes
# =============================================================================

@dataclass(frozen=True)
class RefExpr:
    """Reference to a member outcome."""
    name: str

    def __repr__(self) -> str:
        return self.name


@dataclass(frozen=True)
class NotExpr:
    """NOT expression: negates the child."""
    child: "Expr"

    def __repr__(self) -> str:
        return f"Not({self.child!r})"


@dataclass(frozen=True)
class AllExpr:
    """
    AND expression: all children must be true.

    Attributes:
        children: Tuple of child expressions (at least 2)
    """
    children: tuple["Expr", ...]

    def __post_init__(self):
        if len(self.children) < 2:
            raise ValueError("AllExpr: requires at least 2 child expressions")

    def __repr__(self) -> str:
        return f"All({', '.join(repr(c) for c in self.children)})"


@dataclass(frozen=True)
class AnyExpr:
    """
    OR expression: any child must be true.

    Attributes:
        children: Tuple of child expressions (at least 2)
    """
    children: tuple["Expr", ...]

    def __post_init__(self):
        if len(self.children) < 2:
            raise ValueError("AnyExpr: requires at least 2 child expressions")

    def __repr__(self) -> str:
        return f"Any({', '.join(repr(c) for c in self.children)})"


Expr = Union[RefExpr, NotExpr, AllExpr, AnyExpr]


# =============================================================================
# Tokenizer
# =============================================================================

_TOKEN_RE = re.compile(
    r"(?P<ws>\s+)"
    r"|(?P<lparen>\()"
    r"|(?P<rparen>\))"
    r"|(?P<and>&&)"
    r"|(?P<or>\|\|)"
    r"|(?P<not>!)"
    r"|(?P<ref>[A-Za-z0-9_.\-]+)"
)

_KEYWORDS = {"AND": "and", "OR": "or", "NOT": "not"}


@dataclass(frozen=True)
class Token:
    kind: str  # lparen, rparen, and, or, not, ref, end
    text: str
    position: int


def tokenize(text: str) -> list[Token]:
    """Split an expression into tokens, ending with an 'end' token."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ExpressionSyntaxError(f"Unexpected character {text[pos]!r}", text, pos)
        kind = match.lastgroup
        value = match.group()
        if kind == "ref" and value.upper() in _KEYWORDS:
            kind = _KEYWORDS[value.upper()]
        if kind != "ws":
            tokens.append(Token(kind, value, pos))
        pos = match.end()
    tokens.append(Token("end", "", len(text)))
    return tokens


# =============================================================================
# Parser
# =============================================================================

class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _error(self, message: str) -> ExpressionSyntaxError:
        return ExpressionSyntaxError(message, self.text, self.current.position)

    def parse(self) -> Expr:
        if self.current.kind == "end":
            raise ExpressionSyntaxError("Empty expression", self.text)
        expr = self._or()
        if self.current.kind == "rparen":
            raise self._error("Unbalanced ')'")
        if self.current.kind != "end":
            raise self._error(f"Unexpected token {self.current.text!r}")
        return expr

    def _or(self) -> Expr:
        children = [self._and()]
        while self.current.kind == "or":
            self._advance()
            children.append(self._and())
        return children[0] if len(children) == 1 else AnyExpr(tuple(children))

    def _and(self) -> Expr:
        children = [self._not()]
        while self.current.kind == "and":
            self._advance()
            children.append(self._not())
        return children[0] if len(children) == 1 else AllExpr(tuple(children))

    def _not(self) -> Expr:
        if self.current.kind == "not":
            self._advance()
            return NotExpr(self._not())
        return self._primary()

    def _primary(self) -> Expr:
        token = self.current
        if token.kind == "lparen":
            self._advance()
            expr = self._or()
            if self.current.kind != "rparen":
                raise self._error("Missing ')'")
            self._advance()
            return expr
        if token.kind == "ref":
            self._advance()
            return RefExpr(token.text)
        if token.kind == "end":
            raise self._error("Expression ends unexpectedly")
        raise self._error(f"Unexpected token {token.text!r}")


def parse_expression(text: str) -> Expr:
    """
    Parse a boolean expression.

    Raises:
        ExpressionSyntaxError: On empty input, unbalanced parentheses,
            dangling operators or unexpected tokens
    """
    if text is None or not str(text).strip():
        raise ExpressionSyntaxError("Empty expression", text or "")
    return _Parser(str(text)).parse()


# =============================================================================
# Tree walkers
# =============================================================================

def collect_refs(expr: Expr) -> list[str]:
    """Reference names in first-seen order (no duplicates)."""
    seen: list[str] = []

    def walk(node: Expr) -> None:
        if isinstance(node, RefExpr):
            if node.name not in seen:
                seen.append(node.name)
        elif isinstance(node, NotExpr):
            walk(node.child)
        else:
            for child in node.children:
                walk(child)

    walk(expr)
    return seen


def resolve_refs(expr: Expr, names: Mapping[str, str], target: str | None = None) -> Expr:
    """
    Rewrite every reference to its canonical member key.

    Args:
        expr: Parsed expression
        names: Accepted reference name -> canonical key
        target: Owner identifier for error messages

    Raises:
        ConfigurationError: If a reference matches no member
    """
    folded = {k.lower(): v for k, v in names.items()}

    def lookup(name: str) -> str:
        if name in names:
            return names[name]
        if name.lower() in folded:
            return folded[name.lower()]
        valid = ", ".join(sorted(names))
        raise ConfigurationError(
            f"Unknown reference '{name}' in boolean expression. Valid references: {valid}",
            target=target,
        )

    def walk(node: Expr) -> Expr:
        if isinstance(node, RefExpr):
            return RefExpr(lookup(node.name))
        if isinstance(node, NotExpr):
            return NotExpr(walk(node.child))
        if isinstance(node, AllExpr):
            return AllExpr(tuple(walk(c) for c in node.children))
        return AnyExpr(tuple(walk(c) for c in node.children))

    return walk(expr)


def evaluate_expr(expr: Expr, values: Mapping[str, bool]) -> bool:
    """
    Evaluate a resolved expression against member outcomes.

    Every reference must be available, even ones short-circuiting would
    skip, so a missing member is always reported.

    Raises:
        ExpressionEvaluationError: If a referenced member has no outcome
    """
    missing = [name for name in collect_refs(expr) if name not in values]
    if missing:
        raise ExpressionEvaluationError(
            f"No outcome available for: {', '.join(missing)}"
        )
    return _eval(expr, values)


def _eval(expr: Expr, values: Mapping[str, bool]) -> bool:
    if isinstance(expr, RefExpr):
        return bool(values[expr.name])
    if isinstance(expr, NotExpr):
        return not _eval(expr.child, values)
    if isinstance(expr, AllExpr):
        return all(_eval(c, values) for c in expr.children)
    if isinstance(expr, AnyExpr):
        return any(_eval(c, values) for c in expr.children)
    raise TypeError(f"Unknown expression node: {type(expr).__name__}")


def format_expr(expr: Expr) -> str:
    """Render an expression back to infix text with explicit parentheses."""
    if isinstance(expr, RefExpr):
        return expr.name
    if isinstance(expr, NotExpr):
        return f"NOT {format_expr(expr.child)}"
    joiner = " AND " if isinstance(expr, AllExpr) else " OR "
    return "(" + joiner.join(format_expr(c) for c in expr.children) + ")"
