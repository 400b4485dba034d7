"""Feature-gate expressions.

An item may be gated by a boolean expression over named optional
capabilities. Two spellings are accepted and may be mixed:

* infix: ``std && (serde || !no-alloc)``, also ``and`` / ``or`` / ``not``
* functional: ``all(std, any(serde, not(no-alloc)))``

Parsed expressions are immutable and cached per source text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Collection, Union

from api_review.domain.errors import FeatureExpressionError

_TOKEN_RE = re.compile(r"\s*(?:(&&|\|\||!|\(|\)|,)|([A-Za-z_][A-Za-z0-9_\-]*))")

_KEYWORDS = {"and": "&&", "or": "||", "not": "!"}


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Capability:
    name: str

    def names(self) -> frozenset[str]:
        return frozenset((self.name,))

    def evaluate(self, enabled: Collection[str]) -> bool:
        return self.name in enabled

    def render(self) -> str:
        return self.name


@dataclass(frozen=True)
class Not:
    operand: "FeatureExpr"

    def names(self) -> frozenset[str]:
        return self.operand.names()

    def evaluate(self, enabled: Collection[str]) -> bool:
        return not self.operand.evaluate(enabled)

    def render(self) -> str:
        return f"not({self.operand.render()})"


@dataclass(frozen=True)
class AllOf:
    operands: tuple["FeatureExpr", ...]

    def names(self) -> frozenset[str]:
        return frozenset().union(*(op.names() for op in self.operands))

    def evaluate(self, enabled: Collection[str]) -> bool:
        return all(op.evaluate(enabled) for op in self.operands)

    def render(self) -> str:
        return "all(" + ", ".join(op.render() for op in self.operands) + ")"


@dataclass(frozen=True)
class AnyOf:
    operands: tuple["FeatureExpr", ...]

    def names(self) -> frozenset[str]:
        return frozenset().union(*(op.names() for op in self.operands))

    def evaluate(self, enabled: Collection[str]) -> bool:
        return any(op.evaluate(enabled) for op in self.operands)

    def render(self) -> str:
        return "any(" + ", ".join(op.render() for op in self.operands) + ")"


FeatureExpr = Union[Capability, Not, AllOf, AnyOf]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        m = _TOKEN_RE.match(stripped, pos)
        if not m or m.end() == pos:
            raise FeatureExpressionError(
                f"Unexpected character {stripped[pos:].strip()[:1]!r} in feature gate {text!r}"
            )
        op, ident = m.groups()
        if ident is not None and ident.lower() in _KEYWORDS:
            tokens.append(_KEYWORDS[ident.lower()])
        else:
            tokens.append(op or ident)
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self._text = text
        self._tokens = _tokenize(text)
        self._pos = 0

    def parse(self) -> FeatureExpr:
        if not self._tokens:
            raise FeatureExpressionError(f"Empty feature gate {self._text!r}")
        expr = self._or()
        if self._pos != len(self._tokens):
            self._fail(f"unexpected token {self._tokens[self._pos]!r}")
        return expr

    # -- grammar -------------------------------------------------------------

    def _or(self) -> FeatureExpr:
        operands = [self._and()]
        while self._accept("||"):
            operands.append(self._and())
        return operands[0] if len(operands) == 1 else AnyOf(tuple(operands))

    def _and(self) -> FeatureExpr:
        operands = [self._unary()]
        while self._accept("&&"):
            operands.append(self._unary())
        return operands[0] if len(operands) == 1 else AllOf(tuple(operands))

    def _unary(self) -> FeatureExpr:
        if self._accept("!"):
            return Not(self._unary())
        return self._primary()

    def _primary(self) -> FeatureExpr:
        if self._accept("("):
            expr = self._or()
            self._expect(")")
            return expr
        token = self._next()
        if token in ("&&", "||", ")", ","):
            self._fail(f"unexpected token {token!r}")
        if self._accept("("):
            return self._call(token)
        return Capability(token)

    def _call(self, name: str) -> FeatureExpr:
        args: list[FeatureExpr] = []
        if not self._accept(")"):
            args.append(self._or())
            while self._accept(","):
                args.append(self._or())
            self._expect(")")
        func = name.lower()
        if func in ("all", "any"):
            if not args:
                self._fail(f"{func}() needs at least one argument")
            return AllOf(tuple(args)) if func == "all" else AnyOf(tuple(args))
        self._fail(f"unknown function {name!r}")

    # -- token helpers -------------------------------------------------------

    def _next(self) -> str:
        if self._pos >= len(self._tokens):
            self._fail("unexpected end of expression")
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _accept(self, token: str) -> bool:
        if self._pos < len(self._tokens) and self._tokens[self._pos] == token:
            self._pos += 1
            return True
        return False

    def _expect(self, token: str) -> None:
        if not self._accept(token):
            self._fail(f"expected {token!r}")

    def _fail(self, reason: str):
        raise FeatureExpressionError(f"Invalid feature gate {self._text!r}: {reason}")


@lru_cache(maxsize=1024)
def parse_feature_expression(text: str) -> FeatureExpr:
    """Parse *text* into an immutable expression tree.

    Raises
    ------
    FeatureExpressionError
        If the expression is empty or malformed.
    """
    return _Parser(text).parse()

