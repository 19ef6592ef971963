"""Alpha conversion: give every binder a globally unique id.

Each parameter gets a fresh id from a counter that only ever grows, and
every reference is stamped with the id of its innermost enclosing binder.
Afterwards two variables denote the same binding iff their ids are equal.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from stlc import abstract_syntax as ast

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class UnboundVariable(Exception):
    name: str

    def __str__(self):
        return f"unbound variable '{self.name}'"


class Scope:
    """Immutable cons list from names to ids; lookup finds the innermost."""

    def __init__(self, name: Optional[str] = None, id: int = 0, outer=None):
        self.name = name
        self.id = id
        self.outer = outer

    def lookup(self, name: str) -> int:
        scope = self
        while scope.name is not None:
            if scope.name == name:
                return scope.id
            scope = scope.outer
        raise UnboundVariable(name)

    def bind(self, name: str, id: int) -> Scope:
        return Scope(name, id, self)


class AlphaConverter:
    def __init__(self, next_id: int = 0):
        self.next_id = next_id

    def fresh_id(self) -> int:
        new_id = self.next_id
        self.next_id += 1
        return new_id

    def convert(self, expr: ast.Expression, scope: Scope = Scope()) -> ast.Expression:
        match expr:
            case ast.Reference(var):
                return ast.Reference(ast.Variable(var.name, scope.lookup(var.name)))
            case ast.Function(var, body):
                param = ast.Variable(var.name, self.fresh_id())
                body = self.convert(body, scope.bind(param.name, param.id))
                return ast.Function(param, body)
            case ast.Application(fun, arg):
                fun = self.convert(fun, scope)
                arg = self.convert(arg, scope)
                return ast.Application(fun, arg)
            case ast.BinOp(op, lhs, rhs):
                lhs = self.convert(lhs, scope)
                rhs = self.convert(rhs, scope)
                return ast.BinOp(op, lhs, rhs)
            case ast.Literal(_):
                return expr
            case _:
                raise NotImplementedError(expr)


def alpha_convert(expr: ast.Expression) -> tuple[ast.Expression, int]:
    """Returns the scoped tree and the number of ids allocated."""
    converter = AlphaConverter()
    scoped = converter.convert(expr)
    logger.debug("alpha converted: %s (%d ids)", scoped, converter.next_id)
    return scoped, converter.next_id
