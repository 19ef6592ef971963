from __future__ import annotations

import abc
import dataclasses
import logging
from typing import Optional

from stlc import abstract_syntax as ast

logger = logging.getLogger(__name__)


class Type(abc.ABC):
    pass


@dataclasses.dataclass(frozen=True)
class Int(Type):
    def __str__(self):
        return "Int"


@dataclasses.dataclass(frozen=True)
class Arrow(Type):
    arg: Type
    ret: Type

    def __str__(self):
        return f"({self.arg} -> {self.ret})"


@dataclasses.dataclass(frozen=True)
class TypeVar(Type):
    id: int

    def __str__(self):
        return f"'t{self.id}"


@dataclasses.dataclass
class TypeMismatch(Exception):
    expected: Type
    actual: Type

    def __str__(self):
        return f"type mismatch: {self.expected} vs {self.actual}"


class InfiniteType(TypeMismatch):
    def __str__(self):
        return f"infinite type: {self.expected} occurs in {self.actual}"


class TypeInferencer:
    """Monomorphic type inference over an alpha-converted tree.

    Type variables live in an arena: `slots[i]` is the type bound to
    `TypeVar(i)`, or None while unresolved. A slot is written at most once and
    never cleared, so a failed inference leaves the arena partially solved;
    start over with a fresh inferencer.

    `type_env[i]` is the type of the variable with alpha id `i`.
    """

    def __init__(self, n_vars: int):
        self.slots: list[Optional[Type]] = []
        self.type_env: list[Type] = [self.fresh_var() for _ in range(n_vars)]

    @property
    def next_tvar(self) -> int:
        return len(self.slots)

    def fresh_var(self) -> TypeVar:
        tv = TypeVar(len(self.slots))
        self.slots.append(None)
        return tv

    def prune(self, ty: Type) -> Type:
        while isinstance(ty, TypeVar) and self.slots[ty.id] is not None:
            ty = self.slots[ty.id]
        return ty

    def simplify(self, ty: Type) -> Type:
        match self.prune(ty):
            case Arrow(arg, ret):
                return Arrow(self.simplify(arg), self.simplify(ret))
            case t:
                return t

    def occurs(self, tv: TypeVar, ty: Type) -> bool:
        match self.prune(ty):
            case TypeVar() as t:
                return t == tv
            case Arrow(arg, ret):
                return self.occurs(tv, arg) or self.occurs(tv, ret)
            case _:
                return False

    def unify(self, a: Type, b: Type):
        a = self.prune(a)
        b = self.prune(b)
        match a, b:
            case Int(), Int():
                return
            case Arrow(a1, a2), Arrow(b1, b2):
                self.unify(a1, b1)
                self.unify(a2, b2)
            case TypeVar(), TypeVar() if a == b:
                return
            case TypeVar(), _:
                self.bind(a, b)
            case _, TypeVar():
                self.bind(b, a)
            case _:
                raise TypeMismatch(a, b)

    def bind(self, tv: TypeVar, ty: Type):
        if self.occurs(tv, ty):
            raise InfiniteType(tv, self.simplify(ty))
        assert self.slots[tv.id] is None
        self.slots[tv.id] = ty

    def infer(self, expr: ast.Expression) -> Type:
        match expr:
            case ast.Reference(var):
                return self.type_env[var.id]
            case ast.Function(var, body):
                return Arrow(self.type_env[var.id], self.infer(body))
            case ast.Application(fun, arg):
                t1 = self.infer(fun)
                t2 = self.infer(arg)
                ret = self.fresh_var()
                self.unify(t1, Arrow(t2, ret))
                return self.simplify(ret)
            case ast.Literal(_):
                return Int()
            case ast.BinOp(_, lhs, rhs):
                t1 = self.infer(lhs)
                t2 = self.infer(rhs)
                self.unify(t1, Int())
                self.unify(t2, Int())
                return Int()
            case _:
                raise NotImplementedError(expr)

    def type_of_var(self, var: ast.Variable) -> Type:
        return self.simplify(self.type_env[var.id])

    def type_of(self, expr: ast.Expression) -> Type:
        """Type of any subexpression, read back from the solved table."""
        match expr:
            case ast.Reference(var):
                return self.type_of_var(var)
            case ast.Function(var, body):
                return Arrow(self.type_of_var(var), self.type_of(body))
            case ast.Application(fun, _):
                tfun = self.type_of(fun)
                assert isinstance(tfun, Arrow)
                return tfun.ret
            case ast.Literal(_) | ast.BinOp():
                return Int()
            case _:
                raise NotImplementedError(expr)


def infer_type(expr: ast.Expression, n_vars: int) -> tuple[Type, TypeInferencer]:
    inferencer = TypeInferencer(n_vars)
    ty = inferencer.simplify(inferencer.infer(expr))
    logger.debug("inferred type: %s", ty)
    return ty, inferencer
