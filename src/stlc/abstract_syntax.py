from __future__ import annotations

import abc
import dataclasses
import enum
import typing
from typing import Optional


@dataclasses.dataclass(frozen=True)
class Variable:
    name: str
    id: Optional[int] = None

    def __str__(self):
        if self.id is None:
            return self.name
        return f"{self.name}_{self.id}"


class Operator(enum.Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"

    def __str__(self):
        return self.value


class Expression(abc.ABC):
    pass


@dataclasses.dataclass(frozen=True)
class Literal(Expression):
    val: int

    def __str__(self):
        return str(self.val)


@dataclasses.dataclass(frozen=True)
class Reference(Expression):
    var: Variable

    def __str__(self):
        return str(self.var)


@dataclasses.dataclass(frozen=True)
class Function(Expression):
    var: Variable
    body: Expression

    def __str__(self):
        return f"(\\{self.var}. {self.body})"


@dataclasses.dataclass(frozen=True)
class Application(Expression):
    fun: Expression
    arg: Expression

    def __str__(self):
        return f"({self.fun} {self.arg})"


@dataclasses.dataclass(frozen=True)
class BinOp(Expression):
    op: Operator
    lhs: Expression
    rhs: Expression

    def __str__(self):
        return f"({self.lhs} {self.op} {self.rhs})"


def variables(expr: Expression) -> typing.Iterator[Variable]:
    """All variables of the tree in pre-order, binders and references alike."""
    match expr:
        case Literal(_):
            return
        case Reference(var):
            yield var
        case Function(var, body):
            yield var
            yield from variables(body)
        case Application(fun, arg):
            yield from variables(fun)
            yield from variables(arg)
        case BinOp(_, lhs, rhs):
            yield from variables(lhs)
            yield from variables(rhs)
        case _:
            raise NotImplementedError(expr)


def count_functions(expr: Expression) -> int:
    match expr:
        case Literal(_) | Reference(_):
            return 0
        case Function(_, body):
            return 1 + count_functions(body)
        case Application(a, b) | BinOp(_, a, b):
            return count_functions(a) + count_functions(b)
        case _:
            raise NotImplementedError(expr)
