"""Administrative normal form.

A `Sequence` is a straight-line list of statements followed by an optional
tail value. Every statement binds exactly one variable, and no variable is
bound twice anywhere in a program. Operands are always `Value`s, which have
no side effects.
"""

from __future__ import annotations

import abc
import dataclasses
import typing
from typing import Optional

from stlc.abstract_syntax import Operator, Variable


@dataclasses.dataclass
class InternalError(Exception):
    """A lowering stage found input that an earlier stage should have ruled out."""

    msg: str
    node: typing.Any = None


class NameSupply:
    """Source of fresh variables for one compilation."""

    def __init__(self, next_id: int = 0):
        self.next_id = next_id

    def fresh(self, name: str) -> Variable:
        var = Variable(name, self.next_id)
        self.next_id += 1
        return var


class Value(abc.ABC):
    pass


@dataclasses.dataclass(frozen=True)
class Number(Value):
    val: int

    def __str__(self):
        return str(self.val)


@dataclasses.dataclass(frozen=True)
class Local(Value):
    var: Variable

    def __str__(self):
        return str(self.var)


@dataclasses.dataclass(frozen=True)
class Global(Value):
    var: Variable

    def __str__(self):
        return f"@{self.var}"


class Statement(abc.ABC):
    @property
    @abc.abstractmethod
    def result(self) -> Variable:
        pass

    def render(self, level: int) -> str:
        return str(self)


@dataclasses.dataclass
class Fun(Statement):
    name: Variable
    params: list[Variable]
    body: Sequence

    @property
    def result(self) -> Variable:
        return self.name

    def render(self, level: int) -> str:
        return f"{self.name}({_commas(self.params)}) = {self.body.render(level + 1)}"

    def __str__(self):
        return self.render(0)


@dataclasses.dataclass
class App(Statement):
    var: Variable
    callee: Variable
    args: list[Value]

    @property
    def result(self) -> Variable:
        return self.var

    def __str__(self):
        return f"{self.var} = {self.callee}({_commas(self.args)})"


@dataclasses.dataclass
class BinOp(Statement):
    var: Variable
    op: Operator
    lhs: Value
    rhs: Value

    @property
    def result(self) -> Variable:
        return self.var

    def __str__(self):
        return f"{self.var} = {self.lhs} {self.op} {self.rhs}"


@dataclasses.dataclass
class Tuple(Statement):
    var: Variable
    elements: list[Value]

    @property
    def result(self) -> Variable:
        return self.var

    def __str__(self):
        return f"{self.var} = ({_commas(self.elements)})"


@dataclasses.dataclass
class Project(Statement):
    var: Variable
    tuple: Variable
    index: int

    @property
    def result(self) -> Variable:
        return self.var

    def __str__(self):
        return f"{self.var} = {self.tuple}[{self.index}]"


@dataclasses.dataclass
class Sequence:
    stmts: list[Statement] = dataclasses.field(default_factory=list)
    value: Optional[Value] = None

    def render(self, level: int = 0) -> str:
        indent = "  " * level
        lines = [f"{indent}let {stmt.render(level)} in\n" for stmt in self.stmts]
        tail = "return ()" if self.value is None else str(self.value)
        head = "\n" if self.stmts else ""
        return head + "".join(lines) + indent + tail

    def __str__(self):
        return self.render()


@dataclasses.dataclass
class FunDef:
    name: Variable
    params: list[Variable]
    body: Sequence

    def __str__(self):
        return f"let {self.name}({_commas(self.params)}) ={self.body.render(1)}"


@dataclasses.dataclass
class HoistedProgram:
    fun_defs: list[FunDef] = dataclasses.field(default_factory=list)
    main: Sequence = dataclasses.field(default_factory=Sequence)

    def __str__(self):
        funs = "".join(f"{fd}\n\n" for fd in self.fun_defs)
        return f"{funs}let main() ={self.main.render(1)}"


def _commas(items) -> str:
    return ", ".join(map(str, items))


def iter_statements(seq: Sequence) -> typing.Iterator[Statement]:
    """Every statement, descending into function bodies (pre-order)."""
    for stmt in seq.stmts:
        yield stmt
        if isinstance(stmt, Fun):
            yield from iter_statements(stmt.body)


def bound_variables(seq: Sequence) -> list[Variable]:
    return [stmt.result for stmt in iter_statements(seq)]


def iter_functions(seq: Sequence) -> typing.Iterator[Fun]:
    return (stmt for stmt in iter_statements(seq) if isinstance(stmt, Fun))
