"""Closure conversion.

Every function literal becomes a closed function taking its environment as an
extra first parameter, and the original binding becomes a tuple
`(@code, fv1, fv2, ...)`. Slot 0 of the tuple holds the code pointer, so a call
site projects slot 0 and passes the tuple itself as the environment.
"""

import logging
from typing import Iterable

from stlc import anf
from stlc.abstract_syntax import Variable

logger = logging.getLogger(__name__)


def free_variables(seq: anf.Sequence, bound: Iterable[Variable] = ()) -> list[Variable]:
    """Variables referenced in `seq` before (or without) being bound there.

    Results are in order of first occurrence, without duplicates. Only the
    statement kinds produced by ANF conversion are expected.
    """
    bound = set(bound)
    free = []

    def use(var: Variable):
        if var not in bound and var not in free:
            free.append(var)

    def use_value(val: anf.Value):
        if isinstance(val, anf.Local):
            use(val.var)

    for stmt in seq.stmts:
        match stmt:
            case anf.Fun(name, params, body):
                for var in free_variables(body, bound | set(params)):
                    use(var)
            case anf.App(_, callee, args):
                use(callee)
                for arg in args:
                    use_value(arg)
            case anf.BinOp(_, _, lhs, rhs):
                use_value(lhs)
                use_value(rhs)
            case _:
                raise anf.InternalError("unexpected statement before closure conversion", stmt)
        bound.add(stmt.result)

    if seq.value is not None:
        use_value(seq.value)

    return free


def rename(seq: anf.Sequence, renaming: dict[Variable, Variable]) -> anf.Sequence:
    """Substitute variable references (not binders) throughout `seq`."""
    if not renaming:
        return seq

    def var(v: Variable) -> Variable:
        return renaming.get(v, v)

    def val(v: anf.Value) -> anf.Value:
        if isinstance(v, anf.Local):
            return anf.Local(var(v.var))
        return v

    stmts = []
    for stmt in seq.stmts:
        match stmt:
            case anf.Fun(name, params, body):
                stmts.append(anf.Fun(name, params, rename(body, renaming)))
            case anf.App(res, callee, args):
                stmts.append(anf.App(res, var(callee), [val(a) for a in args]))
            case anf.BinOp(res, op, lhs, rhs):
                stmts.append(anf.BinOp(res, op, val(lhs), val(rhs)))
            case anf.Tuple(res, elements):
                stmts.append(anf.Tuple(res, [val(e) for e in elements]))
            case anf.Project(res, tup, index):
                stmts.append(anf.Project(res, var(tup), index))
            case _:
                raise NotImplementedError(stmt)

    value = None if seq.value is None else val(seq.value)
    return anf.Sequence(stmts, value)


class ClosureConverter:
    def __init__(self, supply: anf.NameSupply):
        self.supply = supply

    def convert(self, seq: anf.Sequence) -> anf.Sequence:
        stmts = []
        for stmt in seq.stmts:
            match stmt:
                case anf.Fun(name, params, body):
                    stmts.extend(self.convert_function(name, params, body))
                case anf.App(res, callee, args):
                    code = self.supply.fresh(callee.name)
                    stmts.append(anf.Project(code, callee, 0))
                    stmts.append(anf.App(res, code, [anf.Local(callee), *args]))
                case _:
                    stmts.append(stmt)
        return anf.Sequence(stmts, seq.value)

    def convert_function(
        self, name: Variable, params: list[Variable], body: anf.Sequence
    ) -> list[anf.Statement]:
        captured = free_variables(body, params)
        env = self.supply.fresh("env")
        code = self.supply.fresh(name.name)
        logger.debug("closure %s -> %s captures %s", name, code, captured)

        # captured variables are re-bound inside the function under fresh names
        renaming = {fv: self.supply.fresh(fv.name) for fv in captured}
        body = self.convert(rename(body, renaming))
        projections = [
            anf.Project(renaming[fv], env, i + 1) for i, fv in enumerate(captured)
        ]

        return [
            anf.Fun(code, [env, *params], anf.Sequence(projections + body.stmts, body.value)),
            anf.Tuple(name, [anf.Global(code), *map(anf.Local, captured)]),
        ]


def closure_convert(seq: anf.Sequence, supply: anf.NameSupply) -> anf.Sequence:
    converted = ClosureConverter(supply).convert(seq)
    logger.debug("closure converted:%s", converted)
    return converted
