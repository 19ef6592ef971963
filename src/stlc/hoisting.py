import logging

from stlc import anf

logger = logging.getLogger(__name__)


def hoist(seq: anf.Sequence) -> anf.HoistedProgram:
    """Lift every function definition, however deeply nested, to the top level.

    Definitions are listed innermost first, in the order they are reached by a
    depth-first walk. Non-function statements stay where they are: at the top
    level they form `main`, inside a function they remain in its body.
    """
    program = anf.HoistedProgram()
    program.main = _hoist_into(seq, program.fun_defs)
    logger.debug("hoisted %d functions", len(program.fun_defs))
    return program


def _hoist_into(seq: anf.Sequence, fun_defs: list[anf.FunDef]) -> anf.Sequence:
    stmts = []
    for stmt in seq.stmts:
        match stmt:
            case anf.Fun(name, params, body):
                body = _hoist_into(body, fun_defs)
                fun_defs.append(anf.FunDef(name, params, body))
            case _:
                stmts.append(stmt)
    return anf.Sequence(stmts, seq.value)
