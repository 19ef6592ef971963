from __future__ import annotations

import dataclasses
import logging

from stlc import abstract_syntax as ast, anf, parser
from stlc.alpha import alpha_convert
from stlc.anf_conversion import ANFConverter
from stlc.closure_conversion import closure_convert
from stlc.hoisting import hoist
from stlc.type_checker import Type, TypeInferencer, infer_type

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Compilation:
    scoped: ast.Expression
    type: Type
    types: TypeInferencer
    anf_seq: anf.Sequence
    closure_converted: anf.Sequence
    program: anf.HoistedProgram


def compile_expr(src: str | ast.Expression) -> Compilation:
    """Run every lowering stage. Any stage failing aborts the whole compilation."""
    if not isinstance(src, ast.Expression):
        src = parser.parse_expr(src)
    logger.debug("parsed: %s", src)

    scoped, n_ids = alpha_convert(src)
    ty, types = infer_type(scoped, n_ids)

    # ANF names continue after the type variables so ids never collide
    supply = anf.NameSupply(types.next_tvar)
    anf_seq = ANFConverter(supply).convert(scoped)
    closed = closure_convert(anf_seq, supply)
    program = hoist(closed)
    logger.debug("hoisted program:\n%s", program)

    return Compilation(scoped, ty, types, anf_seq, closed, program)
