import logging

from stlc import abstract_syntax as ast, anf

logger = logging.getLogger(__name__)


class ANFConverter:
    def __init__(self, supply: anf.NameSupply):
        self.supply = supply

    def convert(self, expr: ast.Expression) -> anf.Sequence:
        seq = anf.Sequence()
        self.convert_into(expr, seq)
        logger.debug("ANF:%s", seq)
        return seq

    def convert_into(self, expr: ast.Expression, seq: anf.Sequence):
        """Append the statements computing `expr` to `seq` and make its value the tail.

        Statements are emitted in evaluation order: callee or left operand
        first, then argument or right operand, then the operation itself.
        """
        match expr:
            case ast.Reference(var):
                seq.value = anf.Local(var)
            case ast.Literal(val):
                seq.value = anf.Number(val)
            case ast.Function(var, body):
                f = self.supply.fresh("f")
                body_seq = anf.Sequence()
                self.convert_into(body, body_seq)
                seq.stmts.append(anf.Fun(f, [var], body_seq))
                seq.value = anf.Local(f)
            case ast.Application(fun, arg):
                self.convert_into(fun, seq)
                f = seq.value
                self.convert_into(arg, seq)
                x = seq.value
                if not isinstance(f, anf.Local):
                    raise anf.InternalError("callee must be a named value", f)
                y = self.supply.fresh("y")
                seq.stmts.append(anf.App(y, f.var, [x]))
                seq.value = anf.Local(y)
            case ast.BinOp(op, lhs, rhs):
                self.convert_into(lhs, seq)
                x = seq.value
                self.convert_into(rhs, seq)
                y = seq.value
                z = self.supply.fresh("z")
                seq.stmts.append(anf.BinOp(z, op, x, y))
                seq.value = anf.Local(z)
            case _:
                raise NotImplementedError(expr)
