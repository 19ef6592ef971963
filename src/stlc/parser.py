import dataclasses
import functools

import pyparsing as pp

from stlc import abstract_syntax as ast


pp.ParserElement.enable_packrat()


@dataclasses.dataclass
class ParseError(Exception):
    msg: str
    pos: int
    line: int
    col: int

    def __str__(self):
        return f"{self.msg} (at line {self.line}, column {self.col})"


def parse_expr(src: str) -> ast.Expression:
    try:
        return expr.parse_string(src, True)[0]
    except pp.ParseBaseException as e:
        raise ParseError(e.msg, e.loc, e.lineno, e.col) from None


### Grammar

ident = pp.Word(pp.alphas)

INT_MAX = 2**31 - 1


def _make_literal(s, loc, t):
    n = int(t[0])
    if n > INT_MAX:
        raise pp.ParseFatalException(s, loc, f"integer literal {n} does not fit in 32 bits")
    return ast.Literal(n)


integer = pp.Word(pp.nums).set_parse_action(_make_literal)

varref = ident.copy().set_parse_action(lambda t: ast.Reference(ast.Variable(t[0])))

expr = pp.Forward()

function = (pp.Suppress("\\") + ident + pp.Suppress(".") + expr).set_parse_action(
    lambda t: ast.Function(ast.Variable(t[0]), t[1])
)

simple_expr = function | integer | varref | (pp.Suppress("(") + expr + pp.Suppress(")"))

call_expr = pp.OneOrMore(simple_expr).set_parse_action(
    lambda t: functools.reduce(ast.Application, t[1:], t[0])
)


def _fold_binops(t):
    items = t[0]
    return functools.reduce(
        lambda lhs, i: ast.BinOp(ast.Operator(items[i]), lhs, items[i + 1]),
        range(1, len(items), 2),
        items[0],
    )


expr <<= pp.infix_notation(
    call_expr,
    [
        (pp.one_of("* /"), 2, pp.OpAssoc.LEFT, _fold_binops),
        (pp.one_of("+ -"), 2, pp.OpAssoc.LEFT, _fold_binops),
    ],
)
