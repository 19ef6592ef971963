import collections

import pytest

from stlc import anf
from stlc.abstract_syntax import Operator, Variable
from stlc.alpha import alpha_convert
from stlc.anf_conversion import ANFConverter
from stlc.closure_conversion import ClosureConverter, free_variables, rename
from stlc.parser import parse_expr

EXAMPLES = [
    "\\x. x",
    "(\\x. \\y. x + y) 2 3",
    "(\\f. \\x. f x) ((\\x. \\y. x + y) 2) 3",
    "\\a. \\b. \\c. a * b + c",
    "(\\f. \\g. \\x. f (g x)) (\\x. x * 2) (\\x. x + 3) 1",
]


def lower(src):
    expr, count = alpha_convert(parse_expr(src))
    supply = anf.NameSupply(count)
    seq = ANFConverter(supply).convert(expr)
    return seq, supply


def closure_convert(src):
    seq, supply = lower(src)
    return ClosureConverter(supply).convert(seq)


def references(seq):
    """Variables referenced directly by the statements and tail of `seq`."""
    refs = []
    for stmt in seq.stmts:
        match stmt:
            case anf.App(_, callee, args):
                refs.append(callee)
                refs.extend(a.var for a in args if isinstance(a, anf.Local))
            case anf.BinOp(_, _, lhs, rhs):
                refs.extend(v.var for v in (lhs, rhs) if isinstance(v, anf.Local))
            case anf.Tuple(_, elements):
                refs.extend(e.var for e in elements if isinstance(e, anf.Local))
            case anf.Project(_, tup, _):
                refs.append(tup)
    if isinstance(seq.value, anf.Local):
        refs.append(seq.value.var)
    return refs


def test_free_variables_of_inner_function():
    seq, _ = lower("\\x. \\y. x + y")
    [outer] = seq.stmts
    [inner] = outer.body.stmts
    assert free_variables(outer.body, outer.params) == []
    assert free_variables(inner.body, inner.params) == [Variable("x", 0)]


def test_free_variables_excludes_parameters_and_earlier_bindings():
    x, y, z = Variable("x", 0), Variable("y", 1), Variable("z", 2)
    body = anf.Sequence(
        [anf.BinOp(z, Operator.ADD, anf.Local(x), anf.Local(y))], anf.Local(z)
    )
    assert free_variables(body, [x]) == [y]
    assert free_variables(body, [x, y]) == []


def test_free_variables_are_not_repeated():
    seq, _ = lower("\\x. \\y. x * x + y")
    [outer] = seq.stmts
    [inner] = outer.body.stmts
    assert free_variables(inner.body, inner.params) == [Variable("x", 0)]


def test_free_variables_of_nested_functions_propagate():
    seq, _ = lower("\\a. \\b. \\c. a + c")
    [fa] = seq.stmts
    [fb] = fa.body.stmts
    assert free_variables(fb.body, fb.params) == [Variable("a", 0)]


def test_free_variables_rejects_converted_statements():
    t = Variable("t", 0)
    with pytest.raises(anf.InternalError):
        free_variables(anf.Sequence([anf.Tuple(t, [anf.Number(1)])]))
    with pytest.raises(anf.InternalError):
        free_variables(anf.Sequence([anf.Project(Variable("p", 1), t, 0)]))


def test_rename_substitutes_references_only():
    x, y, z = Variable("x", 0), Variable("y", 1), Variable("z", 2)
    seq = anf.Sequence([anf.App(z, x, [anf.Local(x)])], anf.Local(x))
    assert rename(seq, {x: y}) == anf.Sequence(
        [anf.App(z, y, [anf.Local(y)])], anf.Local(y)
    )
    assert rename(seq, {z: y}) == seq


def test_closed_identity_function():
    x, f = Variable("x", 0), Variable("f", 1)
    env, code = Variable("env", 2), Variable("f", 3)
    assert closure_convert("\\x. x") == anf.Sequence(
        [
            anf.Fun(code, [env, x], anf.Sequence([], anf.Local(x))),
            anf.Tuple(f, [anf.Global(code)]),
        ],
        anf.Local(f),
    )


def test_call_site_extracts_code_pointer():
    seq = closure_convert("(\\x. x) 1")
    f, y, ptr = Variable("f", 1), Variable("y", 2), Variable("f", 5)
    assert seq.stmts[2:] == [
        anf.Project(ptr, f, 0),
        anf.App(y, ptr, [anf.Local(f), anf.Number(1)]),
    ]
    assert seq.value == anf.Local(y)


def test_captured_variables_come_from_the_environment():
    seq = closure_convert("\\x. \\y. x + y")
    x, y = Variable("x", 0), Variable("y", 1)
    [outer, closure] = seq.stmts
    assert closure == anf.Tuple(Variable("f", 2), [anf.Global(outer.name)])

    [inner, inner_closure] = outer.body.stmts
    env, captured_x = Variable("env", 7), Variable("x", 9)
    assert inner.params == [env, y]
    assert inner.body == anf.Sequence(
        [
            anf.Project(captured_x, env, 1),
            anf.BinOp(
                Variable("z", 4), Operator.ADD, anf.Local(captured_x), anf.Local(y)
            ),
        ],
        anf.Local(Variable("z", 4)),
    )
    assert inner_closure == anf.Tuple(
        Variable("f", 3), [anf.Global(inner.name), anf.Local(x)]
    )


def test_environment_slots_follow_free_variable_order():
    seq = closure_convert("\\a. \\b. \\c. a * b + c")
    fc = list(anf.iter_functions(seq))[-1]
    projections = [s for s in fc.body.stmts if isinstance(s, anf.Project)]
    assert [(p.var.name, p.index) for p in projections] == [("a", 1), ("b", 2)]
    assert all(p.tuple == fc.params[0] for p in projections)


@pytest.mark.parametrize("src", EXAMPLES)
def test_converted_functions_are_closed(src):
    seq = closure_convert(src)
    for fun in anf.iter_functions(seq):
        in_scope = set(fun.params) | {stmt.result for stmt in fun.body.stmts}
        assert set(references(fun.body)) <= in_scope, fun


@pytest.mark.parametrize("src", EXAMPLES)
def test_every_variable_is_bound_once(src):
    seq = closure_convert(src)
    binders = anf.bound_variables(seq) + [
        p for fun in anf.iter_functions(seq) for p in fun.params
    ]
    duplicates = [v for v, n in collections.Counter(binders).items() if n > 1]
    assert duplicates == []


@pytest.mark.parametrize("src", EXAMPLES)
def test_every_call_goes_through_a_closure(src):
    seq = closure_convert(src)
    statements = list(anf.iter_statements(seq))
    projected = {s.var: s for s in statements if isinstance(s, anf.Project)}
    for app in (s for s in statements if isinstance(s, anf.App)):
        ptr = projected[app.callee]
        assert ptr.index == 0
        assert app.args[0] == anf.Local(ptr.tuple)
