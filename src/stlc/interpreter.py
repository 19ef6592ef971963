import dataclasses
from typing import Any

from stlc import anf
from stlc.abstract_syntax import Operator, Variable


@dataclasses.dataclass
class EvaluationError(Exception):
    msg: str

    def __str__(self):
        return self.msg


class Interpreter:
    """Runs a hoisted program directly.

    Globals evaluate to the function definition they name (the "code
    pointer"), tuples are Python lists and integers are Python ints that
    wrap around like signed 32 bit machine words.
    """

    def __init__(self, program: anf.HoistedProgram):
        self.program = program
        self.functions = {fd.name: fd for fd in program.fun_defs}

    def run(self) -> Any:
        return self.execute(self.program.main, {})

    def call(self, fun: anf.FunDef, args: list[Any]) -> Any:
        if len(args) != len(fun.params):
            raise EvaluationError(
                f"{fun.name} expects {len(fun.params)} arguments, got {len(args)}"
            )
        return self.execute(fun.body, dict(zip(fun.params, args)))

    def execute(self, seq: anf.Sequence, env: dict[Variable, Any]) -> Any:
        for stmt in seq.stmts:
            match stmt:
                case anf.App(var, callee, args):
                    fun = env[callee]
                    if not isinstance(fun, anf.FunDef):
                        raise EvaluationError(f"{callee} is not a code pointer")
                    env[var] = self.call(fun, [self.evaluate(a, env) for a in args])
                case anf.BinOp(var, op, lhs, rhs):
                    a = self.evaluate(lhs, env)
                    b = self.evaluate(rhs, env)
                    env[var] = arithmetic(op, a, b)
                case anf.Tuple(var, elements):
                    env[var] = [self.evaluate(e, env) for e in elements]
                case anf.Project(var, tup, index):
                    env[var] = env[tup][index]
                case _:
                    raise anf.InternalError("unexpected statement in hoisted program", stmt)

        if seq.value is None:
            return None
        return self.evaluate(seq.value, env)

    def evaluate(self, val: anf.Value, env: dict[Variable, Any]) -> Any:
        match val:
            case anf.Number(n):
                return n
            case anf.Local(var):
                return env[var]
            case anf.Global(var):
                return self.functions[var]
            case _:
                raise NotImplementedError(val)


INT_MIN = -(2**31)
INT_MAX = 2**31 - 1


def wrap(n: int) -> int:
    return (n - INT_MIN) % 2**32 + INT_MIN


def arithmetic(op: Operator, a: int, b: int) -> int:
    match op:
        case Operator.ADD:
            return wrap(a + b)
        case Operator.SUB:
            return wrap(a - b)
        case Operator.MUL:
            return wrap(a * b)
        case Operator.DIV:
            if b == 0:
                raise EvaluationError("division by zero")
            if a == INT_MIN and b == -1:
                raise EvaluationError("integer overflow")
            # truncate toward zero, like i32.div_s
            q = abs(a) // abs(b)
            return q if (a < 0) == (b < 0) else -q
        case _:
            raise NotImplementedError(op)


def show(value: Any) -> str:
    match value:
        case [anf.FunDef(name), *_]:
            return f"<closure @{name}>"
        case None:
            return "()"
        case _:
            return str(value)


def run(program: anf.HoistedProgram) -> Any:
    return Interpreter(program).run()
