"""WebAssembly text backend.

Every value is an i32. Tuples are bump-allocated in linear memory, functions
live in a table so that code pointers are table indices, and `App` is a
`call_indirect`. All hoisted functions take exactly two parameters (the
environment and the argument), so a single function type suffices.
"""

import wasmtime

from stlc import anf
from stlc.abstract_syntax import Operator
from stlc.interpreter import EvaluationError

WORD = 4

OPCODES = {
    Operator.ADD: "i32.add",
    Operator.SUB: "i32.sub",
    Operator.MUL: "i32.mul",
    Operator.DIV: "i32.div_s",
}


class Compiler:
    def __init__(self):
        self.lines: list[str] = []
        self.fun_table: dict = {}

    def emit(self, line: str):
        self.lines.append(line)

    def compile_program(self, program: anf.HoistedProgram) -> str:
        self.emit("(module")
        self.emit("(memory 1)")
        self.emit("(global $heap_pointer (mut i32) (i32.const 0))")
        self.gen_fun_table(program)
        self.emit("(type $t (func (param i32 i32) (result i32)))")
        for fd in program.fun_defs:
            self.compile_fun(str(fd.name), fd.params, fd.body)
        self.compile_fun("_start", [], program.main)
        self.emit('(export "_start" (func $_start))')
        self.emit(")")
        return "\n".join(self.lines) + "\n"

    def gen_fun_table(self, program: anf.HoistedProgram):
        self.emit(f"(table {len(program.fun_defs)} funcref)")
        names = []
        for i, fd in enumerate(program.fun_defs):
            self.fun_table[fd.name] = i
            names.append(f" ${fd.name}")
        self.emit(f"(elem (i32.const 0){''.join(names)})")

    def compile_fun(self, name: str, params, body: anf.Sequence):
        params = "".join(f"(param ${p} i32) " for p in params)
        self.emit(f"(func ${name} {params}(result i32)")
        locals_ = " ".join(f"(local ${stmt.result} i32)" for stmt in body.stmts)
        if locals_:
            self.emit(locals_)
        for stmt in body.stmts:
            self.compile_stmt(stmt)
        if body.value is None:
            self.emit("i32.const 0")
        else:
            self.compile_value(body.value)
        self.emit(")")

    def compile_stmt(self, stmt: anf.Statement):
        match stmt:
            case anf.App(var, callee, args):
                for arg in args:
                    self.compile_value(arg)
                self.emit(f"(call_indirect (type $t) (local.get ${callee}))")
                self.emit(f"local.set ${var}")
            case anf.BinOp(var, op, lhs, rhs):
                self.compile_value(lhs)
                self.compile_value(rhs)
                self.emit(OPCODES[op])
                self.emit(f"local.set ${var}")
            case anf.Tuple(var, elements):
                for i, elem in enumerate(elements):
                    self.emit("global.get $heap_pointer")
                    self.compile_value(elem)
                    self.emit(f"i32.store offset={i * WORD}")
                self.emit("global.get $heap_pointer")
                self.emit(f"local.set ${var}")
                self.emit("global.get $heap_pointer")
                self.emit(f"i32.const {len(elements) * WORD}")
                self.emit("i32.add")
                self.emit("global.set $heap_pointer")
            case anf.Project(var, tup, index):
                self.emit(f"local.get ${tup}")
                self.emit(f"i32.load offset={index * WORD}")
                self.emit(f"local.set ${var}")
            case _:
                raise anf.InternalError("hoisted program contains a nested function", stmt)

    def compile_value(self, val: anf.Value):
        match val:
            case anf.Number(n):
                self.emit(f"i32.const {n}")
            case anf.Local(var):
                self.emit(f"local.get ${var}")
            case anf.Global(var):
                self.emit(f"i32.const {self.fun_table[var]}")
            case _:
                raise NotImplementedError(val)


def compile_program(program: anf.HoistedProgram) -> str:
    return Compiler().compile_program(program)


class Runner:
    """Assembles a generated module with wasmtime and calls `_start`."""

    def __init__(self):
        self.store = wasmtime.Store()

    def run_module(self, wat: str) -> int:
        module = wasmtime.Module(self.store.engine, wat)
        instance = wasmtime.Instance(self.store, module, [])
        start = instance.exports(self.store)["_start"]
        try:
            return start(self.store)
        except wasmtime.Trap as e:
            raise EvaluationError(e.message) from None

    def run_program(self, program: anf.HoistedProgram) -> int:
        return self.run_module(compile_program(program))


def run(program: anf.HoistedProgram) -> int:
    return Runner().run_program(program)
