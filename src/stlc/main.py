import argparse
import logging
import sys

from stlc import gen_wat, interpreter
from stlc.alpha import UnboundVariable
from stlc.anf import InternalError
from stlc.config import BACKENDS, Options
from stlc.interpreter import EvaluationError
from stlc.parser import ParseError
from stlc.pipeline import compile_expr
from stlc.type_checker import TypeMismatch

logger = logging.getLogger(__name__)


def make_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stlc", description="Compile a lambda calculus expression."
    )
    parser.add_argument("program", help="program text, e.g. '(\\x. x + 1) 2'")
    parser.add_argument("--type", dest="show_type", action="store_true", default=None)
    parser.add_argument("--anf", dest="show_anf", action="store_true", default=None)
    parser.add_argument(
        "--closure", dest="show_closure", action="store_true", default=None
    )
    parser.add_argument(
        "--hoisted", dest="show_hoisted", action="store_true", default=None
    )
    parser.add_argument("--ir", dest="show_ir", action="store_true", default=None)
    parser.add_argument("--backend", choices=BACKENDS, default=None)
    parser.add_argument("--debug", action="store_true", default=None)
    return parser


def run(src: str, options: Options, out=None):
    out = sys.stdout if out is None else out
    comp = compile_expr(src)

    if options.show_type:
        print(f"type: {comp.type}", file=out)
    if options.show_anf:
        print(f"ANF:{comp.anf_seq}", file=out)
    if options.show_closure:
        print(f"closure converted:{comp.closure_converted}", file=out)
    if options.show_hoisted:
        print(comp.program, file=out)

    match options.backend:
        case "wat":
            print(gen_wat.compile_program(comp.program), file=out, end="")
        case "interp":
            if options.show_ir:
                print(gen_wat.compile_program(comp.program), file=out, end="")
            print(interpreter.show(interpreter.run(comp.program)), file=out)
        case "wasm":
            if options.show_ir:
                print(gen_wat.compile_program(comp.program), file=out, end="")
            print(gen_wat.run(comp.program), file=out)
        case backend:
            raise NotImplementedError(backend)


def main(argv=None) -> int:
    args = make_arg_parser().parse_args(argv)
    options = Options.from_env().override(
        show_type=args.show_type,
        show_anf=args.show_anf,
        show_closure=args.show_closure,
        show_hoisted=args.show_hoisted,
        show_ir=args.show_ir,
        backend=args.backend,
        debug=args.debug,
    )
    if options.debug:
        logging.basicConfig(level=logging.DEBUG)
    logger.debug("options: %s", options)

    try:
        run(args.program, options)
    except (ParseError, UnboundVariable, TypeMismatch, EvaluationError) as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1
    except InternalError as e:
        print(f"internal compiler error: {e.msg}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
