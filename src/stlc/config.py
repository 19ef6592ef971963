"""Compiler options.

Defaults can be set through environment variables, e.g.

    STLC_SHOW_ANF=1 STLC_BACKEND=wat python -m stlc.main '(\\x. x + 1) 2'

Command line flags override them.
"""

from __future__ import annotations

import dataclasses
import os
from typing import Mapping, Optional

BACKENDS = ("interp", "wat", "wasm")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclasses.dataclass
class Options:
    # which intermediate forms to print
    show_type: bool = False
    show_anf: bool = False
    show_closure: bool = False
    show_hoisted: bool = False
    show_ir: bool = False
    backend: str = "interp"
    debug: bool = False

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(f"unknown backend {self.backend!r}, expected one of {BACKENDS}")

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> Options:
        environ = os.environ if environ is None else environ
        kwargs = {}
        for f in dataclasses.fields(Options):
            raw = environ.get(f"STLC_{f.name.upper()}")
            if raw is None:
                continue
            if f.type == "bool":
                kwargs[f.name] = raw.strip().lower() in _TRUTHY
            else:
                kwargs[f.name] = raw.strip()
        return Options(**kwargs)

    def override(self, **changes) -> Options:
        changes = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **changes)
