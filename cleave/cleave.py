"""Command-line entry point."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

from .diagnostics import CleaveError, Diagnostic
from .frontend.parse import parse
from .host import (
    DEFAULT_COMPATIBILITY_DATE,
    DEFAULT_INSTANCE_NAME,
    DEFAULT_PROGRAM_NAME,
    Options,
    compile_source,
    program_name_problem,
)
from .model import TargetKind
from .serialize import class_to_dict, placements_to_dict, registry_to_list

TARGETS: list[str] = [t.value for t in TargetKind]

PHASES: list[str] = [
    "parse",
    "classify",
    "rewrite",
]

USAGE: str = """\
cleave [OPTIONS] [INPUT] [-o DIR]

Options:
  --target TARGET              Compiled output: client, server (default client)
  --name NAME                  Program module name (default: input stem or app)
  --dce                        Drop unreferenced methods from server output
  --instance NAME              Router's fixed shell instance (default singleton)
  --compatibility-date DATE    Worker compatibility date (default 2024-12-01)
  --stop-at PHASE              Stop after phase: parse, classify, rewrite
  -o, --out-dir DIR            Write outputs into DIR instead of stdout
  --help                       Show this help message
"""


class CliArgs:
    """Parsed command line."""

    def __init__(self) -> None:
        self.target: str = TargetKind.CLIENT.value
        self.name: str | None = None
        self.dce: bool = False
        self.instance_name: str = DEFAULT_INSTANCE_NAME
        self.compatibility_date: str = DEFAULT_COMPATIBILITY_DATE
        self.stop_at: str | None = None
        self.input_file: str | None = None
        self.out_dir: str | None = None


def read_source(input_file: str | None) -> tuple[str, int]:
    """Read source from file or stdin. Returns (source, exit_code) where exit_code 0 means OK."""
    if input_file is not None:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            print("error: cannot open '" + input_file + "'", file=sys.stderr)
            return ("", 1)
    else:
        raw = sys.stdin.buffer.read()
    try:
        return (raw.decode("utf-8"), 0)
    except ValueError:
        print("error: invalid utf-8 in input", file=sys.stderr)
        return ("", 1)


def write_outputs(outputs: dict[str, str], out_dir: str | None) -> int:
    """Write every output file into out_dir, or to stdout with headers."""
    if out_dir is None:
        for name, text in outputs.items():
            print("# ==> " + name + " <==")
            print(text, end="")
        return 0
    try:
        os.makedirs(out_dir, exist_ok=True)
        for name, text in outputs.items():
            with open(os.path.join(out_dir, name), "w") as f:
                f.write(text)
    except OSError:
        print("error: cannot write to '" + out_dir + "'", file=sys.stderr)
        return 1
    return 0


def _print_diagnostics(items: list[Diagnostic]) -> None:
    for d in items:
        print(str(d), file=sys.stderr)


def default_program_name(input_file: str | None) -> str:
    if input_file is None:
        return DEFAULT_PROGRAM_NAME
    stem = Path(input_file).stem.replace("-", "_")
    return stem if program_name_problem(stem) is None else DEFAULT_PROGRAM_NAME


def run_pipeline(source: str, args: CliArgs) -> tuple[int, dict[str, str]]:
    """Run the split pipeline. Returns (exit_code, outputs)."""
    options = Options(
        target=TargetKind(args.target),
        program_name=args.name or default_program_name(args.input_file),
        dce=args.dce,
        instance_name=args.instance_name,
        compatibility_date=args.compatibility_date,
    )
    try:
        if args.stop_at == "parse":
            module = parse(source)
            try:
                dump = [class_to_dict(c) for c in module.classes]
                text = json.dumps(dump, indent=2)
            except RecursionError:
                print("error: method bodies nested too deeply to dump", file=sys.stderr)
                return (1, {})
            return (0, {"parse.json": text + "\n"})
        compilation = compile_source(source, options, generate=args.stop_at is None)
    except CleaveError as e:
        print(str(e), file=sys.stderr)
        return (1, {})
    _print_diagnostics(compilation.diagnostics.items)
    if compilation.diagnostics.errors():
        return (1, {})
    split_pass = compilation.split_pass
    assert split_pass is not None
    if args.stop_at == "classify":
        dump = placements_to_dict(split_pass.placements)
        return (0, {"classify.json": json.dumps(dump, indent=2) + "\n"})
    if args.stop_at == "rewrite":
        rewrite_dump: dict[str, object] = {
            "target": options.target.value,
            "classes": [class_to_dict(c, with_body=False) for c in compilation.classes],
            "registry": registry_to_list(split_pass.registry),
        }
        return (0, {"rewrite.json": json.dumps(rewrite_dump, indent=2) + "\n"})
    return (0, compilation.outputs)


def _take_value(argv: list[str], i: int) -> str:
    if i + 1 >= len(argv):
        print("error: " + argv[i] + " requires an argument", file=sys.stderr)
        sys.exit(2)
    return argv[i + 1]


def parse_args(argv: list[str]) -> CliArgs:
    """Parse command-line arguments."""
    args = CliArgs()
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            sys.exit(0)
        elif arg == "--target":
            args.target = _take_value(argv, i)
            i += 2
        elif arg == "--name":
            args.name = _take_value(argv, i)
            i += 2
        elif arg == "--instance":
            args.instance_name = _take_value(argv, i)
            i += 2
        elif arg == "--compatibility-date":
            args.compatibility_date = _take_value(argv, i)
            i += 2
        elif arg == "--stop-at":
            args.stop_at = _take_value(argv, i)
            i += 2
        elif arg == "-o" or arg == "--out-dir":
            args.out_dir = _take_value(argv, i)
            i += 2
        elif arg == "--dce":
            args.dce = True
            i += 1
        elif arg.startswith("-"):
            print("error: unknown flag '" + arg + "'", file=sys.stderr)
            sys.exit(2)
        else:
            if args.input_file is not None:
                print("error: unexpected argument '" + arg + "'", file=sys.stderr)
                sys.exit(2)
            args.input_file = arg
            i += 1
    if args.stop_at is not None and args.stop_at not in PHASES:
        print("error: unknown phase '" + args.stop_at + "'", file=sys.stderr)
        sys.exit(2)
    if args.target not in TARGETS:
        print("error: unknown target '" + args.target + "'", file=sys.stderr)
        sys.exit(2)
    if args.name is not None:
        problem = program_name_problem(args.name)
        if problem is not None:
            print("error: --name " + problem, file=sys.stderr)
            sys.exit(2)
    return args


def main() -> int:
    """Main entry point."""
    args = parse_args(sys.argv[1:])
    source, err = read_source(args.input_file)
    if err != 0:
        return err
    if len(source) == 0:
        print("error: no input provided", file=sys.stderr)
        return 2
    exit_code, outputs = run_pipeline(source, args)
    if exit_code != 0:
        return exit_code
    return write_outputs(outputs, args.out_dir)


if __name__ == "__main__":
    sys.exit(main())
