import asyncio
import sys
from pathlib import Path

from lox.lox_runtime import ScriptRunner
from lox.lox_printer import Printer
from lox.lox_scanner import scan
from lox.lox_parser import parse, collect_errors
from lox.lox_resolver import resolve
from lox.lox_errors import LoxError, ScanningErrors
from lox.lox_serialize import serialize, locals_table

USAGE = "Usage: lox.py [--tokens | --ast | --locals] [--json] [file]"

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

def read_source(file_path: str) -> str:
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)

def dump_stage(stage: str, source: str, fmt: str):
    """Print the tokens, tree or resolved variables of `source` instead of running it."""
    try:
        tokens = scan(source)
        if stage == "tokens":
            value = tokens
        else:
            steps = parse(tokens)
            errors = collect_errors(steps)
            if errors:
                raise SystemExit(_report(errors))
            value = steps if stage == "ast" else locals_table(resolve(steps))
    except ScanningErrors as e:
        raise SystemExit(_report(e.errors))
    except LoxError as e:
        raise SystemExit(_report([e]))
    print(serialize(value, fmt=fmt), end="")

def _report(errors) -> int:
    for err in errors:
        print(f"Error on line {err.line}: {err.kind}: {err.message}", file=sys.stderr)
    return 1

def run_script_file(file_path: str):
    """Run a Lox script file non-interactively and exit with appropriate status."""
    source = read_source(file_path)
    runner = ScriptRunner(output=sys.stdout)
    result = runner.handle_script(source)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)

async def main():
    """Run a script file when provided, otherwise start the interactive REPL."""
    args = sys.argv[1:]
    flags = {a for a in args if a.startswith("-")}
    files = [a for a in args if not a.startswith("-")]
    stages = [s for s in ("tokens", "ast", "locals") if f"--{s}" in flags]
    unknown = flags - {"--tokens", "--ast", "--locals", "--json"}
    if unknown or len(stages) > 1 or len(files) > 1:
        print(USAGE, file=sys.stderr)
        raise SystemExit(2)

    if stages:
        source = read_source(files[0]) if files else sys.stdin.read()
        dump_stage(stages[0], source, "json" if "--json" in flags else "yaml")
        return
    if files:
        run_script_file(files[0])
        return

    print("Lox REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    # Setup
    runner = ScriptRunner()
    printer = Printer()

    # REPL Loop
    while True:
        try:
            raw = await ainput(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            result = runner.handle_script(line)

            if result.status == 'error':
                # Pretty, location-aware message
                print(result.format_error(), file=sys.stderr)
                continue

            # Print program output
            for text in result.output:
                print(text)

            # A top-level `return` hands its value back to the REPL
            if result.value is not None:
                print(printer.pformat(result.value))

        except EOFError:
            print("\nExiting.")
            break

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
