"""Local deterministic agent for CLI provider tests and demos."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    """Echo the prompt back on stdout, or fail with a given exit code."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--prompt-file", default=None)
    parser.add_argument("--model", default="")
    parser.add_argument("--fail-with", type=int, default=0)
    parser.add_argument("prompt", nargs="?", default="")
    args = parser.parse_args(argv)

    prompt = Path(args.prompt_file).read_text("utf-8") if args.prompt_file else args.prompt
    if args.fail_with:
        sys.stderr.write(f"echo agent failure: {prompt.strip()}\n")
        return args.fail_with

    prefix = f"echo[{args.model}]" if args.model else "echo"
    sys.stdout.write(f"{prefix}: {prompt.strip()}\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
