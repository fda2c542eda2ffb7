#!/usr/bin/env python3
"""
Diffscope CLI - diff-to-context extraction for LLM code review.

Usage:
    diffscope extract <diff> --path <file>     Blocks, numbered diff, token budget
    diffscope numbered <diff> --path <file>    Line-numbered diff only
    diffscope tokens <file>                    Token count of a text file

<diff> is a file holding one file's unified diff, or "-" for stdin.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .modules.core.config import ExtractionConfig
from .modules.core.diff_parser import parse_diff, render_numbered_diff
from .modules.core.engines.extract import FileChange, prepare_file_context
from .modules.core.errors import ERR_CONFIG, ERR_INTERNAL, make_error, make_not_found_error
from .modules.core.prompt import load_system_prompt
from .modules.core.token_utils import count_tokens, estimate_tokens


def _machine_output(result: dict | list, args) -> None:
    """Print result in machine-readable format if --machine flag is set.

    For --machine mode, wraps result in success envelope:
    {"success": true, "result": <result>}

    Otherwise prints with standard indentation.
    """
    if getattr(args, "machine", False):
        wrapped = {"success": True, "result": result}
        print(json.dumps(wrapped, separators=(",", ":"), ensure_ascii=False))
    else:
        print(json.dumps(result, indent=2, ensure_ascii=False))


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _config_from_args(args) -> ExtractionConfig:
    config = ExtractionConfig.from_env()
    extensions = None
    if getattr(args, "extensions", None):
        extensions = tuple(part for part in args.extensions.split(",") if part.strip())
    return config.with_overrides(
        max_block_chars=getattr(args, "max_chars", None),
        max_block_lines=getattr(args, "max_lines", None),
        parse_timeout_ms=getattr(args, "timeout_ms", None),
        max_depth=getattr(args, "max_depth", None),
        window_radius=getattr(args, "radius", None),
        model=getattr(args, "model", None),
        model_token_ceiling=getattr(args, "max_tokens", None),
        reserved_output_tokens=getattr(args, "reserved", None),
        supported_extensions=extensions,
        exact_tokens=False if getattr(args, "estimate", False) else None,
    )


def _add_diff_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("diff", help="File with the unified diff of one file, or - for stdin")
    p.add_argument("--path", required=True, help="New path of the changed file")
    p.add_argument("--old-path", default=None, help="Old path when the file was renamed")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="diffscope",
        description="Diff-to-context extraction for LLM code review",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Version: %(prog)s """ + __version__ + """

Examples:
    git diff -- src/app.ts | diffscope extract - --path src/app.ts
    diffscope --machine extract change.diff --path app.py --max-lines 80
    diffscope numbered change.diff --path app.py
    diffscope tokens prompt.txt --model gpt-4o

Configuration:
    Defaults come from DIFFSCOPE_* environment variables
    (e.g. DIFFSCOPE_AST_MAX_CHARS, DIFFSCOPE_MAX_TOKENS); flags override them.
        """,
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--machine",
        action="store_true",
        help="Machine-readable output (forces JSON with consistent schema and error codes)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log to stderr (-v info, -vv debug)",
    )

    # Shell completion support
    try:
        import shtab
        shtab.add_argument_to(parser, ["--print-completion", "-s"])
    except ImportError:
        pass  # shtab is optional

    subparsers = parser.add_subparsers(dest="command", required=True)

    # diffscope extract <diff> --path FILE
    extract_p = subparsers.add_parser(
        "extract", help="Extract enclosing blocks and check the token budget"
    )
    _add_diff_args(extract_p)
    extract_p.add_argument("--max-chars", type=int, default=None, help="Per-block character ceiling")
    extract_p.add_argument("--max-lines", type=int, default=None, help="Per-block line ceiling")
    extract_p.add_argument("--radius", type=int, default=None, help="Window radius around changed lines")
    extract_p.add_argument("--timeout-ms", type=int, default=None, help="Parse wall-clock budget")
    extract_p.add_argument("--max-depth", type=int, default=None, help="Tree traversal depth ceiling")
    extract_p.add_argument("--model", default=None, help="Model name for tokenization")
    extract_p.add_argument("--max-tokens", type=int, default=None, help="Model context ceiling")
    extract_p.add_argument("--reserved", type=int, default=None, help="Tokens reserved for output")
    extract_p.add_argument(
        "--extensions", default=None, help="Comma-separated supported extensions (e.g. ts,tsx,py)"
    )
    extract_p.add_argument("--system-prompt", default=None, help="File with a custom system prompt")
    extract_p.add_argument("--context", default=None, help="Additional context to include in the prompt")
    extract_p.add_argument("--include-prompt", action="store_true", help="Include the full prompt")
    extract_p.add_argument("--estimate", action="store_true", help="Use the fast token estimate")

    # diffscope numbered <diff> --path FILE
    numbered_p = subparsers.add_parser("numbered", help="Render the line-numbered diff")
    _add_diff_args(numbered_p)

    # diffscope tokens <file>
    tokens_p = subparsers.add_parser("tokens", help="Count tokens in a text file")
    tokens_p.add_argument("file", help="Text file, or - for stdin")
    tokens_p.add_argument("--model", default=None, help="Model name for tokenization")
    tokens_p.add_argument("--estimate", action="store_true", help="Use the fast token estimate")

    return parser


def _setup_logging(verbosity: int) -> None:
    if verbosity <= 0:
        return
    logging.basicConfig(
        level=logging.DEBUG if verbosity > 1 else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _report_error(args, payload: dict, exc: Exception) -> int:
    if getattr(args, "machine", False):
        print(json.dumps(payload))
    else:
        print(f"Error: {exc}", file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        if args.command == "extract":
            config = _config_from_args(args)
            change = FileChange(new_path=args.path, diff=_read_input(args.diff), old_path=args.old_path)
            system_prompt = load_system_prompt(args.system_prompt) if args.system_prompt else None
            context = prepare_file_context(
                change,
                config,
                system_prompt=system_prompt,
                additional_context=args.context,
            )
            _machine_output(context.to_dict(include_prompt=args.include_prompt), args)

        elif args.command == "numbered":
            parsed = parse_diff(_read_input(args.diff), args.path, args.old_path)
            numbered = render_numbered_diff(parsed)
            if args.machine:
                _machine_output({"file_path": args.path, "numbered_diff": numbered}, args)
            else:
                print(numbered)

        elif args.command == "tokens":
            text = _read_input(args.file)
            model = args.model or ExtractionConfig.from_env().model
            tokens = estimate_tokens(text) if args.estimate else count_tokens(text, model)
            _machine_output(
                {"file": args.file, "model": model, "tokens": tokens, "estimated": args.estimate},
                args,
            )

    except FileNotFoundError as e:
        return _report_error(args, make_not_found_error("file", e.filename or str(e)), e)
    except ValueError as e:
        return _report_error(args, make_error(ERR_CONFIG, str(e)), e)
    except Exception as e:
        return _report_error(args, make_error(ERR_INTERNAL, str(e)), e)
    return 0


if __name__ == "__main__":
    sys.exit(main())
