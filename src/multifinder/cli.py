"""Command line tools for counting and replacing patterns in a stream."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import Any, BinaryIO

import httpx

from . import __version__
from .config import DEFAULT_LOG_LEVEL, DEFAULT_READ_SIZE, LOG_LEVELS, PatternRule, load_rules
from .consumers import MatchCounter, Replacer
from .errors import ConfigError
from .sources import iter_bytes_chunks, iter_file_chunks, stream_url

LOGGER = logging.getLogger(__name__)

COMMANDS = ("count", "replace")
# Options whose value is the next argument.
VALUE_OPTIONS = frozenset(
    {"-f", "--file", "-t", "--text", "-u", "--url", "-o", "--output", "--chunk-size", "--rules"}
)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("value must be positive")
    return number


class _CaseAction(argparse.Action):
    """Set the case mode used by the patterns that follow."""

    def __init__(self, option_strings: Sequence[str], dest: str, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        setattr(namespace, self.dest, self.const)


class _PatternAction(argparse.Action):
    """Append a pattern with the case mode in effect at its position."""

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        entries = list(getattr(namespace, self.dest, None) or [])
        entries.append({"pattern": values, "case_insensitive": bool(namespace.ignore_case)})
        setattr(namespace, self.dest, entries)


class _ReplacementAction(argparse.Action):
    """Attach a replacement to the pattern registered just before it."""

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        entries = list(getattr(namespace, self.dest, None) or [])
        if not entries or "replacement" in entries[-1]:
            parser.error(f"{option_string} must follow a pattern")
        entries[-1] = {**entries[-1], "replacement": values}
        setattr(namespace, self.dest, entries)


def _pattern_options(values: Sequence[str], pair: bool) -> list[str]:
    if not values:
        return ["--pattern"]
    options = [f"--pattern={values[0]}"]
    if pair and len(values) > 1:
        options.append(f"--replacement={values[1]}")
    return options


def order_pattern_arguments(command: str, tokens: Sequence[str]) -> list[str]:
    """Rewrite bare patterns and ``-p`` values of a command as ``--pattern=`` options.

    argparse applies options in command line order, so after the rewrite
    patterns keep their relative order and ``-i``/``-c`` only affect the
    patterns after them. The value of ``-p`` is taken verbatim, even when it
    starts with ``-``. For ``replace`` each pattern takes the next argument as
    its replacement. Everything after ``--`` is a pattern.
    """

    pair = command == "replace"
    width = 2 if pair else 1
    result: list[str] = []
    bare_only = False
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if token == "--" and not bare_only:
            bare_only = True
            continue
        if bare_only or token == "-" or not token.startswith("-"):
            head = [token]
        elif token in ("-p", "--pattern"):
            head = []
        elif token.startswith("--pattern="):
            head = [token.partition("=")[2]]
        elif token.startswith("-p"):
            head = [token[2:]]
        else:
            result.append(token)
            if token in VALUE_OPTIONS and index < len(tokens):
                result.append(tokens[index])
                index += 1
            continue
        values = [*head, *tokens[index : index + width - len(head)]]
        index += len(values) - len(head)
        result.extend(_pattern_options(values, pair))
    return result


def _command_rules(args: argparse.Namespace) -> list[PatternRule]:
    """Return the rules of a command in priority order."""

    rules: list[PatternRule] = []
    if args.rules:
        rules.extend(load_rules(args.rules))
    for entry in args.entries or []:
        if args.command == "replace" and "replacement" not in entry:
            raise ConfigError(f"pattern '{entry['pattern']}' has no replacement")
        rules.append(PatternRule(**entry))
    return rules


def _scan_input(consumer: MatchCounter | Replacer, args: argparse.Namespace) -> int:
    """Feed the selected input to ``consumer`` and return the match count."""

    LOGGER.debug(
        "Scanning %s with %d patterns in chunks of %d bytes",
        args.url or args.file or ("text" if args.text is not None else "stdin"),
        consumer.session.pattern_count(),
        args.chunk_size,
    )
    if args.url:
        return asyncio.run(consumer.scan_async(stream_url(args.url, args.chunk_size)))
    if args.text is not None:
        return consumer.scan(iter_bytes_chunks(args.text.encode("utf-8"), args.chunk_size))
    if args.file:
        with open(args.file, "rb") as source:
            return consumer.scan(iter_file_chunks(source, args.chunk_size))
    return consumer.scan(iter_file_chunks(sys.stdin.buffer, args.chunk_size))


def _report_input_error(exc: Exception, args: argparse.Namespace) -> int:
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        request = exc.request
        detail = response.text.strip()
        message = f": {detail}" if detail else ""
        print(
            "Request to"
            f" {request.method} {request.url} failed with status {response.status_code}{message}",
            file=sys.stderr,
        )
    elif isinstance(exc, httpx.HTTPError):
        print(f"Failed to read {args.url}: {exc}", file=sys.stderr)
    else:
        print(f"Error opening input file: {args.file}: {exc}", file=sys.stderr)
    return 1


def command_count(args: argparse.Namespace) -> int:
    """Print the total and per-pattern number of matches."""

    try:
        rules = _command_rules(args)
    except ConfigError as exc:
        print(f"Invalid patterns: {exc}", file=sys.stderr)
        return 1

    counter = MatchCounter()
    for rule in rules:
        counter.add(rule.pattern, rule.case)
    try:
        total = _scan_input(counter, args)
    except (OSError, httpx.HTTPError) as exc:
        return _report_input_error(exc, args)

    print(f"{total} matches found")
    for index, count in enumerate(counter.counts, start=1):
        print(f"pattern {index} found {count} times")
    return 0


def command_replace(args: argparse.Namespace) -> int:
    """Copy the input to the output with every match replaced."""

    try:
        rules = _command_rules(args)
    except ConfigError as exc:
        print(f"Invalid patterns: {exc}", file=sys.stderr)
        return 1

    output: BinaryIO
    if args.output:
        try:
            output = open(args.output, "wb")
        except OSError as exc:
            print(f"Error opening output file: {args.output}: {exc}", file=sys.stderr)
            return 1
    else:
        output = sys.stdout.buffer

    try:
        replacer = Replacer(output)
        for rule in rules:
            replacer.add(rule.pattern, rule.replacement or "", rule.case)
        try:
            count = _scan_input(replacer, args)
        except (OSError, httpx.HTTPError) as exc:
            return _report_input_error(exc, args)
    finally:
        if args.output:
            output.close()

    if args.verbose:
        print(f"{count} matches replaced", file=sys.stderr)
    return 0


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group()
    source.add_argument("-f", "--file", help="Input file (default is to use standard input).")
    source.add_argument("-t", "--text", help="Use TEXT as search data.")
    source.add_argument("-u", "--url", help="Stream search data from an HTTP(S) URL.")
    parser.add_argument(
        "--chunk-size",
        type=_positive_int,
        default=DEFAULT_READ_SIZE,
        help="Bytes per read (overrides MULTIFINDER_READ_SIZE).",
    )
    parser.add_argument(
        "-i",
        "--ignore-case",
        dest="ignore_case",
        action=_CaseAction,
        const=True,
        default=False,
        help="Case insensitive (ASCII) matching for the patterns that follow.",
    )
    parser.add_argument(
        "-c",
        "--case-sensitive",
        dest="ignore_case",
        action=_CaseAction,
        const=False,
        default=False,
        help="Case sensitive matching for the patterns that follow (the default).",
    )
    parser.add_argument(
        "--rules",
        metavar="FILE",
        help="TOML rule file; its rules take precedence over command line patterns.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Streaming multi-pattern exact-match scanner")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=DEFAULT_LOG_LEVEL,
        help="Logging level (overrides MULTIFINDER_LOG_LEVEL).",
    )
    sub = parser.add_subparsers(dest="command")

    count_parser = sub.add_parser(
        "count",
        help="Count pattern occurrences",
        usage="%(prog)s [options] [PATTERN ...]",
        epilog="Patterns are numbered and prioritised in command line order.",
    )
    count_parser.add_argument(
        "-p",
        "--pattern",
        dest="entries",
        action=_PatternAction,
        metavar="PATTERN",
        help="Pattern to search for, even when it starts with '-'.",
    )
    _add_input_arguments(count_parser)

    replace_parser = sub.add_parser(
        "replace",
        help="Replace patterns in a stream",
        usage="%(prog)s [options] [PATTERN REPLACEMENT ...]",
        epilog="Pairs are prioritised in command line order.",
    )
    replace_parser.add_argument(
        "-p",
        "--pattern",
        dest="entries",
        action=_PatternAction,
        metavar="PATTERN",
        help="Pattern whose replacement is the next argument, even when either starts with '-'.",
    )
    replace_parser.add_argument(
        "--replacement",
        dest="entries",
        action=_ReplacementAction,
        help=argparse.SUPPRESS,
    )
    replace_parser.add_argument("-o", "--output", help="Output file (default is to use standard output).")
    replace_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print the number of replacements done.",
    )
    _add_input_arguments(replace_parser)

    return parser


def parse_arguments(parser: argparse.ArgumentParser, argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse ``argv`` keeping the command line order of the patterns."""

    arguments = list(sys.argv[1:] if argv is None else argv)
    index = 0
    while index < len(arguments):
        token = arguments[index]
        if token in COMMANDS:
            arguments[index + 1 :] = order_pattern_arguments(token, arguments[index + 1 :])
            break
        index += 2 if token == "--log-level" else 1
    return parser.parse_args(arguments)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parse_arguments(parser, argv)

    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)

    if args.command == "count":
        return command_count(args)
    if args.command == "replace":
        return command_replace(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
