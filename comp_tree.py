"""Command line driver for the composite tree expression generator.

Reads an operator vocabulary and an operand vocabulary, then prints randomly
generated expressions, one per line::

    python comp_tree.py data/operators.txt data/operands.txt --count 5

Each line follows the ``--config`` ``line_template`` (by default
``what = <expression>; /* <nodes> <depth> */``).  Both vocabularies are opened
before the first expression is generated; if either cannot be opened the
command reports the failure and exits with status 1.
"""

from __future__ import annotations

import argparse
from contextlib import ExitStack
import logging
from pathlib import Path
import sys
from typing import List, Optional, Sequence, TextIO

from rich.console import Console
from rich.table import Table

from comptree import (
    ConfigError,
    ExpressionGenerator,
    GeneratedExpression,
    GenerationSummary,
    GeneratorConfig,
    TokenSourceReadFailure,
    TokenSourceUnavailable,
    load_config,
    open_operand_source,
    open_operator_source,
    summarize,
)

logger = logging.getLogger("comp_tree")


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value, 10)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("value must be non-negative")
    return parsed


def _probability(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from exc
    if not 0.0 <= parsed <= 1.0:
        raise argparse.ArgumentTypeError("probability must lie within [0, 1]")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate random, syntactically valid expressions from a composite tree.",
    )
    parser.add_argument("operators", type=Path, help="Operator vocabulary: 'pre inter post low high' records")
    parser.add_argument("operands", type=Path, help="Operand vocabulary: whitespace separated tokens")
    parser.add_argument("--count", type=_non_negative_int, default=None, help="Number of expressions to generate (default: 25)")
    parser.add_argument("--max-nodes", type=_non_negative_int, default=None, help="Leaf count below which new branches may be created (default: 20)")
    parser.add_argument("--max-depth", type=_non_negative_int, default=None, help="Depth below which new branches may be created (default: 7)")
    parser.add_argument("--branch-probability", type=_probability, default=None, help="Odds of a child becoming a branch (default: 0.5)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible output")
    parser.add_argument("--sentinel", default=None, help="Operator token meaning 'emit nothing' (default: '.')")
    parser.add_argument("--config", type=Path, default=None, help="YAML or JSON file with generator settings")
    parser.add_argument("--output", type=Path, default=None, help="Write expressions to this file instead of stdout")
    parser.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Abort on token read failures instead of substituting fallback tokens; --no-strict overrides the config file",
    )
    parser.add_argument("--summary", action="store_true", help="Print a summary table to stderr")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity for diagnostic output.",
    )
    return parser


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING))


def _resolve_config(args: argparse.Namespace) -> GeneratorConfig:
    """Layer command line overrides on top of the optional config file."""

    base = load_config(args.config) if args.config is not None else GeneratorConfig()
    return base.with_overrides(
        count=args.count,
        max_nodes=args.max_nodes,
        max_depth=args.max_depth,
        branch_probability=args.branch_probability,
        seed=args.seed,
        sentinel=args.sentinel,
        strict=args.strict,
    )


def _render_summary(summary: GenerationSummary, console: Optional[Console] = None) -> None:
    """Print a Rich table summarising the generated batch."""

    console = console if console is not None else Console(stderr=True)
    table = Table(title="Generation Summary")
    table.add_column("Metric", justify="left")
    table.add_column("Value", justify="right")
    table.add_row("Expressions", str(summary.cycles))
    table.add_row("Mean nodes", f"{summary.mean_nodes:.2f}")
    table.add_row("Largest node count", str(summary.largest_node_count))
    table.add_row("Deepest tree", str(summary.deepest))
    for depth, occurrences in summary.depth_histogram.items():
        table.add_row(f"Depth {depth}", str(occurrences))
    console.print(table)


def _write_expressions(
    generator: ExpressionGenerator, output: TextIO, template: str
) -> List[GeneratedExpression]:
    produced: List[GeneratedExpression] = []
    for expression in generator.generate():
        output.write(expression.format_line(template) + "\n")
        produced.append(expression)
    return produced


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point; returns the process exit status."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    try:
        config = _resolve_config(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    with ExitStack() as stack:
        try:
            operators = stack.enter_context(open_operator_source(args.operators))
            operands = stack.enter_context(open_operand_source(args.operands))
        except TokenSourceUnavailable as exc:
            logger.error("Failed to open input files: %s", exc)
            return 1

        if args.output is None:
            output: TextIO = sys.stdout
        else:
            try:
                output = stack.enter_context(args.output.open("w", encoding="utf-8"))
            except OSError as exc:
                logger.error("Failed to open output file %s: %s", args.output, exc)
                return 1

        generator = ExpressionGenerator(operators, operands, config)
        try:
            produced = _write_expressions(generator, output, config.line_template)
        except TokenSourceReadFailure as exc:
            logger.error("Generation aborted: %s", exc)
            return 1

    logger.info("Generated %d expressions", len(produced))
    if args.summary:
        _render_summary(summarize(produced))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
