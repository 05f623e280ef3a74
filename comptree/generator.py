"""Generation cycles: build, populate, render and release composite trees."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import logging
import random
from typing import Dict, Iterable, Iterator, Optional, Tuple

from .composite_tree import (
    Branch,
    Populator,
    Sink,
    count_leaves,
    release,
    render,
)
from .config import DEFAULT_LINE_TEMPLATE, GeneratorConfig
from .token_sources import OperandSource, OperatorSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedExpression:
    """One rendered expression together with its structural metrics."""

    text: str
    fragments: Tuple[str, ...]
    node_count: int
    max_depth: int

    def format_line(self, template: str = DEFAULT_LINE_TEMPLATE) -> str:
        return template.format(
            expression=self.text,
            node_count=self.node_count,
            max_depth=self.max_depth,
        )


@dataclass(frozen=True)
class GenerationSummary:
    """Aggregate metrics across a batch of generated expressions."""

    cycles: int
    total_nodes: int
    largest_node_count: int
    deepest: int
    depth_histogram: Dict[int, int] = field(default_factory=dict)

    @property
    def mean_nodes(self) -> float:
        if not self.cycles:
            return 0.0
        return self.total_nodes / self.cycles


def summarize(expressions: Iterable[GeneratedExpression]) -> GenerationSummary:
    """Collect node and depth statistics for ``expressions``."""

    cycles = 0
    total_nodes = 0
    largest = 0
    depths: Counter[int] = Counter()
    for expression in expressions:
        cycles += 1
        total_nodes += expression.node_count
        largest = max(largest, expression.node_count)
        depths[expression.max_depth] += 1
    return GenerationSummary(
        cycles=cycles,
        total_nodes=total_nodes,
        largest_node_count=largest,
        deepest=max(depths, default=0),
        depth_histogram=dict(sorted(depths.items())),
    )


class ExpressionGenerator:
    """Run generation cycles against a pair of token sources.

    Each cycle builds a fresh root branch, populates it, renders it and then
    releases it.  The leaf count reported by population is checked against an
    independent traversal, and release must bring it back to zero; either
    mismatch is a programming error and raises ``AssertionError``.
    """

    def __init__(
        self,
        operators: OperatorSource,
        operands: OperandSource,
        config: Optional[GeneratorConfig] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config if config is not None else GeneratorConfig()
        if rng is None:
            rng = random.Random(self.config.seed)
        self._populator = Populator(
            operators,
            operands,
            max_nodes=self.config.max_nodes,
            max_depth=self.config.max_depth,
            branch_probability=self.config.branch_probability,
            rng=rng,
            strict=self.config.strict,
            fallback_operand=self.config.fallback_operand,
            sentinel=self.config.sentinel,
        )

    def generate_one(self, sink: Optional[Sink] = None) -> GeneratedExpression:
        """Run a single cycle, streaming fragments to ``sink`` when given."""

        root = Branch()
        population = self._populator.populate(root)

        observed = count_leaves(root)
        if observed != population.leaf_count:
            raise AssertionError(
                "Population miscounted leaves: "
                f"reported={population.leaf_count}, observed={observed}"
            )

        rendered = render(root, sink, sentinel=self.config.sentinel)

        remaining = release(root, population.leaf_count)
        if remaining != 0:
            raise AssertionError(f"Release left {remaining} leaves unaccounted for")

        logger.debug(
            "Generated expression with %d nodes, max depth %d",
            population.leaf_count,
            rendered.max_depth,
        )
        return GeneratedExpression(
            text=rendered.text,
            fragments=rendered.fragments,
            node_count=population.leaf_count,
            max_depth=rendered.max_depth,
        )

    def generate(
        self, count: Optional[int] = None, sink: Optional[Sink] = None
    ) -> Iterator[GeneratedExpression]:
        """Return an iterator over ``count`` expressions (``config.count`` by default).

        A negative ``count`` raises ``ValueError`` here, before iteration starts.
        """

        total = self.config.count if count is None else count
        if total < 0:
            raise ValueError("count must be non-negative")
        return self._iter_expressions(total, sink)

    def _iter_expressions(self, total: int, sink: Optional[Sink]) -> Iterator[GeneratedExpression]:
        for _ in range(total):
            yield self.generate_one(sink)


__all__ = [
    "ExpressionGenerator",
    "GeneratedExpression",
    "GenerationSummary",
    "summarize",
]
