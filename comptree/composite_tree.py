"""Composite tree model with random population and text rendering.

A tree is made of two node variants:

* ``Branch`` – an ordered list of children plus ``pre``/``inter``/``post``
  fragments drawn from the operator vocabulary.
* ``Leaf`` – a single operand ``name`` together with the ``depth`` at which it
  was created (the number of branch ancestors, root included).

``Populator`` grows a tree below an empty root branch, ``render`` walks the
finished tree emitting fragments in order, and ``release`` tears it down while
accounting for every leaf.  Node counts and depths are never stored on the
tree; population and rendering return them as values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import random
from typing import Callable, Iterator, List, Optional, Tuple, Union

from .token_sources import (
    SENTINEL,
    OperandSource,
    OperatorRecord,
    OperatorSource,
    TokenSourceReadFailure,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_NODES = 20
DEFAULT_MAX_DEPTH = 7
DEFAULT_BRANCH_PROBABILITY = 0.5
DEFAULT_FALLBACK_OPERAND = "0"

Sink = Callable[[str], None]


@dataclass(slots=True)
class Leaf:
    """Terminal node carrying one operand token."""

    name: str = ""
    depth: int = 0


@dataclass(slots=True)
class Branch:
    """Interior node owning its children in render order."""

    pre: str = SENTINEL
    inter: str = SENTINEL
    post: str = SENTINEL
    children: List["Node"] = field(default_factory=list)


Node = Union[Branch, Leaf]


@dataclass(frozen=True)
class PopulationResult:
    """Outcome of populating a subtree.

    ``leaf_count`` is the running total of leaves created in the whole tree so
    far, ``max_depth`` the deepest leaf inside the populated subtree.
    """

    leaf_count: int
    max_depth: int


@dataclass(frozen=True)
class RenderResult:
    """Fragments emitted while rendering a tree and the deepest leaf seen."""

    fragments: Tuple[str, ...]
    max_depth: int

    @property
    def text(self) -> str:
        return "".join(self.fragments)


def _unknown_variant(node: object) -> TypeError:
    return TypeError(f"Unrecognised node variant: {type(node).__name__}")


class Populator:
    """Randomly grow composite trees from operator and operand vocabularies.

    Parameters
    ----------
    operators, operands:
        Token sources consulted once per branch and once per leaf.
    max_nodes:
        A new child may only become a branch while fewer than ``max_nodes``
        leaves exist in the tree.
    max_depth:
        A new child may only become a branch while the current depth is below
        ``max_depth``.
    branch_probability:
        Odds of a child slot becoming a branch when both caps allow it.
    rng:
        Random number generator, ``random.Random()`` when omitted.
    strict:
        When ``True`` a :class:`TokenSourceReadFailure` propagates.  Otherwise
        it is logged and a best-effort token is substituted.
    fallback_operand, sentinel:
        Tokens used for those substitutions.

    Caps are only checked when a child slot is decided.  A branch picked just
    below ``max_nodes`` still receives its full set of children, so the final
    leaf count can overshoot ``max_nodes``.
    """

    def __init__(
        self,
        operators: OperatorSource,
        operands: OperandSource,
        *,
        max_nodes: int = DEFAULT_MAX_NODES,
        max_depth: int = DEFAULT_MAX_DEPTH,
        branch_probability: float = DEFAULT_BRANCH_PROBABILITY,
        rng: Optional[random.Random] = None,
        strict: bool = False,
        fallback_operand: str = DEFAULT_FALLBACK_OPERAND,
        sentinel: str = SENTINEL,
    ) -> None:
        for label, limit in (("max_nodes", max_nodes), ("max_depth", max_depth)):
            if not isinstance(limit, int) or isinstance(limit, bool):
                raise TypeError(f"{label} must be an integer")
            if limit < 0:
                raise ValueError(f"{label} must be non-negative")
        if not 0.0 <= branch_probability <= 1.0:
            raise ValueError("branch_probability must lie within [0, 1]")

        self._operators = operators
        self._operands = operands
        self.max_nodes = max_nodes
        self.max_depth = max_depth
        self.branch_probability = branch_probability
        self.strict = strict
        self.fallback_operand = fallback_operand
        self.sentinel = sentinel
        self._rng = rng if rng is not None else random.Random()

    def populate(self, node: Node, depth: int = 0, leaf_count: int = 0) -> PopulationResult:
        """Fill ``node`` (and, for a branch, everything below it).

        ``depth`` is the depth tracker value before entering ``node``; a branch
        raises it by one for its children, a leaf records it as-is.
        """

        if isinstance(node, Branch):
            return self._populate_branch(node, depth + 1, leaf_count)
        if isinstance(node, Leaf):
            return self._populate_leaf(node, depth, leaf_count)
        raise _unknown_variant(node)

    def _populate_branch(self, branch: Branch, depth: int, leaf_count: int) -> PopulationResult:
        record = self._next_operator()
        branch.pre, branch.inter, branch.post = record.pre, record.inter, record.post

        low, high = record.child_range
        child_count = self._rng.randint(low, high)
        deepest = 0
        for _ in range(child_count):
            # Coin first: one draw per child slot regardless of the caps.
            coin = self._rng.random() < self.branch_probability
            child: Node
            if coin and leaf_count < self.max_nodes and depth < self.max_depth:
                child = Branch()
            else:
                child = Leaf()
            branch.children.append(child)

            result = self.populate(child, depth, leaf_count)
            leaf_count = result.leaf_count
            deepest = max(deepest, result.max_depth)
        return PopulationResult(leaf_count=leaf_count, max_depth=deepest)

    def _populate_leaf(self, leaf: Leaf, depth: int, leaf_count: int) -> PopulationResult:
        leaf.depth = depth
        leaf.name = self._next_operand()
        return PopulationResult(leaf_count=leaf_count + 1, max_depth=depth)

    def _next_operator(self) -> OperatorRecord:
        try:
            return self._operators.next_operator()
        except TokenSourceReadFailure as exc:
            if self.strict:
                raise
            logger.warning("Operator read failed, substituting a pass-through branch: %s", exc)
            return OperatorRecord.passthrough(self.sentinel)

    def _next_operand(self) -> str:
        try:
            return self._operands.next_operand()
        except TokenSourceReadFailure as exc:
            if self.strict:
                raise
            logger.warning(
                "Operand read failed, substituting %r: %s", self.fallback_operand, exc
            )
            return self.fallback_operand


def _is_suppressed(fragment: str, sentinel: str) -> bool:
    return not fragment or fragment == sentinel


def _express(node: Node, emit: Sink, sentinel: str) -> int:
    if isinstance(node, Branch):
        deepest = 0
        if not _is_suppressed(node.pre, sentinel):
            emit(node.pre)
        last = len(node.children) - 1
        for index, child in enumerate(node.children):
            deepest = max(deepest, _express(child, emit, sentinel))
            if index < last and not _is_suppressed(node.inter, sentinel):
                emit(node.inter)
        if not _is_suppressed(node.post, sentinel):
            emit(node.post)
        return deepest
    if isinstance(node, Leaf):
        emit(node.name)
        return node.depth
    raise _unknown_variant(node)


def render(node: Node, sink: Optional[Sink] = None, *, sentinel: str = SENTINEL) -> RenderResult:
    """Render ``node`` as an ordered sequence of text fragments.

    Fragments equal to ``sentinel`` (or empty) are skipped.  Each emitted
    fragment is passed to ``sink`` as soon as it is produced.
    """

    fragments: List[str] = []

    def emit(fragment: str) -> None:
        fragments.append(fragment)
        if sink is not None:
            sink(fragment)

    deepest = _express(node, emit, sentinel)
    return RenderResult(fragments=tuple(fragments), max_depth=deepest)


def release(node: Node, leaf_count: int) -> int:
    """Detach every node below ``node`` and return ``leaf_count`` minus its leaves."""

    if isinstance(node, Branch):
        for child in node.children:
            leaf_count = release(child, leaf_count)
        node.children.clear()
        return leaf_count
    if isinstance(node, Leaf):
        return leaf_count - 1
    raise _unknown_variant(node)


def iter_leaves(node: Node) -> Iterator[Leaf]:
    """Yield leaves left to right."""

    if isinstance(node, Leaf):
        yield node
    elif isinstance(node, Branch):
        for child in node.children:
            yield from iter_leaves(child)
    else:
        raise _unknown_variant(node)


def count_leaves(node: Node) -> int:
    return sum(1 for _ in iter_leaves(node))


def count_branches(node: Node) -> int:
    if isinstance(node, Leaf):
        return 0
    if isinstance(node, Branch):
        return 1 + sum(count_branches(child) for child in node.children)
    raise _unknown_variant(node)


def max_leaf_depth(node: Node) -> int:
    """Return the largest depth stored on any leaf, ``0`` for leafless trees."""

    return max((leaf.depth for leaf in iter_leaves(node)), default=0)


__all__ = [
    "Branch",
    "DEFAULT_BRANCH_PROBABILITY",
    "DEFAULT_FALLBACK_OPERAND",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_NODES",
    "Leaf",
    "Node",
    "PopulationResult",
    "Populator",
    "RenderResult",
    "Sink",
    "count_branches",
    "count_leaves",
    "iter_leaves",
    "max_leaf_depth",
    "release",
    "render",
]
