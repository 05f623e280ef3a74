"""Random composite-tree expression generator.

Trees are grown from operator and operand vocabularies and rendered as
syntactically balanced expression strings for parser and compiler test
suites.
"""

from .composite_tree import (
    Branch,
    Leaf,
    Node,
    PopulationResult,
    Populator,
    RenderResult,
    count_branches,
    count_leaves,
    iter_leaves,
    max_leaf_depth,
    release,
    render,
)
from .config import ConfigError, GeneratorConfig, load_config
from .generator import (
    ExpressionGenerator,
    GeneratedExpression,
    GenerationSummary,
    summarize,
)
from .token_sources import (
    SENTINEL,
    FileOperandSource,
    FileOperatorSource,
    OperandSource,
    OperatorRecord,
    OperatorSource,
    SequenceOperandSource,
    SequenceOperatorSource,
    TokenSourceError,
    TokenSourceExhausted,
    TokenSourceReadFailure,
    TokenSourceUnavailable,
    open_operand_source,
    open_operator_source,
)

__all__ = [
    "Branch",
    "ConfigError",
    "ExpressionGenerator",
    "FileOperandSource",
    "FileOperatorSource",
    "GeneratedExpression",
    "GenerationSummary",
    "GeneratorConfig",
    "Leaf",
    "Node",
    "OperandSource",
    "OperatorRecord",
    "OperatorSource",
    "PopulationResult",
    "Populator",
    "RenderResult",
    "SENTINEL",
    "SequenceOperandSource",
    "SequenceOperatorSource",
    "TokenSourceError",
    "TokenSourceExhausted",
    "TokenSourceReadFailure",
    "TokenSourceUnavailable",
    "count_branches",
    "count_leaves",
    "iter_leaves",
    "load_config",
    "max_leaf_depth",
    "open_operand_source",
    "open_operator_source",
    "release",
    "render",
    "summarize",
]
