"""
Dependency graph construction for rule sets.

Compilation turns an authoring-time rule set into a read-only CompiledGraph:

1. Drop disabled rules (they are excluded entirely, not skipped later)
2. Validate each rule in rule-id order:
   empty condition groups, then dangling references, then calculate expressions
3. Extract read sets (condition fields + expression fields) and write sets
   (targets of state-writing actions; navigation actions write nothing)
4. Add an edge A -> B whenever A writes a field B reads (A != B)
5. Reject cycles, reporting the rule ids on the cycle
6. Order rules by a lexicographic topological sort keyed on rule id, so rules
   with no ordering constraint between them still get a reproducible order

The CompiledGraph is never mutated after compilation and can be shared by
every session evaluating the same rule-set version.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

import networkx as nx

from formlogic.config import EngineConfig
from formlogic.core.expressions import CompiledExpression, ExpressionParseError, parse_expression
from formlogic.core.fields import FormSchema, SchemaInput
from formlogic.core.rules import ActionType, FormLogic, LogicRule, RuleDefinitionError, RuleTrigger
from formlogic.graph.errors import (
    CompileError,
    CyclicDependency,
    DanglingFieldReference,
    EmptyConditionGroup,
    MalformedExpression,
    RuleSetTooLarge,
)
from formlogic.utils.text import stable_hash


logger = logging.getLogger(__name__)

RulesInput = Union[FormLogic, Sequence[Union[LogicRule, Dict[str, Any]]]]


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class RuleNode:
    """
    A compiled rule: the rule plus its statically derived dependencies.

    Attributes:
        rule: The authoring-time rule.
        order: Position in graph order (0-based).
        reads: Fields the rule's conditions and expressions read.
        writes: Fields the rule's state-writing actions target.
        expressions: action id -> parsed calculate expression.
    """

    rule: LogicRule
    order: int
    reads: FrozenSet[str]
    writes: FrozenSet[str]
    expressions: Mapping[str, CompiledExpression] = field(default_factory=dict, compare=False)

    @property
    def rule_id(self) -> str:
        return self.rule.id

    @property
    def trigger(self) -> RuleTrigger:
        return self.rule.trigger


class CompiledGraph:
    """
    Read-only, pre-analyzed rule set for one form and rule-set version.

    Attributes:
        schema: Form schema the rules were validated against.
        version: Stable fingerprint of the enabled rules and the schema fields.
        config: Engine configuration used at compile and evaluation time.
        form_id: Owning form, when compiled from a FormLogic document.
    """

    def __init__(
        self,
        schema: FormSchema,
        nodes: Sequence[RuleNode],
        dependency_graph: nx.DiGraph,
        version: str,
        config: EngineConfig,
        form_id: Optional[str] = None,
    ):
        self.schema = schema
        self.version = version
        self.config = config
        self.form_id = form_id
        self._nodes: Tuple[RuleNode, ...] = tuple(nodes)
        self._by_id: Dict[str, RuleNode] = {node.rule_id: node for node in self._nodes}
        self._graph = nx.freeze(dependency_graph)
        readers: Dict[str, List[str]] = {}
        for node in self._nodes:
            for field_id in node.reads:
                readers.setdefault(field_id, []).append(node.rule_id)
        self._readers = {k: tuple(v) for k, v in readers.items()}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def __repr__(self) -> str:
        return f"CompiledGraph(form_id={self.form_id!r}, rules={len(self)}, version={self.version!r})"

    @property
    def nodes(self) -> Tuple[RuleNode, ...]:
        """Rule nodes in graph order."""
        return self._nodes

    @property
    def order(self) -> List[str]:
        """Rule ids in graph order."""
        return [node.rule_id for node in self._nodes]

    @property
    def dependency_graph(self) -> nx.DiGraph:
        """Frozen networkx graph; edge A -> B means A must run before B."""
        return self._graph

    def node(self, rule_id: str) -> RuleNode:
        return self._by_id[rule_id]

    def rules_reading(self, field_id: str) -> Tuple[str, ...]:
        """Rules whose conditions or expressions read field_id, in graph order."""
        return self._readers.get(field_id, ())

    def downstream(self, rule_ids: Iterable[str]) -> Set[str]:
        """Every rule transitively downstream of rule_ids (excluding them)."""
        seeds = set(rule_ids)
        reached: Set[str] = set()
        for rule_id in seeds:
            reached |= nx.descendants(self._graph, rule_id)
        return reached - seeds

    def upstream(self, rule_id: str) -> Set[str]:
        return set(nx.ancestors(self._graph, rule_id))

    def writers_of(self, field_id: str) -> List[str]:
        """Rules with a state-writing action on field_id, in graph order."""
        return [node.rule_id for node in self._nodes if field_id in node.writes]

    def sort(self, rule_ids: Iterable[str]) -> List[str]:
        """Order a subset of rule ids by graph order."""
        wanted = set(rule_ids)
        return [node.rule_id for node in self._nodes if node.rule_id in wanted]


# =============================================================================
# ANALYSIS
# =============================================================================

def rule_reads(rule: LogicRule, expressions: Mapping[str, CompiledExpression]) -> FrozenSet[str]:
    reads = {condition.field_id for condition in rule.iter_conditions()}
    for expression in expressions.values():
        reads |= expression.field_refs
    return frozenset(reads)


def rule_writes(rule: LogicRule) -> FrozenSet[str]:
    return frozenset(
        action.target_field_id for action in rule.actions if not action.is_navigation
    )


def _normalize_rules(rules: RulesInput) -> Tuple[List[LogicRule], Optional[str]]:
    form_id: Optional[str] = None
    items: Iterable[Union[LogicRule, Dict[str, Any]]] = rules
    if isinstance(rules, FormLogic):
        items, form_id = rules.rules, rules.form_id
    normalized: List[LogicRule] = []
    seen: Set[str] = set()
    for item in items:
        rule = item if isinstance(item, LogicRule) else LogicRule.from_dict(item)
        if rule.id in seen:
            raise RuleDefinitionError(rule.id, "duplicate rule id")
        seen.add(rule.id)
        normalized.append(rule)
    return normalized, form_id


def _check_rule(
    rule: LogicRule,
    schema: FormSchema,
    config: EngineConfig,
) -> Tuple[List[CompileError], Dict[str, CompiledExpression]]:
    """Validate one rule; return its problems and parsed expressions."""
    problems: List[CompileError] = []

    for group in rule.condition_groups:
        if not group.conditions:
            problems.append(EmptyConditionGroup(rule.id, group.id))

    for condition in rule.iter_conditions():
        if condition.field_id not in schema:
            problems.append(DanglingFieldReference(rule.id, condition.field_id, "condition"))
    for action in rule.actions:
        if action.is_navigation:
            target = action.target_field_id
            if config.validate_navigation_targets and target not in schema and not schema.is_page(target):
                problems.append(DanglingFieldReference(rule.id, target, "navigation"))
        elif action.target_field_id not in schema:
            problems.append(DanglingFieldReference(rule.id, action.target_field_id, "action"))

    expressions: Dict[str, CompiledExpression] = {}
    for action in rule.actions:
        if action.type != ActionType.CALCULATE:
            continue
        try:
            expression = parse_expression(action.calculate_expression)
        except ExpressionParseError as exc:
            problems.append(MalformedExpression(rule.id, action.id, str(exc)))
            continue
        for ref in sorted(expression.field_refs):
            if ref not in schema:
                problems.append(DanglingFieldReference(rule.id, ref, "expression"))
        expressions[action.id] = expression

    return problems, expressions


def _build_graph(analyzed: Mapping[str, Tuple[FrozenSet[str], FrozenSet[str]]]) -> nx.DiGraph:
    graph = nx.DiGraph()
    rule_ids = sorted(analyzed)
    graph.add_nodes_from(rule_ids)
    for source in rule_ids:
        writes = analyzed[source][1]
        if not writes:
            continue
        for target in rule_ids:
            if target == source:
                continue
            shared = writes & analyzed[target][0]
            if shared:
                graph.add_edge(source, target, fields=tuple(sorted(shared)))
    return graph


def _find_cycle(graph: nx.DiGraph) -> Optional[List[str]]:
    try:
        edges = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        return None
    cycle = [edge[0] for edge in edges]
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


def _fingerprint(rules: Sequence[LogicRule], schema: FormSchema) -> str:
    parts = [json.dumps(rule.to_dict(), sort_keys=True, default=str) for rule in rules]
    parts.append(json.dumps([asdict(spec) for spec in schema.fields], sort_keys=True, default=str))
    parts.append(json.dumps(list(schema.pages)))
    return stable_hash(parts)


# =============================================================================
# PUBLIC API
# =============================================================================

def lint_rules(
    rules: RulesInput,
    schema: SchemaInput,
    config: Optional[EngineConfig] = None,
) -> List[CompileError]:
    """
    Return every compile problem in the rule set instead of raising.

    Problems are ordered by rule id, then by kind within a rule; a cycle, if
    any, is reported last. Only enabled rules are checked.
    """
    config = config or EngineConfig.from_env()
    form_schema = FormSchema.coerce(schema)
    all_rules, _ = _normalize_rules(rules)
    enabled = sorted((r for r in all_rules if r.enabled), key=lambda r: r.id)

    problems: List[CompileError] = []
    if config.max_rules is not None and len(enabled) > config.max_rules:
        problems.append(RuleSetTooLarge(len(enabled), config.max_rules))

    analyzed: Dict[str, Tuple[FrozenSet[str], FrozenSet[str]]] = {}
    for rule in enabled:
        rule_problems, expressions = _check_rule(rule, form_schema, config)
        problems.extend(rule_problems)
        analyzed[rule.id] = (rule_reads(rule, expressions), rule_writes(rule))

    cycle = _find_cycle(_build_graph(analyzed))
    if cycle:
        problems.append(CyclicDependency(cycle))
    return problems


def compile_rules(
    rules: RulesInput,
    schema: SchemaInput,
    config: Optional[EngineConfig] = None,
) -> CompiledGraph:
    """
    Compile a rule set against a form schema.

    Args:
        rules: FormLogic document, LogicRules, or raw rule dicts.
        schema: FormSchema, FieldSpecs, field documents, or bare field ids.
        config: Engine configuration; defaults to EngineConfig.from_env().

    Returns:
        CompiledGraph ready for evaluation.

    Raises:
        CompileError: The first problem found (see lint_rules for ordering).
        RuleDefinitionError: A raw rule dict is malformed.
    """
    config = config or EngineConfig.from_env()
    form_schema = FormSchema.coerce(schema)
    all_rules, form_id = _normalize_rules(rules)
    enabled = sorted((r for r in all_rules if r.enabled), key=lambda r: r.id)
    skipped = len(all_rules) - len(enabled)
    if skipped:
        logger.debug(f"Excluded {skipped} disabled rules from compilation")

    if config.max_rules is not None and len(enabled) > config.max_rules:
        raise RuleSetTooLarge(len(enabled), config.max_rules)

    analyzed: Dict[str, Tuple[FrozenSet[str], FrozenSet[str]]] = {}
    parsed: Dict[str, Dict[str, CompiledExpression]] = {}
    for rule in enabled:
        problems, expressions = _check_rule(rule, form_schema, config)
        if problems:
            raise problems[0]
        parsed[rule.id] = expressions
        analyzed[rule.id] = (rule_reads(rule, expressions), rule_writes(rule))

    graph = _build_graph(analyzed)
    cycle = _find_cycle(graph)
    if cycle:
        raise CyclicDependency(cycle)

    by_id = {rule.id: rule for rule in enabled}
    order = list(nx.lexicographical_topological_sort(graph, key=str))
    nodes = [
        RuleNode(
            rule=by_id[rule_id],
            order=idx,
            reads=analyzed[rule_id][0],
            writes=analyzed[rule_id][1],
            expressions=parsed[rule_id],
        )
        for idx, rule_id in enumerate(order)
    ]
    version = _fingerprint([by_id[rule_id] for rule_id in order], form_schema)
    logger.info(
        f"Compiled {len(nodes)} rules ({graph.number_of_edges()} dependency edges) "
        f"for form {form_id or '<unnamed>'}, version {version}"
    )
    return CompiledGraph(
        schema=form_schema,
        nodes=nodes,
        dependency_graph=graph,
        version=version,
        config=config,
        form_id=form_id,
    )


__all__ = [
    "RuleNode",
    "CompiledGraph",
    "RulesInput",
    "rule_reads",
    "rule_writes",
    "lint_rules",
    "compile_rules",
]
