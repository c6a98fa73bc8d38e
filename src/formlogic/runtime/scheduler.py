"""
Rule scheduler: decide which rules an external event makes eligible.

Selection policy:
- Load:          every `immediate` rule
- Change(field): `on_change` rules reading the field, plus every rule
                 transitively downstream of them, whatever its trigger
- Blur(field):   `on_blur` rules reading the field, no cascade
- Submit:        every `on_submit` rule

The selected batch is returned in graph order. Selection only decides which
rules are *scheduled* (and so may navigate); derived state always comes from
a full pass over every enabled rule (see formlogic.runtime.executor).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Set

from formlogic.core.rules import RuleTrigger
from formlogic.graph.dependencies import CompiledGraph


logger = logging.getLogger(__name__)


class TriggerKind(str, Enum):
    LOAD = "load"
    CHANGE = "change"
    BLUR = "blur"
    SUBMIT = "submit"


@dataclass(frozen=True)
class TriggerEvent:
    """An external event raised by the rendering surface."""

    kind: TriggerKind
    field_id: Optional[str] = None

    def __post_init__(self):
        needs_field = self.kind in (TriggerKind.CHANGE, TriggerKind.BLUR)
        if needs_field and not self.field_id:
            raise ValueError(f"{self.kind.value} events need a field_id")
        if not needs_field and self.field_id is not None:
            raise ValueError(f"{self.kind.value} events take no field_id")

    @classmethod
    def load(cls) -> "TriggerEvent":
        return cls(TriggerKind.LOAD)

    @classmethod
    def change(cls, field_id: str) -> "TriggerEvent":
        return cls(TriggerKind.CHANGE, field_id)

    @classmethod
    def blur(cls, field_id: str) -> "TriggerEvent":
        return cls(TriggerKind.BLUR, field_id)

    @classmethod
    def submit(cls) -> "TriggerEvent":
        return cls(TriggerKind.SUBMIT)

    def __str__(self) -> str:
        return f"{self.kind.value}({self.field_id})" if self.field_id else self.kind.value


def _with_trigger(graph: CompiledGraph, rule_ids, trigger: RuleTrigger) -> Set[str]:
    return {rule_id for rule_id in rule_ids if graph.node(rule_id).trigger == trigger}


def select_rules(graph: CompiledGraph, event: TriggerEvent) -> List[str]:
    """
    Select the rules an event schedules.

    Args:
        graph: Compiled rule graph.
        event: The external event.

    Returns:
        Rule ids in graph order.
    """
    if event.kind == TriggerKind.LOAD:
        selected = _with_trigger(graph, graph.order, RuleTrigger.IMMEDIATE)

    elif event.kind == TriggerKind.CHANGE:
        seeds = _with_trigger(graph, graph.rules_reading(event.field_id), RuleTrigger.ON_CHANGE)
        selected = seeds | graph.downstream(seeds)

    elif event.kind == TriggerKind.BLUR:
        selected = _with_trigger(graph, graph.rules_reading(event.field_id), RuleTrigger.ON_BLUR)

    else:
        selected = _with_trigger(graph, graph.order, RuleTrigger.ON_SUBMIT)

    ordered = graph.sort(selected)
    logger.debug(f"Event {event} scheduled {len(ordered)} rules: {ordered}")
    return ordered


__all__ = ["TriggerKind", "TriggerEvent", "select_rules"]
