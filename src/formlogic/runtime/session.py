"""
Form-filling session: the API the rendering surface drives.

A session owns one respondent's value snapshot and current page. Each call
records the event's input, evaluates synchronously and returns the result;
there is no queue and no background work. Sessions never share mutable
state, so many sessions can evaluate the same CompiledGraph concurrently.

Multi-step forms:
    On submit, a skip_to / jump_to fired by an on_submit rule decides the
    next page. Without one, the session advances linearly to the next page
    of the schema and reports it as a NavigationTarget with source="default".
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from formlogic.core.results import EvaluationResult, NavigationTarget
from formlogic.graph.dependencies import CompiledGraph
from formlogic.runtime.executor import evaluate
from formlogic.runtime.scheduler import TriggerEvent


logger = logging.getLogger(__name__)

DEFAULT_NAVIGATION = "next_page"


class FormSession:
    """
    One respondent filling one form.

    Attributes:
        graph: Shared, read-only compiled rule graph.
        current_page: Page the respondent is on (None for single-step forms).
        last_result: Result of the most recent event, if any.
    """

    def __init__(
        self,
        graph: CompiledGraph,
        values: Optional[Mapping[str, Any]] = None,
        current_page: Optional[str] = None,
    ):
        self.graph = graph
        self._values: Dict[str, Any] = dict(values or {})
        self.current_page = current_page
        self.last_result: Optional[EvaluationResult] = None

    @property
    def values(self) -> Mapping[str, Any]:
        """Read-only view of the respondent's snapshot."""
        return MappingProxyType(self._values)

    def on_load(self) -> EvaluationResult:
        if self.current_page is None:
            self.current_page = self.graph.schema.next_page(None)
        return self._run(TriggerEvent.load())

    def on_change(self, field_id: str, value: Any) -> EvaluationResult:
        self._values[field_id] = value
        return self._run(TriggerEvent.change(field_id))

    def on_blur(self, field_id: str) -> EvaluationResult:
        return self._run(TriggerEvent.blur(field_id))

    def on_submit(self) -> EvaluationResult:
        result = evaluate(self.graph, TriggerEvent.submit(), self._values)
        if result.navigation is None:
            schema = self.graph.schema
            current = self.current_page if self.current_page is not None else schema.next_page(None)
            next_page = schema.next_page(current)
            if next_page is not None:
                result.navigation = NavigationTarget(
                    target_id=next_page,
                    kind="page",
                    action_type=DEFAULT_NAVIGATION,
                    page_id=next_page,
                    source="default",
                )
        return self._finish(TriggerEvent.submit(), result)

    def _run(self, event: TriggerEvent) -> EvaluationResult:
        return self._finish(event, evaluate(self.graph, event, self._values))

    def _finish(self, event: TriggerEvent, result: EvaluationResult) -> EvaluationResult:
        navigation = result.navigation
        if navigation is not None and navigation.page_id is not None:
            if navigation.page_id != self.current_page:
                logger.debug(f"Session moves from page {self.current_page} to {navigation.page_id} on {event}")
            self.current_page = navigation.page_id
        self.last_result = result
        return result


__all__ = ["FormSession", "DEFAULT_NAVIGATION"]
