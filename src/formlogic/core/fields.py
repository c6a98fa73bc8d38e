"""
Form schema types consumed by the logic engine.

The form schema store owns field definitions; the engine only needs a field's
id, declared type, schema-level required flag, options, and page. FormSchema
bundles the fields with the ordered page ids used for navigation.

Pages:
    When page ids are not given explicitly they are derived from pagebreak
    fields: fields before the first pagebreak sit on "page1", and each
    pagebreak starts a page named by the pagebreak's id. A form without
    pagebreaks has no pages (single-step).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from formlogic.constants import (
    CHOICE_FIELD_TYPES,
    FIELD_TYPE_CHECKBOX,
    FIELD_TYPE_PAGEBREAK,
    FIELD_TYPE_TEXT,
    FIRST_PAGE_ID,
    HIDDEN_BY_DEFAULT_FIELD_TYPES,
    MULTI_VALUE_FIELD_TYPES,
    NUMERIC_FIELD_TYPES,
    TEMPORAL_FIELD_TYPES,
)


@dataclass(frozen=True)
class FieldSpec:
    """
    A single form field as seen by the engine.

    Attributes:
        id: Field identifier referenced by conditions and actions.
        type: Builder field type ("text", "number", "select", ...).
        required: Schema-level required flag (default for derived state).
        label: Display label, used only in messages.
        options: Option ids for choice fields.
        page_id: Page this field belongs to, if the form is multi-step.
        visible: Default visibility before any rule runs.
    """

    id: str
    type: str = FIELD_TYPE_TEXT
    required: bool = False
    label: str = ""
    options: Tuple[str, ...] = ()
    page_id: Optional[str] = None
    visible: bool = True

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_FIELD_TYPES

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_FIELD_TYPES

    @property
    def is_multi_value(self) -> bool:
        if self.type == FIELD_TYPE_CHECKBOX:
            # A lone checkbox is a boolean toggle; with options it is a group.
            return bool(self.options)
        return self.type in MULTI_VALUE_FIELD_TYPES

    @property
    def is_temporal(self) -> bool:
        return self.type in TEMPORAL_FIELD_TYPES

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FieldSpec":
        """
        Build a FieldSpec from a builder FormField document (camelCase keys).

        Options may be plain strings or {"label", "value"} objects; the
        option id is the value. Fields whose legacy conditionalLogic uses the
        "show" action start hidden.
        """
        field_id = raw.get("id")
        if not field_id:
            raise ValueError(f"Field is missing an id: {raw!r}")
        field_type = str(raw.get("type") or FIELD_TYPE_TEXT)
        legacy = raw.get("conditionalLogic") or {}
        shown_by_logic = bool(legacy.get("enabled")) and legacy.get("action") == "show"
        return cls(
            id=str(field_id),
            type=field_type,
            required=bool(raw.get("required", False)),
            label=str(raw.get("label") or ""),
            options=_option_ids(raw.get("options")),
            page_id=raw.get("pageId"),
            visible=field_type not in HIDDEN_BY_DEFAULT_FIELD_TYPES and not shown_by_logic,
        )


def _option_ids(options: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    if not options:
        return ()
    ids: List[str] = []
    for option in options:
        if isinstance(option, dict):
            ids.append(str(option.get("value", option.get("label", ""))))
        else:
            ids.append(str(option))
    return tuple(ids)


SchemaInput = Union["FormSchema", Sequence[Union[str, FieldSpec, Dict[str, Any]]]]


@dataclass(frozen=True)
class FormSchema:
    """Ordered fields plus ordered page ids."""

    fields: Tuple[FieldSpec, ...]
    pages: Tuple[str, ...] = ()
    _by_id: Dict[str, FieldSpec] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        index: Dict[str, FieldSpec] = {}
        for spec in self.fields:
            if spec.id in index:
                raise ValueError(f"Duplicate field id in schema: {spec.id!r}")
            index[spec.id] = spec
        object.__setattr__(self, "_by_id", index)

    @classmethod
    def from_fields(
        cls,
        fields: Sequence[Union[str, FieldSpec, Dict[str, Any]]],
        pages: Optional[Sequence[str]] = None,
    ) -> "FormSchema":
        """
        Build a schema from field ids, FieldSpecs or builder field documents.

        Args:
            fields: Fields in form order. Plain strings become text fields.
            pages: Explicit page order. If None, derived from pagebreak fields.
        """
        specs: List[FieldSpec] = []
        for item in fields:
            if isinstance(item, FieldSpec):
                specs.append(item)
            elif isinstance(item, str):
                specs.append(FieldSpec(id=item))
            elif isinstance(item, dict):
                specs.append(FieldSpec.from_dict(item))
            else:
                raise TypeError(f"Cannot build a field from {type(item).__name__}")

        if pages is not None:
            return cls(fields=tuple(specs), pages=tuple(pages))
        return cls(*_assign_pages(specs))

    @classmethod
    def coerce(cls, schema: SchemaInput) -> "FormSchema":
        """Accept a FormSchema or anything from_fields accepts."""
        if isinstance(schema, FormSchema):
            return schema
        return cls.from_fields(list(schema))

    @property
    def field_ids(self) -> Tuple[str, ...]:
        return tuple(spec.id for spec in self.fields)

    @property
    def has_pages(self) -> bool:
        return bool(self.pages)

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._by_id

    def get(self, field_id: str) -> Optional[FieldSpec]:
        return self._by_id.get(field_id)

    def is_page(self, target_id: str) -> bool:
        return target_id in self.pages

    def page_of(self, target_id: str) -> Optional[str]:
        """Return the page a page-or-field id resolves to."""
        if target_id in self.pages:
            return target_id
        spec = self._by_id.get(target_id)
        return spec.page_id if spec else None

    def next_page(self, page_id: Optional[str]) -> Optional[str]:
        """Next page in linear order; the first page when page_id is None."""
        if not self.pages:
            return None
        if page_id is None:
            return self.pages[0]
        try:
            idx = self.pages.index(page_id)
        except ValueError:
            return None
        return self.pages[idx + 1] if idx + 1 < len(self.pages) else None


def _assign_pages(specs: List[FieldSpec]) -> Tuple[Tuple[FieldSpec, ...], Tuple[str, ...]]:
    if not any(spec.type == FIELD_TYPE_PAGEBREAK for spec in specs):
        return tuple(specs), ()

    pages: List[str] = [FIRST_PAGE_ID]
    current = FIRST_PAGE_ID
    placed: List[FieldSpec] = []
    for spec in specs:
        if spec.type == FIELD_TYPE_PAGEBREAK:
            current = spec.id
            pages.append(current)
        if spec.page_id is None:
            spec = replace(spec, page_id=current)
        placed.append(spec)
    return tuple(placed), tuple(pages)


__all__ = ["FieldSpec", "FormSchema", "SchemaInput"]
