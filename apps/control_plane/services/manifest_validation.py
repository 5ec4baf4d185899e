"""Structural and referential validation of a tenant config payload (manifest).

The payload is otherwise opaque: unknown keys are allowed everywhere, widget types are not
checked. What is checked:
  - payload is a non-empty JSON object with no NaN or Infinity numbers
  - dataSources / widgets / dashboards, when present, are lists of objects with non-empty string ids
  - ids are unique (widgets across the whole manifest, data sources within one scope, dashboards)
  - every widget dataSourceId resolves to a declared data source (global, or the widget's dashboard)
  - every dashboards[*].widgetIds entry resolves to a top-level widget

All violations are collected; validate_manifest raises one ValidationError listing them.
"""

import math
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic import ValidationError as PydanticValidationError

from apps.control_plane.services.errors import ValidationError

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class DataSourceSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: NonEmptyStr
    type: str | None = None


class WidgetSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: NonEmptyStr
    dataSourceId: NonEmptyStr | None = None


class DashboardSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: NonEmptyStr
    widgets: list[WidgetSpec] = Field(default_factory=list)
    dataSources: list[DataSourceSpec] = Field(default_factory=list)
    widgetIds: list[NonEmptyStr] = Field(default_factory=list)


class ManifestDocument(BaseModel):
    """Only the parts of the manifest that carry cross references."""

    model_config = ConfigDict(extra="allow")

    dataSources: list[DataSourceSpec] = Field(default_factory=list)
    widgets: list[WidgetSpec] = Field(default_factory=list)
    dashboards: list[DashboardSpec] = Field(default_factory=list)


def _loc(parts: tuple[Any, ...] | list[Any]) -> str:
    """('widgets', 0, 'id') -> '$.widgets[0].id'."""
    out = "$"
    for p in parts:
        out += f"[{p}]" if isinstance(p, int) else f".{p}"
    return out


def _violation(loc: str, msg: str, kind: str) -> dict[str, str]:
    return {"loc": loc, "msg": msg, "type": kind}


def _objects(container: dict[str, Any], key: str) -> list[tuple[int, dict[str, Any]]]:
    value = container.get(key)
    if not isinstance(value, list):
        return []
    return [(i, item) for i, item in enumerate(value) if isinstance(item, dict)]


def _str_id(item: dict[str, Any], key: str = "id") -> str | None:
    value = item.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _non_finite_violations(value: Any, parts: tuple[Any, ...] = ()) -> list[dict[str, str]]:
    """NaN and Infinity parse from lenient JSON readers but have no JSON encoding."""
    if isinstance(value, float) and not math.isfinite(value):
        return [_violation(_loc(parts), f"number must be finite, got {value!r}", "non_finite_number")]
    if isinstance(value, dict):
        return [v for k, item in value.items() for v in _non_finite_violations(item, parts + (str(k),))]
    if isinstance(value, list):
        return [v for i, item in enumerate(value) for v in _non_finite_violations(item, parts + (i,))]
    return []


def _structural_violations(payload: dict[str, Any]) -> list[dict[str, str]]:
    try:
        ManifestDocument.model_validate(payload)
    except PydanticValidationError as e:
        return [_violation(_loc(err["loc"]), err["msg"], err["type"]) for err in e.errors()]
    return []


def _duplicate_violations(
    items: list[tuple[str, str]],
    what: str,
    seen: dict[str, str] | None = None,
) -> list[dict[str, str]]:
    """items: (loc, id). seen carries ids across calls when uniqueness spans several lists."""
    seen = {} if seen is None else seen
    out = []
    for loc, item_id in items:
        if item_id in seen:
            out.append(_violation(loc, f"duplicate {what} id {item_id!r} (first declared at {seen[item_id]})", "duplicate_id"))
        else:
            seen[item_id] = loc
    return out


def _reference_violations(payload: dict[str, Any]) -> list[dict[str, str]]:
    violations: list[dict[str, str]] = []

    global_sources = [(_loc(("dataSources", i, "id")), _str_id(ds)) for i, ds in _objects(payload, "dataSources")]
    global_sources = [(loc, sid) for loc, sid in global_sources if sid]
    violations += _duplicate_violations(global_sources, "data source")
    global_source_ids = {sid for _, sid in global_sources}

    widget_seen: dict[str, str] = {}
    top_widgets = [(i, w, _str_id(w)) for i, w in _objects(payload, "widgets")]
    violations += _duplicate_violations(
        [(_loc(("widgets", i, "id")), wid) for i, _, wid in top_widgets if wid], "widget", widget_seen
    )
    top_widget_ids = {wid for _, _, wid in top_widgets if wid}
    for i, widget, _ in top_widgets:
        ref = _str_id(widget, "dataSourceId")
        if ref and ref not in global_source_ids:
            violations.append(
                _violation(_loc(("widgets", i, "dataSourceId")), f"unknown data source {ref!r}", "reference_error")
            )

    dashboards = [(d, dash, _str_id(dash)) for d, dash in _objects(payload, "dashboards")]
    violations += _duplicate_violations(
        [(_loc(("dashboards", d, "id")), did) for d, _, did in dashboards if did], "dashboard"
    )
    for d, dash, _ in dashboards:
        local_sources = [
            (_loc(("dashboards", d, "dataSources", i, "id")), _str_id(ds)) for i, ds in _objects(dash, "dataSources")
        ]
        local_sources = [(loc, sid) for loc, sid in local_sources if sid]
        violations += _duplicate_violations(local_sources, "data source")
        visible = global_source_ids | {sid for _, sid in local_sources}

        nested = [(i, w, _str_id(w)) for i, w in _objects(dash, "widgets")]
        violations += _duplicate_violations(
            [(_loc(("dashboards", d, "widgets", i, "id")), wid) for i, _, wid in nested if wid], "widget", widget_seen
        )
        for i, widget, _ in nested:
            ref = _str_id(widget, "dataSourceId")
            if ref and ref not in visible:
                violations.append(
                    _violation(
                        _loc(("dashboards", d, "widgets", i, "dataSourceId")),
                        f"unknown data source {ref!r}",
                        "reference_error",
                    )
                )

        widget_ids = dash.get("widgetIds")
        if isinstance(widget_ids, list):
            for i, ref in enumerate(widget_ids):
                if isinstance(ref, str) and ref.strip() and ref.strip() not in top_widget_ids:
                    violations.append(
                        _violation(
                            _loc(("dashboards", d, "widgetIds", i)), f"unknown widget {ref.strip()!r}", "reference_error"
                        )
                    )

    return violations


def collect_violations(payload: Any) -> list[dict[str, str]]:
    """Return every violation found in payload; empty list means valid."""
    if not isinstance(payload, dict):
        return [_violation("$", f"payload must be a JSON object, got {type(payload).__name__}", "type_error")]
    if not payload:
        return [_violation("$", "payload must be a non-empty object", "empty_payload")]
    return _non_finite_violations(payload) + _structural_violations(payload) + _reference_violations(payload)


def validate_manifest(payload: Any) -> dict[str, Any]:
    """Raise ValidationError listing every violation; return payload unchanged when valid."""
    violations = collect_violations(payload)
    if violations:
        raise ValidationError(violations)
    return payload
