"""``displayOptions`` evaluation and validation-mode property filtering.

A property is visible when every ``show`` condition matches the sibling value
in the config and no ``hide`` condition does.  Modes then narrow the visible
set:

  minimal    required and visible
  operation  visible, and any resource/operation/action ``show`` condition
             agrees with the current selection
  full       every declared property
"""

from __future__ import annotations

from typing import Any

from workflow_validator.knowledge.models import PropertyDescriptor
from workflow_validator.properties.models import OperationContext

_SELECTORS: tuple[str, ...] = ("resource", "operation", "action")


def _as_list(values: Any) -> list[Any]:
    return values if isinstance(values, list) else [values]


def is_property_visible(prop: PropertyDescriptor, config: dict[str, Any]) -> bool:
    options = prop.display_options
    if not options:
        return True

    for key, values in (options.get("show") or {}).items():
        if config.get(key) not in _as_list(values):
            return False

    for key, values in (options.get("hide") or {}).items():
        if config.get(key) in _as_list(values):
            return False

    return True


def is_relevant_to_operation(
    prop: PropertyDescriptor,
    config: dict[str, Any],
    context: OperationContext,
) -> bool:
    if not is_property_visible(prop, config):
        return False
    if context.is_empty:
        return True

    show = (prop.display_options or {}).get("show") or {}
    for selector in _SELECTORS:
        current = getattr(context, selector)
        if current and selector in show and current not in _as_list(show[selector]):
            return False
    return True


def filter_properties(
    properties: list[PropertyDescriptor],
    config: dict[str, Any],
    mode: str,
    context: OperationContext,
) -> list[PropertyDescriptor]:
    if mode == "minimal":
        return [p for p in properties if p.required and is_property_visible(p, config)]
    if mode == "operation":
        return [p for p in properties if is_relevant_to_operation(p, config, context)]
    return list(properties)


def split_visibility(
    properties: list[PropertyDescriptor],
    config: dict[str, Any],
) -> tuple[list[str], list[str]]:
    visible: list[str] = []
    hidden: list[str] = []
    for prop in properties:
        target = visible if is_property_visible(prop, config) else hidden
        if prop.name not in target:
            target.append(prop.name)
    return visible, hidden
