"""Structural validation helpers for figures."""

from __future__ import annotations

import math
from collections import Counter

from .errors import MalformedFigureError, ValidationIssue, fail_closed
from .figure_model import Figure, cycle_issues


def _append_issue(issues: list[ValidationIssue], code: str, message: str) -> None:
    issues.append(ValidationIssue(code=code, message=message))


def _duplicates(values: list[str]) -> list[str]:
    return sorted(value for value, count in Counter(values).items() if count > 1)


def figure_issues(figure: Figure) -> tuple[ValidationIssue, ...]:
    """Return every structural issue found on ``figure``."""

    issues: list[ValidationIssue] = []

    for node_id in _duplicates([node.id for node in figure.nodes]):
        _append_issue(issues, "duplicate_node_id", f"Node id {node_id!r} is not unique.")
    for edge_id in _duplicates([edge.id for edge in figure.edges]):
        _append_issue(issues, "duplicate_edge_id", f"Edge id {edge_id!r} is not unique.")

    for node in figure.nodes:
        values = [node.x, node.y]
        for handle in (node.in_handle, node.out_handle):
            if handle is not None:
                values.extend(handle)
        if not all(math.isfinite(value) for value in values):
            _append_issue(
                issues,
                "non_finite_coordinate",
                f"Node {node.id!r} has a non-finite coordinate.",
            )

    node_ids = figure.node_map
    dangling = False
    for edge in figure.edges:
        for endpoint in (edge.from_id, edge.to_id):
            if endpoint not in node_ids:
                dangling = True
                _append_issue(
                    issues,
                    "missing_node",
                    f"Edge {edge.id!r} references missing node {endpoint!r}.",
                )

    if figure.closed and not dangling:
        issues.extend(cycle_issues(figure))

    return tuple(issues)


def require_valid(figure: Figure) -> Figure:
    issues = figure_issues(figure)
    if issues:
        raise MalformedFigureError(issues)
    return figure


@fail_closed("validate_figure")
def validate_figure(figure: Figure) -> Figure:
    """Validate ``figure``; failures carry a :class:`MalformedFigureError`."""

    return require_valid(figure)


__all__ = ["figure_issues", "require_valid", "validate_figure"]
