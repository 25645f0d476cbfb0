"""Graph compiler — turns an editor graph into a typed ``Strategy``.

The editor produces a three-node chain (indicator → logic → action).
Topology and payloads are validated here, once; everything downstream
consumes only the compiled ``Strategy``.  ``compile_strategy`` never
raises: every failure comes back as ``CompileResult(valid=False, ...)``.
"""

import logging
import math
from typing import Any, Optional

from stratflow.errors import GraphValidationError
from stratflow.strategy.indicators import min_period
from stratflow.strategy.models import (
    ACTION_KINDS,
    DEFAULT_ACTION_KIND,
    DEFAULT_AMOUNT,
    DEFAULT_INDICATOR_TYPE,
    DEFAULT_OPERATOR,
    DEFAULT_PERIOD,
    DEFAULT_THRESHOLD,
    EDITOR_OPERATORS,
    ROLE_ACTION,
    ROLE_INDICATOR,
    ROLE_LOGIC,
    ROLES,
    ActionPayload,
    ActionSpec,
    CompileResult,
    ConditionSpec,
    Edge,
    IndicatorPayload,
    IndicatorSpec,
    LogicPayload,
    Node,
    Strategy,
    StrategyGraph,
)

logger = logging.getLogger("stratflow")

_CHAIN_MESSAGE = (
    "Nodes are not connected correctly. "
    "The flow must be: indicator -> logic -> action."
)


# ── Coercion helpers ─────────────────────────────────────────────────────


def _param(data: dict, *keys: str) -> Any:
    """Return the first non-empty value among *keys* (camelCase or snake_case)."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_float(value: Any) -> Optional[float]:
    """Parse *value* as a finite float; anything else counts as missing."""
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> Optional[int]:
    number = _as_float(value)
    return None if number is None else int(number)


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    return text or None


# ── Editor JSON → typed graph ────────────────────────────────────────────


def _parse_payload(role: str, data: dict) -> Any:
    if role == ROLE_INDICATOR:
        return IndicatorPayload(
            indicator_type=_as_str(_param(data, "indicatorType", "indicator_type", "type")),
            period=_as_int(_param(data, "period")),
        )
    if role == ROLE_LOGIC:
        return LogicPayload(
            operator=_as_str(_param(data, "operator")),
            threshold=_as_float(_param(data, "threshold", "value")),
        )
    return ActionPayload(
        action_kind=_as_str(_param(data, "actionKind", "actionType", "action_kind")),
        amount=_as_float(_param(data, "amount")),
    )


def parse_graph(data: dict) -> StrategyGraph:
    """Build a ``StrategyGraph`` from the editor's JSON document.

    Expected shape::

        {"nodes": [{"id": "1", "type": "indicator", "data": {...}}, ...],
         "edges": [{"source": "1", "target": "2"}, ...]}

    Nodes whose ``type`` is not a strategy role are dropped together with
    the edges that touch them.

    Raises ``GraphValidationError`` if the document is malformed.
    """
    if not isinstance(data, dict):
        raise GraphValidationError("Strategy graph must be a JSON object.")

    raw_nodes = data.get("nodes") or []
    raw_edges = data.get("edges") or []
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise GraphValidationError("'nodes' and 'edges' must be lists.")

    nodes: list[Node] = []
    dropped: set[str] = set()
    for raw in raw_nodes:
        if not isinstance(raw, dict) or "id" not in raw:
            raise GraphValidationError(f"Malformed node: {raw!r}")
        node_id = str(raw["id"])
        role = _as_str(raw.get("role", raw.get("type")))
        if role not in ROLES:
            logger.debug("Ignoring non-strategy node %s (type=%s)", node_id, role)
            dropped.add(node_id)
            continue
        payload_data = raw.get("data") or raw.get("payload") or {}
        if not isinstance(payload_data, dict):
            raise GraphValidationError(f"Node {node_id} has a non-object payload.")
        nodes.append(Node(id=node_id, role=role, payload=_parse_payload(role, payload_data)))

    edges: list[Edge] = []
    for raw in raw_edges:
        if not isinstance(raw, dict):
            raise GraphValidationError(f"Malformed edge: {raw!r}")
        source = raw.get("source", raw.get("sourceId"))
        target = raw.get("target", raw.get("targetId"))
        if source is None or target is None:
            raise GraphValidationError(f"Edge is missing source or target: {raw!r}")
        source, target = str(source), str(target)
        if source in dropped or target in dropped:
            continue
        edges.append(Edge(source_id=source, target_id=target))

    return StrategyGraph(nodes=nodes, edges=edges)


# ── Validation ───────────────────────────────────────────────────────────


def _single_nodes_by_role(graph: StrategyGraph) -> dict[str, Node]:
    by_role: dict[str, list[Node]] = {role: [] for role in ROLES}
    for node in graph.nodes:
        if node.role in by_role:
            by_role[node.role].append(node)

    missing = [role for role in ROLES if not by_role[role]]
    if missing:
        raise GraphValidationError(
            "Strategy flow is incomplete. Missing node(s): "
            f"{', '.join(missing)}."
        )
    duplicated = [role for role in ROLES if len(by_role[role]) > 1]
    if duplicated:
        raise GraphValidationError(
            "Strategy flow must contain exactly one node per role. "
            f"Duplicated: {', '.join(duplicated)}."
        )
    return {role: nodes[0] for role, nodes in by_role.items()}


def _check_chain(graph: StrategyGraph, nodes: dict[str, Node]) -> None:
    ids = {node.id: role for role, node in nodes.items()}
    present: set[tuple[str, str]] = set()
    for edge in graph.edges:
        if edge.source_id in ids and edge.target_id in ids:
            present.add((ids[edge.source_id], ids[edge.target_id]))
        else:
            logger.debug(
                "Ignoring edge %s -> %s outside the strategy chain",
                edge.source_id, edge.target_id,
            )

    required = {(ROLE_INDICATOR, ROLE_LOGIC), (ROLE_LOGIC, ROLE_ACTION)}
    missing = sorted(required - present)
    unexpected = sorted(present - required)
    if missing or unexpected:
        details = [f"missing {s} -> {t}" for s, t in missing]
        details += [f"unexpected {s} -> {t}" for s, t in unexpected]
        raise GraphValidationError(f"{_CHAIN_MESSAGE} ({'; '.join(details)})")


def _build_strategy(nodes: dict[str, Node]) -> Strategy:
    indicator = nodes[ROLE_INDICATOR].payload
    logic = nodes[ROLE_LOGIC].payload
    action = nodes[ROLE_ACTION].payload

    expected = (
        (ROLE_INDICATOR, indicator, IndicatorPayload),
        (ROLE_LOGIC, logic, LogicPayload),
        (ROLE_ACTION, action, ActionPayload),
    )
    for role, payload, payload_type in expected:
        if not isinstance(payload, payload_type):
            raise GraphValidationError(
                f"The {role} node carries a {type(payload).__name__} payload."
            )

    operator = (logic.operator or DEFAULT_OPERATOR).lower()
    if operator not in EDITOR_OPERATORS:
        raise GraphValidationError(
            f"Unknown operator {operator!r}; expected one of "
            f"{', '.join(sorted(EDITOR_OPERATORS))}."
        )
    kind = (action.action_kind or DEFAULT_ACTION_KIND).lower()
    if kind not in ACTION_KINDS:
        raise GraphValidationError(
            f"Unknown action {kind!r}; expected buy or sell."
        )

    indicator_type = (indicator.indicator_type or DEFAULT_INDICATOR_TYPE).lower()
    period = _as_int(indicator.period)
    if period is None or period < min_period(indicator_type):
        period = DEFAULT_PERIOD
    amount = _as_float(action.amount)
    if amount is None or amount <= 0:
        amount = DEFAULT_AMOUNT
    threshold = _as_float(logic.threshold)
    if threshold is None:
        threshold = DEFAULT_THRESHOLD

    return Strategy(
        indicator=IndicatorSpec(type=indicator_type, period=period),
        condition=ConditionSpec(operator=operator, threshold=threshold),
        action=ActionSpec(kind=kind, amount=amount),
    )


# ── Public API ───────────────────────────────────────────────────────────


def compile_strategy(graph: StrategyGraph) -> CompileResult:
    """Validate *graph* and compile it into a ``Strategy``.

    Fails when a role is missing or duplicated, when the chain edges are
    absent or misdirected, or when a payload names an unknown operator or
    action.  Missing payload fields get defaults (rsi/14, lt/30, buy/100).
    """
    try:
        nodes = _single_nodes_by_role(graph)
        _check_chain(graph, nodes)
        strategy = _build_strategy(nodes)
    except GraphValidationError as exc:
        logger.info("Strategy compilation rejected: %s", exc)
        return CompileResult(valid=False, message=str(exc))
    except Exception as exc:
        logger.exception("Unexpected error while compiling strategy")
        return CompileResult(
            valid=False, message=f"Compilation failed: {exc}",
        )

    logger.debug("Compiled strategy %s", strategy)
    return CompileResult(
        valid=True, message="Strategy compiled successfully.", strategy=strategy,
    )


def compile_graph_dict(data: dict) -> CompileResult:
    """Parse the editor's JSON document and compile it. Never raises."""
    try:
        graph = parse_graph(data)
    except GraphValidationError as exc:
        logger.info("Strategy graph rejected: %s", exc)
        return CompileResult(valid=False, message=str(exc))
    return compile_strategy(graph)
