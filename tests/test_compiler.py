"""Tests for the graph compiler — topology, payload defaults, editor JSON."""

import json

from stratflow.strategy.compiler import compile_graph_dict, compile_strategy, parse_graph
from stratflow.strategy.models import (
    ActionPayload,
    ActionSpec,
    ConditionSpec,
    Edge,
    IndicatorPayload,
    IndicatorSpec,
    LogicPayload,
    Node,
    Strategy,
    StrategyGraph,
)


# ── Helpers ──────────────────────────────────────────────────────────────


def _nodes(indicator=None, logic=None, action=None):
    return [
        Node("1", "indicator", indicator or IndicatorPayload("rsi", 14)),
        Node("2", "logic", logic or LogicPayload("lt", 30.0)),
        Node("3", "action", action or ActionPayload("buy", 100.0)),
    ]


def _chain():
    return [Edge("1", "2"), Edge("2", "3")]


def _editor_document():
    """Graph as exported by the editor, including its data source node."""
    return {
        "nodes": [
            {"id": "d1", "type": "dataSource", "data": {"symbol": "BTC/USDT"}},
            {"id": "1", "type": "indicator", "data": {"indicatorType": "rsi", "period": 14}},
            {"id": "2", "type": "logic", "data": {"operator": "lt", "value": 30}},
            {"id": "3", "type": "action", "data": {"actionType": "buy", "amount": 100}},
        ],
        "edges": [
            {"id": "ed1-1", "source": "d1", "target": "1"},
            {"id": "e1-2", "source": "1", "target": "2"},
            {"id": "e2-3", "source": "2", "target": "3"},
        ],
    }


# ── Topology ─────────────────────────────────────────────────────────────


class TestTopology:

    def test_end_to_end_example(self):
        result = compile_strategy(StrategyGraph(_nodes(), _chain()))
        assert result.valid is True
        assert result.strategy == Strategy(
            indicator=IndicatorSpec("rsi", 14),
            condition=ConditionSpec("lt", 30.0),
            action=ActionSpec("buy", 100.0),
        )

    def test_missing_role_named(self):
        nodes = _nodes()[:2]
        result = compile_strategy(StrategyGraph(nodes, [Edge("1", "2")]))
        assert result.valid is False
        assert result.strategy is None
        assert "action" in result.message
        assert "indicator" not in result.message

    def test_all_roles_missing(self):
        result = compile_strategy(StrategyGraph())
        assert result.valid is False
        for role in ("indicator", "logic", "action"):
            assert role in result.message

    def test_duplicate_role(self):
        nodes = _nodes() + [Node("4", "logic", LogicPayload("gt", 70.0))]
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.valid is False
        assert "logic" in result.message

    def test_missing_edge(self):
        result = compile_strategy(StrategyGraph(_nodes(), [Edge("1", "2")]))
        assert result.valid is False
        assert "indicator -> logic -> action" in result.message
        assert "missing logic -> action" in result.message

    def test_misdirected_edge(self):
        edges = [Edge("2", "1"), Edge("2", "3")]
        result = compile_strategy(StrategyGraph(_nodes(), edges))
        assert result.valid is False
        assert "indicator -> logic -> action" in result.message

    def test_extra_edge_rejected(self):
        edges = _chain() + [Edge("1", "3")]
        result = compile_strategy(StrategyGraph(_nodes(), edges))
        assert result.valid is False
        assert "unexpected indicator -> action" in result.message

    def test_idempotent(self):
        graph = StrategyGraph(_nodes(), _chain())
        first = compile_strategy(graph)
        second = compile_strategy(graph)
        assert first.strategy == second.strategy


# ── Payloads ─────────────────────────────────────────────────────────────


class TestPayloads:

    def test_defaults_applied(self):
        nodes = _nodes(IndicatorPayload(), LogicPayload(), ActionPayload())
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.valid is True
        assert result.strategy == Strategy()
        assert result.strategy.indicator == IndicatorSpec("rsi", 14)
        assert result.strategy.condition == ConditionSpec("lt", 30.0)
        assert result.strategy.action == ActionSpec("buy", 100.0)

    def test_zero_threshold_kept(self):
        nodes = _nodes(logic=LogicPayload("gt", 0.0))
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.strategy.condition.threshold == 0.0

    def test_crossover_compiles(self):
        nodes = _nodes(logic=LogicPayload("crossover", 50.0))
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.valid is True
        assert result.strategy.condition.operator == "crossover"

    def test_case_insensitive_operator_and_action(self):
        nodes = _nodes(logic=LogicPayload("GT", 70.0), action=ActionPayload("Sell", 10.0))
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.strategy.condition == ConditionSpec("gt", 70.0)
        assert result.strategy.action == ActionSpec("sell", 10.0)

    def test_rsi_period_below_two_defaults(self):
        nodes = _nodes(IndicatorPayload("rsi", 1))
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.strategy.indicator == IndicatorSpec("rsi", 14)

    def test_sma_period_one_kept(self):
        nodes = _nodes(IndicatorPayload("sma", 1))
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.strategy.indicator == IndicatorSpec("sma", 1)

    def test_unknown_operator_rejected(self):
        nodes = _nodes(logic=LogicPayload("between", 50.0))
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.valid is False
        assert "between" in result.message

    def test_unknown_action_rejected(self):
        nodes = _nodes(action=ActionPayload("hold", 100.0))
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.valid is False
        assert "hold" in result.message

    def test_wrong_payload_type_rejected(self):
        nodes = [
            Node("1", "indicator", LogicPayload("lt", 30.0)),
            Node("2", "logic", LogicPayload("lt", 30.0)),
            Node("3", "action", ActionPayload("buy", 100.0)),
        ]
        result = compile_strategy(StrategyGraph(nodes, _chain()))
        assert result.valid is False
        assert "indicator" in result.message


# ── Editor JSON ──────────────────────────────────────────────────────────


class TestEditorDocument:

    def test_parse_drops_data_source(self):
        graph = parse_graph(_editor_document())
        assert [n.id for n in graph.nodes] == ["1", "2", "3"]
        assert graph.edges == [Edge("1", "2"), Edge("2", "3")]

    def test_compile_editor_document(self):
        result = compile_graph_dict(_editor_document())
        assert result.valid is True
        assert result.strategy == Strategy(
            IndicatorSpec("rsi", 14), ConditionSpec("lt", 30.0), ActionSpec("buy", 100.0),
        )

    def test_uppercase_and_string_values(self):
        doc = _editor_document()
        doc["nodes"][1]["data"] = {"indicatorType": "RSI", "period": "21"}
        doc["nodes"][3]["data"] = {"actionType": "SELL", "amount": "250"}
        result = compile_graph_dict(doc)
        assert result.strategy.indicator == IndicatorSpec("rsi", 21)
        assert result.strategy.action == ActionSpec("sell", 250.0)

    def test_non_numeric_period_defaults(self):
        doc = _editor_document()
        doc["nodes"][1]["data"] = {"indicatorType": "rsi", "period": "abc"}
        result = compile_graph_dict(doc)
        assert result.strategy.indicator.period == 14

    def test_non_finite_numbers_default(self):
        doc = json.loads(
            json.dumps(_editor_document())
            .replace('"period": 14', '"period": 1e999')
            .replace('"value": 30', '"value": -1e999')
        )
        result = compile_graph_dict(doc)
        assert result.valid is True
        assert result.strategy.indicator.period == 14
        assert result.strategy.condition.threshold == 30.0

    def test_oversized_integer_period_defaults(self):
        doc = _editor_document()
        doc["nodes"][1]["data"] = {"indicatorType": "rsi", "period": 10 ** 400}
        result = compile_graph_dict(doc)
        assert result.strategy.indicator.period == 14

    def test_malformed_document(self):
        result = compile_graph_dict({"nodes": "oops", "edges": []})
        assert result.valid is False

    def test_edge_without_target(self):
        doc = _editor_document()
        doc["edges"].append({"source": "1"})
        result = compile_graph_dict(doc)
        assert result.valid is False
