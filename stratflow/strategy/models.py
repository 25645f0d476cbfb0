"""Strategy data models — graph input, compiled strategy, candles."""

from dataclasses import asdict, dataclass, field
from typing import Optional, Union

from stratflow.errors import InvalidOperator


# ── Vocabulary ───────────────────────────────────────────────────────────

ROLE_INDICATOR = "indicator"
ROLE_LOGIC = "logic"
ROLE_ACTION = "action"
ROLES: tuple[str, ...] = (ROLE_INDICATOR, ROLE_LOGIC, ROLE_ACTION)

# ``crossover`` is offered by the editor but has no evaluation rule.
EDITOR_OPERATORS: frozenset[str] = frozenset({"gt", "lt", "crossover"})
EVALUABLE_OPERATORS: frozenset[str] = frozenset({"gt", "lt"})
ACTION_KINDS: frozenset[str] = frozenset({"buy", "sell"})

DEFAULT_INDICATOR_TYPE = "rsi"
DEFAULT_PERIOD = 14
DEFAULT_OPERATOR = "lt"
DEFAULT_THRESHOLD = 30.0
DEFAULT_ACTION_KIND = "buy"
DEFAULT_AMOUNT = 100.0


@dataclass(frozen=True)
class CandleData:
    """A single candlestick bar."""

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


# ── Graph (editor input) ─────────────────────────────────────────────────


@dataclass(frozen=True)
class IndicatorPayload:
    indicator_type: Optional[str] = None
    period: Optional[int] = None


@dataclass(frozen=True)
class LogicPayload:
    operator: Optional[str] = None
    threshold: Optional[float] = None


@dataclass(frozen=True)
class ActionPayload:
    action_kind: Optional[str] = None
    amount: Optional[float] = None


NodePayload = Union[IndicatorPayload, LogicPayload, ActionPayload]


@dataclass(frozen=True)
class Node:
    """A node in the strategy graph; ``payload`` type follows ``role``."""

    id: str
    role: str  # "indicator", "logic" or "action"
    payload: NodePayload


@dataclass(frozen=True)
class Edge:
    source_id: str
    target_id: str


@dataclass(frozen=True)
class StrategyGraph:
    """Three-node, two-edge chain assembled in the editor."""

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)


# ── Compiled strategy ────────────────────────────────────────────────────


@dataclass(frozen=True)
class IndicatorSpec:
    type: str = DEFAULT_INDICATOR_TYPE
    period: int = DEFAULT_PERIOD


@dataclass(frozen=True)
class ConditionSpec:
    operator: str = DEFAULT_OPERATOR
    threshold: float = DEFAULT_THRESHOLD

    def holds(self, value: float) -> bool:
        """Evaluate ``value <operator> threshold``.

        Raises ``InvalidOperator`` for operators without a rule.
        """
        if self.operator == "gt":
            return value > self.threshold
        if self.operator == "lt":
            return value < self.threshold
        raise InvalidOperator(self.operator)


@dataclass(frozen=True)
class ActionSpec:
    kind: str = DEFAULT_ACTION_KIND  # "buy" or "sell"
    amount: float = DEFAULT_AMOUNT


@dataclass(frozen=True)
class Strategy:
    """Compiled, immutable strategy produced by the graph compiler."""

    indicator: IndicatorSpec = field(default_factory=IndicatorSpec)
    condition: ConditionSpec = field(default_factory=ConditionSpec)
    action: ActionSpec = field(default_factory=ActionSpec)


@dataclass(frozen=True)
class CompileResult:
    valid: bool
    message: str
    strategy: Optional[Strategy] = None


# ── Live decision ────────────────────────────────────────────────────────

DECISION_BUY = "BUY"
DECISION_SELL = "SELL"
DECISION_WAIT = "WAIT"


@dataclass(frozen=True)
class Diagnostics:
    """Values behind a decision.  ``error`` is set only when the engine failed."""

    indicator_value: Optional[float] = None
    threshold: Optional[float] = None
    current_price: Optional[float] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None  # exception class name, e.g. "DataUnavailable"


@dataclass(frozen=True)
class Decision:
    kind: str  # "BUY", "SELL" or "WAIT"
    message: str
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def failed(self) -> bool:
        """``True`` when the engine could not run, as opposed to "condition not met"."""
        return self.diagnostics.error is not None

    def to_dict(self) -> dict:
        diag = {k: v for k, v in asdict(self.diagnostics).items() if v is not None}
        return {"decision": self.kind, "message": self.message, "data": diag}
