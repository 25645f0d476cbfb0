"""stratflow — command line entry point.

Compiles a strategy graph exported from the editor, evaluates it once
against live market data, backtests it over historical candles, or
sweeps its indicator period for the best profit factor.

    stratflow compile graph.json
    stratflow evaluate graph.json --symbol ETH/USDT
    stratflow backtest graph.json --seed 42 --candles 200
    stratflow optimize graph.json --seed 42 --min-period 7 --max-period 30
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

logger = logging.getLogger("stratflow")


def _load_graph(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="stratflow strategy runner")
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a report")
    sub = parser.add_subparsers(dest="command", required=True)

    p_compile = sub.add_parser("compile", help="Validate and compile a strategy graph")
    p_compile.add_argument("graph", help="Strategy graph JSON file")

    p_eval = sub.add_parser("evaluate", help="Run the strategy once against market data")
    p_eval.add_argument("graph", help="Strategy graph JSON file")
    p_eval.add_argument("--symbol", help="Trading pair (default: DEFAULT_SYMBOL)")
    p_eval.add_argument(
        "--synthetic", action="store_true",
        help="Use generated candles instead of Binance",
    )
    p_eval.add_argument("--seed", type=int, help="Seed for --synthetic data")

    p_bt = sub.add_parser("backtest", help="Replay the strategy over historical candles")
    p_bt.add_argument("graph", help="Strategy graph JSON file")
    p_bt.add_argument("--symbol", help="Trading pair (default: DEFAULT_SYMBOL)")
    p_bt.add_argument("--candles", type=int, default=200, help="Number of candles")
    p_bt.add_argument("--seed", type=int, help="Seed for generated candles")
    p_bt.add_argument(
        "--live", action="store_true",
        help="Download candles from Binance instead of generating them",
    )
    p_opt = sub.add_parser("optimize", help="Find the indicator period with the best profit factor")
    p_opt.add_argument("graph", help="Strategy graph JSON file")
    p_opt.add_argument("--symbol", help="Trading pair (default: DEFAULT_SYMBOL)")
    p_opt.add_argument("--candles", type=int, default=200, help="Number of candles")
    p_opt.add_argument("--seed", type=int, help="Seed for generated candles")
    p_opt.add_argument("--min-period", type=int, default=7, help="Smallest period tried")
    p_opt.add_argument("--max-period", type=int, default=30, help="Largest period tried")
    p_opt.add_argument(
        "--live", action="store_true",
        help="Download candles from Binance instead of generating them",
    )
    return parser


def _run_cli(argv: Optional[list[str]] = None) -> int:
    """Parse CLI arguments and dispatch to the requested command."""
    from stratflow.backtest.engine import BacktestEngine
    from stratflow.cli.report import (
        print_backtest,
        print_compile_result,
        print_decision,
        print_optimization,
    )
    from stratflow.config import load_config
    from stratflow.engine import DecisionEngine
    from stratflow.errors import StratflowError
    from stratflow.market.binance_client import BinanceMarketData
    from stratflow.market.cache import CachedMarketData
    from stratflow.market.synthetic import SyntheticMarketData, generate_candles
    from stratflow.strategy.compiler import compile_graph_dict

    args = _build_parser().parse_args(argv)
    config = load_config(args.env_file)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    graph = _load_graph(args.graph)
    result = compile_graph_dict(graph)

    if args.command == "compile":
        if args.json:
            print(json.dumps({"valid": result.valid, "message": result.message}))
        else:
            print_compile_result(result)
        return 0 if result.valid else 1

    symbol = args.symbol or config.default_symbol

    if args.command == "evaluate":
        if not result.valid or result.strategy is None:
            print_compile_result(result)
            return 1
        if args.synthetic:
            provider = SyntheticMarketData(seed=args.seed)
        else:
            provider = CachedMarketData(
                BinanceMarketData(config), ttl_seconds=config.market_cache_ttl_seconds,
            )
        decision = asyncio.run(DecisionEngine(provider, config).evaluate(result.strategy, symbol))
        if args.json:
            print(json.dumps(decision.to_dict()))
        else:
            print_decision(symbol, decision)
        return 0

    # backtest / optimize never reject the graph; the engine repairs it
    if args.live:
        try:
            candles = asyncio.run(
                BinanceMarketData(config).fetch_candles(
                    symbol, config.candle_interval, args.candles,
                )
            )
        except StratflowError as exc:
            logger.error("Could not download candles for %s: %s", symbol, exc)
            return 1
    else:
        candles = generate_candles(args.candles, symbol, seed=args.seed)
    engine = BacktestEngine(config)
    if args.command == "optimize":
        periods = range(args.min_period, args.max_period + 1)
        optimization = engine.optimize_period(graph, candles, periods)
        if args.json:
            print(json.dumps(optimization.to_dict()))
        else:
            print_optimization(optimization)
        return 0

    backtest = engine.run(graph, candles)
    if args.json:
        print(json.dumps(backtest.to_dict()))
    else:
        print_backtest(backtest)
    return 0


def main() -> None:
    sys.exit(_run_cli())


if __name__ == "__main__":
    main()
