"""Benchmark contract transfer latency on an EVM JSON-RPC network."""
from __future__ import annotations

import argparse
import asyncio
import csv
import dataclasses
import json
import math
import os
import statistics
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from eth_account import Account
from web3 import AsyncWeb3
from web3.middleware import ExtraDataToPOAMiddleware

from .config import load_environment, resolve_config
from .helpers import measure
from .scenarios import SCENARIOS, BenchContext, Scenario, build_operation, get_scenario, prepare

DEFAULT_BENCHMARK_DIR = "benchmarks"

CSV_HEADER = [
    "index",
    "label",
    "tx_hash",
    "status",
    "gas_used",
    "block_number",
    "duration_sec",
    "error",
    "labels",
]


def parse_args(argv: Optional[List[str]] = None, scenario: Optional[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "scenario",
        nargs="?",
        default=scenario,
        choices=sorted(SCENARIOS),
        help="Benchmark scenario to run",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to a .env file (defaults to searching for .env from the working directory)",
    )
    parser.add_argument(
        "--artifact",
        default=None,
        help="Optional deployment artifact containing contract address, ABI and rpcUrl",
    )
    parser.add_argument(
        "--rpc-url",
        default=None,
        help="Override RPC endpoint (defaults to PROVIDER_URL, then the artifact)",
    )
    parser.add_argument(
        "--runs",
        type=int,
        default=1,
        help="Number of times to run the timed transaction",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=120,
        help="Seconds to wait for each transaction receipt",
    )
    parser.add_argument(
        "--gas-limit",
        type=int,
        default=None,
        help="Gas limit for each transfer call (estimated by the node when omitted)",
    )
    parser.add_argument(
        "--fund-amount",
        type=int,
        default=None,
        help="Wei sent to the predicate account before each predicate run",
    )
    parser.add_argument(
        "--poa",
        action="store_true",
        help="Inject POA middleware (recommended for Clique/IBFT)",
    )
    parser.add_argument(
        "--output-dir",
        default=DEFAULT_BENCHMARK_DIR,
        help="Directory where benchmark CSV and summary JSON will be written",
    )
    parser.add_argument(
        "--summary-only",
        action="store_true",
        help="Skip CSV emission, only write the summary JSON",
    )
    parser.add_argument(
        "--labels",
        help="Optional comma-separated labels to include in CSV rows",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and connectivity without sending transactions",
    )
    args = parser.parse_args(argv)
    if args.scenario is None:
        parser.error("a scenario is required")
    if args.runs < 1:
        parser.error("--runs must be at least 1")
    return args


def percentile(values: List[float], fraction: float) -> float:
    if not values:
        raise ValueError("Cannot compute percentile of empty list")
    ordered = sorted(values)
    index = max(0, math.ceil(fraction * len(ordered)) - 1)
    return ordered[index]


def calculate_latency_stats(latencies: List[float]) -> Optional[Dict[str, float]]:
    if not latencies:
        return None
    return {
        "avg": statistics.mean(latencies),
        "p95": percentile(latencies, 0.95),
        "max": max(latencies),
        "count": len(latencies),
    }


def format_latency_line(label: str, stats: Optional[Dict[str, float]]) -> str:
    if not stats or stats.get("count", 0) == 0:
        return f"- {label}: no successful runs"
    return (
        f"- {label}: avg {stats['avg']:.4f} s, p95 {stats['p95']:.4f} s, "
        f"max {stats['max']:.4f} s (n = {stats['count']})"
    )


def sanitize_component(value: str) -> str:
    return "".join(char if char.isalnum() or char in ("-", "_") else "_" for char in value)


def ensure_directory(path: str) -> None:
    if not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def inject_poa_if_needed(web3: AsyncWeb3, enabled: bool) -> None:
    if enabled:
        try:
            web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        except ValueError:
            # Middleware already present
            pass


def connect(rpc_url: str, poa: bool) -> AsyncWeb3:
    web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
    inject_poa_if_needed(web3, poa)
    return web3


def build_output_paths(output_dir: str, label: str) -> Dict[str, str]:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    ensure_directory(output_dir)
    name = sanitize_component(label)
    return {
        "csv": os.path.join(output_dir, f"{name}.csv"),
        "summary": os.path.join(output_dir, f"{name}_summary_{timestamp}.json"),
        "timestamp": timestamp,
    }


def receipt_row(index: int, label: str, receipt: Any, duration: float, label_string: str) -> Dict[str, Any]:
    tx_hash = receipt.get("transactionHash")
    return {
        "index": index,
        "label": label,
        "tx_hash": AsyncWeb3.to_hex(tx_hash) if tx_hash is not None else None,
        "status": receipt.get("status", 0),
        "gas_used": receipt.get("gasUsed"),
        "block_number": receipt.get("blockNumber"),
        "duration_sec": duration,
        "error": None,
        "labels": label_string,
    }


def failure_row(index: int, label: str, exc: BaseException, label_string: str) -> Dict[str, Any]:
    return {
        "index": index,
        "label": label,
        "tx_hash": getattr(exc, "tx_hash", None),
        "status": 0,
        "gas_used": None,
        "block_number": None,
        "duration_sec": None,
        "error": str(exc),
        "labels": label_string,
    }


async def run_scenario(
    scenario: Scenario,
    context: BenchContext,
    runs: int = 1,
    labels: Optional[List[str]] = None,
) -> List[Dict[str, Any]]:
    label_string = "|".join(labels) if labels else ""
    results: List[Dict[str, Any]] = []

    for index in range(runs):
        try:
            await prepare(scenario, context)
            measurement = await measure(build_operation(scenario, context))
        except Exception as exc:  # noqa: BLE001 - a failed run is recorded without a duration
            results.append(failure_row(index, scenario.label, exc, label_string))
            print(f"[ERROR] Run {index + 1}/{runs} of {scenario.label} failed: {exc}", file=sys.stderr)
            continue

        print(scenario.label, measurement.duration, flush=True)
        results.append(
            receipt_row(index, scenario.label, measurement.result, measurement.duration, label_string)
        )

    return results


def write_results_csv(path: str, results: List[Dict[str, Any]]) -> None:
    ensure_directory(os.path.dirname(path))
    write_header = not os.path.exists(path)
    with open(path, "a", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=CSV_HEADER)
        if write_header:
            writer.writeheader()
        for row in results:
            writer.writerow({key: row.get(key) for key in CSV_HEADER})


def successful_durations(results: List[Dict[str, Any]]) -> List[float]:
    return [row["duration_sec"] for row in results if row["duration_sec"] is not None]


def build_summary(
    scenario: Scenario,
    results: List[Dict[str, Any]],
    stats: Optional[Dict[str, float]],
    timestamp: str,
    rpc_url: str,
    chain_id: Optional[int],
    labels: List[str],
) -> Dict[str, Any]:
    success_count = int(stats["count"]) if stats else 0
    summary: Dict[str, Any] = {
        "timestamp": timestamp,
        "scenario": scenario.label,
        "outputs": scenario.outputs,
        "amount": scenario.amount,
        "rpc_url": rpc_url,
        "chain_id": chain_id,
        "runs": len(results),
        "success": success_count,
        "failed": len(results) - success_count,
        "labels": labels,
    }
    if stats:
        summary.update(
            {
                "latency_avg_sec": stats["avg"],
                "latency_p95_sec": stats["p95"],
                "latency_max_sec": stats["max"],
            }
        )
    return summary


async def run(args: argparse.Namespace) -> int:
    load_environment(args.env_file)
    scenario = get_scenario(args.scenario)
    if args.fund_amount is not None:
        scenario = dataclasses.replace(scenario, fund_amount=args.fund_amount)

    config = resolve_config(args, require_predicate=scenario.use_predicate)
    web3 = connect(config.rpc_url, args.poa)

    try:
        if not await web3.is_connected():
            raise ConnectionError(f"Unable to reach RPC endpoint: {config.rpc_url}")

        chain_id = await web3.eth.chain_id
        latest_block = await web3.eth.block_number
        account = Account.from_key(config.account_key)
        predicate = Account.from_key(config.predicate_key) if config.predicate_key else None

        print("RPC:", config.rpc_url)
        print("Chain ID:", chain_id)
        print("Latest block:", latest_block)
        print("Scenario:", scenario.label)
        print("Account:", account.address)
        print("Contract:", config.contract_address)
        if predicate is not None:
            print("Predicate:", predicate.address)

        if args.dry_run:
            print("Dry run complete. No transactions sent.")
            return 0

        labels: List[str] = []
        if args.labels:
            labels = [item.strip() for item in args.labels.split(",") if item.strip()]

        context = BenchContext(
            web3=web3,
            account=account,
            contract_address=config.contract_address,
            abi=config.abi,
            predicate=predicate,
            timeout=args.timeout,
            gas_limit=args.gas_limit,
        )
        results = await run_scenario(scenario, context, runs=args.runs, labels=labels)
    finally:
        await web3.provider.disconnect()

    paths = build_output_paths(os.path.abspath(args.output_dir), scenario.label)
    stats = calculate_latency_stats(successful_durations(results))
    summary = build_summary(scenario, results, stats, paths["timestamp"], config.rpc_url, chain_id, labels)
    summary["config"] = config.describe()

    print("--- Benchmark Summary ---")
    print(f"Runs attempted: {summary['runs']}")
    print(f"Successful: {summary['success']}")
    print(f"Failed: {summary['failed']}")
    print(format_latency_line(scenario.label, stats))

    if not args.summary_only:
        write_results_csv(paths["csv"], results)
        print(f"Detailed results appended to {paths['csv']}")

    with open(paths["summary"], "w", encoding="utf-8") as handle:
        json.dump(summary, handle, indent=2)
    print(f"Summary written to {paths['summary']}")

    return 0 if summary["failed"] == 0 else 1


def main(argv: Optional[List[str]] = None, scenario: Optional[str] = None) -> int:
    args = parse_args(argv, scenario)
    try:
        return asyncio.run(run(args))
    except (ValueError, KeyError, OSError) as exc:
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1


def transfer_1x() -> int:
    return main(scenario="script-transaction-1x-output")


def transfer_4x() -> int:
    return main(scenario="script-transaction-4x-output")


def transfer_predicate() -> int:
    return main(scenario="script-transaction-with-predicate")

