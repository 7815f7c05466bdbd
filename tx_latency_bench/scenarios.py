"""Benchmark scenarios: what gets set up and which step gets timed."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from web3 import AsyncWeb3

from .contracts import bind_transfer_contract, build_transfer_params, fund_account, submit_transfer

# Enough to cover gas for a single transfer call on a dev network.
DEFAULT_FUND_AMOUNT = 10**16


@dataclass(frozen=True)
class Scenario:
    label: str
    outputs: int
    amount: int
    use_predicate: bool = False
    fund_amount: int = DEFAULT_FUND_AMOUNT


@dataclass
class BenchContext:
    web3: AsyncWeb3
    account: Any
    contract_address: str
    abi: Optional[list] = None
    predicate: Any = None
    timeout: float = 120
    gas_limit: Optional[int] = None


SCENARIOS: Dict[str, Scenario] = {
    scenario.label: scenario
    for scenario in (
        Scenario(label="script-transaction-1x-output", outputs=1, amount=100),
        Scenario(label="script-transaction-4x-output", outputs=4, amount=100),
        Scenario(label="script-transaction-with-predicate", outputs=1, amount=250, use_predicate=True),
    )
}


def get_scenario(label: str) -> Scenario:
    try:
        return SCENARIOS[label]
    except KeyError:
        known = ", ".join(sorted(SCENARIOS))
        raise ValueError(f"Unknown scenario '{label}'. Available: {known}") from None


def signer_for(scenario: Scenario, context: BenchContext) -> Any:
    if not scenario.use_predicate:
        return context.account
    if context.predicate is None:
        raise ValueError(f"Scenario {scenario.label} requires a predicate account (PREDICATE_PVK)")
    return context.predicate


async def prepare(scenario: Scenario, context: BenchContext) -> Optional[Any]:
    """Run the untimed setup for ``scenario``; returns the funding receipt if any."""
    if not scenario.use_predicate:
        return None

    predicate = signer_for(scenario, context)
    print(
        f"[INFO] Funding predicate {predicate.address} with {scenario.fund_amount} wei...",
        flush=True,
    )
    receipt = await fund_account(
        context.web3,
        context.account,
        predicate.address,
        scenario.fund_amount,
        timeout=context.timeout,
    )
    print(f"[INFO] Predicate funded in block {receipt.get('blockNumber')}", flush=True)
    return receipt


def build_operation(scenario: Scenario, context: BenchContext) -> Callable[[], Awaitable[Any]]:
    signer = signer_for(scenario, context)

    async def operation() -> Any:
        contract = bind_transfer_contract(context.web3, context.contract_address, context.abi)
        params = build_transfer_params(context.account.address, scenario.amount, scenario.outputs)
        return await submit_transfer(
            context.web3,
            contract,
            signer,
            params,
            timeout=context.timeout,
            gas_limit=context.gas_limit,
        )

    return operation
