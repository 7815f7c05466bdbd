"""Binding for the ContractTransfer contract and plain value transfers."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from web3 import AsyncWeb3

# Zero address stands for the chain's native asset.
BASE_ASSET_ID = "0x0000000000000000000000000000000000000000"

TRANSFER_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "executeTransfer",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "params",
                "type": "tuple[]",
                "internalType": "struct ContractTransfer.TransferParams[]",
                "components": [
                    {"name": "recipient", "type": "address", "internalType": "address"},
                    {"name": "assetId", "type": "address", "internalType": "address"},
                    {"name": "amount", "type": "uint256", "internalType": "uint256"},
                ],
            }
        ],
        "outputs": [],
    },
    {
        "type": "event",
        "name": "Transferred",
        "anonymous": False,
        "inputs": [
            {"name": "recipient", "type": "address", "indexed": True, "internalType": "address"},
            {"name": "assetId", "type": "address", "indexed": True, "internalType": "address"},
            {"name": "amount", "type": "uint256", "indexed": False, "internalType": "uint256"},
        ],
    },
]

TransferParams = Tuple[str, str, int]


class TransferReverted(RuntimeError):
    """Raised when a transaction is mined with a failed status."""

    def __init__(self, tx_hash: str, receipt: Any = None) -> None:
        super().__init__(f"Transaction {tx_hash} reverted")
        self.tx_hash = tx_hash
        self.receipt = receipt


def build_transfer_params(
    recipient: str, amount: int, count: int = 1, asset_id: str = BASE_ASSET_ID
) -> List[TransferParams]:
    if count < 1:
        raise ValueError("At least one transfer output is required")
    if amount < 0:
        raise ValueError("Transfer amount must not be negative")
    checksum = AsyncWeb3.to_checksum_address(recipient)
    return [(checksum, AsyncWeb3.to_checksum_address(asset_id), amount) for _ in range(count)]


def forward_amount(params: Sequence[TransferParams], asset_id: str = BASE_ASSET_ID) -> int:
    asset = asset_id.lower()
    return sum(amount for _, param_asset, amount in params if param_asset.lower() == asset)


def bind_transfer_contract(
    web3: AsyncWeb3, address: str, abi: Optional[List[Dict[str, Any]]] = None
) -> Any:
    return web3.eth.contract(address=AsyncWeb3.to_checksum_address(address), abi=abi or TRANSFER_ABI)


async def _send_and_wait(web3: AsyncWeb3, account: Any, tx: Dict[str, Any], timeout: float) -> Any:
    signed = account.sign_transaction(tx)
    tx_hash = await web3.eth.send_raw_transaction(signed.raw_transaction)
    receipt = await web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
    if receipt.get("status", 0) != 1:
        raise TransferReverted(AsyncWeb3.to_hex(tx_hash), receipt)
    return receipt


async def submit_transfer(
    web3: AsyncWeb3,
    contract: Any,
    account: Any,
    params: Sequence[TransferParams],
    *,
    timeout: float,
    gas_limit: Optional[int] = None,
) -> Any:
    tx_fields: Dict[str, Any] = {
        "from": account.address,
        "value": forward_amount(params),
        "nonce": await web3.eth.get_transaction_count(account.address, "pending"),
    }
    if gas_limit:
        tx_fields["gas"] = gas_limit
    tx = await contract.functions.executeTransfer(list(params)).build_transaction(tx_fields)
    return await _send_and_wait(web3, account, tx, timeout)


async def fund_account(
    web3: AsyncWeb3, account: Any, recipient: str, amount: int, *, timeout: float
) -> Any:
    tx = {
        "from": account.address,
        "to": AsyncWeb3.to_checksum_address(recipient),
        "value": amount,
        "gas": 21000,
        "gasPrice": await web3.eth.gas_price,
        "nonce": await web3.eth.get_transaction_count(account.address, "pending"),
        "chainId": await web3.eth.chain_id,
    }
    return await _send_and_wait(web3, account, tx, timeout)
