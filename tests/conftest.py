from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

ACCOUNT_ADDRESS = "0x" + "aa" * 20
PREDICATE_ADDRESS = "0x" + "bb" * 20
CONTRACT_ADDRESS = "0x" + "cc" * 20
TX_HASH = bytes.fromhex("12" * 32)


async def _resolved(value: Any) -> Any:
    return value


class FakeAccount:
    def __init__(self, address: str) -> None:
        self.address = address
        self.signed: List[Dict[str, Any]] = []

    def sign_transaction(self, tx: Dict[str, Any]) -> SimpleNamespace:
        self.signed.append(tx)
        return SimpleNamespace(raw_transaction=b"signed-" + str(len(self.signed)).encode())


class FakeEth:
    def __init__(self, status: int = 1) -> None:
        self.status = status
        self.sent: List[bytes] = []
        self.waits: List[Dict[str, Any]] = []

    @property
    def chain_id(self):
        return _resolved(1337)

    @property
    def gas_price(self):
        return _resolved(7)

    @property
    def block_number(self):
        return _resolved(42)

    async def get_transaction_count(self, address: str, block: str = "latest") -> int:
        return 3

    async def send_raw_transaction(self, raw: bytes) -> bytes:
        self.sent.append(raw)
        return TX_HASH

    async def wait_for_transaction_receipt(self, tx_hash: bytes, timeout: float = 120) -> Dict[str, Any]:
        self.waits.append({"tx_hash": tx_hash, "timeout": timeout})
        return {
            "transactionHash": tx_hash,
            "status": self.status,
            "gasUsed": 52000,
            "blockNumber": 10,
        }


class FakeProvider:
    def __init__(self) -> None:
        self.disconnected = False

    async def disconnect(self) -> None:
        self.disconnected = True


class FakeWeb3:
    def __init__(self, status: int = 1, connected: bool = True) -> None:
        self.eth = FakeEth(status)
        self.provider = FakeProvider()
        self.connected = connected

    async def is_connected(self) -> bool:
        return self.connected


class FakeCall:
    def __init__(self, contract: "FakeContract", params: List[Any]) -> None:
        self.contract = contract
        self.params = params

    async def build_transaction(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        tx = dict(fields)
        tx.update({"to": self.contract.address, "data": "0xfeed", "chainId": 1337})
        tx.setdefault("gas", 90000)
        self.contract.built.append({"params": self.params, "fields": fields})
        return tx


class FakeContract:
    def __init__(self, address: str = CONTRACT_ADDRESS) -> None:
        self.address = address
        self.built: List[Dict[str, Any]] = []
        self.functions = SimpleNamespace(executeTransfer=lambda params: FakeCall(self, params))


@pytest.fixture
def account() -> FakeAccount:
    return FakeAccount(ACCOUNT_ADDRESS)


@pytest.fixture
def predicate() -> FakeAccount:
    return FakeAccount(PREDICATE_ADDRESS)


@pytest.fixture
def web3() -> FakeWeb3:
    return FakeWeb3()


@pytest.fixture
def contract() -> FakeContract:
    return FakeContract()
