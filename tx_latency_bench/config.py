"""Resolve benchmark settings from flags, environment and deployment artifacts."""
from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from dotenv import find_dotenv, load_dotenv
from eth_account import Account
from web3 import Web3

DEFAULT_RPC_URL = "http://localhost:8545"


@dataclass
class BenchConfig:
    rpc_url: str
    account_key: str
    account_address: str
    contract_address: str
    abi: Optional[List[Dict[str, Any]]] = None
    predicate_key: Optional[str] = None
    predicate_address: Optional[str] = None

    def describe(self) -> Dict[str, Any]:
        # Keys stay out of anything printed or written to disk.
        return {
            "rpc_url": self.rpc_url,
            "account": self.account_address,
            "contract": self.contract_address,
            "predicate": self.predicate_address,
            "custom_abi": self.abi is not None,
        }


def load_environment(env_file: Optional[str] = None) -> bool:
    if env_file and not os.path.exists(env_file):
        raise FileNotFoundError(f"Environment file not found: {env_file}")
    return load_dotenv(dotenv_path=env_file or find_dotenv(usecwd=True), override=False)


def load_artifact(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Deployment artifact not found: {path}")
    with open(path, "r", encoding="utf-8") as handle:
        artifact = json.load(handle)

    contract_info = artifact.get("contract", {})
    if not contract_info.get("abi") or not contract_info.get("address"):
        raise KeyError("Artifact must include contract.abi and contract.address")
    return artifact


def _require(name: str, value: Optional[str]) -> str:
    if not value:
        raise ValueError(f"Missing required setting {name}; set it in the environment or .env file")
    return value


def _address_for_key(name: str, key: str) -> str:
    try:
        return Account.from_key(key).address
    except Exception as exc:  # noqa: BLE001 - eth-keys raises several types for bad keys
        raise ValueError(f"{name} is not a valid private key") from exc


def resolve_config(args: argparse.Namespace, require_predicate: bool = False) -> BenchConfig:
    artifact: Dict[str, Any] = {}
    if getattr(args, "artifact", None):
        artifact = load_artifact(os.path.abspath(args.artifact))
    contract_info = artifact.get("contract", {})
    network_info = artifact.get("network", {})

    rpc_url = (
        getattr(args, "rpc_url", None)
        or os.environ.get("PROVIDER_URL")
        or network_info.get("rpcUrl")
        or DEFAULT_RPC_URL
    )
    account_key = _require("ACCOUNT_PVK_1", os.environ.get("ACCOUNT_PVK_1"))
    account_address = _address_for_key("ACCOUNT_PVK_1", account_key)
    contract_address = _require(
        "TRANSFER_CONTRACT_ID",
        os.environ.get("TRANSFER_CONTRACT_ID") or contract_info.get("address"),
    )
    if not Web3.is_address(contract_address):
        raise ValueError(f"TRANSFER_CONTRACT_ID is not a valid address: {contract_address}")

    predicate_key = os.environ.get("PREDICATE_PVK") or None
    predicate_address: Optional[str] = None
    if require_predicate:
        predicate_key = _require("PREDICATE_PVK", predicate_key)
    if predicate_key:
        predicate_address = _address_for_key("PREDICATE_PVK", predicate_key)
        expected = os.environ.get("PREDICATE_ADDRESS")
        if expected and Web3.to_checksum_address(expected) != predicate_address:
            raise ValueError(
                f"PREDICATE_ADDRESS {expected} does not match the address derived from PREDICATE_PVK "
                f"({predicate_address})"
            )

    return BenchConfig(
        rpc_url=rpc_url,
        account_key=account_key,
        account_address=account_address,
        contract_address=Web3.to_checksum_address(contract_address),
        abi=contract_info.get("abi"),
        predicate_key=predicate_key,
        predicate_address=predicate_address,
    )
