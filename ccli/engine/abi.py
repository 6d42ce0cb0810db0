"""Interface descriptor for the deployed counter contract."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector

COUNTER_ABI: Final[list[dict[str, Any]]] = [
    {
        "inputs": [],
        "name": "decrement",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getCount",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "increment",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


def functionSignature(entry: dict[str, Any]) -> str:
    """Canonical signature like ``transfer(address,uint256)`` for an ABI function entry."""
    types = ",".join(i["type"] for i in entry.get("inputs", []))
    return f"{entry['name']}({types})"


@dataclass(slots=True, frozen=True)
class ContractInterface:
    """Selectors and output types for every function in an ABI.

    Only argument-less calls are encoded because the counter has no
    parameterized entry points.
    """

    abi: list[dict[str, Any]]
    selectors: dict[str, str] = field(init=False)
    outputs: dict[str, list[str]] = field(init=False)

    def __post_init__(self):
        selectors = {}
        outputs = {}
        for entry in self.abi:
            if entry.get("type") != "function":
                continue

            name = entry["name"]
            selectors[name] = encode_hex(
                function_signature_to_4byte_selector(functionSignature(entry))
            )
            outputs[name] = [o["type"] for o in entry.get("outputs", [])]

        # frozen dataclass: bypass __setattr__ for derived fields
        object.__setattr__(self, "selectors", selectors)
        object.__setattr__(self, "outputs", outputs)

    def encodeCall(self, name: str) -> str:
        """Calldata for calling ``name`` with no arguments."""
        if name not in self.selectors:
            raise KeyError(f"Function not in ABI: {name}")

        return self.selectors[name]

    def decodeResult(self, name: str, data: str) -> tuple:
        """Decode the hex return data of ``name`` into a tuple of Python values.

        Raises ValueError when the data doesn't match the declared outputs
        (including the empty ``0x`` a node returns for calls to a non-contract).
        """
        try:
            return tuple(decode(self.outputs[name], decode_hex(data)))
        except DecodingError as e:
            raise ValueError(f"Can't decode {name} result {data!r}: {e}") from e


COUNTER: Final = ContractInterface(COUNTER_ABI)
