"""
Function selector codec.

Derives 4-byte selectors from canonical function signatures and enumerates
the routable selectors of a facet ABI.
"""

import re
from typing import Any, Dict, List

from eth_utils.abi import collapse_if_tuple
from web3 import Web3


# Initializer entry point, called directly by diamondCut and never routed
INIT_SIGNATURE = "init(bytes)"

_SELECTOR_PATTERN = re.compile(r"^0x[0-9a-fA-F]{8}$")


def selector_of(signature: str) -> str:
    """Return the 0x-prefixed 4-byte selector for a function signature."""
    return Web3.to_hex(Web3.keccak(text=signature)[:4])


def is_selector(value: str) -> bool:
    """True when value is a raw 0x-prefixed 4-byte selector."""
    return isinstance(value, str) and bool(_SELECTOR_PATTERN.match(value))


def normalize_selector(value: str) -> str:
    return value.lower()


def function_signature(abi_entry: Dict[str, Any]) -> str:
    """
    Build the canonical signature of an ABI function entry.

    Tuple parameters are collapsed to their component form, e.g.
    ``diamondCut((address,uint8,bytes4[])[],address,bytes)``.
    """
    types = ",".join(collapse_if_tuple(param) for param in abi_entry.get("inputs", []))
    return f"{abi_entry['name']}({types})"


def function_signatures(abi: List[Dict[str, Any]]) -> List[str]:
    """List every function signature declared in an ABI, in ABI order."""
    return [
        function_signature(entry)
        for entry in abi
        if entry.get("type", "function") == "function"
    ]


def selectors_of(abi: List[Dict[str, Any]]) -> Dict[str, str]:
    """
    Map every routable signature of a facet ABI to its selector.

    The initializer ``init(bytes)`` is left out so it never becomes callable
    through the diamond's fallback.
    """
    return {
        signature: selector_of(signature)
        for signature in function_signatures(abi)
        if signature != INIT_SIGNATURE
    }
