from facetcut.infrastructure.blockchain.diamond_client import (
    DIAMOND_CUT_ABI,
    DIAMOND_LOUPE_ABI,
)
from facetcut.infrastructure.blockchain.selectors import (
    INIT_SIGNATURE,
    function_signature,
    is_selector,
    selector_of,
    selectors_of,
)
from tests.fakes import abi_function


def test_selector_of_known_signatures():
    assert selector_of("transfer(address,uint256)") == "0xa9059cbb"
    assert selector_of("balanceOf(address)") == "0x70a08231"


def test_selector_is_deterministic_and_four_bytes():
    for signature in ["foo()", "bar(uint256)", "init(bytes)", "a(b,c)"]:
        selector = selector_of(signature)
        assert selector == selector_of(signature)
        assert is_selector(selector)
        assert len(bytes.fromhex(selector[2:])) == 4


def test_tuple_parameters_are_collapsed():
    assert function_signature(DIAMOND_CUT_ABI[0]) == (
        "diamondCut((address,uint8,bytes4[])[],address,bytes)"
    )
    assert selector_of(function_signature(DIAMOND_CUT_ABI[0])) == "0x1f931c1c"
    assert selector_of(function_signature(DIAMOND_LOUPE_ABI[0])) == "0x7a0ed627"


def test_selectors_of_skips_initializer():
    abi = [abi_function(INIT_SIGNATURE), abi_function("foo()"), abi_function("init(uint256)")]
    abi.append({"type": "event", "name": "Upgraded", "inputs": []})

    selectors = selectors_of(abi)

    assert list(selectors) == ["foo()", "init(uint256)"]
    assert selector_of(INIT_SIGNATURE) not in selectors.values()


def test_is_selector():
    assert is_selector("0xA9059CBB")
    assert not is_selector("a9059cbb")
    assert not is_selector("transfer(address,uint256)")
    assert not is_selector("0xa9059cbb00")
