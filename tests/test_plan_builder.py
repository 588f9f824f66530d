import pytest

from facetcut.api.services.plan_builder import PlanBuilder
from facetcut.core.exceptions import (
    InvalidFacetReferenceError,
    SelectorAlreadyRemovedError,
    SelectorNotInstalledError,
)
from facetcut.domain.models.cut import AddCut, NamedFacet, RemoveCut, ReplaceCut
from facetcut.domain.models.diamond import DiamondState
from facetcut.infrastructure.blockchain.selectors import selector_of
from tests.fakes import OLD_FACET, address_for

FOO = selector_of("foo()")
BAR = selector_of("bar(uint256)")
BAZ = selector_of("baz()")
QUX = selector_of("qux(address)")


@pytest.fixture
def builder(artifacts):
    return PlanBuilder(artifacts)


def test_new_facet_becomes_single_add(builder):
    entries = builder.build(["FacetX"], DiamondState())

    assert entries == [AddCut(facet=NamedFacet(name="FacetX"), functions=[FOO, BAR])]


def test_installed_facet_becomes_single_replace(builder):
    state = DiamondState.from_loupe([(OLD_FACET, [FOO, BAR])])

    entries = builder.build(["FacetX"], state)

    assert entries == [ReplaceCut(facet=NamedFacet(name="FacetX"), functions=[FOO, BAR])]


def test_partially_installed_facet_gets_add_and_replace(builder):
    state = DiamondState.from_loupe([(OLD_FACET, [FOO])])

    entries = builder.build(["FacetY", "FacetZ"], state)

    assert entries == [
        AddCut(facet=NamedFacet(name="FacetY"), functions=[BAZ]),
        ReplaceCut(facet=NamedFacet(name="FacetY"), functions=[FOO]),
        AddCut(facet=NamedFacet(name="FacetZ"), functions=[QUX]),
    ]


def test_initializer_is_never_diffed(builder):
    entries = builder.build(["DiamondInit"], DiamondState())

    assert entries == [
        AddCut(facet=NamedFacet(name="DiamondInit"), functions=[selector_of("ping()")])
    ]


def test_removal_entry_comes_first(builder):
    state = DiamondState.from_loupe([(OLD_FACET, [FOO, BAZ])])

    entries = builder.build(["FacetX"], state, selectors_to_remove=["baz()"])

    assert entries[0] == RemoveCut(functions=[BAZ])
    assert entries[1:] == [
        AddCut(facet=NamedFacet(name="FacetX"), functions=[BAR]),
        ReplaceCut(facet=NamedFacet(name="FacetX"), functions=[FOO]),
    ]


def test_removing_missing_selector_fails(builder):
    state = DiamondState.from_loupe([(OLD_FACET, [FOO])])

    with pytest.raises(SelectorAlreadyRemovedError) as exc_info:
        builder.build(["FacetX"], state, selectors_to_remove=[FOO, BAZ])

    assert exc_info.value.message == f"Function selector to remove is already gone: {BAZ}"
    assert isinstance(exc_info.value, SelectorNotInstalledError)


def test_anonymous_facets_cannot_be_diffed(builder):
    with pytest.raises(InvalidFacetReferenceError):
        builder.build([address_for(3)], DiamondState())


def test_deployed_facet_keeps_its_address(builder):
    entries = builder.build([("FacetZ", address_for(9))], DiamondState())

    assert entries[0].facet.address == address_for(9)
    assert entries[0].functions == [QUX]
