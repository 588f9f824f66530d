import pytest

from facetcut.api.services.cut_validator import CutValidator
from facetcut.core.exceptions import (
    DuplicateSelectorError,
    EmptyCutError,
    InvalidFacetCutActionError,
    InvalidFacetReferenceError,
    RemoveFacetNotAllowedError,
    SelectorAlreadyInstalledError,
    SelectorNotInstalledError,
    SignatureNotOnFacetError,
    StaleDiamondStateError,
    UsageError,
)
from facetcut.domain.models.cut import (
    ZERO_ADDRESS,
    AddCut,
    FacetCutAction,
    NamedFacet,
    RemoveCut,
    ReplaceCut,
)
from facetcut.domain.models.diamond import DiamondState
from facetcut.infrastructure.blockchain.selectors import selector_of
from tests.fakes import OLD_FACET, address_for

FOO = selector_of("foo()")
BAR = selector_of("bar(uint256)")
BAZ = selector_of("baz()")


@pytest.fixture
def validator(artifacts):
    return CutValidator(artifacts)


@pytest.fixture
def state():
    """Diamond with foo() installed."""
    return DiamondState.from_loupe([(OLD_FACET, [FOO])])


def test_add_of_new_selectors_is_accepted(validator, state):
    plan = validator.validate([("FacetX", FacetCutAction.ADD, ["bar(uint256)"])], state)

    assert len(plan.cuts) == 1
    assert plan.cuts[0].action is FacetCutAction.ADD
    assert plan.cuts[0].facet == NamedFacet(name="FacetX")
    assert plan.cuts[0].selectors == [BAR]


def test_add_of_installed_selector_is_rejected(validator, state):
    with pytest.raises(SelectorAlreadyInstalledError) as exc_info:
        validator.validate([("FacetX", FacetCutAction.ADD, ["foo()"])], state)

    assert "foo()" in exc_info.value.message
    assert "already exists in deployed diamond" in exc_info.value.message
    assert exc_info.value.details["installed_facet"] == OLD_FACET


@pytest.mark.parametrize("action", [FacetCutAction.REPLACE, FacetCutAction.REMOVE])
def test_replace_and_remove_require_installed_selector(validator, state, action):
    facet = "FacetY" if action is FacetCutAction.REPLACE else None

    with pytest.raises(SelectorNotInstalledError) as exc_info:
        validator.validate([(facet, action, ["baz()"])], state)

    assert "doesn't exist in deployed diamond" in exc_info.value.message


def test_replace_and_remove_of_installed_selector_are_accepted(validator, state):
    replace = validator.validate([("FacetY", "Replace", ["foo()"])], state)
    remove = validator.validate([(None, 2, ["foo()"])], state)

    assert replace.cuts[0].selectors == [FOO]
    assert remove.cuts[0].facet is None
    assert remove.cuts[0].selectors == [FOO]


@pytest.mark.parametrize("facet", ["FacetX", OLD_FACET, ("FacetX", OLD_FACET)])
def test_remove_with_facet_is_rejected(validator, state, facet):
    with pytest.raises(RemoveFacetNotAllowedError):
        validator.validate([(facet, FacetCutAction.REMOVE, ["foo()"])], state)


@pytest.mark.parametrize("facet", [None, "", ZERO_ADDRESS])
def test_remove_accepts_absent_facet(validator, state, facet):
    plan = validator.validate([(facet, FacetCutAction.REMOVE, ["foo()"])], state)

    assert plan.cuts[0].action is FacetCutAction.REMOVE


@pytest.mark.parametrize("action", [3, -1, "Upgrade", None, True])
def test_unknown_action_is_a_usage_error(validator, state, action):
    with pytest.raises(InvalidFacetCutActionError) as exc_info:
        validator.validate([("FacetX", action, ["bar(uint256)"])], state)

    assert isinstance(exc_info.value, UsageError)


def test_signature_must_be_declared_by_facet(validator, state):
    with pytest.raises(SignatureNotOnFacetError) as exc_info:
        validator.validate([("FacetX", FacetCutAction.ADD, ["baz()"])], state)

    assert "FacetX" in exc_info.value.message

    with pytest.raises(SignatureNotOnFacetError):
        validator.validate([("FacetZ", FacetCutAction.REPLACE, ["foo()"])], state)


def test_raw_selectors_resolve_to_declared_signatures(validator, state):
    plan = validator.validate([("FacetX", FacetCutAction.ADD, ["0x" + BAR[2:].upper()])], state)

    assert plan.cuts[0].selectors == [BAR]
    assert plan.cuts[0].signature_for(BAR) == "bar(uint256)"


def test_anonymous_facet_allowed_for_add_only(validator, state):
    anonymous = address_for(7)

    plan = validator.validate([(anonymous, FacetCutAction.ADD, [BAZ])], state)
    assert plan.cuts[0].facet.address == anonymous

    with pytest.raises(InvalidFacetReferenceError):
        validator.validate([(anonymous, FacetCutAction.REPLACE, [FOO])], state)


def test_empty_entry_is_rejected(validator, state):
    with pytest.raises(EmptyCutError):
        validator.validate([("FacetX", FacetCutAction.ADD, [])], state)


def test_duplicate_selectors_are_rejected(validator, state):
    with pytest.raises(DuplicateSelectorError):
        validator.validate([("FacetX", FacetCutAction.ADD, ["bar(uint256)", BAR])], state)

    with pytest.raises(DuplicateSelectorError):
        validator.validate(
            [
                ("FacetY", FacetCutAction.REPLACE, ["foo()"]),
                (None, FacetCutAction.REMOVE, ["foo()"]),
            ],
            state,
        )


def test_typed_and_mapping_entries_are_accepted(validator, state):
    plan = validator.validate(
        [
            RemoveCut(functions=["foo()"]),
            AddCut(facet=NamedFacet(name="FacetY"), functions=["baz()"]),
            {"facet": "FacetX", "action": "add", "selectors": [BAR]},
        ],
        state,
    )

    assert [cut.action for cut in plan.cuts] == [
        FacetCutAction.REMOVE,
        FacetCutAction.ADD,
        FacetCutAction.ADD,
    ]
    assert plan.selectors == [FOO, BAZ, BAR]


def test_malformed_entry_is_a_usage_error(validator, state):
    with pytest.raises(UsageError):
        validator.validate([("FacetX", FacetCutAction.ADD)], state)

    with pytest.raises(UsageError):
        validator.validate([("FacetX", FacetCutAction.ADD, "bar(uint256)")], state)


def test_validation_reads_each_interface_once(validator, state, artifacts):
    validator.validate(
        [
            ("FacetY", FacetCutAction.ADD, ["baz()"]),
            ReplaceCut(facet=NamedFacet(name="FacetY"), functions=["foo()"]),
        ],
        state,
    )

    assert artifacts.lookups == ["FacetY"]


def test_check_against_state_reports_stale_state(validator, state):
    plan = validator.validate([("FacetX", FacetCutAction.ADD, ["bar(uint256)"])], state)
    changed = DiamondState.from_loupe([(OLD_FACET, [FOO, BAR])])

    validator.check_against_state(plan.cuts, state)
    with pytest.raises(StaleDiamondStateError) as exc_info:
        validator.check_against_state(plan.cuts, changed)

    assert exc_info.value.details["rule"] == "SELECTOR_ALREADY_INSTALLED"
