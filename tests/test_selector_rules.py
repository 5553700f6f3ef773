import pytest

from locatorpro.selector_rules import (
    IMPLICIT_ROLES,
    has_test_attribute,
    implicit_roles,
    is_test_like_id,
    is_utility_class,
    select_best_class,
)


def test_best_class_skips_utility_classes() -> None:
    assert select_best_class(["p-4", "text-lg", "submit-button"]) == "submit-button"


def test_best_class_falls_back_to_first_class_when_all_are_utility() -> None:
    assert select_best_class(["p-4", "mt-2", "flex"]) == "p-4"
    assert select_best_class([]) is None
    assert select_best_class(["", ""]) is None


@pytest.mark.parametrize(
    "class_name",
    ["p-4", "mx-2", "text-sm", "text-2xl", "w-64", "h-10", "bg-blue-500", "border-red", "hidden", "a1b2c3d4"],
)
def test_utility_class_patterns(class_name: str) -> None:
    assert is_utility_class(class_name)


@pytest.mark.parametrize("class_name", ["submit-button", "card__title", "nav-item", "btn"])
def test_semantic_classes_are_not_utility(class_name: str) -> None:
    assert not is_utility_class(class_name)


def test_test_like_id_vocabulary() -> None:
    assert is_test_like_id("qa-login")
    assert is_test_like_id("Cypress_Submit")
    assert not is_test_like_id("submit-btn")


def test_implicit_roles_follow_tag_and_input_type() -> None:
    assert implicit_roles("BUTTON", {}) == ["button"]
    assert implicit_roles("a", {"href": "/cart"}) == ["link"]
    assert implicit_roles("a", {}) == []
    assert implicit_roles("input", {"type": "checkbox"}) == ["checkbox"]
    assert implicit_roles("input", {}) == ["textbox"]
    assert implicit_roles("input", {"type": "color"}) == ["textbox"]
    assert implicit_roles("h3", {}) == ["heading"]
    assert implicit_roles("div", {}) == []


def test_role_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        IMPLICIT_ROLES["div"] = "group"  # type: ignore[index]


def test_has_test_attribute() -> None:
    assert has_test_attribute({"data-qa": "x"})
    assert not has_test_attribute({"data-cy": "x"})
