"""Tests for quiver.sync.resolution module."""

import pytest

from quiver.sync.resolution import ResolutionMode, resolve_upgrades


class TestResolutionMode:
    """Tests for ResolutionMode.from_policy."""

    @pytest.mark.parametrize(
        ("policy", "expected"),
        [
            ("all", ResolutionMode.ALL),
            ("NONE", ResolutionMode.NONE),
            (" ask ", ResolutionMode.PER_ITEM),
        ],
    )
    def test_valid_policies(self, policy, expected):
        assert ResolutionMode.from_policy(policy) is expected

    def test_invalid_policy(self):
        with pytest.raises(ValueError, match="Valid options: all, none, ask"):
            ResolutionMode.from_policy("sometimes")


class TestResolveUpgrades:
    """Tests for resolve_upgrades."""

    def test_all_approves_every_candidate(self):
        assert resolve_upgrades({"a", "b"}, ResolutionMode.ALL) == frozenset({"a", "b"})

    def test_none_approves_nothing(self):
        assert resolve_upgrades({"a", "b"}, ResolutionMode.NONE) == frozenset()

    def test_per_item_asks_in_sorted_order(self):
        asked: list[str] = []

        def confirm(name: str) -> bool:
            asked.append(name)
            return name == "b"

        approved = resolve_upgrades({"c", "a", "b"}, ResolutionMode.PER_ITEM, confirm)

        assert asked == ["a", "b", "c"]
        assert approved == frozenset({"b"})

    def test_per_item_no_response_is_skip(self):
        approved = resolve_upgrades({"a", "b"}, ResolutionMode.PER_ITEM, lambda name: None)

        assert approved == frozenset()

    def test_per_item_without_callback_skips(self):
        assert resolve_upgrades({"a"}, ResolutionMode.PER_ITEM) == frozenset()

    def test_only_explicit_true_approves(self):
        approved = resolve_upgrades({"a"}, ResolutionMode.PER_ITEM, lambda name: "yes")

        assert approved == frozenset()

    def test_approved_is_subset_of_candidates(self):
        approved = resolve_upgrades({"a"}, ResolutionMode.ALL)

        assert approved <= frozenset({"a"})

    def test_all_and_none_never_call_confirm(self):
        def confirm(name: str) -> bool:
            raise AssertionError("must not prompt")

        resolve_upgrades({"a"}, ResolutionMode.ALL, confirm)
        resolve_upgrades({"a"}, ResolutionMode.NONE, confirm)
