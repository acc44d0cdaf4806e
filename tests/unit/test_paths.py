"""Unit tests for attribute path helpers."""

import pytest

from provision.paths import drop_path, flatten, format_path, get_path, is_masked, parse_path, set_path


class TestParsePath:
    def test_terraform_notation(self) -> None:
        assert parse_path("stage[0].action[0].configuration") == ("stage", 0, "action", 0, "configuration")

    def test_format_back(self) -> None:
        assert format_path(("stage", 0, "action", 0, "configuration")) == "stage[0].action[0].configuration"

    @pytest.mark.parametrize("raw", ["", "   ", "stage[x]"])
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(ValueError):
            parse_path(raw)


class TestMask:
    def test_prefix_masks_subtree(self) -> None:
        mask = [parse_path("stage[0].action[0].configuration")]

        assert is_masked(("stage", 0, "action", 0, "configuration", "OAuthToken"), mask)
        assert not is_masked(("stage", 1, "action", 0, "configuration", "ProjectName"), mask)
        assert not is_masked(("stage", 0, "action", 0), mask)


class TestFlatten:
    def test_nested(self) -> None:
        value = {"a": {"b": [1, {"c": 2}]}, "empty": {}, "none": []}

        assert flatten(value) == {
            ("a", "b", 0): 1,
            ("a", "b", 1, "c"): 2,
            ("empty",): {},
            ("none",): [],
        }


class TestMutations:
    def test_set_and_drop_return_copies(self) -> None:
        original = {"stage": [{"action": [{"configuration": {"Owner": "octo"}}]}]}
        path = parse_path("stage[0].action[0].configuration")

        dropped = drop_path(original, path)
        replaced = set_path(original, path, {"Owner": "other"})

        assert "configuration" not in dropped["stage"][0]["action"][0]
        assert get_path(replaced, path) == {"Owner": "other"}
        assert get_path(original, path) == {"Owner": "octo"}

    def test_missing_intermediate(self) -> None:
        assert set_path({"a": 1}, ("b", "c"), 2) == {"a": 1}
        assert get_path({"a": 1}, ("b", "c"), default="x") == "x"
