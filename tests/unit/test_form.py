"""Tests for FormParameterSet."""

from passgate.form import FormParameterSet


class TestFormParameterSet:
    """Tests for ordered overwrite-by-name semantics."""

    def test_new_names_append_in_order(self) -> None:
        fields = FormParameterSet()
        fields.set("xml", "2")
        fields.set("username", "alice")
        fields.set("method", "cli")
        assert list(fields) == ["xml", "username", "method"]

    def test_overwrite_keeps_original_position(self) -> None:
        """Setting an existing name updates it where it first appeared."""
        fields = FormParameterSet([("a", "1"), ("b", "2"), ("c", "3")])
        fields.set("a", "9")
        assert fields.items() == [("a", "9"), ("b", "2"), ("c", "3")]
        assert len(fields) == 3

    def test_repeated_set_leaves_single_entry(self) -> None:
        fields = FormParameterSet()
        fields.set("otp", "111111")
        fields.set("otp", "222222")
        assert fields.items() == [("otp", "222222")]

    def test_initial_pairs_with_duplicate_names(self) -> None:
        fields = FormParameterSet([("x", "1"), ("y", "2"), ("x", "3")])
        assert fields.items() == [("x", "3"), ("y", "2")]

    def test_get_missing_returns_none(self) -> None:
        assert FormParameterSet().get("uuid") is None

    def test_repr_hides_values(self) -> None:
        fields = FormParameterSet([("hash", "deadbeef")])
        assert "deadbeef" not in repr(fields)
        assert "hash" in repr(fields)
