import pytest

from modkeeper.closure import transitive_closure
from modkeeper.exceptions import MissingDependencyError
from modkeeper.manifest import Manifest


def _catalog(**deps):
    return [Manifest(name=name, dependencies=d) for name, d in deps.items()]


@pytest.mark.unit
class TestTransitiveClosure:
    """Test dependency expansion over the catalog."""

    def setup_method(self):
        self.catalog = _catalog(A=["B"], B=[], C=[])

    def test_includes_dependencies(self):
        result = transitive_closure(self.catalog, ["A"])
        assert set(result.names()) == {"A", "B"}
        assert result.missing == []

    def test_missing_name_reported_with_partial_result(self):
        result = transitive_closure(self.catalog, ["A", "Z"])
        assert set(result.names()) == {"A", "B"}
        assert result.missing == ["Z"]

    def test_cycle_terminates(self):
        catalog = _catalog(A=["B"], B=["A"])
        result = transitive_closure(catalog, ["A"])
        assert sorted(result.names()) == ["A", "B"]
        assert result.missing == []

    def test_each_record_appears_once(self):
        catalog = _catalog(A=["B", "C"], B=["C"], C=["A"])
        result = transitive_closure(catalog, ["A", "B", "C", "A"])
        assert sorted(result.names()) == ["A", "B", "C"]

    def test_missing_transitive_dependency(self):
        catalog = _catalog(A=["B"], B=["Y", "X"])
        result = transitive_closure(catalog, ["A"])
        assert set(result.names()) == {"A", "B"}
        assert result.missing == ["X", "Y"]

    def test_unspecified_dependencies(self):
        catalog = [Manifest(name="A")]
        assert transitive_closure(catalog, ["A"]).names() == ["A"]

    def test_empty_request(self):
        result = transitive_closure(self.catalog, [])
        assert result.manifests == []
        assert result.missing == []

    def test_first_duplicate_wins(self):
        catalog = [
            Manifest(name="A", version="1"),
            Manifest(name="A", version="2"),
        ]
        assert transitive_closure(catalog, ["A"]).manifests[0].version == "1"

    def test_raise_for_missing(self):
        result = transitive_closure(self.catalog, ["Z", "A", "Q"])
        with pytest.raises(MissingDependencyError) as exc_info:
            result.raise_for_missing()
        assert exc_info.value.missing == ["Q", "Z"]
        assert str(exc_info.value) == "required mods do not exist: Q, Z"

    def test_raise_for_missing_noop(self):
        transitive_closure(self.catalog, ["A"]).raise_for_missing()
