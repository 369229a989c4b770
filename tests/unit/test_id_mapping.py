"""
Unit tests for the integer <-> native id map.
"""
from app.storage.id_mapping import IdentifierMap


class TestIdentifierMap:
    """Test id assignment and lookup."""

    def test_assigns_sequential_ids(self):
        """Test new native ids get 1, 2, 3..."""
        ids = IdentifierMap()

        assert ids.assign("a-1") == 1
        assert ids.assign("b-2") == 2
        assert ids.assign("c-3") == 3

    def test_assign_is_idempotent(self):
        """Test a native id already mapped keeps its integer."""
        ids = IdentifierMap()
        first = ids.assign("a-1")

        assert ids.assign("a-1") == first
        assert ids.get_or_assign("a-1") == first
        assert len(ids) == 1

    def test_lookups_both_directions(self):
        """Test lookup_native and lookup_integer agree."""
        ids = IdentifierMap()
        integer_id = ids.assign("page-xyz")

        assert ids.lookup_native(integer_id) == "page-xyz"
        assert ids.lookup_integer("page-xyz") == integer_id
        assert integer_id in ids

    def test_unknown_lookups_return_none(self):
        """Test unmapped ids are absent, not errors."""
        ids = IdentifierMap()

        assert ids.lookup_native(42) is None
        assert ids.lookup_integer("nope") is None
        assert 42 not in ids

    def test_remove_drops_both_directions(self):
        """Test remove forgets the mapping and returns the native id."""
        ids = IdentifierMap()
        integer_id = ids.assign("a-1")

        assert ids.remove(integer_id) == "a-1"
        assert ids.lookup_native(integer_id) is None
        assert ids.lookup_integer("a-1") is None
        assert ids.remove(integer_id) is None

    def test_removed_integers_are_never_reused(self):
        """Test the counter keeps growing after removal and clear."""
        ids = IdentifierMap()
        ids.assign("a-1")
        second = ids.assign("b-2")
        ids.remove(second)

        assert ids.assign("c-3") == 3

        ids.clear()
        assert len(ids) == 0
        assert ids.assign("a-1") == 4

    def test_custom_start(self):
        ids = IdentifierMap(start=100)

        assert ids.assign("a-1") == 100
