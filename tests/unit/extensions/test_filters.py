"""
Tests for composable entry filters and lazy selection.
"""
import pytest

from commonplace.core.exceptions import LockedError, MalformedError
from commonplace.extensions.filters import (
    FieldEq,
    FieldExists,
    FieldGrep,
    FieldIsType,
    HasTag,
    InCollection,
    select,
)
from commonplace.extensions.tags import add_tag
from commonplace.store.entry import Entry
from commonplace.store.header import Header, ValueType
from commonplace.store.identifier import Identifier


@pytest.fixture
def entry():
    header = Header({"diary": {"mood": "rested", "steps": 1, "ok": True}})
    item = Entry(Identifier.parse("diary/2024-01-01"), header, "body")
    add_tag(item, "travel")
    return item


class TestPredicates:
    """Tests for individual predicates."""

    def test_field_exists(self, entry):
        assert FieldExists("diary.mood")(entry)
        assert not FieldExists("diary.weather")(entry)

    def test_field_eq_is_type_strict(self, entry):
        assert FieldEq("diary.steps", 1).matches(entry)
        assert not FieldEq("diary.steps", 1.0).matches(entry)
        assert not FieldEq("diary.ok", 1).matches(entry)
        assert not FieldEq("diary.absent", None).matches(entry)

    def test_field_grep(self, entry):
        assert FieldGrep("diary.mood", r"^rest").matches(entry)
        assert not FieldGrep("diary.steps", "1").matches(entry)

    def test_field_grep_bad_pattern(self):
        with pytest.raises(MalformedError):
            FieldGrep("diary.mood", "(")

    def test_field_is_type(self, entry):
        assert FieldIsType("diary.ok", ValueType.BOOL).matches(entry)
        assert not FieldIsType("diary.ok", ValueType.INTEGER).matches(entry)

    def test_has_tag(self, entry):
        assert HasTag("travel").matches(entry)
        assert not HasTag("work").matches(entry)

    def test_in_collection(self, entry):
        assert InCollection("diary").matches(entry)
        assert not InCollection("contact").matches(entry)


class TestComposition:
    """Tests for &, | and ~."""

    def test_and_or_not(self, entry):
        assert (HasTag("travel") & FieldExists("diary.mood")).matches(entry)
        assert not (HasTag("travel") & HasTag("work")).matches(entry)
        assert (HasTag("work") | InCollection("diary")).matches(entry)
        assert (~HasTag("work")).matches(entry)

    def test_repr(self):
        predicate = HasTag("a") & ~FieldExists("x.y")
        assert repr(predicate) == "(HasTag('a') & ~FieldExists('x.y'))"


class TestSelect:
    """Tests for select over a store."""

    @pytest.fixture
    def populated(self, store):
        for name, tag in [("diary/a", "travel"), ("diary/b", "work"), ("contact/c", "travel")]:
            with store.checkout(name, create=True) as item:
                add_tag(item, tag)
        return store

    def test_select(self, populated):
        found = [str(i) for i in select(populated, HasTag("travel"))]
        assert found == ["contact/c", "diary/a"]

    def test_select_within_collection(self, populated):
        found = [str(i) for i in select(populated, HasTag("travel"), "diary")]
        assert found == ["diary/a"]

    def test_select_leaves_nothing_checked_out(self, populated):
        list(select(populated, ~HasTag("none")))
        assert not populated.checked_out()

    def test_select_locked_entry(self, populated):
        held = populated.retrieve("diary/b")
        with pytest.raises(LockedError):
            list(select(populated, HasTag("travel"), "diary"))
        populated.release(held)
