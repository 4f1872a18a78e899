"""Tests for model graph serialization."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import pytest

from nimbus_db.config import ClientConfig
from nimbus_db.exceptions import ConfigurationError
from nimbus_db.models import BinaryFile, Counter, ForgotPasswordEmail, GeoPoint, Model
from nimbus_db.serialization import Serializer, to_wire, to_wire_many
from sample_models import Author, Book, Library, Member


@dataclass
class Loose(Model):
    extra: dict | None = None


@dataclass
class Holder(Model):
    count: Counter = field(default_factory=Counter)
    things: list[Loose] = field(default_factory=list)


class TestBasicSerialization:
    """Test plain fields, ids and relations."""

    def test_assigns_id_lazily(self, book) -> None:
        """Test an id is assigned only when serialized."""
        assert book.id is None
        result = to_wire(book)
        assert book.id is not None
        assert result.value["book_id"] == book.id

    def test_keeps_existing_id(self, book) -> None:
        """Test an existing id is sent unchanged."""
        book.id = "b42"
        assert to_wire(book).value["book_id"] == "b42"

    def test_depth_zero_collapses_relations(self, book, author) -> None:
        """Test relations beyond the depth are sent as ids."""
        value = to_wire(book).value
        assert value == {
            "title": "Dune",
            "pages": 412,
            "author": author.id,
            "tags": ["scifi", "classic"],
            "book_id": book.id,
        }

    def test_depth_one_expands(self, book) -> None:
        """Test a relation within the depth is inlined."""
        value = to_wire(book, expansion_depth=1).value
        assert value["author"] == {"name": "Frank Herbert", "author_id": book.author.id}

    def test_negative_depth(self, book) -> None:
        """Test a negative depth collapses the root to its id."""
        result = to_wire(book, expansion_depth=-1)
        assert result.value == book.id

    def test_relation_hints(self, book) -> None:
        """Test relations are recorded even when collapsed."""
        result = to_wire(book)
        assert result.relation_hints.items() == [("author", "author")]

    def test_none_fields_omitted(self) -> None:
        """Test unset fields are left out of the body."""
        value = to_wire(Author()).value
        assert set(value) == {"author_id"}

    def test_datetime_field(self) -> None:
        """Test datetimes go through the codec table."""
        author = Author(name="Jane", born=datetime(1970, 1, 1, 0, 0, 3, tzinfo=timezone.utc))
        assert to_wire(author).value["born"] == 3000

    def test_field_names_lowercased(self) -> None:
        """Test emitted names are lowercase."""

        @dataclass
        class Mixed(Model):
            displayName: str | None = None

        assert to_wire(Mixed(displayName="x")).value["displayname"] == "x"

    def test_deterministic(self, book) -> None:
        """Test repeated calls give identical output once ids exist."""
        first = to_wire(book, expansion_depth=1)
        second = to_wire(book, expansion_depth=1)
        assert first.value == second.value
        assert first.relation_hints.items() == second.relation_hints.items()


class TestModelArrays:
    """Test collections of models."""

    def test_ids_at_depth_zero(self, library) -> None:
        """Test elements collapse to ids."""
        result = to_wire(library)
        assert result.value["books"] == ["b1", "b2"]
        assert result.relation_hints.items() == [("books", "book")]

    def test_expanded_elements(self, library) -> None:
        """Test elements are inlined within the depth."""
        value = to_wire(library, expansion_depth=1).value
        assert [b["title"] for b in value["books"]] == ["Dune", "Emma"]

    def test_empty_array_has_no_hint(self) -> None:
        """Test an empty collection records no relation."""
        result = to_wire(Library(name="Empty"))
        assert result.value["books"] == []
        assert not result.relation_hints


class TestSelection:
    """Test partial serialization."""

    def test_projection(self, book) -> None:
        """Test only selected fields and the id are sent."""
        value = to_wire(book, selection=["title"]).value
        assert set(value) == {"title", "book_id"}

    def test_nested_projection(self, book) -> None:
        """Test selections apply to inlined relations."""
        book.author.born = datetime(2000, 1, 1, tzinfo=timezone.utc)
        value = to_wire(book, expansion_depth=1, selection=["author.name"]).value
        assert set(value) == {"author", "book_id"}
        assert set(value["author"]) == {"name", "author_id"}

    def test_unselected_counter_not_drained(self) -> None:
        """Test an unselected counter keeps its pending delta."""
        book = Book(title="x", ratings=Counter())
        book.ratings.update_by(4)
        to_wire(book, selection=["title"])
        assert book.ratings.pending_delta == 4


class TestCounters:
    """Test counter fields."""

    def test_increment(self) -> None:
        """Test increment mode sends the delta under field[inc]."""
        book = Book(title="x", ratings=Counter(10))
        book.ratings.update_by(3)
        value = to_wire(book).value
        assert value["ratings[inc]"] == 3
        assert "ratings" not in value
        assert book.ratings.pending_delta == 0
        assert book.ratings.get() == 13

    def test_force(self) -> None:
        """Test set mode sends the absolute value."""
        book = Book(title="x", ratings=Counter())
        book.ratings.force_to(5)
        value = to_wire(book).value
        assert value["ratings"] == 5
        assert "ratings[inc]" not in value
        assert not book.ratings.is_dirty

    def test_force_then_update(self) -> None:
        """Test a delta after force_to is added to the forced value."""
        book = Book(title="x", ratings=Counter())
        book.ratings.force_to(5)
        book.ratings.update_by(1)
        assert to_wire(book).value["ratings"] == 6


class TestSpecialTypes:
    """Test geo points, binary files and password reset emails."""

    def test_geopoint(self, library) -> None:
        """Test geo points are objects with a type hint."""
        library.location = GeoPoint(40.0, -73.5)
        result = to_wire(library)
        assert result.value["location"] == {"lat": 40.0, "lon": -73.5}
        assert result.type_hints.items() == [("location", "geopoint")]

    def test_nested_type_hint_path(self, book) -> None:
        """Test type hints of inlined relations are prefixed."""
        book.author.home = GeoPoint(1.0, 2.0)
        result = to_wire(book, expansion_depth=1)
        assert result.type_hints.items() == [("author.home", "geopoint")]

    def test_binary_with_payload(self, library) -> None:
        """Test local bytes are sent encoded."""
        library.logo = BinaryFile("text/plain", "a.txt", b"hi")
        result = to_wire(library)
        assert result.value["logo"].endswith("aGk=")
        assert ("logo", "binary") in result.type_hints.items()

    def test_binary_without_payload(self, library) -> None:
        """Test a URL-only file is omitted but still hinted."""
        library.logo = BinaryFile.from_url("https://files.example.com/a.txt")
        result = to_wire(library)
        assert "logo" not in result.value
        assert "logo" in result.type_hints

    def test_forgot_password(self) -> None:
        """Test the reset email is sent as a string."""
        member = Member(username="paul", email=ForgotPasswordEmail("p@example.com"))
        result = to_wire(member)
        assert result.value["email"] == "p@example.com"
        assert result.type_hints["email"] == "forgotpassword"

    def test_headers(self, library) -> None:
        """Test hint headers built from a result."""
        library.location = GeoPoint(1.0, 2.0)
        headers = to_wire(library).headers()
        assert headers == {
            "X-Nimbus-Relations": "books=book",
            "X-Nimbus-FieldTypes": "location=geopoint",
        }


class TestConfigurationErrors:
    """Test misconfigured models fail before anything is emitted."""

    def test_id_field_collision(self) -> None:
        """Test a field named like the id field is rejected."""

        @dataclass
        class Clash(Model):
            clash_ID: str | None = None

        with pytest.raises(ConfigurationError, match="collides"):
            to_wire(Clash())

    def test_long_field_name(self) -> None:
        """Test field names over 25 characters are rejected."""

        @dataclass
        class Verbose(Model):
            a_really_long_field_name_xx: str | None = None

        with pytest.raises(ConfigurationError):
            to_wire(Verbose())

    def test_short_schema_name(self) -> None:
        """Test schema names under 3 characters are rejected."""

        @dataclass
        class Ox(Model):
            label: str | None = None

        with pytest.raises(ConfigurationError, match="schema"):
            to_wire(Ox())

    def test_custom_name_limits(self) -> None:
        """Test naming limits come from the config."""

        @dataclass
        class Ox(Model):
            label: str | None = None

        serializer = Serializer(config=ClientConfig(name_min_length=2))
        assert serializer.to_wire(Ox(label="a")).value["label"] == "a"

    def test_nested_composite(self) -> None:
        """Test a dict valued field is rejected."""
        with pytest.raises(ConfigurationError):
            to_wire(Loose(extra={"a": 1}))

    def test_untyped_array_of_models(self) -> None:
        """Test a collection without element type holding models is rejected."""

        @dataclass
        class Bag(Model):
            items: list = field(default_factory=list)

        with pytest.raises(ConfigurationError):
            to_wire(Bag(items=[Author(name="x")]))

    def test_atomic_failure(self) -> None:
        """Test a failure leaves counters and ids untouched."""

        @dataclass
        class Tally(Model):
            hits: Counter = field(default_factory=Counter)
            extra: dict | None = None

        tally = Tally(extra={"a": 1})
        tally.hits.update_by(2)
        with pytest.raises(ConfigurationError):
            to_wire(tally)
        assert tally.hits.pending_delta == 2
        assert tally.id is None

    def test_atomic_failure_in_relation(self) -> None:
        """Test a failure deep in the graph leaves the root untouched."""
        holder = Holder(things=[Loose(extra={"a": 1})])
        holder.count.update_by(1)
        with pytest.raises(ConfigurationError):
            to_wire(holder, expansion_depth=1)
        assert holder.count.pending_delta == 1
        assert holder.id is None


def test_to_wire_many() -> None:
    """Test bulk serialization produces an array at depth 0."""
    books = [Book(title="A"), Book(title="B", author=Author.from_id("a1"))]
    result = to_wire_many(books)
    assert [b["title"] for b in result.value] == ["A", "B"]
    assert result.value[1]["author"] == "a1"
    assert all(b.id for b in books)
