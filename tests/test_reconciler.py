"""Tests for merging wire JSON into model graphs."""

from __future__ import annotations

from datetime import datetime, timezone

from nimbus_db.models import BinaryFile, Counter, GeoPoint, new_instance
from nimbus_db.models.metadata import default_registry
from nimbus_db.serialization import (
    fill_from,
    find_existing,
    new_from_wire,
    to_wire,
    update_model_list,
)
from sample_models import Author, Book, Library, Member


class TestFillPrimitives:
    """Test plain fields."""

    def test_fill(self) -> None:
        """Test values, id and load state are applied."""
        book = Book()
        fill_from(book, {"title": "Dune", "PAGES": 412, "book_id": "b1", "tags": ["a"]})
        assert book.title == "Dune"
        assert book.pages == 412
        assert book.tags == ["a"]
        assert book.id == "b1"
        assert book.has_data

    def test_scalar_is_stub(self) -> None:
        """Test a bare id only sets the id."""
        book = Book(title="kept")
        fill_from(book, "b2")
        assert book.id == "b2"
        assert book.title == "kept"
        assert not book.has_data

    def test_array_is_not_an_id(self, log_records) -> None:
        """Test a JSON array is ignored instead of becoming an id."""
        book = Book(title="kept")
        book.id = "b1"
        fill_from(book, [1, 2])
        assert book.id == "b1"
        assert book.title == "kept"
        assert any(r["level"].name == "WARNING" for r in log_records)

    def test_numeric_id_stub(self) -> None:
        """Test a numeric id is accepted as a stub."""
        book = fill_from(Book(), 17)
        assert book.id == "17"
        assert not book.has_data

    def test_null_clears(self) -> None:
        """Test an incoming null sets the field to None."""
        book = Book(title="Dune")
        fill_from(book, {"title": None})
        assert book.title is None

    def test_datetime(self) -> None:
        """Test epoch milliseconds decode to datetimes."""
        book = Book()
        fill_from(book, {"createddate": 1000})
        assert book.createddate == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)

    def test_unknown_key_logged(self, log_records) -> None:
        """Test unknown keys are skipped and logged at debug level."""
        book = Book()
        fill_from(book, {"title": "x", "publisher": "Ace"})
        assert book.title == "x"
        messages = [r["message"] for r in log_records if r["level"].name == "DEBUG"]
        assert any("publisher" in m for m in messages)

    def test_mismatch_skipped(self, log_records) -> None:
        """Test a bad value is skipped with a warning and the rest applies."""
        book = Book(title="kept")
        fill_from(book, {"title": 5, "pages": 3})
        assert book.title == "kept"
        assert book.pages == 3
        warnings = [r for r in log_records if r["level"].name == "WARNING"]
        assert len(warnings) == 1
        assert "title" in warnings[0]["message"]

    def test_selection(self) -> None:
        """Test only selected keys are applied."""
        book = Book(pages=1)
        fill_from(book, {"title": "T", "pages": 5}, selection=["title"])
        assert book.title == "T"
        assert book.pages == 1

    def test_binary_ignores_selection(self) -> None:
        """Test binary fields apply even when not selected."""
        library = Library()
        fill_from(library, {"logo": "https://files.example.com/a.png"}, selection=["name"])
        assert library.logo.remote_url == "https://files.example.com/a.png"


class TestRelations:
    """Test identity preserving reconciliation of relations."""

    def test_same_id_reused(self) -> None:
        """Test a matching nested instance is updated in place."""
        author = Author.from_id("a1")
        book = Book(author=author)
        fill_from(book, {"author": {"author_id": "a1", "name": "Frank"}})
        assert book.author is author
        assert author.name == "Frank"
        assert author.has_data

    def test_different_id_replaced(self) -> None:
        """Test a different id yields a new instance."""
        author = Author.from_id("a1")
        book = Book(author=author)
        fill_from(book, {"author": {"author_id": "a2", "name": "Jane"}})
        assert book.author is not author
        assert book.author.id == "a2"
        assert author.name is None

    def test_unexpanded_relation(self) -> None:
        """Test a bare id creates a stub."""
        book = Book()
        fill_from(book, {"author": "a9"})
        assert book.author.id == "a9"
        assert not book.author.has_data

    def test_unexpanded_relation_keeps_matching(self) -> None:
        """Test a bare id equal to the current one keeps the instance."""
        author = Author(name="Frank")
        author.id = "a1"
        book = Book(author=author)
        fill_from(book, {"author": "a1"})
        assert book.author is author
        assert author.name == "Frank"

    def test_nested_selection(self) -> None:
        """Test selections apply inside relations."""
        author = Author.from_id("a1")
        book = Book(author=author)
        fill_from(
            book,
            {"author": {"author_id": "a1", "name": "Frank", "born": 0}},
            selection=["author.name"],
        )
        assert author.name == "Frank"
        assert author.born is None


class TestModelArrays:
    """Test collections of models."""

    def test_matches_by_id_in_place(self, library) -> None:
        """Test elements are matched by id and the list is updated in place."""
        books = library.books
        first, second = books
        fill_from(
            library,
            {"books": [{"book_id": "b2", "title": "Emma!"}, {"book_id": "b1", "title": "Dune!"}]},
        )
        assert library.books is books
        assert books[0] is second
        assert books[1] is first
        assert second.title == "Emma!"

    def test_unsaved_element_takes_id(self) -> None:
        """Test an element without id absorbs an unmatched incoming one."""
        draft = Book(title="draft")
        library = Library(books=[draft])
        fill_from(library, {"books": [{"book_id": "b7", "title": "final"}]})
        assert library.books == [draft]
        assert draft.id == "b7"
        assert draft.title == "final"

    def test_new_elements_constructed(self, library) -> None:
        """Test unmatched incoming elements become new instances."""
        fill_from(library, {"books": ["b1", "b3"]})
        assert library.books[0].title == "Dune"
        assert library.books[1].id == "b3"
        assert not library.books[1].has_data

    def test_tuple_container_replaced(self) -> None:
        """Test an immutable container is replaced by the declared kind."""
        info = default_registry.metadata_for(Library).fields["books"]
        kept = Book.from_id("b1")
        result = update_model_list(info, (kept,), [{"book_id": "b1"}, {"book_id": "b2"}])
        assert isinstance(result, list)
        assert result[0] is kept
        assert result[1].id == "b2"

    def test_find_existing(self) -> None:
        """Test lookup of an existing element by wire id."""
        a, b = Book.from_id("1"), Book.from_id("2")
        assert find_existing([a, b], {"book_id": "2"}) is b
        assert find_existing([a, b], "3") is None


class TestSpecialKinds:
    """Test counters, binaries, geo points and emails."""

    def test_counter_commit(self) -> None:
        """Test the committed value is replaced and the delta kept."""
        counter = Counter()
        counter.update_by(2)
        book = Book(ratings=counter)
        fill_from(book, {"ratings": 10})
        assert book.ratings is counter
        assert counter.get() == 10
        assert counter.pending_delta == 2

    def test_counter_created(self) -> None:
        """Test a counter is created when missing."""
        book = Book()
        fill_from(book, {"ratings": 7})
        assert book.ratings.get() == 7

    def test_binary_updates_url(self) -> None:
        """Test only the url of an existing file changes."""
        logo = BinaryFile("image/png", "logo.png", b"data")
        library = Library(logo=logo)
        fill_from(library, {"logo": "https://files.example.com/logo.png"})
        assert library.logo is logo
        assert logo.remote_url == "https://files.example.com/logo.png"
        assert logo.payload == b"data"

    def test_geopoint(self) -> None:
        """Test geo points decode from their object form."""
        library = Library()
        fill_from(library, {"location": {"lat": 1.5, "lon": 2.5}})
        assert library.location == GeoPoint(1.5, 2.5)

    def test_bad_geopoint_skipped(self, log_records) -> None:
        """Test a malformed geo point is logged and skipped."""
        library = Library(name="x")
        fill_from(library, {"location": {"lat": 1.5}, "name": "y"})
        assert library.location is None
        assert library.name == "y"
        assert any(r["level"].name == "WARNING" for r in log_records)

    def test_forgot_password(self) -> None:
        """Test the email decodes from a string."""
        member = Member()
        fill_from(member, {"email": "p@example.com"})
        assert member.email.email == "p@example.com"


def test_new_from_wire() -> None:
    """Test building a fresh instance from wire JSON."""
    book = new_from_wire(Book, {"book_id": "b1", "title": "Dune", "author": "a1"})
    assert book.id == "b1"
    assert book.title == "Dune"
    assert book.author.id == "a1"
    assert book.tags == []
    assert book.has_data


class TestRoundTrip:
    """Test graphs survive serialization followed by a fill."""

    def _graph(self) -> Library:
        author = Author(
            name="Frank Herbert",
            born=datetime(1920, 10, 8, 12, 30, 0, 250000, tzinfo=timezone.utc),
            home=GeoPoint(47.25, -122.45),
        )
        ratings = Counter()
        ratings.force_to(5)
        book = Book(title="Dune", pages=412, author=author, tags=["sf", "classic"], ratings=ratings)
        return Library(name="Central", books=[book], location=GeoPoint(40.0, -74.5))

    def test_full_depth(self) -> None:
        """Test every field within the expansion depth comes back."""
        library = self._graph()
        result = to_wire(library, expansion_depth=2)
        restored = fill_from(new_instance(Library), result.value)

        assert restored.id == library.id
        assert restored.name == "Central"
        assert restored.location == GeoPoint(40.0, -74.5)
        book, original = restored.books[0], library.books[0]
        assert book.id == original.id
        assert book.has_data
        assert (book.title, book.pages, book.tags) == ("Dune", 412, ["sf", "classic"])
        assert book.ratings.get() == 5
        author = book.author
        assert author.id == original.author.id
        assert author.has_data
        assert author.name == "Frank Herbert"
        assert author.born == original.author.born
        assert author.home == GeoPoint(47.25, -122.45)

    def test_relations_below_depth_are_stubs(self) -> None:
        """Test relations past the expansion depth come back as id-only stubs."""
        library = self._graph()
        result = to_wire(library, expansion_depth=1)
        restored = fill_from(new_instance(Library), result.value)

        book = restored.books[0]
        assert book.has_data
        assert book.title == "Dune"
        stub = book.author
        assert stub.id == library.books[0].author.id
        assert not stub.has_data
        assert stub.name is None
