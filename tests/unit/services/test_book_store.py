"""
Database tests for BookStore against SQLite.
"""

import pytest
import pytest_asyncio
from faker import Faker

fake = Faker()


@pytest_asyncio.fixture
async def book_store(database):
    from bookshelf.services.book.book_store import BookStore

    return BookStore(database=database)


async def add_book(store, **overrides):
    values = {
        "user_id": "user-owner",
        "title": fake.sentence(nb_words=3).rstrip("."),
        "author": fake.name(),
        "published_year": int(fake.year()),
    }
    values.update(overrides)
    return await store.create(**values)


class TestCreateAndGet:
    """Tests for create and get."""

    @pytest.mark.db
    @pytest.mark.asyncio
    async def test_create(self, book_store):
        book = await add_book(
            book_store,
            title="Moby Dick",
            author="Herman Melville",
            published_year=1851,
            isbn="9780142437247",
            cover_object_key="covers/9780142437247.jpg",
        )

        assert book.id is not None
        assert book.genre == ""

        stored = await book_store.get(book.id)
        assert stored.title == "Moby Dick"
        assert stored.published_year == 1851
        assert stored.cover_object_key == "covers/9780142437247.jpg"

    @pytest.mark.db
    @pytest.mark.asyncio
    async def test_get_missing(self, book_store):
        assert await book_store.get(12345) is None


class TestUpdate:
    """Tests for update."""

    @pytest.mark.db
    @pytest.mark.asyncio
    async def test_update_fields(self, book_store):
        book = await add_book(book_store, title="Draft")

        updated = await book_store.update(book.id, {"title": "Final", "cover_object_key": None})

        assert updated.title == "Final"
        assert updated.cover_object_key is None
        assert (await book_store.get(book.id)).title == "Final"

    @pytest.mark.db
    @pytest.mark.asyncio
    async def test_update_missing(self, book_store):
        assert await book_store.update(999, {"title": "Nothing"}) is None

    @pytest.mark.db
    @pytest.mark.asyncio
    async def test_owner_cannot_be_updated(self, book_store):
        book = await add_book(book_store)

        with pytest.raises(ValueError):
            await book_store.update(book.id, {"user_id": "someone-else"})


class TestDelete:
    """Tests for delete."""

    @pytest.mark.db
    @pytest.mark.asyncio
    async def test_delete(self, book_store):
        book = await add_book(book_store)

        assert await book_store.delete(book.id) is True
        assert await book_store.get(book.id) is None
        assert await book_store.delete(book.id) is False


class TestListAndSearch:
    """Tests for list and search."""

    @pytest.mark.db
    @pytest.mark.asyncio
    async def test_list_newest_first_with_total(self, book_store):
        books = [await add_book(book_store) for _ in range(3)]

        page, total = await book_store.list(limit=2, offset=0)

        assert total == 3
        assert [b.id for b in page] == [books[2].id, books[1].id]

    @pytest.mark.db
    @pytest.mark.asyncio
    async def test_list_past_the_end(self, book_store):
        await add_book(book_store)

        page, total = await book_store.list(limit=10, offset=5)

        assert page == []
        assert total == 1

    @pytest.mark.db
    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, book_store):
        whale = await add_book(book_store, title="Moby Dick", author="Herman Melville", genre="Adventure")
        await add_book(book_store, title="Emma", author="Jane Austen", genre="Romance")

        by_title, total = await book_store.search("moby", limit=10, offset=0)
        by_author, _ = await book_store.search("MELVILLE", limit=10, offset=0)
        by_genre, _ = await book_store.search("advent", limit=10, offset=0)
        nothing, none_total = await book_store.search("tolstoy", limit=10, offset=0)

        assert [b.id for b in by_title] == [whale.id]
        assert total == 1
        assert [b.id for b in by_author] == [whale.id]
        assert [b.id for b in by_genre] == [whale.id]
        assert nothing == []
        assert none_total == 0
