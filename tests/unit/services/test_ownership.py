"""
Unit tests for the ownership guard.
"""

import pytest


class TestOwnershipGuard:
    """Tests for resolve_owned_book."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_owner_gets_book(self, mock_book_store, book):
        from bookshelf.services.ownership import OwnershipGuard

        result = await OwnershipGuard(mock_book_store).resolve_owned_book(book.user_id, book.id)

        assert result == book

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_book(self, mock_book_store):
        from bookshelf.core.exceptions import NotFoundError
        from bookshelf.services.ownership import OwnershipGuard

        with pytest.raises(NotFoundError, match="book not found"):
            await OwnershipGuard(mock_book_store).resolve_owned_book("user-owner", 999)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_other_caller_forbidden(self, mock_book_store, book):
        from bookshelf.core.exceptions import ForbiddenError
        from bookshelf.services.ownership import OwnershipGuard

        with pytest.raises(ForbiddenError):
            await OwnershipGuard(mock_book_store).resolve_owned_book("someone-else", book.id)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_not_found_wins_over_forbidden(self, mock_book_store):
        """Test a missing book is reported as not found for any caller."""
        from bookshelf.core.exceptions import NotFoundError
        from bookshelf.services.ownership import OwnershipGuard

        with pytest.raises(NotFoundError):
            await OwnershipGuard(mock_book_store).resolve_owned_book("someone-else", 999)
