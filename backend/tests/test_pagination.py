"""
Notekeep Backend: Query Builder Tests
=======================================

What we test:
    ✅ Parameter normalization (page, limit, order, sort allow-list)
    ✅ Injection attempts in sort_by never reach the SQL text
    ✅ Page arithmetic over real rows (25 rows, limit 10)
    ✅ Search is case-insensitive, spans title and content, stays owner-scoped
    ✅ LIKE wildcards in the search term match literally
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from notekeep.models.note import Note
from notekeep.models.user import User
from notekeep.pagination import MAX_LIMIT, PaginationParams, build_paginated_query, total_pages
from notekeep.services.note_service import NOTE_DEFAULT_SORT, NOTE_SORTABLE, NoteService

BASE_TIME = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def build(params: PaginationParams, **kwargs):
    return build_paginated_query(
        base_query=select(Note),
        count_query=select(func.count()).select_from(Note),
        params=params,
        sortable=NOTE_SORTABLE,
        default_sort=NOTE_DEFAULT_SORT,
        **kwargs,
    )


async def seed(db, email, titles, contents=None):
    user = User(email=email, password_hash="$2b$04$notarealhash")
    db.add(user)
    await db.flush()
    contents = contents or [""] * len(titles)
    for i, (title, content) in enumerate(zip(titles, contents)):
        db.add(
            Note(
                user_id=user.id,
                title=title,
                content=content,
                created_at=BASE_TIME + timedelta(minutes=i),
                updated_at=BASE_TIME + timedelta(minutes=i),
            )
        )
    await db.flush()
    return user


class TestNormalization:

    def test_defaults_for_out_of_range_values(self):
        params = PaginationParams(page=0, limit=-5, order="sideways", sort_by="nope").normalized(
            NOTE_SORTABLE, NOTE_DEFAULT_SORT
        )

        assert params.page == 1
        assert params.limit == 10
        assert params.order == "DESC"
        assert params.sort_by == "created_at"

    def test_valid_values_kept(self):
        params = PaginationParams(page=3, limit=25, order="asc", sort_by="title", search="  hi ").normalized(
            NOTE_SORTABLE, NOTE_DEFAULT_SORT
        )

        assert (params.page, params.limit, params.order, params.sort_by, params.search) == (
            3, 25, "ASC", "title", "hi",
        )
        assert params.offset == 50

    def test_limit_is_capped(self):
        params = PaginationParams(limit=100_000_000).normalized(NOTE_SORTABLE, NOTE_DEFAULT_SORT)

        assert params.limit == MAX_LIMIT

    @pytest.mark.parametrize("total,limit,expected", [(0, 10, 0), (1, 10, 1), (10, 10, 1), (25, 10, 3)])
    def test_total_pages(self, total, limit, expected):
        assert total_pages(total, limit) == expected


class TestStatementShape:

    def test_sort_injection_falls_back_to_default(self):
        query = build(PaginationParams(sort_by="'; DROP TABLE notes;--"))
        sql = str(query.data)

        assert query.params.sort_by == "created_at"
        assert "ORDER BY notes.created_at DESC" in sql
        assert "DROP" not in sql

    def test_count_has_filters_but_no_order_or_limit(self):
        query = build(PaginationParams(search="x", page=2), where=Note.title != "")
        count_sql = str(query.count)
        data_sql = str(query.data)

        assert "WHERE" in count_sql
        assert "ORDER BY" not in count_sql
        assert "LIMIT" not in count_sql
        assert "LIMIT" in data_sql and "OFFSET" in data_sql

    def test_search_term_is_bound_not_inlined(self):
        query = build(PaginationParams(search="o'hara"), search_columns=(Note.title,))

        assert "o'hara" not in str(query.data)

    def test_unknown_default_sort_is_a_programming_error(self):
        with pytest.raises(ValueError):
            build_paginated_query(
                select(Note), select(func.count()).select_from(Note),
                PaginationParams(), NOTE_SORTABLE, "missing",
            )


class TestAgainstDatabase:

    @pytest.mark.asyncio
    async def test_page_arithmetic(self, db_session, file_service):
        owner = await seed(db_session, "alice@example.com", [f"note {i:02d}" for i in range(25)])
        service = NoteService(file_service)

        page3 = await service.list_notes(db_session, owner.id, PaginationParams(page=3, limit=10))
        page4 = await service.list_notes(db_session, owner.id, PaginationParams(page=4, limit=10))

        assert len(page3.notes) == 5
        assert page3.total == 25
        assert page3.total_pages == 3
        assert page4.notes == []
        assert page4.total == 25

    @pytest.mark.asyncio
    async def test_sort_by_title_ascending(self, db_session, file_service):
        owner = await seed(db_session, "alice@example.com", ["banana", "apple", "cherry"])
        service = NoteService(file_service)

        result = await service.list_notes(
            db_session, owner.id, PaginationParams(sort_by="title", order="ASC")
        )

        assert [n.title for n in result.notes] == ["apple", "banana", "cherry"]

    @pytest.mark.asyncio
    async def test_default_order_is_newest_first(self, db_session, file_service):
        owner = await seed(db_session, "alice@example.com", ["first", "second", "third"])
        service = NoteService(file_service)

        result = await service.list_notes(db_session, owner.id, PaginationParams(sort_by="bogus"))

        assert [n.title for n in result.notes] == ["third", "second", "first"]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_and_owner_scoped(self, db_session, file_service):
        alice = await seed(
            db_session,
            "alice@example.com",
            ["Hello world", "Shopping", "Misc"],
            ["", "say HELLO to the grocer", "nothing here"],
        )
        await seed(db_session, "bob@example.com", ["hello from bob"])
        service = NoteService(file_service)

        result = await service.list_notes(db_session, alice.id, PaginationParams(search="hello"))

        assert result.total == 2
        assert {n.title for n in result.notes} == {"Hello world", "Shopping"}
        assert all(n.user_id == alice.id for n in result.notes)

    @pytest.mark.asyncio
    async def test_wildcards_match_literally(self, db_session, file_service):
        owner = await seed(db_session, "alice@example.com", ["100% done", "100 done"])
        service = NoteService(file_service)

        result = await service.list_notes(db_session, owner.id, PaginationParams(search="100%"))

        assert [n.title for n in result.notes] == ["100% done"]

    @pytest.mark.asyncio
    async def test_page_far_past_the_end_is_empty(self, db_session, file_service):
        owner = await seed(db_session, "alice@example.com", ["only"])
        service = NoteService(file_service)

        result = await service.list_notes(
            db_session, owner.id, PaginationParams(page=1_000_000_000_000_000_000_000, limit=100_000_000)
        )

        assert result.notes == []
        assert result.total == 1
        assert result.limit == MAX_LIMIT

    @pytest.mark.asyncio
    async def test_underscore_matches_literally(self, db_session, file_service):
        owner = await seed(db_session, "alice@example.com", ["snake_case", "snakeXcase"])
        service = NoteService(file_service)

        result = await service.list_notes(db_session, owner.id, PaginationParams(search="e_c"))

        assert [n.title for n in result.notes] == ["snake_case"]
