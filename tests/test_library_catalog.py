"""
Tests for library catalog queries.

The master snapshot is seeded directly (including records still flagged
deleted) so filtering, ordering and enrichment can be checked in isolation.
"""

import pytest

from shamela_mirror.core.exceptions import MalformedOutlineError
from shamela_mirror.core.library import LibraryCatalog, SearchScope, decode_json, parse_author_ids
from shamela_mirror.core.snapshot import BookDataset, MasterDataset, MemorySnapshotStore


@pytest.fixture
def store(master_tables) -> MemorySnapshotStore:
    store = MemorySnapshotStore()
    store.save_master(MasterDataset(tables=master_tables))
    return store


@pytest.fixture
def catalog(store) -> LibraryCatalog:
    return LibraryCatalog(store)


class TestHelpers:
    def test_parse_author_ids(self) -> None:
        assert parse_author_ids("12, 7,x") == [12, 7]
        assert parse_author_ids(5) == [5]
        assert parse_author_ids(None) == []

    def test_decode_json(self) -> None:
        assert decode_json('{"a": 1}') == {"a": 1}
        assert decode_json("not json") is None
        assert decode_json("") is None
        assert decode_json(None) is None


class TestCategories:
    def test_live_sorted_by_order_with_counts(self, catalog) -> None:
        categories = catalog.categories()
        assert [(c.id, c.book_count) for c in categories] == [(2, 0), (1, 2)]
        assert categories[1].model_dump(by_alias=True)["bookCount"] == 2


class TestAuthors:
    def test_live_sorted_by_death(self, catalog) -> None:
        page = catalog.authors()
        assert page.total == 2
        assert [(a.id, a.book_count) for a in page.data] == [(1, 2), (2, 1)]

    def test_search_biography(self, catalog) -> None:
        page = catalog.authors(search="الصحيح")
        assert [a.id for a in page.data] == [2]

    def test_paging(self, catalog) -> None:
        page = catalog.authors(limit=1, offset=1)
        assert page.total == 2
        assert [a.id for a in page.data] == [2]
        assert (page.limit, page.offset) == (1, 1)


class TestBooks:
    def test_live_sorted_by_date_missing_last(self, catalog) -> None:
        page = catalog.books()
        assert page.total == 3
        assert [b.id for b in page.data] == [1, 2, 3]

    def test_enrichment(self, catalog) -> None:
        books = {b.id: b for b in catalog.books().data}
        assert books[1].author == "البخاري"
        assert books[1].category == "الحديث"
        assert books[2].author == "مسلم و البخاري"
        assert books[2].author_ids == "2, 1"

    def test_dangling_references_render_absent(self, catalog) -> None:
        book = {b.id: b for b in catalog.books().data}[3]
        assert book.author is None
        assert book.category is None
        assert book.category_id == 42

    @pytest.mark.parametrize(
        ("filters", "expected"),
        [
            ({"author": 1}, [1, 2]),
            ({"author": 2}, [2]),
            ({"category": 1}, [1, 2]),
            ({"type": 2}, [3]),
            ({"search": "الجامع"}, [1]),
            ({"search": "مسلم"}, [2]),
            ({"category": 2}, []),
        ],
    )
    def test_filters(self, catalog, filters, expected) -> None:
        assert [b.id for b in catalog.books(**filters).data] == expected

    def test_paging(self, catalog) -> None:
        page = catalog.books(limit=1, offset=1)
        assert page.total == 3
        assert [b.id for b in page.data] == [2]

    def test_is_downloaded(self, catalog, store) -> None:
        store.save_book(2, BookDataset.empty())
        books = {b.id: b for b in catalog.books().data}
        assert books[2].is_downloaded
        assert not books[1].is_downloaded
        assert books[2].model_dump(by_alias=True)["isDownloaded"] is True


class TestBookDetail:
    def test_details(self, catalog) -> None:
        detail = catalog.book(1)
        assert detail is not None
        assert detail.name == "صحيح البخاري"
        assert [a.id for a in detail.authors] == [1]
        assert detail.category is not None and detail.category.name == "الحديث"
        assert detail.pdf_links == {"files": ["a.pdf"]}
        assert detail.metadata is None
        assert not detail.has_content
        assert detail.page_count == 0

    def test_unknown_or_deleted(self, catalog) -> None:
        assert catalog.book(99) is None
        assert catalog.book(4) is None

    def test_content_counters(self, catalog, store, book_tables) -> None:
        store.save_book(1, BookDataset(tables=book_tables))
        detail = catalog.book(1)
        assert detail.has_content
        assert (detail.page_count, detail.title_count) == (3, 4)


class TestBookContent:
    @pytest.fixture
    def dataset(self, book_tables) -> BookDataset:
        return BookDataset(tables=book_tables)

    def test_pages_sorted_with_outline(self, catalog, dataset) -> None:
        content = catalog.book_content(dataset)
        assert [p.id for p in content.pages] == [1, 2, 3]
        assert content.pages[0].services == {"hadith": [1]}
        assert content.pages[1].services is None
        assert [t.id for t in content.titles] == [1, 3]
        assert (content.total_pages, content.total_titles) == (3, 4)

    def test_page_filter(self, catalog, dataset) -> None:
        content = catalog.book_content(dataset, page=1)
        assert [p.id for p in content.pages] == [1, 2]
        assert content.total_pages == 3

    def test_part_filter(self, catalog, dataset) -> None:
        assert [p.id for p in catalog.book_content(dataset, part="2").pages] == [2]

    def test_json_shape(self, catalog, dataset) -> None:
        data = catalog.book_content(dataset).model_dump(mode="json", by_alias=True)
        assert set(data) == {"pages", "titles", "totalPages", "totalTitles"}
        assert data["titles"][0]["pageId"] == 1

    def test_cyclic_outline_raises(self, catalog) -> None:
        dataset = BookDataset(tables={"title": [{"id": 1, "parent": 2}, {"id": 2, "parent": 1}]})
        with pytest.raises(MalformedOutlineError):
            catalog.book_content(dataset)


class TestSearch:
    def test_short_query_returns_nothing(self, catalog) -> None:
        assert catalog.search("ص").is_empty()
        assert catalog.search("").is_empty()
        assert catalog.search(None).is_empty()

    def test_books_and_authors(self, catalog) -> None:
        results = catalog.search("مسلم")
        assert [(h.id, h.type) for h in results.books] == [(2, "book")]
        assert results.books[0].author == "مسلم و البخاري"
        assert [(h.id, h.type) for h in results.authors] == [(2, "author")]

    def test_deleted_excluded(self, catalog) -> None:
        assert [h.id for h in catalog.search("كتاب").books] == [3]
        assert catalog.search("محذوف").is_empty()

    def test_scope(self, catalog) -> None:
        results = catalog.search("مسلم", scope=SearchScope.AUTHORS)
        assert results.books == []
        assert [h.id for h in results.authors] == [2]

    def test_limit(self, catalog) -> None:
        assert len(catalog.search("صحيح", limit=1).books) == 1


class TestStats:
    def test_stats(self, catalog, store) -> None:
        store.save_book(1, BookDataset.empty())
        stats = catalog.stats()
        assert (stats.categories, stats.authors, stats.books) == (2, 3, 4)
        assert stats.downloaded_books == 1
        assert stats.model_dump(by_alias=True)["downloadedBooks"] == 1
