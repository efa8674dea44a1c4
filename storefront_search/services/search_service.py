"""Storefront product search combining structured filters and semantic ranking."""

import asyncio
import logging
from dataclasses import dataclass

from storefront_search.core.config import settings
from storefront_search.schemas.search import (
    CatalogFilters,
    SearchQuery,
    SearchResultPage,
    SortSpec,
)
from storefront_search.services.catalog_store import (
    SIMILARITY_FIELD,
    SORTABLE_FIELDS,
    CatalogStore,
    SimilarityTerm,
)
from storefront_search.services.embedding_cache import EmbeddingCache

logger = logging.getLogger(__name__)

BROWSE_DEFAULT_SORT = SortSpec(field="rating", direction="desc")
SEMANTIC_DEFAULT_SORT = SortSpec(field=SIMILARITY_FIELD, direction="desc")

# The storefront sends camelCase sort fields
_SORT_ALIASES = {
    "salePrice": "sale_price",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


@dataclass(frozen=True)
class SearchConfig:
    """Paging and similarity cutoffs. Operator configuration, never per request."""

    page_size: int = 24
    # A row must exceed this similarity to appear on a page
    page_threshold: float = 0.63
    # ...and this one to be counted in the reported total
    count_threshold: float = 0.7
    embedding_timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls) -> "SearchConfig":
        return cls(
            page_size=settings.search_page_size,
            page_threshold=settings.search_page_threshold,
            count_threshold=settings.search_count_threshold,
            embedding_timeout_seconds=settings.embedding_timeout_seconds,
        )


def parse_sort(sort: str | None, *, semantic: bool) -> SortSpec | None:
    """Parse a "field.direction" sort param.

    Returns None when the param is absent or names a field that cannot be
    sorted on, so the caller falls back to the mode's default ordering.
    Any direction other than "asc" sorts descending.
    """
    if not sort:
        return None

    parts = [p for p in sort.split(".") if p]
    if not parts:
        return None

    field = _SORT_ALIASES.get(parts[0], parts[0])
    direction = "asc" if len(parts) > 1 and parts[1].lower() == "asc" else "desc"

    if field == SIMILARITY_FIELD:
        return SortSpec(field=field, direction=direction) if semantic else None
    if field not in SORTABLE_FIELDS:
        return None
    return SortSpec(field=field, direction=direction)


class SearchService:
    """Plans and runs a product search against the catalog.

    Queries without free text run in browse mode (filters plus a structured
    sort). Queries with text run in semantic mode: the text is embedded via
    the shared cache and rows are ranked by cosine similarity.
    """

    def __init__(
        self,
        store: CatalogStore,
        embedding_cache: EmbeddingCache,
        config: SearchConfig | None = None,
    ) -> None:
        self.store = store
        self.embedding_cache = embedding_cache
        self.config = config or SearchConfig.from_settings()

    async def search(self, query: SearchQuery) -> SearchResultPage:
        """Run a search, degrading to an empty page on backend failure.

        Args:
            query: Validated search parameters

        Returns:
            The requested page with the filtered total. Empty when nothing
            matches or when the catalog store or embedding provider fails;
            failures are logged here so the two cases can be told apart.
        """
        mode = "semantic" if query.is_semantic else "browse"
        try:
            if query.is_semantic:
                return await self._semantic_search(query)
            return await self._browse(query)
        except Exception:
            logger.exception(
                "Product search failed, returning empty page",
                extra={
                    "search_mode": mode,
                    "page": query.page,
                    "sort": query.sort,
                    "filters": CatalogFilters.from_query(query).model_dump(mode="json"),
                },
            )
            return SearchResultPage.empty()

    async def _browse(self, query: SearchQuery) -> SearchResultPage:
        filters = CatalogFilters.from_query(query)
        order = parse_sort(query.sort, semantic=False) or BROWSE_DEFAULT_SORT

        data = await self.store.fetch_page(
            filters,
            order,
            limit=self.config.page_size,
            offset=self._offset(query.page),
        )
        total = await self.store.count(filters)

        return SearchResultPage.build(data, total, self.config.page_size)

    async def _semantic_search(self, query: SearchQuery) -> SearchResultPage:
        text = query.query or ""
        filters = CatalogFilters.from_query(query)
        order = parse_sort(query.sort, semantic=True) or SEMANTIC_DEFAULT_SORT

        async with asyncio.timeout(self.config.embedding_timeout_seconds):
            embedding = await self.embedding_cache.get_or_compute(text)

        data = await self.store.fetch_page(
            filters,
            order,
            limit=self.config.page_size,
            offset=self._offset(query.page),
            similarity=SimilarityTerm(embedding, self.config.page_threshold),
        )
        # Counted against the stricter threshold, so the total can be smaller
        # than the number of rows reachable by paging.
        total = await self.store.count(
            filters,
            similarity=SimilarityTerm(embedding, self.config.count_threshold),
        )

        logger.debug(
            "Semantic search returned %d rows (total %d) for %r",
            len(data),
            total,
            text[:50],
        )
        return SearchResultPage.build(data, total, self.config.page_size)

    def _offset(self, page: int) -> int:
        return (page - 1) * self.config.page_size
