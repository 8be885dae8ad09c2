import logging
import re

from pymongo.collection import Collection

from catalog_api.pagination import merge_page, plan_merged_page, provider_page_span

logger = logging.getLogger(__name__)


def build_name_filter(search: str | None):
    """
    Build the MongoDB filter for a case-insensitive substring match on ``name``.

    Args:
        search (str | None): Search term from the request.

    Returns:
        dict: Match-all filter when ``search`` is empty.
    """
    if not search:
        return {}
    return {"name": {"$regex": re.escape(search), "$options": "i"}}


def fetch_search_slice(search_page, query: str, offset: int, limit: int, provider_page_size: int):
    """
    Collect ``limit`` search hits starting at ``offset`` from a paged provider search.

    Args:
        search_page (Callable): ``search_page(query, page) -> (items, total)``.
            ``total`` is None when the page lies past the end of the results.
        query (str): Search term.
        offset (int): Index of the first hit wanted.
        limit (int): Number of hits wanted.
        provider_page_size (int): Hits per provider page.

    Returns:
        tuple[list, int]: Hits for the slice and the provider's total.
    """
    pages, start = provider_page_span(offset, limit, provider_page_size)
    hits = []
    total = None
    for page in pages:
        items, page_total = search_page(query, page)
        if page_total is not None:
            total = max(total or 0, page_total)
        hits.extend(items)
        if len(items) < provider_page_size:
            break

    if total is None:
        # every requested page was past the end, only the first page reports a total
        _, total = search_page(query, 1)
    return hits[start:start + limit], total or 0


def fetch_seed_slice(fetch_details, seed_ids: list[str], offset: int, limit: int):
    """
    Resolve the seed identifiers of an external slice.

    Args:
        fetch_details (Callable): Resolves a list of ids concurrently, keeping order.
        seed_ids (list[str]): Fixed external catalog.
        offset (int): Index of the first seed wanted.
        limit (int): Number of seeds wanted.

    Returns:
        tuple[list, int]: Resolved entries and the seed list length.
    """
    wanted = seed_ids[offset:offset + limit] if limit > 0 else []
    items = fetch_details(wanted) if wanted else []
    return items, len(seed_ids)


def find_stored_external_ids(collection: Collection, query: dict):
    """Return the provider ids of local documents matching ``query``."""
    stored_filter = dict(query, externalId={"$ne": None})
    return {str(value) for value in collection.distinct("externalId", stored_filter) if value is not None}


def build_merged_listing(collection: Collection, page: int, page_size: int, search: str | None, sort: list, serialize_many, search_page, fetch_details, seed_ids: list[str], provider_page_size: int):
    """
    Produce one page mixing local documents with entries from an external provider.

    Local matches come first. The rest of the page is taken from the provider's
    search results when ``search`` is set, and from the seed list otherwise.
    Provider entries already stored locally are left out of the external part,
    since they are listed with the local matches.

    Args:
        collection (Collection): Local collection.
        page (int): 1-based page number.
        page_size (int): Page length.
        search (str | None): Optional name filter.
        sort (list): PyMongo sort order for local documents.
        serialize_many (Callable): Converts a list of local documents into their JSON form.
        search_page (Callable): Provider search, ``(query, page) -> (items, total)``.
        fetch_details (Callable): Provider detail lookup for a list of ids.
        seed_ids (list[str]): Provider ids used when ``search`` is empty.
        provider_page_size (int): Hits per provider search page.

    Returns:
        dict: ``items``, ``page``, ``pageSize``, ``total``, ``pages``.
    """
    query = build_name_filter(search)
    local_total = collection.count_documents(query)
    plan = plan_merged_page(page, page_size, local_total)

    local_items = []
    if plan.local_limit:
        cursor = collection.find(query).sort(sort).skip(plan.local_skip).limit(plan.local_limit)
        local_items = serialize_many(list(cursor))

    stored_ids = find_stored_external_ids(collection, query)
    external_items = []
    if search:
        # no provider call when local matches fill the page, so its total stays unknown here
        external_total = 0
        if plan.external_limit:
            external_items, external_total = fetch_search_slice(search_page, search, plan.external_offset, plan.external_limit, provider_page_size)
            external_items = [item for item in external_items if str(item.get("externalId")) not in stored_ids]
    else:
        remaining_seeds = [seed_id for seed_id in seed_ids if str(seed_id) not in stored_ids]
        external_items, external_total = fetch_seed_slice(fetch_details, remaining_seeds, plan.external_offset, plan.external_limit)

    logger.debug("merged page %s: %s local of %s, %s external of %s", page, len(local_items), local_total, len(external_items), external_total)
    return merge_page(plan, local_items, external_items, local_total, external_total)
