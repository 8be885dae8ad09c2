"""
Page arithmetic for listings that stitch local documents to an external catalog.

A merged listing is the sequence "every local match, then the external
sequence". A page is a window on that sequence, so the local slice and the
external slice of any page follow from the page number, the page size and the
local match count alone.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class MergePlan:
    """Where one page of a merged listing comes from."""

    page: int
    page_size: int
    local_skip: int
    local_limit: int
    external_offset: int
    external_limit: int


def count_pages(total: int, page_size: int):
    """
    Return ``ceil(total / page_size)`` using integer arithmetic.

    Args:
        total (int): Number of entries across every page.
        page_size (int): Page length.

    Returns:
        int: Number of pages, 0 for an empty listing.
    """
    if total <= 0:
        return 0
    return (total + page_size - 1) // page_size


def plan_merged_page(page: int, page_size: int, local_total: int):
    """
    Split a requested page between the local store and the external catalog.

    Args:
        page (int): 1-based page number.
        page_size (int): Page length.
        local_total (int): Number of local documents matching the filter.

    Returns:
        MergePlan: Local skip/limit and external offset/limit for the page.
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    local_total = max(local_total, 0)

    page_start = (page - 1) * page_size
    local_limit = max(0, min(page_size, local_total - page_start))
    external_offset = max(0, page_start - local_total)

    return MergePlan(
        page=page,
        page_size=page_size,
        local_skip=page_start,
        local_limit=local_limit,
        external_offset=external_offset,
        external_limit=page_size - local_limit,
    )


def provider_page_span(offset: int, limit: int, provider_page_size: int):
    """
    Map an external slice onto the fixed-size pages of a provider.

    Args:
        offset (int): Index of the first external entry wanted.
        limit (int): Number of external entries wanted.
        provider_page_size (int): Results per provider page.

    Returns:
        tuple[list[int], int]: 1-based provider pages to request and the index
        of ``offset`` inside their concatenation.
    """
    if limit <= 0:
        return [], 0
    first_page = offset // provider_page_size + 1
    last_page = (offset + limit - 1) // provider_page_size + 1
    start = offset - (first_page - 1) * provider_page_size
    return list(range(first_page, last_page + 1)), start


def merge_page(plan: MergePlan, local_items: list, external_items: list, local_total: int, external_total: int):
    """
    Assemble one page of a merged listing.

    Args:
        plan (MergePlan): Plan returned by ``plan_merged_page``.
        local_items (list): Local documents for the page, already ordered.
        external_items (list): External entries starting at ``plan.external_offset``.
        local_total (int): Number of local matches.
        external_total (int): Size of the external sequence.

    Returns:
        dict: ``items`` (local first), ``page``, ``pageSize``, ``total`` and ``pages``.
    """
    items = list(local_items[:plan.local_limit])
    items.extend(external_items[:plan.external_limit])
    total = max(local_total, 0) + max(external_total, 0)

    return {
        "items": items,
        "page": plan.page,
        "pageSize": plan.page_size,
        "total": total,
        "pages": count_pages(total, plan.page_size),
    }
