"""Client-held cursor pagination.

The fetcher keeps no state between pages. Each page returns an opaque cursor
that the host passes back unchanged to continue the listing:

    page = await adapter.get_page(request)
    while page.next_cursor:
        request = request.model_copy(update={"cursor": page.next_cursor})
        page = await adapter.get_page(request)

Cursors are base64 JSON strings; hosts must persist them byte-for-byte.
"""

from falcon_fetch.core.pagination.cursor import (
    CompositeCursor,
    CursorCodec,
    PageInfo,
    page_info_after,
)

__all__ = [
    "CompositeCursor",
    "CursorCodec",
    "PageInfo",
    "page_info_after",
]
