"""Cursor encoding and decoding for page continuation.

Cursors are opaque strings handed to the ingestion host after every page and
passed back unchanged on the next request. They hold the protocol-specific
continuation token of the datasource, optionally nested one level deeper for
GraphQL sub-lists (e.g. alert events inside incidents).

The cursor format is:
1. Compact JSON object, ``null`` members omitted
2. Base64 (standard alphabet) encoded

Example cursor payload:
    {"cursor": "100", "innerCursor": {"cursor": "YWJj"}}

Encoded: eyJjdXJzb3IiOiIxMDAiLCJpbm5lckN1cnNvciI6eyJjdXJzb3IiOiJZV0pqIn19
"""

from __future__ import annotations

import base64
import binascii
import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from falcon_fetch.core.exceptions import CursorException


class CompositeCursor(BaseModel):
    """Page continuation token.

    Attributes:
        cursor: Datasource token identifying the first object of the next page.
        inner_cursor: Continuation state one selection level deeper.

    A cursor with neither a token nor an inner cursor means "no next page".
    """

    cursor: str | None = Field(default=None, description="Datasource continuation token")
    inner_cursor: CompositeCursor | None = Field(
        default=None,
        alias="innerCursor",
        description="Continuation state of a nested sub-list",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    @property
    def is_terminal(self) -> bool:
        """Whether this cursor signals that no further page exists."""
        return self.cursor is None and self.inner_cursor is None


class PageInfo(BaseModel):
    """GraphQL ``pageInfo`` node, possibly carrying the state of a nested level."""

    has_next_page: bool = Field(default=False, alias="hasNextPage")
    end_cursor: str = Field(default="", alias="endCursor")
    inner_page_info: PageInfo | None = Field(default=None, alias="innerPageInfo")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("end_cursor", mode="before")
    @classmethod
    def _null_end_cursor(cls, v: object) -> object:
        # A last page may report "endCursor": null
        return "" if v is None else v

    def to_cursor(self) -> CompositeCursor | None:
        """Fold the page-info tree into a composite cursor.

        A level contributes its end cursor only when it reports a next page.
        Returns None when no level has anything left to fetch.
        """
        inner = self.inner_page_info.to_cursor() if self.inner_page_info else None
        token = self.end_cursor if self.has_next_page and self.end_cursor else None
        if token is None and inner is None:
            return None
        return CompositeCursor(cursor=token, inner_cursor=inner)


def page_info_after(page_info: PageInfo | None, depth: int) -> str | None:
    """Return the end cursor of the page-info tree ``depth`` levels deep.

    Level 0 is the outermost list. A negative depth returns the outermost end
    cursor; a depth past the bottom of the tree (or a missing tree) returns None.
    """
    if page_info is None:
        return None
    if depth <= 0:
        return page_info.end_cursor
    return page_info_after(page_info.inner_page_info, depth - 1)


class CursorCodec:
    """Encode and decode composite cursors.

    Usage:
        # Encoding
        token = CursorCodec.encode(CompositeCursor(cursor="100"))

        # Decoding
        cursor = CursorCodec.decode(token, entity_id="endpoint_protection_detect")
        print(cursor.cursor)  # "100"
    """

    @staticmethod
    def encode(cursor: CompositeCursor | None) -> str | None:
        """Encode a cursor to an opaque string.

        Args:
            cursor: Cursor to encode, or None when there is no next page.

        Returns:
            Base64 encoded string, or None when ``cursor`` is None.
        """
        if cursor is None:
            return None
        payload = cursor.model_dump(by_alias=True, exclude_none=True)
        json_str = json.dumps(payload, separators=(",", ":"))
        return base64.b64encode(json_str.encode()).decode()

    @staticmethod
    def decode(token: str | None, entity_id: str | None = None) -> CompositeCursor | None:
        """Decode an opaque string to a cursor.

        Args:
            token: Encoded cursor as returned by encode(). Empty means first page.
            entity_id: Entity the cursor was supplied for, reported on failure.

        Returns:
            CompositeCursor, or None when ``token`` is empty.

        Raises:
            CursorException: If the token is not a valid encoded cursor.
        """
        if not token:
            return None

        try:
            raw = base64.b64decode(token.encode(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise CursorException(
                detail=f"Failed to decode base64 cursor: {e}.",
                entity_id=entity_id,
            ) from e

        try:
            payload = json.loads(raw)
            return CompositeCursor.model_validate(payload)
        except (ValueError, ValidationError) as e:
            raise CursorException(
                detail=f"Failed to unmarshal JSON cursor: {e}.",
                entity_id=entity_id,
            ) from e


__all__ = ["CompositeCursor", "CursorCodec", "PageInfo", "page_info_after"]
