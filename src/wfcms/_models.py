"""
Data models for the content API.

API payloads use camelCase keys; models expose snake_case attributes and
convert at the boundary (`from_api()` / `to_api_payload()`).
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Item:
    """
    A collection item in one locale.

    Attributes:
        id: Item identifier, shared by every locale variant of the item.
        cms_locale_id: Locale this instance belongs to.
        is_archived: Whether the item is archived.
        is_draft: Whether the item is a draft.
        field_data: Opaque field values (keys are the collection's field slugs).
        last_published: ISO timestamp of the last publication, if any.
        last_updated: ISO timestamp of the last update.
        created_on: ISO timestamp of the creation.
    """
    id: str
    cms_locale_id: str | None = None
    is_archived: bool = False
    is_draft: bool = False
    field_data: dict[str, Any] = field(default_factory=dict)
    last_published: str | None = None
    last_updated: str | None = None
    created_on: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Item":
        """Build an Item from an API payload."""
        return cls(
            id=data["id"],
            cms_locale_id=data.get("cmsLocaleId"),
            is_archived=bool(data.get("isArchived", False)),
            is_draft=bool(data.get("isDraft", False)),
            field_data=dict(data.get("fieldData") or {}),
            last_published=data.get("lastPublished"),
            last_updated=data.get("lastUpdated"),
            created_on=data.get("createdOn"),
        )


@dataclass(frozen=True)
class ItemData:
    """
    Writable item content, as sent on create and update calls.

    Attributes:
        field_data: Field values to write. Updates accept partial field data.
        is_archived: Archived flag.
        is_draft: Draft flag.
        cms_locale_id: Target locale of an update. Ignored by creations.

    Example:
        >>> data = ItemData(field_data={"name": "Yoga", "slug": "yoga"})
        >>> data.to_api_payload()
        {'isArchived': False, 'isDraft': False, 'fieldData': {'name': 'Yoga', 'slug': 'yoga'}}
    """
    field_data: dict[str, Any]
    is_archived: bool = False
    is_draft: bool = False
    cms_locale_id: str | None = None

    def to_api_payload(self) -> dict[str, Any]:
        """Convert to the API body format; `cmsLocaleId` only when set."""
        payload: dict[str, Any] = {
            "isArchived": self.is_archived,
            "isDraft": self.is_draft,
            "fieldData": dict(self.field_data),
        }
        if self.cms_locale_id is not None:
            payload["cmsLocaleId"] = self.cms_locale_id
        return payload


@dataclass(frozen=True)
class Pagination:
    """Paging metadata returned by list calls."""
    limit: int
    offset: int
    total: int


@dataclass(frozen=True)
class ItemsPage:
    """
    One page of a collection listing.

    Attributes:
        items: Items of this page, in API order.
        pagination: limit/offset of this page and total items in the collection.
    """
    items: list[Item]
    pagination: Pagination

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ItemsPage":
        pagination = data.get("pagination") or {}
        items = [Item.from_api(item) for item in data.get("items") or []]
        return cls(
            items=items,
            pagination=Pagination(
                limit=int(pagination.get("limit", len(items))),
                offset=int(pagination.get("offset", 0)),
                total=int(pagination.get("total", len(items))),
            ),
        )


@dataclass(frozen=True)
class PublishResult:
    """
    Outcome of a publish call.

    The API answers 2xx even when some items fail validation, listing them in
    `errors` instead.
    """
    published_item_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PublishResult":
        return cls(
            published_item_ids=list(data.get("publishedItemIds") or []),
            errors=[str(error) for error in data.get("errors") or []],
        )

    def is_success(self) -> bool:
        """Returns True when no item failed to publish."""
        return not self.errors


@dataclass(frozen=True)
class Locale:
    """
    A site locale.

    Attributes:
        id: Locale identifier within the site.
        cms_locale_id: Identifier used by collection items (`cmsLocaleId`).
        display_name: Human readable name (e.g., "English").
        tag: Language tag (e.g., "en").
        primary: Whether this is the site's primary locale.
        enabled: Whether the locale is enabled.
    """
    id: str
    cms_locale_id: str
    display_name: str | None = None
    tag: str | None = None
    primary: bool = False
    enabled: bool = True

    @classmethod
    def from_api(cls, data: dict[str, Any], primary: bool = False) -> "Locale":
        return cls(
            id=data["id"],
            cms_locale_id=data.get("cmsLocaleId") or data["id"],
            display_name=data.get("displayName"),
            tag=data.get("tag"),
            primary=primary,
            enabled=bool(data.get("enabled", True)),
        )
