"""
Client facade for the collection-based content API.

WebflowClient turns each public operation into one or more calls submitted
to a shared Dispatcher and composes their outcomes:

- sequential chains (bulk-create, then per-locale updates on the new id)
- fan-out / fan-in (pagination, multi-locale deletion): every call of the
  fan-out is queued before any result is awaited

Operations block until their result is known, like the rest of the library.
The only detached step is the best-effort publication that trails
`create_item_all_locales(live=True)`.

Example:
    >>> from wfcms import WebflowClient, ItemData
    >>> client = WebflowClient(primary_locale=EN, locale_ids=[EN, ES])
    >>> items = client.fetch_all_items(collection_id)
    >>> client.create_item_all_locales(collection_id, {
    ...     EN: ItemData(field_data={"name": "Yoga", "slug": "yoga"}),
    ...     ES: ItemData(field_data={"name": "Clase de yoga"}),
    ... })
"""

import logging
import math
from collections.abc import Sequence
from concurrent.futures import ALL_COMPLETED, FIRST_EXCEPTION, Future, wait
from typing import Any

from wfcms._dispatcher import Dispatcher
from wfcms._errors import PreconditionViolationError, UnexpectedResponseError, WebflowError
from wfcms._event_listeners import DispatchEventListener
from wfcms._http import HttpClient
from wfcms._models import Item, ItemData, ItemsPage, Locale, PublishResult

logger = logging.getLogger(__name__)


def _gather(futures: Sequence["Future[Any]"], fail_fast: bool = False) -> list[Any]:
    """
    Wait for every future and return their results in the given order.

    Raises the exception of the first failed future (in the given order).
    With `fail_fast`, stops waiting at the first failure and cancels the
    futures that have not been sent yet.
    """
    if not futures:
        return []

    done, not_done = wait(futures, return_when=FIRST_EXCEPTION if fail_fast else ALL_COMPLETED)
    if not_done:
        for future in not_done:
            future.cancel()
        failed = next(f for f in futures if f in done and f.exception() is not None)
        failed.result()

    return [future.result() for future in futures]


def _as_dict(payload: Any) -> dict[str, Any]:
    # Text bodies (e.g. empty 204 answers) carry no fields
    return payload if isinstance(payload, dict) else {}


class WebflowClient:
    """
    Synchronous client for collection items.

    Attributes:
        dispatcher: The rate-limited dispatcher every call goes through.
        primary_locale: Locale anchoring multi-locale items.
        locale_ids: Default locales targeted by `delete_item()`.
        page_size: Items requested per page by listings.
        site_id: Default site read by `fetch_locales()`.
    """

    def __init__(
        self,
        primary_locale: str | None = None,
        locale_ids: Sequence[str] | None = None,
        page_size: int | None = None,
        site_id: str | None = None,
        dispatcher: Dispatcher | None = None,
        http_client: HttpClient | None = None,
        listeners: list[DispatchEventListener] | None = None,
    ):
        """
        Initialize the client.

        Args:
            primary_locale: If None, uses WFCMS.config.api.primary_locale.
            locale_ids: If None, uses WFCMS.config.api.locale_ids.
            page_size: If None, uses WFCMS.config.api.page_size.
            site_id: If None, uses WFCMS.config.api.site_id.
            dispatcher: Dispatcher to share. If None, one is created with
                `http_client` and `listeners`.
            http_client: Transport for a newly created dispatcher.
            listeners: Dispatch observers for a newly created dispatcher.

        Raises:
            AssertionError: If page_size is outside 1..100.
        """
        from wfcms._config import WFCMS
        cfg = WFCMS.config.api

        if primary_locale is None:
            primary_locale = cfg.primary_locale
        if locale_ids is None:
            locale_ids = cfg.locale_ids
        if page_size is None:
            page_size = cfg.page_size
        if site_id is None:
            site_id = cfg.site_id

        if dispatcher is None:
            dispatcher = Dispatcher(http_client=http_client, listeners=listeners)

        assert 0 < page_size <= 100, "page_size must be between 1 and 100."

        self.dispatcher = dispatcher
        self.primary_locale = primary_locale
        self.locale_ids: list[str] = list(locale_ids)
        self.page_size = page_size
        self.site_id = site_id

    # ======================
    # Reads
    # ======================

    def fetch_items(self, collection_id: str, limit: int | None = None, offset: int = 0) -> ItemsPage:
        """
        Fetch one page of items in the primary locale.

        Args:
            collection_id: Collection to list.
            limit: Page size. If None, uses the client's page_size.
            offset: Index of the first item of the page.
        """
        return ItemsPage.from_api(_as_dict(self._submit_fetch_items(collection_id, limit, offset).result()))

    def fetch_all_items(self, collection_id: str) -> list[Item]:
        """
        Fetch every item of a collection, across as many pages as needed.

        The first page reveals the total; the remaining pages are then queued
        together and merged in offset order. One failed page fails the whole
        listing and the pages not sent yet are dropped.

        Raises:
            UpstreamError: If any page is rejected.
            requests.RequestException: If any page fails in transit.
        """
        first = ItemsPage.from_api(_as_dict(self._submit_fetch_items(collection_id, self.page_size, 0).result()))
        total_pages = math.ceil(first.pagination.total / self.page_size)

        futures = [
            self._submit_fetch_items(collection_id, self.page_size, page * self.page_size)
            for page in range(1, total_pages)
        ]
        if futures:
            logger.info(
                f"{collection_id[:26]:<26} | WF | 📄 Fetching {first.pagination.total} items "
                f"in {total_pages} pages of {self.page_size}."
            )

        items = list(first.items)
        for payload in _gather(futures, fail_fast=True):
            items.extend(ItemsPage.from_api(_as_dict(payload)).items)
        return items

    def fetch_item(self, collection_id: str, item_id: str, locale_id: str | None = None) -> Item | None:
        """
        Fetch one item, optionally in a given locale.

        Returns:
            The item, or None when the API answers with an empty payload
            (the item does not exist).
        """
        path = f"collections/{collection_id}/items/{item_id}"
        if locale_id:
            path += f"?cmsLocaleId={locale_id}"

        payload = self.dispatcher.submit(path).result()
        if not isinstance(payload, dict) or not payload.get("id"):
            return None
        return Item.from_api(payload)

    def fetch_locales(self, site_id: str | None = None) -> list[Locale]:
        """
        Fetch the locales of a site, primary locale first.

        Args:
            site_id: Site to read. If None, uses the client's site_id.
        """
        site_id = site_id or self.site_id
        assert site_id, "site_id cannot be empty."

        site = self.dispatcher.submit(f"sites/{site_id}").result()
        locales = _as_dict(site).get("locales") or {}
        if isinstance(locales, list):
            return [Locale.from_api(locale) for locale in locales]

        result = []
        if locales.get("primary"):
            result.append(Locale.from_api(locales["primary"], primary=True))
        result.extend(Locale.from_api(locale) for locale in locales.get("secondary") or [])
        return result

    # ======================
    # Writes
    # ======================

    def create_item(self, collection_id: str, item_data: ItemData, live: bool = True) -> Item:
        """
        Create an item. With `live`, the item is published right away.
        """
        return Item.from_api(self._submit_create_item(collection_id, item_data, live).result())

    def update_item(self, collection_id: str, item_id: str, item_data: ItemData, live: bool = True) -> Item:
        """
        Update an item (in `item_data.cms_locale_id`, or the primary locale when unset).
        With `live`, the change is published right away.
        """
        return Item.from_api(self._submit_update_item(collection_id, item_id, item_data, live).result())

    def create_item_all_locales(
        self,
        collection_id: str,
        item_data: dict[str, ItemData],
        live: bool = True,
    ) -> list[Item]:
        """
        Create one item in several locales at once.

        1. One bulk-create call creates the item in every requested locale,
           seeded with the primary locale's data.
        2. The primary-locale instance is the anchor: its id is shared by
           every locale variant.
        3. Each secondary locale is then updated (never published) with its own
           data; these updates are queued together.
        4. With `live`, publishing the anchor is queued as a trailing step.
           Its outcome is logged only: a failed publication never fails the
           creation, and this method does not wait for it.

        Args:
            collection_id: Target collection.
            item_data: Data per locale id. Must contain the primary locale.
            live: Whether to publish the item once created.

        Returns:
            The anchor item followed by one item per secondary locale, in the
            order of `item_data`.

        Raises:
            PreconditionViolationError: If the primary locale is missing; no
                call is submitted in that case.
            UnexpectedResponseError: If the bulk response has no primary-locale item.
            UpstreamError: If the creation or any locale update is rejected.
        """
        primary = self.primary_locale
        if not primary:
            raise PreconditionViolationError("No primary locale configured; cannot anchor a multi-locale item.")
        if primary not in item_data:
            raise PreconditionViolationError(
                f"Item data must include the primary locale '{primary}' (got: {list(item_data)})."
            )

        seed = item_data[primary]
        response = self.dispatcher.submit(
            f"collections/{collection_id}/items/bulk",
            method="POST",
            body={
                "isArchived": seed.is_archived,
                "isDraft": seed.is_draft,
                "fieldData": dict(seed.field_data),
                "cmsLocaleIds": list(item_data),
            },
        ).result()

        created = [Item.from_api(item) for item in _as_dict(response).get("items") or []]
        anchor = next((item for item in created if item.cms_locale_id == primary), None)
        if anchor is None:
            raise UnexpectedResponseError(
                f"Bulk creation returned no item for the primary locale '{primary}'.", payload=response
            )

        futures = [
            self._submit_update_item(
                collection_id,
                anchor.id,
                ItemData(
                    field_data=data.field_data,
                    is_archived=data.is_archived,
                    is_draft=data.is_draft,
                    cms_locale_id=locale,
                ),
                live=False,
            )
            for locale, data in item_data.items()
            if locale != primary
        ]
        items = [anchor, *(Item.from_api(payload) for payload in _gather(futures))]

        logger.info(
            f"{anchor.id[:26]:<26} | WF | ✅ Item created in {len(items)} locale(s) of collection {collection_id}."
        )

        if live:
            self._publish_in_background(collection_id, [anchor.id])

        return items

    def publish_items(self, collection_id: str, item_ids: list[str]) -> PublishResult:
        """
        Publish items of a collection.

        The API may answer 2xx while refusing some items; check
        `PublishResult.errors`.
        """
        return PublishResult.from_api(_as_dict(self._submit_publish_items(collection_id, item_ids).result()))

    def delete_item(
        self,
        collection_id: str,
        item_id: str,
        locale_ids: Sequence[str] | None = None,
        live: bool = True,
    ) -> list[Any]:
        """
        Delete an item from one or more locales.

        The API refuses several locales in one deletion, so one call per
        locale is queued and all of them are awaited.

        The upstream endpoints are inverted relative to their names: the
        `/live` endpoint only unpublishes. Hence `live=True` calls the plain
        delete endpoint and `live=False` calls `/live`.

        Args:
            collection_id: Collection of the item.
            item_id: Item to delete.
            locale_ids: Locales to delete from. If None, the client's
                locale_ids (or the primary locale when none are set).
            live: See above.

        Returns:
            The decoded payload of each deletion, in locale order.

        Raises:
            PreconditionViolationError: If no locale can be determined.
            UpstreamError: If any deletion is rejected (after all settle).
        """
        if locale_ids is None:
            locale_ids = self.locale_ids or ([self.primary_locale] if self.primary_locale else [])
        if not locale_ids:
            raise PreconditionViolationError("No locale to delete the item from.")

        suffix = "" if live else "/live"
        futures = [
            self.dispatcher.submit(
                f"collections/{collection_id}/items/{item_id}{suffix}?cmsLocaleIds={locale}",
                method="DELETE",
            )
            for locale in locale_ids
        ]
        return _gather(futures)

    # ======================
    # Lifecycle
    # ======================

    def close(self) -> None:
        """Close the underlying dispatcher."""
        self.dispatcher.close()

    def __enter__(self) -> "WebflowClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ======================
    # Internals
    # ======================

    def _submit_fetch_items(self, collection_id: str, limit: int | None, offset: int) -> "Future[Any]":
        if limit is None:
            limit = self.page_size
        return self.dispatcher.submit(f"collections/{collection_id}/items?offset={offset}&limit={limit}")

    def _submit_create_item(self, collection_id: str, item_data: ItemData, live: bool) -> "Future[Any]":
        return self.dispatcher.submit(
            f"collections/{collection_id}/items{'/live' if live else ''}",
            method="POST",
            body=item_data.to_api_payload(),
        )

    def _submit_update_item(
        self,
        collection_id: str,
        item_id: str,
        item_data: ItemData,
        live: bool,
    ) -> "Future[Any]":
        return self.dispatcher.submit(
            f"collections/{collection_id}/items/{item_id}{'/live' if live else ''}",
            method="PATCH",
            body=item_data.to_api_payload(),
        )

    def _submit_publish_items(self, collection_id: str, item_ids: list[str]) -> "Future[Any]":
        assert item_ids, "item_ids cannot be empty."
        return self.dispatcher.submit(
            f"collections/{collection_id}/items/publish",
            method="POST",
            body={"itemIds": list(item_ids)},
        )

    def _publish_in_background(self, collection_id: str, item_ids: list[str]) -> "Future[Any] | None":
        """Queue a publication whose outcome is only logged. Returns None when it could not be queued."""
        tracking_id = item_ids[0]

        def log_outcome(future: "Future[Any]") -> None:
            if future.cancelled():
                logger.warning(f"{tracking_id[:26]:<26} | WF | ⚠️ Publication cancelled.")
                return
            error = future.exception()
            if error is not None:
                logger.error(f"{tracking_id[:26]:<26} | WF | ❌ Publication failed: {error}")
                return
            result = PublishResult.from_api(_as_dict(future.result()))
            if result.is_success():
                logger.info(f"{tracking_id[:26]:<26} | WF | 🚀 Published {result.published_item_ids}.")
            else:
                logger.warning(f"{tracking_id[:26]:<26} | WF | ⚠️ Publication refused: {result.errors}")

        try:
            future = self._submit_publish_items(collection_id, item_ids)
        except WebflowError as e:
            logger.error(f"{tracking_id[:26]:<26} | WF | ❌ Publication failed: {e}")
            return None
        future.add_done_callback(log_outcome)
        return future
