"""
Carbon Tracker — Observed Page
The HTML document under observation and its change notifications.
"""

import asyncio
import logging
from typing import Callable, List, Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup, Tag

from carbon_tracker.core.config import settings

logger = logging.getLogger(__name__)

CONTAINER_SELECTORS = [
    "#__next > div",
    "main",
    '[data-testid="conversation-container"]',
    ".conversation-container",
    'div[class*="chat"]',
    'div[class*="conversation"]',
]

CHILD_LIST = "childList"
CHARACTER_DATA = "characterData"


def is_tracked_url(url: str) -> bool:
    """True when the URL belongs to a tracked chat host."""
    host = (urlparse(url).hostname or "").lower()
    return any(host == h or host.endswith("." + h) for h in settings.tracked_hosts)


def _elements(root) -> list:
    return [root, *root.find_all(True)]


def _structure(root: Tag) -> tuple:
    return tuple(
        (tag.name, tuple(sorted((k, str(v)) for k, v in tag.attrs.items())))
        for tag in _elements(root)
    )


def _text(root: Tag) -> tuple:
    return tuple(str(s) for s in root.find_all(string=True))


def _diff(old: Optional[Tag], new: Optional[Tag]) -> List[str]:
    if old is None or new is None:
        return [] if old is new else [CHILD_LIST]
    changes = []
    if _structure(new) != _structure(old):
        changes.append(CHILD_LIST)
    if _text(new) != _text(old):
        changes.append(CHARACTER_DATA)
    return changes


class Observation:
    """Handle returned by `HtmlPage.observe`.

    `root` follows the page: after each update it points at the matching
    element of the new document, or None while the container is missing.
    """

    def __init__(self, page: "HtmlPage", root: Optional[Tag], callback: Callable,
                 child_list: bool, character_data: bool):
        self.page = page
        self.root = root
        self.callback = callback
        self.child_list = child_list
        self.character_data = character_data

    def wants(self, changes: List[str]) -> List[str]:
        wanted = []
        if self.child_list and CHILD_LIST in changes:
            wanted.append(CHILD_LIST)
        if self.character_data and CHARACTER_DATA in changes:
            wanted.append(CHARACTER_DATA)
        return wanted

    def disconnect(self):
        if self in self.page.observers:
            self.page.observers.remove(self)


class HtmlPage:
    """A parsed document that notifies observers when it changes."""

    def __init__(self, html: str = ""):
        self.document = BeautifulSoup(html, "html.parser")
        self.observers: List[Observation] = []

    def find_container(self, document: Optional[BeautifulSoup] = None) -> Optional[Tag]:
        document = document if document is not None else self.document
        for selector in CONTAINER_SELECTORS:
            container = document.select_one(selector)
            if container is not None:
                return container
        return None

    def observe(self, root: Tag, callback: Callable,
                child_list: bool = True, character_data: bool = True) -> Observation:
        observation = Observation(self, root, callback, child_list, character_data)
        self.observers.append(observation)
        logger.info("Page observer set up successfully")
        return observation

    def update(self, html: str) -> List[str]:
        """Replace the document and notify observers of changes under their root.

        Returns the changes across the whole document. A root other than the
        document itself is re-located in the new document with the container
        selectors, so observers only hear about the conversation area.
        """
        new_document = BeautifulSoup(html, "html.parser")
        changes = _diff(self.document, new_document)

        scoped = []
        for observation in list(self.observers):
            if observation.root is self.document:
                new_root = new_document
            else:
                new_root = self.find_container(new_document)
            scoped.append((observation, _diff(observation.root, new_root)))
            observation.root = new_root

        self.document = new_document
        self._notify(scoped)
        return changes

    def _notify(self, scoped: List[tuple]):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        for observation, changes in scoped:
            wanted = observation.wants(changes)
            if not wanted:
                continue
            if loop is not None:
                loop.call_soon(observation.callback, wanted)
            else:
                observation.callback(wanted)


class RemotePage(HtmlPage):
    """An `HtmlPage` kept in sync with a live URL by polling."""

    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None,
                 timeout: Optional[float] = None):
        super().__init__()
        self.url = url
        self.client = client
        self.timeout = timeout if timeout is not None else settings.PAGE_FETCH_TIMEOUT

    async def _fetch(self, client: httpx.AsyncClient) -> str:
        response = await client.get(self.url)
        response.raise_for_status()
        return response.text

    async def refresh(self) -> List[str]:
        if self.client is not None:
            html = await self._fetch(self.client)
        else:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": "CarbonTracker/1.0"},
            ) as client:
                html = await self._fetch(client)
        return self.update(html)

    async def watch(self, interval: Optional[float] = None):
        """Poll the page until cancelled."""
        interval = interval if interval is not None else settings.PAGE_POLL_SECONDS
        while True:
            try:
                await self.refresh()
            except httpx.HTTPStatusError as e:
                logger.error(f"HTTP error refreshing {self.url}: {e.response.status_code}")
            except httpx.HTTPError as e:
                logger.error(f"Error refreshing {self.url}: {str(e)}")
            await asyncio.sleep(interval)
