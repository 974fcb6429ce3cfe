"""
Carbon Tracker — Conversation Scanner
Finds user and assistant messages on the page and measures their tokens.
"""

import logging
import time
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from carbon_tracker.schemas.schemas import SessionMeasurement
from carbon_tracker.utils.carbon import calculate_emissions
from carbon_tracker.utils.text import (
    MIN_MESSAGE_LENGTH,
    extract_clean_text,
    is_ignored_message,
    visible_text,
)
from carbon_tracker.utils.tokens import estimate_tokens

logger = logging.getLogger(__name__)

USER_SELECTORS = [
    'div[class*="user"]',
    'div[class*="message"][data-message-author="user"]',
    'div[data-testid="conversation-turn-user"]',
]

ASSISTANT_SELECTORS = [
    'div[data-testid="conversation-turn-response"]',
    'div[class*="assistant-message"]',
    'div[class*="response"]',
    'div[class*="message-container"]',
    'div[data-message-author="assistant"]',
    ".group .whitespace-pre-wrap",
]

FALLBACK_ASSISTANT_SELECTORS = [
    'div:not([class*="user"]) > div.whitespace-pre-wrap',
    'div:not([class*="user"]) > p',
]


class MessageSource:
    """Capability the scanner reads messages through."""

    def select_user_messages(self) -> list:
        raise NotImplementedError

    def select_assistant_messages(self) -> list:
        raise NotImplementedError


def is_valid_assistant_message(element: Tag) -> bool:
    return element.name == "div" and bool(visible_text(element).strip())


def _is_substantive(text: str) -> bool:
    return len(text) > MIN_MESSAGE_LENGTH and not is_ignored_message(text)


class SoupMessageSource(MessageSource):
    """Selection heuristics over a BeautifulSoup document."""

    def __init__(self, document: BeautifulSoup):
        self.document = document

    def select_user_messages(self) -> List[Tag]:
        for selector in USER_SELECTORS:
            messages = self.document.select(selector)
            if messages:
                return messages
        return []

    def select_assistant_messages(self) -> List[Tag]:
        for selector in ASSISTANT_SELECTORS:
            messages = self.document.select(selector)
            if not messages:
                continue

            valid = [
                m for m in messages
                if is_valid_assistant_message(m) and _is_substantive(extract_clean_text(m))
            ]
            if valid:
                logger.debug(f"Found {len(valid)} valid assistant messages using selector: {selector}")
                return valid

        logger.debug("Falling back to aggressive assistant message selection")
        return self._fallback_assistant_messages()

    def _fallback_assistant_messages(self) -> List[Tag]:
        for selector in FALLBACK_ASSISTANT_SELECTORS:
            messages = self.document.select(selector)
            if not messages:
                continue

            valid = []
            for message in messages:
                text = extract_clean_text(message)
                # Echoed user turns often carry the word "user"
                if _is_substantive(text) and "user" not in text:
                    valid.append(message)
            if valid:
                logger.debug(f"Fallback: found {len(valid)} messages using selector: {selector}")
                return valid
        return []


def count_tokens(messages: list, role: str) -> int:
    total = 0
    for index, message in enumerate(messages, start=1):
        text = extract_clean_text(message)
        if is_ignored_message(text):
            continue
        tokens = estimate_tokens(text)
        total += tokens
        logger.debug(f"{role} message {index}: tokens = {tokens}")
    return total


class ConversationScanner:
    """Re-derives a full session measurement from the visible conversation."""

    def scan(self, source: MessageSource, session_start_time: Optional[int] = None) -> SessionMeasurement:
        user_messages = source.select_user_messages()
        assistant_messages = source.select_assistant_messages()

        user_tokens = count_tokens(user_messages, "User")
        assistant_tokens = count_tokens(assistant_messages, "Assistant")
        total_tokens = user_tokens + assistant_tokens

        return SessionMeasurement(
            user_message_count=len(user_messages),
            user_tokens=user_tokens,
            assistant_tokens=assistant_tokens,
            total_tokens=total_tokens,
            carbon_emissions=calculate_emissions(total_tokens),
            session_start_time=session_start_time if session_start_time is not None else int(time.time() * 1000),
        )
