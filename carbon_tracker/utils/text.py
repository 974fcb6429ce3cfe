"""
Carbon Tracker — Text Normalizer & Classifier
Cleans message text and decides whether it counts toward token accounting.
"""

import re

from bs4 import NavigableString, Tag

IGNORED_KEYWORDS = [
    "settings",
    "chatgpt",
    "upgrade",
    "help",
    "feedback",
    "new chat",
    "regenerate",
    "clear conversations",
    "welcome back",
    "how can i help you today?",
    "loading",
    "thinking",
    "plugin store",
]

SYSTEM_PHRASES = [
    "chatgpt",
    "welcome",
    "help",
    "how can i help you today",
    "new chat",
    "model: gpt",
]

# Bracketed asides, parenthetical asides, leading bullet markers
EXCLUDE_PATTERNS = [
    re.compile(r"\[.*?\]"),
    re.compile(r"\(.*?\)"),
    re.compile(r"^\s*[•\-]\s*", re.MULTILINE),
]

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^A-Za-z0-9_\s.,!?]")

MIN_MESSAGE_LENGTH = 10

BLOCK_TAGS = {
    "address", "article", "blockquote", "br", "dd", "div", "dl", "dt",
    "figcaption", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "header",
    "hr", "li", "ol", "p", "pre", "section", "table", "tr", "ul",
}
HIDDEN_TAGS = {"script", "style", "template", "noscript"}


def visible_text(element) -> str:
    """Rendered text of an element; block elements start a new line."""
    if not isinstance(element, Tag):
        return str(element or "")

    parts = []
    for node in element.descendants:
        if isinstance(node, Tag):
            if node.name in BLOCK_TAGS:
                parts.append("\n")
        elif type(node) is NavigableString and node.parent.name not in HIDDEN_TAGS:
            parts.append(str(node))
    return "".join(parts)


def extract_clean_text(element) -> str:
    text = visible_text(element)
    for pattern in EXCLUDE_PATTERNS:
        text = pattern.sub("", text)

    text = _WHITESPACE.sub(" ", text.strip())
    text = _NON_WORD.sub("", text)
    return text.lower()


def is_ignored_message(text: str) -> bool:
    """True for UI chrome, system strings and anything too short to matter."""
    lowered = text.lower()

    if any(keyword in lowered for keyword in IGNORED_KEYWORDS):
        return True
    if len(text) <= MIN_MESSAGE_LENGTH:
        return True
    return any(phrase in lowered for phrase in SYSTEM_PHRASES)
