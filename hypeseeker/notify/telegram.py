"""Telegram Bot API channel."""

import html
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import httpx
import structlog

from hypeseeker.notify.base import DIGEST_TITLE, format_score
from hypeseeker.store.models import Post


logger = structlog.get_logger()

TELEGRAM_API_URL = "https://api.telegram.org"
MESSAGE_LIMIT = 4096
CHUNK_BUDGET = 3800

# Escaped-length caps per field; a full fragment stays well under CHUNK_BUDGET
NAME_LIMIT = 256
SUMMARY_LIMIT = 1200
RELEVANCE_LIMIT = 800
INTEREST_LIMIT = 100
URL_LIMIT = 512


def escape_clipped(text: str, limit: int) -> str:
    """HTML-escape ``text`` and clip the result to ``limit`` characters.

    Clipping happens between source characters, so an entity such as
    ``&amp;`` is never cut in half. Clipped text ends with an ellipsis.
    """
    escaped = html.escape(text, quote=False)
    if len(escaped) <= limit:
        return escaped

    pieces: list[str] = []
    size = 0
    for char in text:
        piece = html.escape(char, quote=False)
        if size + len(piece) > limit - 1:
            break
        pieces.append(piece)
        size += len(piece)
    return "".join(pieces) + "…"


class TelegramChannel:
    """Sends the digest as HTML messages through ``sendMessage``.

    Chunks are measured in characters. The budget stays below the 4096
    character limit to leave room for the header and part marker.
    """

    name = "telegram"
    max_chunk_size = CHUNK_BUDGET

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = 30.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._timeout = timeout
        self._clock = clock or (lambda: datetime.now(UTC))
        self._log = logger.bind(component="notify", subcomponent="telegram")

    def format_item(self, post: Post, index: int) -> str:
        """Render one post as a Telegram HTML fragment."""
        name = escape_clipped(post.name or "Untitled", NAME_LIMIT)
        url = html.escape(post.url, quote=True)
        interest = escape_clipped(post.matched_interest or "-", INTEREST_LIMIT)
        source = escape_clipped(post.source, INTEREST_LIMIT)

        title = f'<a href="{url}">{name}</a>' if len(url) <= URL_LIMIT else name
        text = f"<b>{index}. {title}</b> [{format_score(post)} · {source}]\n"
        if post.summary:
            text += f"\n{escape_clipped(post.summary, SUMMARY_LIMIT)}\n"
        if post.relevance:
            text += f"<i>{escape_clipped(post.relevance, RELEVANCE_LIMIT)}</i>\n"
        text += f"({interest})\n"
        return text

    def fragment_size(self, fragment: str) -> int:
        # Fragments are joined with a blank line
        return len(fragment) + 1

    def build_message(self, fragments: Sequence[str], part: int, total: int) -> str:
        """Assemble one chunk into the message text."""
        header = ""
        if part == 1:
            header = f"🔥 <b>{DIGEST_TITLE}</b>\n📅 {self._clock():%Y-%m-%d}\n\n"
        footer = f"\n<i>{part}/{total}</i>" if total > 1 else ""
        return header + "\n".join(fragments) + footer

    def send(self, fragments: Sequence[str], part: int, total: int) -> bool:
        """Send one chunk.

        Returns:
            True if Telegram answered ``ok``.
        """
        text = self.build_message(fragments, part, total)
        if len(text) > MESSAGE_LIMIT:
            # Slicing could split an HTML tag; format_item keeps fragments short
            self._log.error("telegram_message_too_long", length=len(text), part=part)
            return False

        try:
            response = httpx.post(
                f"{TELEGRAM_API_URL}/bot{self._bot_token}/sendMessage",
                json={
                    "chat_id": self._chat_id,
                    "text": text,
                    "parse_mode": "HTML",
                    "disable_web_page_preview": True,
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            self._log.error("telegram_send_failed", part=part, error=str(exc))
            return False

        try:
            ok = bool(response.json().get("ok"))
        except ValueError:
            ok = False

        if response.status_code != httpx.codes.OK or not ok:
            self._log.error(
                "telegram_api_error",
                part=part,
                status=response.status_code,
                body=response.text[:300],
            )
            return False
        return True
