"""
Discovery mode: dump page structure for hand-authoring a new site adapter.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from typing import Any

from dealer_portal.scraping.adapters.base import SiteAdapter
from dealer_portal.scraping.browser import ScreenshotRecorder, wait_for_settle
from dealer_portal.scraping.config.models import PortalScrapingSettings
from dealer_portal.scraping.logging_utils import clip, log_event
from dealer_portal.scraping.sinks.base import ProgressSink, SafeProgressSink
from dealer_portal.scraping.types import CandidateCard, DiagnosticDump, Session

logger = logging.getLogger(__name__)

DEFAULT_DENY_LIST = (
    "TECH SUPPORT",
    "MY ACCOUNT",
    "CONTACT YOUR SALES REP",
    "ADVANCE SEARCH",
    "PRODUCT NAME",
    "ITEM ID CONTAINS",
    "RESULT PER PAGE",
    "FLOOR TILE",
    "WALL TILE",
    "HARDSCAPE",
    "PREFAB COUNTERTOPS",
    "VANITY TOPS",
    "FLOORS MATS",
    "SINKS / FAUCETS",
    "COOKIE POLICY",
    "PRIVACY POLICY",
    "DO NOT SELL",
)
CARD_TITLE_REGEX = re.compile(r"^[A-Z][A-Z\s]+[A-Z]$")
MIN_CARD_TEXT_LENGTH = 8
MAX_CARD_TEXT_LENGTH = 59

_PAGE_STRUCTURE_JS = """
([minLength, maxLength]) => {
  const describeInput = (i) => ({
    type: i.type || '', name: i.name || '', id: i.id || '', placeholder: i.placeholder || ''
  });
  const forms = Array.from(document.querySelectorAll('form')).map(f => ({
    action: f.getAttribute('action') || '', method: (f.method || '').toLowerCase(), id: f.id || '',
    inputs: Array.from(f.querySelectorAll('input')).map(describeInput)
  }));
  const inputs = Array.from(document.querySelectorAll('input, select, textarea')).map(describeInput);
  const texts = [];
  const walker = document.createTreeWalker(document.body, NodeFilter.SHOW_TEXT);
  let node;
  while ((node = walker.nextNode())) {
    const text = (node.textContent || '').trim();
    if (text.length < minLength || text.length > maxLength) continue;
    const el = node.parentElement;
    if (!el) continue;
    const clickable = el.closest('a, [onclick], [role="link"], [role="button"]');
    const container = el.closest('div[class*="col"], div[class*="card"], div[class*="item"], div[class*="product"]')
      || el.parentElement;
    const img = container ? container.querySelector('img') : null;
    texts.push({
      text,
      element_tag: el.tagName.toLowerCase(),
      element_id: el.id || '',
      element_class: String(el.className || '').slice(0, 100),
      element_html: el.outerHTML.slice(0, 300),
      clickable_tag: clickable ? clickable.tagName.toLowerCase() : null,
      clickable_href: clickable ? (clickable.getAttribute('href') || '').slice(0, 150) : null,
      container_tag: container ? container.tagName.toLowerCase() : null,
      container_class: container ? String(container.className || '').slice(0, 100) : '',
      container_html: container ? container.outerHTML.slice(0, 800) : '',
      image_src: img ? (img.getAttribute('src') || '').slice(0, 150) : ''
    });
  }
  return { title: document.title || '', forms, inputs, texts };
}
"""


def looks_like_card_title(text: str, deny_list: Iterable[str] = DEFAULT_DENY_LIST) -> bool:
    """
    Heuristic for product card titles: short, all-caps, multi-word, not site chrome.
    """

    candidate = (text or "").strip()
    if not MIN_CARD_TEXT_LENGTH <= len(candidate) <= MAX_CARD_TEXT_LENGTH:
        return False
    if candidate != candidate.upper():
        return False
    if not CARD_TITLE_REGEX.match(candidate) or " " not in candidate:
        return False
    return not any(phrase in candidate for phrase in deny_list)


def select_candidate_cards(
    texts: Sequence[dict[str, Any]],
    *,
    deny_list: Iterable[str] = DEFAULT_DENY_LIST,
    max_cards: int = 5,
) -> list[CandidateCard]:
    phrases = tuple(deny_list)
    cards: list[CandidateCard] = []
    for entry in texts:
        text = str(entry.get("text") or "")
        if not looks_like_card_title(text, phrases):
            continue
        cards.append(
            CandidateCard(
                text=text.strip(),
                element_tag=str(entry.get("element_tag") or ""),
                element_id=str(entry.get("element_id") or ""),
                element_class=str(entry.get("element_class") or ""),
                element_html=str(entry.get("element_html") or ""),
                clickable_tag=entry.get("clickable_tag"),
                clickable_href=entry.get("clickable_href"),
                container_tag=entry.get("container_tag"),
                container_class=str(entry.get("container_class") or ""),
                container_html=str(entry.get("container_html") or ""),
                image_src=str(entry.get("image_src") or ""),
            )
        )
        if len(cards) >= max_cards:
            break
    return cards


class DiscoveryRunner:
    """
    Navigates to the entry page, runs one search and dumps what it sees.
    """

    def __init__(
        self,
        *,
        adapter: SiteAdapter,
        settings: PortalScrapingSettings,
        screenshots: ScreenshotRecorder,
        sink: ProgressSink | None = None,
        max_cards: int = 5,
    ) -> None:
        self._adapter = adapter
        self._settings = settings
        self._screenshots = screenshots
        self._sink = SafeProgressSink(sink, portal=adapter.name)
        self._max_cards = max_cards

    def discover(self, page: Any, session: Session, *, term: str | None = None) -> DiagnosticDump:
        portal = self._adapter.portal
        timeout_ms = self._settings.navigation_timeout_ms
        search_term = term or portal.discovery_term

        self._sink.append_line(f"[Discovery] Navigating to {portal.entry_url} ({len(session)} session cookies)")
        page.goto(portal.entry_url, wait_until="domcontentloaded", timeout=timeout_ms)
        wait_for_settle(page, timeout_ms=timeout_ms, reason="discovery_entry")

        if search_term:
            self._sink.append_line(f"[Discovery] Searching for {search_term}")
            try:
                self._adapter.run_discovery_search(page, search_term, self._settings)
            except Exception as exc:
                self._sink.append_line(f"[Discovery] Search step failed: {clip(exc, 200)}")
                log_event(logger, logging.WARNING, "discovery_search_failed", portal=portal.name, error=str(exc))
            wait_for_settle(page, timeout_ms=timeout_ms, reason="discovery_search")

        structure = page.evaluate(_PAGE_STRUCTURE_JS, [MIN_CARD_TEXT_LENGTH, MAX_CARD_TEXT_LENGTH]) or {}
        deny_list = (*DEFAULT_DENY_LIST, *portal.deny_list)
        dump = DiagnosticDump(
            portal=portal.name,
            url=page.url,
            title=str(structure.get("title") or ""),
            forms=list(structure.get("forms") or []),
            inputs=list(structure.get("inputs") or []),
            cards=select_candidate_cards(
                structure.get("texts") or [],
                deny_list=deny_list,
                max_cards=self._max_cards,
            ),
            screenshot_path=self._screenshots.capture(page, "discovery"),
        )
        self._write_dump(dump)
        log_event(
            logger,
            logging.INFO,
            "discovery_completed",
            portal=portal.name,
            url=dump.url,
            forms=len(dump.forms),
            inputs=len(dump.inputs),
            cards=len(dump.cards),
            screenshot=dump.screenshot_path,
        )
        return dump

    def _write_dump(self, dump: DiagnosticDump) -> None:
        line = self._sink.append_line
        line(f"[Discovery] URL: {dump.url}")
        line(f"[Discovery] Title: {dump.title}")
        line(f"[Discovery] {len(dump.forms)} forms, {len(dump.inputs)} inputs")
        for form in dump.forms:
            line(f"  form action=\"{form.get('action', '')}\" method=\"{form.get('method', '')}\" id=\"{form.get('id', '')}\"")
        for field in dump.inputs:
            line(
                f"  input type=\"{field.get('type', '')}\" name=\"{field.get('name', '')}\" "
                f"id=\"{field.get('id', '')}\" placeholder=\"{field.get('placeholder', '')}\""
            )
        line(f"[Discovery] Found {len(dump.cards)} product card elements")
        for card in dump.cards:
            line(f"  Product: \"{card.text}\"")
            line(f"    element: <{card.element_tag}> id=\"{card.element_id}\" class=\"{card.element_class}\"")
            line(f"    element HTML: {card.element_html}")
            if card.clickable_tag:
                line(f"    clickable ancestor: <{card.clickable_tag}> href=\"{card.clickable_href}\"")
            else:
                line("    clickable ancestor: none")
            line(f"    container: <{card.container_tag}> class=\"{card.container_class}\"")
            line(f"    container HTML: {clip(card.container_html, 600)}")
            if card.image_src:
                line(f"    image: {card.image_src}")
        line(f"[Discovery] Screenshot: {dump.screenshot_path or 'not saved'}")
