"""
tests/test_discovery.py

Pytest unit tests for discovery mode card heuristics and the page dump.
"""

from __future__ import annotations

import pytest

from dealer_portal.scraping.adapters.msi_b2b import MSIB2BPortalAdapter
from dealer_portal.scraping.browser import ScreenshotRecorder
from dealer_portal.scraping.discovery import DiscoveryRunner, looks_like_card_title, select_candidate_cards
from dealer_portal.scraping.types import Session

SESSION = Session(cookies=({"name": "sid", "value": "abc"},))

PAGE_STRUCTURE = {
    "title": "Tile Selector",
    "forms": [{"action": "NonSlabSelector.aspx", "method": "post", "id": "aspnetForm", "inputs": []}],
    "inputs": [{"type": "text", "name": "ctl00$txtItemID", "id": "ctl00_txtItemID", "placeholder": "Item ID"}],
    "texts": [
        {"text": "MY ACCOUNT SETTINGS", "element_tag": "a"},
        {"text": "CALACATTA GOLD MARBLE", "element_tag": "span", "clickable_tag": "a", "clickable_href": "/tile/1"},
        {"text": "Calacatta Gold", "element_tag": "span"},
        {"text": "ARABESCATO CARRARA", "element_tag": "span", "image_src": "/img/ac.jpg"},
        {"text": "STATUARIO NUVO", "element_tag": "span"},
    ],
}


class TestCardHeuristics:
    @pytest.mark.parametrize(
        "text",
        ["CALACATTA GOLD MARBLE", "ARABESCATO CARRARA", "ZEN GRAY"],
    )
    def test_card_titles(self, text: str) -> None:
        assert looks_like_card_title(text) is True

    @pytest.mark.parametrize(
        "text",
        [
            "Calacatta Gold",
            "SHORT",
            "NOSPACESATALLHERE",
            "PRIVACY POLICY NOTICE",
            "WALL TILE COLLECTION",
            "A" * 30 + " " + "B" * 30,
            "PRICE 12.99 EACH",
        ],
    )
    def test_rejected_texts(self, text: str) -> None:
        assert looks_like_card_title(text) is False

    def test_extra_deny_phrases(self) -> None:
        assert looks_like_card_title("CLEARANCE SPECIALS", ("CLEARANCE",)) is False

    def test_selection_is_capped(self) -> None:
        texts = [{"text": f"PRODUCT LINE {letter}X"} for letter in "ABCDEFG"]
        cards = select_candidate_cards(texts, max_cards=5)
        assert [card.text for card in cards] == [f"PRODUCT LINE {letter}X" for letter in "ABCDE"]


class TestDiscoveryRunner:
    def test_dump_searches_and_captures(self, settings, sink, msi_portal_factory, page_factory) -> None:
        portal = msi_portal_factory(discovery_term="calacatta", deny_list=["STATUARIO"])
        adapter = MSIB2BPortalAdapter(portal=portal)
        page = page_factory(url=portal.entry_url)
        page.script_results["createTreeWalker"] = PAGE_STRUCTURE
        runner = DiscoveryRunner(
            adapter=adapter,
            settings=settings,
            screenshots=ScreenshotRecorder(uploads_path=settings.uploads_path, prefix=portal.name),
            sink=sink,
        )

        dump = runner.discover(page, SESSION)

        assert page.visited == [portal.entry_url]
        assert page.typed["#ctl00_ContentPlaceHolder1_txtItemID"] == "calacatta"
        assert dump.title == "Tile Selector"
        assert [card.text for card in dump.cards] == ["CALACATTA GOLD MARBLE", "ARABESCATO CARRARA"]
        assert dump.cards[0].clickable_href == "/tile/1"
        assert dump.screenshot_path is not None and dump.screenshot_path.endswith(".png")
        assert "[Discovery] Found 2 product card elements" in sink.lines
        assert '  Product: "CALACATTA GOLD MARBLE"' in sink.lines
        assert "[Discovery] 1 forms, 1 inputs" in sink.lines

    def test_explicit_term_overrides_config(self, settings, sink, msi_portal_factory, page_factory) -> None:
        portal = msi_portal_factory(discovery_term="calacatta")
        page = page_factory(url=portal.entry_url)
        runner = DiscoveryRunner(
            adapter=MSIB2BPortalAdapter(portal=portal),
            settings=settings,
            screenshots=ScreenshotRecorder(uploads_path=settings.uploads_path, prefix=portal.name),
            sink=sink,
        )

        dump = runner.discover(page, SESSION, term="onyx")

        assert page.typed["#ctl00_ContentPlaceHolder1_txtItemID"] == "onyx"
        assert dump.cards == []

    def test_search_failure_is_reported_not_raised(self, settings, sink, msi_portal_factory, page_factory) -> None:
        portal = msi_portal_factory(discovery_term="calacatta")
        page = page_factory(url=portal.entry_url)

        def broken_fill(selector: str, value: str) -> None:
            raise RuntimeError("element is not attached")

        page.fill = broken_fill
        runner = DiscoveryRunner(
            adapter=MSIB2BPortalAdapter(portal=portal),
            settings=settings,
            screenshots=ScreenshotRecorder(uploads_path=settings.uploads_path, prefix=portal.name),
            sink=sink,
        )

        dump = runner.discover(page, SESSION)

        assert dump.url == portal.entry_url
        assert "[Discovery] Search step failed: element is not attached" in sink.lines
