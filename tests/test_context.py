import pytest

from app.agents.narrator.context import (
    ContextResolver,
    DetectedScene,
    build_context_block,
    extract_keywords,
    mentions_scene,
)
from app.db.scripts import ScriptRecord

from conftest import FakeScriptStore


def record(title, description=None, content="", scenes=None):
    return ScriptRecord(title=title, description=description, content=content, scene_descriptions=scenes or [])


def test_mentions_scene_is_case_insensitive_substring():
    assert mentions_scene("Tell me about the garden SCENE")
    assert mentions_scene("any scripts about dragons?")
    assert mentions_scene("that was scenery")  # substring match, not word match
    assert not mentions_scene("Describe the setting")


def test_extract_keywords_strips_punctuation_and_short_words():
    assert extract_keywords("Tell me about the garden scene!") == ["tell", "about", "garden", "scene"]


def test_extract_keywords_deduplicates_in_order():
    assert extract_keywords("Scene, scene; SCENE of the crypt") == ["scene", "crypt"]


def test_build_context_block_truncates_long_content():
    long = "x" * 500
    block = build_context_block([record("Long", None, long)])
    assert block.startswith("Relevant script information:\n")
    assert "Description: N/A" in block
    assert f"Content: {'x' * 300}..." in block
    assert "x" * 301 not in block


def test_build_context_block_short_content_not_ellipsized():
    block = build_context_block([record("Short", "desc", "brief")])
    assert block.endswith("Content: brief")


@pytest.mark.asyncio
async def test_no_trigger_term_skips_store():
    store = FakeScriptStore(records=[record("Garden Ambush")])
    resolved = await ContextResolver(store).resolve("What does the goblin want?")
    assert resolved.context == ""
    assert resolved.scene is None
    assert store.calls == []


@pytest.mark.asyncio
async def test_trigger_term_itself_is_a_keyword():
    store = FakeScriptStore()
    resolved = await ContextResolver(store).resolve("...a script, by me...")
    assert store.calls == [(["script"], 3)]
    assert resolved.context == ""


@pytest.mark.asyncio
async def test_scene_from_first_match_and_bounded_context():
    records = [
        record("Garden Ambush", "A quiet garden turns deadly", "g" * 400),
        record("Garden Party", None, "Tea and cakes."),
        record("Old Garden", "Overgrown", "Weeds."),
        record("Fourth", "should be cut", "never shown"),
    ]
    store = FakeScriptStore(records=records)
    resolved = await ContextResolver(store).resolve("Tell me about the garden scene")

    assert store.calls == [(["tell", "about", "garden", "scene"], 3)]
    assert resolved.scene == DetectedScene(name="Garden Ambush", summary="A quiet garden turns deadly")
    assert resolved.context.count("Title: ") == 3
    assert "Fourth" not in resolved.context
    assert "g" * 301 not in resolved.context


@pytest.mark.asyncio
async def test_missing_description_uses_default_summary():
    store = FakeScriptStore(records=[record("Crypt", None, "Dark.")])
    resolved = await ContextResolver(store).resolve("the crypt scene")
    assert resolved.scene == DetectedScene(name="Crypt", summary="A descriptive scene")


@pytest.mark.asyncio
async def test_no_records_gives_empty_context():
    resolved = await ContextResolver(FakeScriptStore()).resolve("the crypt scene")
    assert resolved.context == ""
    assert resolved.scene is None


@pytest.mark.asyncio
async def test_store_failure_fails_soft():
    store = FakeScriptStore(error=ConnectionError("database unreachable"))
    resolved = await ContextResolver(store).resolve("the crypt scene")
    assert resolved.context == ""
    assert resolved.scene is None
    assert len(store.calls) == 1
