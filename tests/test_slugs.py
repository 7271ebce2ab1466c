from __future__ import annotations

from gallery.ingest.slugs import safe_stem, slugify, suffixed


def test_slugify_collapses_and_trims():
    assert slugify("  Summer Shoot 2024! ") == "summer-shoot-2024"
    assert slugify("Café Über") == "cafe-uber"
    assert slugify("***") == "set"


def test_suffixed_candidates():
    assert [suffixed("beach", attempt) for attempt in (1, 2, 3)] == ["beach", "beach-2", "beach-3"]


def test_safe_stem_strips_extension_and_unsafe_characters():
    assert safe_stem("IMG 0001.JPG") == "IMG_0001"
    assert safe_stem("folder/../evil name.png") == "evil_name"
    assert safe_stem(".png") == "file"


def test_unique_slug_appends_counter(db, seed_model):
    model_id, _ = seed_model()

    async def _create(repo):
        first = await repo.create_set(model_id=model_id, name="Beach Day")
        second = await repo.create_set(model_id=model_id, name="Beach Day")
        third = await repo.create_set(model_id=model_id, name="beach-day")
        return first.slug, second.slug, third.slug

    assert db(_create) == ("beach-day", "beach-day-2", "beach-day-3")
