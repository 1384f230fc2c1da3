"""Tests for sections module (Layer 1e)."""

import json
import os

import pytest

from paced_prompter.models import Section
from paced_prompter.sections import (
    DEFAULT_SECTIONS,
    SectionStore,
    default_sections,
    load_sections,
    save_sections,
)


# --- Defaults ---

def test_default_script():
    """Four sections, 45 s + 3 × 60 s."""
    assert [s.id for s in DEFAULT_SECTIONS] == [1, 2, 3, 4]
    assert [s.duration_ms for s in DEFAULT_SECTIONS] == [45000, 60000, 60000, 60000]
    assert DEFAULT_SECTIONS[-1].text.endswith("Just ask PDS!")


def test_default_sections_are_copies():
    """Editing a fresh copy leaves the built-in script alone."""
    sections = default_sections()
    sections[0].text = "changed"
    assert DEFAULT_SECTIONS[0].text != "changed"


def test_empty_store_starts_from_defaults():
    store = SectionStore()
    assert len(store) == 4
    assert store.get(0).title == "1. The Problem"


# --- CRUD ---

def test_add_section(store):
    section = store.add_section()
    assert section.id == 4
    assert section.title == "Section 4"
    assert section.time_range == "0:00-1:00"
    assert section.duration_ms == 60000
    assert section.text == ""
    assert store.get(3) is section


def test_add_section_after_gap_in_ids():
    store = SectionStore([Section(id=9, title="A", time_range="", duration_ms=1000, text="")])
    assert store.add_section().id == 10


def test_update_section_in_place(store):
    section = store.get(0)
    store.update_section(1, title="New", text="Fresh text.", duration_ms="2500")
    assert section.title == "New"
    assert section.text == "Fresh text."
    assert section.duration_ms == 2500


def test_update_unknown_id(store):
    with pytest.raises(KeyError):
        store.update_section(42, title="x")


def test_update_unknown_field(store):
    with pytest.raises(ValueError):
        store.update_section(1, colour="red")


@pytest.mark.parametrize("duration", [0, -100])
def test_update_rejects_non_positive_duration(store, duration):
    with pytest.raises(ValueError):
        store.update_section(1, duration_ms=duration)
    assert store.get(0).duration_ms == 3500


def test_delete_section(store):
    assert store.delete_section(2) is True
    assert [s.id for s in store.sections] == [1, 3]


def test_cannot_delete_last_section():
    store = SectionStore([Section(id=1, title="Only", time_range="", duration_ms=1000, text="x")])
    assert store.delete_section(1) is False
    assert len(store) == 1


def test_reset_to_defaults(store):
    store.reset_to_defaults()
    assert [s.title for s in store.sections] == [s.title for s in DEFAULT_SECTIONS]


def test_listeners_called_on_every_mutation(store):
    calls = []
    store.add_listener(calls.append)
    store.add_section()
    store.update_section(1, title="x")
    store.delete_section(2)
    store.reset_to_defaults()
    assert calls == [store] * 4
    store.remove_listener(calls.append)
    store.add_section()
    assert len(calls) == 4


# --- Persistence ---

def test_save_and_load(tmp_path, sample_sections):
    path = str(tmp_path / "sections.json")
    save_sections(path, sample_sections)
    with open(path) as f:
        data = json.load(f)
    assert data[0]["timeRange"] == "0:00-0:04"
    assert load_sections(path) == sample_sections


def test_load_missing_file(tmp_path):
    sections = load_sections(str(tmp_path / "nope.json"))
    assert [s.id for s in sections] == [1, 2, 3, 4]


def test_load_malformed_file(tmp_path, caplog):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    sections = load_sections(str(path))
    assert len(sections) == 4
    assert "Malformed sections file" in caplog.text


def test_load_wrong_shape(tmp_path):
    """Entries missing required keys fall back to defaults."""
    path = tmp_path / "shape.json"
    path.write_text(json.dumps([{"title": "no id"}]))
    assert len(load_sections(str(path))) == 4


def test_load_empty_list(tmp_path):
    path = tmp_path / "empty.json"
    path.write_text("[]")
    assert len(load_sections(str(path))) == 4


@pytest.mark.parametrize("duration", [0, -500])
def test_load_non_positive_duration(tmp_path, caplog, duration):
    """A stored non-positive duration is treated as a malformed file."""
    path = tmp_path / "zero.json"
    path.write_text(json.dumps([
        {"id": 1, "title": "Zero", "timeRange": "", "durationMs": duration, "text": "a b c d."},
    ]))
    sections = load_sections(str(path))
    assert [s.id for s in sections] == [1, 2, 3, 4]
    assert sections[0].title == "1. The Problem"
    assert "Malformed sections file" in caplog.text


def test_open_autosaves(tmp_path):
    """A store opened from a path writes every change back."""
    path = str(tmp_path / "nested" / "sections.json")
    store = SectionStore.open(path)
    assert not os.path.exists(path)
    store.update_section(2, title="Edited")
    reloaded = load_sections(path)
    assert reloaded[1].title == "Edited"
    assert len(reloaded) == 4


def test_save_keeps_unicode(tmp_path):
    path = str(tmp_path / "s.json")
    save_sections(path, default_sections())
    with open(path, encoding="utf-8") as f:
        assert "I’ve" in f.read()
