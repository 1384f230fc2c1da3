"""Section store: ordered script sections, CRUD, defaults and JSON persistence."""

import copy
import json
import logging
import os
from typing import Callable

from paced_prompter.constants import NEW_SECTION_DURATION_MS, NEW_SECTION_TIME_RANGE
from paced_prompter.models import Section

logger = logging.getLogger(__name__)

DEFAULT_SECTIONS = [
    Section(
        id=1,
        title="1. The Problem",
        time_range="0:00-0:45",
        duration_ms=45000,
        text=(
            "Hello everyone. Today I am proposing a significant upgrade to our school website. "
            "As we know, the current Satit Patumwan site, which was designed several years ago, "
            "is starting to feel quite chunky and outdated. I’ve noticed that many students can’t "
            "stand waiting for the MIS portal to load during peak hours. Currently, if you want to "
            "find your exam schedule, you have to scroll down through multiple layers of text and "
            "log on to a system that isn't very user-friendly. We need a website that doesn't just "
            "store data but actually helps us use it."
        ),
    ),
    Section(
        id=2,
        title="2. Introducing askPDS",
        time_range="0:45-1:45",
        duration_ms=60000,
        text=(
            "My proposal is to set up 'askPDS.' This is an AI-driven chatbot which acts as a "
            "centralized brain for our school. Unlike a static page, askPDS is a cutting-edge tool "
            "that interprets your needs. For example, if you key in a question about your "
            "attendance, the AI immediately searches the cloud database to find the answer. This "
            "feature, which uses high-resolution data visualization, makes complex information "
            "easy to understand at a glance. Instead of scrolling down endlessly, you get exactly "
            "what you need in a pop-up window."
        ),
    ),
    Section(
        id=3,
        title="3. Benefits",
        time_range="1:45-2:45",
        duration_ms=60000,
        text=(
            "Students often prefer to access their study materials quickly before a big test. "
            "With askPDS, you can ask for a personalized preparation plan. The AI, which tracks "
            "your previous grades, can identify your weak spots and suggest specific back-up "
            "materials to study. For teachers, the benefits are even greater. Teachers dislike "
            "spending hours on manual grading reports. askPDS can generate a 'heat map' of the "
            "classroom. This map, which provides a visual overview of student performance, helps "
            "teachers see who is struggling and who is excelling. This allows them to go on "
            "teaching while the AI handles the data organization."
        ),
    ),
    Section(
        id=4,
        title="4. Conclusion",
        time_range="2:45-3:45",
        duration_ms=60000,
        text=(
            "To make this work, we need to update features on our main server. We should include "
            "a drop-down menu for quick settings and ensure touch screen compatibility for "
            "students using tablets in class. By setting up this versatile system, we transform "
            "our school into a truly modern environment. In conclusion, we should stop using "
            "inefficient methods and start embracing AI. This improvement, which will save us "
            "hours of work every week, is the future of Satit Patumwan. Let’s make our school "
            "life easier. Just ask PDS!"
        ),
    ),
]

# Editable field name → attribute on Section
EDITABLE_FIELDS = ("title", "time_range", "duration_ms", "text")


def default_sections() -> list[Section]:
    """Fresh copies of the built-in script, safe to mutate."""
    return copy.deepcopy(DEFAULT_SECTIONS)


def load_sections(path: str) -> list[Section]:
    """Read sections from a JSON file.

    Falls back to the default script if the file is missing, malformed,
    or holds no sections. A section with a non-positive duration counts
    as malformed.
    """
    if not os.path.exists(path):
        return default_sections()
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        sections = [Section.from_dict(item) for item in data]
    except (json.JSONDecodeError, KeyError, TypeError, ValueError, OverflowError):
        logger.warning("Malformed sections file: %s, using default script", path)
        return default_sections()
    if not sections:
        return default_sections()
    return sections


def save_sections(path: str, sections: list[Section]) -> str:
    """Write sections to path as indented JSON. Returns the path."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([s.to_dict() for s in sections], f, indent=2, ensure_ascii=False)
    return path


class SectionStore:
    """Ordered, never-empty collection of sections.

    Listeners are called with the store after every mutation. When bound to
    a path, every mutation is also saved there.
    """

    def __init__(self, sections: list[Section] | None = None, path: str | None = None):
        self._sections = list(sections) if sections else default_sections()
        self.path = path
        self._listeners: list[Callable[["SectionStore"], None]] = []

    @classmethod
    def open(cls, path: str) -> "SectionStore":
        """Load a store from path and autosave to it from then on."""
        return cls(load_sections(path), path=path)

    @property
    def sections(self) -> list[Section]:
        return list(self._sections)

    def __len__(self) -> int:
        return len(self._sections)

    def get(self, index: int) -> Section:
        return self._sections[index]

    def index_of(self, section_id: int) -> int:
        for i, section in enumerate(self._sections):
            if section.id == section_id:
                return i
        raise KeyError(f"No section with id {section_id}")

    def add_listener(self, callback: Callable[["SectionStore"], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[["SectionStore"], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _changed(self) -> None:
        if self.path:
            save_sections(self.path, self._sections)
        for callback in list(self._listeners):
            callback(self)

    def add_section(self) -> Section:
        """Append an empty section with the next free id."""
        new_id = max((s.id for s in self._sections), default=0) + 1
        section = Section(
            id=new_id,
            title=f"Section {len(self._sections) + 1}",
            time_range=NEW_SECTION_TIME_RANGE,
            duration_ms=NEW_SECTION_DURATION_MS,
            text="",
        )
        self._sections.append(section)
        self._changed()
        return section

    def update_section(self, section_id: int, **fields) -> Section:
        """Edit a section in place.

        Raises KeyError for an unknown id, ValueError for an unknown field
        or a non-positive duration.
        """
        section = self._sections[self.index_of(section_id)]
        for name in fields:
            if name not in EDITABLE_FIELDS:
                raise ValueError(f"Unknown section field: {name}")
        if "duration_ms" in fields:
            duration = int(fields["duration_ms"])
            if duration <= 0:
                raise ValueError(f"Duration must be positive, got {duration} ms")
            fields["duration_ms"] = duration
        for name, value in fields.items():
            setattr(section, name, value)
        self._changed()
        return section

    def delete_section(self, section_id: int) -> bool:
        """Remove a section. The last remaining section is never deleted."""
        index = self.index_of(section_id)
        if len(self._sections) <= 1:
            return False
        del self._sections[index]
        self._changed()
        return True

    def reset_to_defaults(self) -> None:
        self._sections = default_sections()
        self._changed()
