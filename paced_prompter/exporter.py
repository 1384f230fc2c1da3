"""Export a rehearsal track as MP3 with metadata tags."""

import json
import os
import re
from collections import Counter
from datetime import datetime, timezone

from pydub import AudioSegment

from paced_prompter.constants import OUTPUT_BITRATE, VERSION
from paced_prompter.models import Section
from paced_prompter.prosody import cue_for
from paced_prompter.timing import plan_section


def slug_for(section: Section) -> str:
    """Convert a section title to an output directory slug.

    "1. The Problem" → "1_the_problem"
    """
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", section.title).strip("_").lower()
    return slug or f"section_{section.id}"


def export(
    track: AudioSegment,
    output_dir: str,
    slug: str,
    section: Section,
    settings: dict,
) -> str:
    """Export a rehearsal track with tags and a manifest.

    Creates:
      - <output_dir>/<slug>.mp3 (the rehearsal track)
      - <output_dir>/output.json (provenance manifest)

    Returns path to the MP3 file.
    """
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, f"{slug}.mp3")

    tags = {"title": section.title}
    if section.time_range:
        tags["comment"] = section.time_range

    track.export(
        output_path,
        format="mp3",
        bitrate=OUTPUT_BITRATE,
        tags=tags,
    )

    plan = plan_section(section.text, section.duration_ms)
    cues = Counter(cue_for(c).value for c in plan.chunks)
    manifest = {
        "section": section.to_dict(),
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "prompter_version": VERSION,
        "settings": settings,
        "stats": {
            "chunks": plan.chunk_count,
            "unit_ms": round(plan.unit_ms, 3) if plan.unit_ms is not None else None,
            "duration_seconds": round(len(track) / 1000, 1),
            "cues": dict(sorted(cues.items())),
        },
    }

    manifest_path = os.path.join(output_dir, "output.json")
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)

    return output_path
