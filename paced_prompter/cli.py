"""CLI interface: section editing, chunk plans, live playback and rehearsal tracks."""

import argparse
import asyncio
import logging
import os
import shutil
import sys

from pydub import AudioSegment

from paced_prompter.constants import (
    COUNTDOWN_START,
    GUIDE_VOICE,
    OUTPUT_DIR,
    PROGRESS_BAR_WIDTH,
    SECTIONS_FILE,
    VERSION,
)
from paced_prompter.exporter import export, slug_for
from paced_prompter.models import Frame, PlaybackState
from paced_prompter.playback import Player
from paced_prompter.prosody import CUE_LABELS, cue_for, focus_word_index, sign_for
from paced_prompter.rehearsal import build_rehearsal_track
from paced_prompter.scheduler import AsyncioScheduler
from paced_prompter.sections import SectionStore
from paced_prompter.timing import plan_section
from paced_prompter.tts import GuideVoiceError, generate_chunk_clips


def _check_ffmpeg():
    """Verify ffmpeg is installed."""
    if not shutil.which("ffmpeg"):
        print("Error: ffmpeg is required but not found.", file=sys.stderr)
        print("Install with: brew install ffmpeg", file=sys.stderr)
        raise SystemExit(1)


def _open_store(args) -> SectionStore:
    return SectionStore.open(args.store)


def _section_index(store: SectionStore, number: int) -> int:
    """Convert a 1-based section number to an index, or exit."""
    if not 1 <= number <= len(store):
        print(f"Error: No section {number} (there are {len(store)}).", file=sys.stderr)
        raise SystemExit(1)
    return number - 1


def _format_seconds(ms: float) -> str:
    return f"{ms / 1000:.1f}s"


def _format_words(chunk, focus: int) -> str:
    return " ".join(w.upper() if i == focus else w for i, w in enumerate(chunk.words))


def _progress_bar(fraction: float, width: int = PROGRESS_BAR_WIDTH) -> str:
    filled = int(round(fraction * width))
    return "[" + "#" * filled + "-" * (width - filled) + f"] {fraction * 100:3.0f}%"


def render_frame(frame: Frame) -> str:
    """One terminal line for a playback frame."""
    if frame.state == PlaybackState.COUNTDOWN:
        return f"  {frame.countdown}  GET READY"
    if frame.chunk is None:
        return "  (empty section)"
    words = _format_words(frame.chunk, frame.focus_word_index)
    marker = "||" if frame.state == PlaybackState.STOPPED else ">>"
    return (
        f"{marker} {sign_for(frame.chunk):<8} {words:<32} "
        f"{CUE_LABELS[frame.prosody_cue]:<11} {_progress_bar(frame.progress_fraction)}"
    )


def cmd_list(args):
    """List all sections."""
    store = _open_store(args)
    print("Sections:")
    for i, section in enumerate(store.sections, start=1):
        plan = plan_section(section.text, section.duration_ms)
        print(
            f"  {i}. {section.title:<28} {section.time_range:<11} "
            f"{_format_seconds(section.duration_ms):>7}  {plan.chunk_count} chunks"
        )


def cmd_show(args):
    """Print the chunk plan of a section."""
    store = _open_store(args)
    section = store.get(_section_index(store, args.section))
    plan = plan_section(section.text, section.duration_ms)

    print(f"Section: {section.title} ({section.time_range})")
    print(f"Target:  {_format_seconds(section.duration_ms)}")
    if not plan.chunks:
        print("No chunks (section has no text).")
        return
    print(f"Chunks:  {plan.chunk_count} (unit {plan.unit_ms:.0f} ms)")
    for i, (chunk, duration) in enumerate(zip(plan.chunks, plan.durations), start=1):
        words = _format_words(chunk, focus_word_index(chunk))
        cue = CUE_LABELS[cue_for(chunk)]
        print(f"  {i:>3}  {words:<32} {chunk.type.value:<4} {cue:<11} {duration:8.0f} ms")


def cmd_add(args):
    """Append an empty section."""
    store = _open_store(args)
    section = store.add_section()
    print(f"Added section {len(store)}: {section.title}")


def cmd_delete(args):
    """Delete a section."""
    store = _open_store(args)
    section = store.get(_section_index(store, args.section))
    if not store.delete_section(section.id):
        print("Error: Cannot delete the only section.", file=sys.stderr)
        raise SystemExit(1)
    print(f"Deleted: {section.title}")


def cmd_reset(args):
    """Restore the built-in script."""
    store = _open_store(args)
    store.reset_to_defaults()
    print(f"Restored default script ({len(store)} sections).")


def cmd_set(args):
    """Update one field of a section."""
    store = _open_store(args)
    section = store.get(_section_index(store, args.section))
    key = args.key
    values = args.values

    valid_keys = {"title", "time-range", "duration", "text", "text-file"}
    if key not in valid_keys:
        print(f"Error: Invalid setting key: {key}", file=sys.stderr)
        print(f"Valid keys: {', '.join(sorted(valid_keys))}", file=sys.stderr)
        raise SystemExit(1)

    if key != "text" and not values:
        print(f"Error: 'set {key}' requires a value", file=sys.stderr)
        raise SystemExit(1)

    if key == "title":
        fields = {"title": " ".join(values)}
    elif key == "time-range":
        fields = {"time_range": values[0]}
    elif key == "duration":
        try:
            fields = {"duration_ms": int(round(float(values[0]) * 1000))}
        except (ValueError, OverflowError):
            print(f"Error: Invalid duration: {values[0]}", file=sys.stderr)
            raise SystemExit(1)
    elif key == "text":
        fields = {"text": " ".join(values)}
    else:
        path = values[0]
        if not os.path.exists(path):
            print(f"Error: File not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        with open(path, encoding="utf-8") as f:
            fields = {"text": f.read().strip()}

    try:
        store.update_section(section.id, **fields)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    plan = plan_section(section.text, section.duration_ms)
    print(f"Updated: {section.title} ({plan.chunk_count} chunks, {_format_seconds(section.duration_ms)})")


async def _play(player: Player, start_chunk: int) -> None:
    """Run one playback session until the player stops on its own."""
    done = asyncio.Event()
    started = False

    def on_frame(frame: Frame):
        nonlocal started
        print(render_frame(frame), flush=True)
        if frame.state != PlaybackState.STOPPED:
            started = True
        elif started:
            done.set()

    player.seek(start_chunk - 1)
    player.add_listener(on_frame)
    player.toggle_play()
    await done.wait()


def cmd_play(args):
    """Play a section in the terminal."""
    store = _open_store(args)
    index = _section_index(store, args.section)
    section = store.get(index)
    if not plan_section(section.text, section.duration_ms).chunks:
        print(f"Error: Section {args.section} has no text to play.", file=sys.stderr)
        raise SystemExit(1)

    countdown = 0 if args.no_countdown else COUNTDOWN_START
    player = Player(store, AsyncioScheduler(), countdown_start=countdown)
    player.select_section(index)

    print(f"Playing: {section.title} ({section.time_range}, {_format_seconds(section.duration_ms)})")
    try:
        asyncio.run(_play(player, args.start))
    except KeyboardInterrupt:
        player.cancel()
        print(f"\nCancelled at chunk {player.chunk_index + 1}/{player.chunk_count}.")
        return
    finally:
        player.close()
    print("Done.")


def cmd_rehearse(args):
    """Render a rehearsal track for a section."""
    _check_ffmpeg()

    store = _open_store(args)
    section = store.get(_section_index(store, args.section))
    plan = plan_section(section.text, section.duration_ms)
    if not plan.chunks:
        print(f"Error: Section {args.section} has no text to rehearse.", file=sys.stderr)
        raise SystemExit(1)

    slug = slug_for(section)
    output_dir = os.path.join(args.output, slug)

    clips = None
    if not args.no_voice:
        print(f"Generating guide voice for {plan.chunk_count} chunks...")
        try:
            paths = generate_chunk_clips(plan, os.path.join(output_dir, "clips"), args.voice)
        except GuideVoiceError as e:
            print(f"Error: {e}", file=sys.stderr)
            raise SystemExit(1)
        clips = [AudioSegment.from_mp3(p) for p in paths]

    track = build_rehearsal_track(plan, clips=clips, cue_tones=not args.no_tones)

    settings = {
        "voice": None if args.no_voice else args.voice,
        "cue_tones": not args.no_tones,
    }
    output_path = export(track, output_dir, slug, section, settings)
    print(f"Done: {output_path}")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="prompter",
        description="Paced Prompter: sentence-paced cueing for timed speeches",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--store", default=SECTIONS_FILE, help="Path to the sections JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list
    list_parser = subparsers.add_parser("list", help="List all sections")
    list_parser.set_defaults(func=cmd_list)

    # show
    show_parser = subparsers.add_parser("show", help="Show the chunk plan of a section")
    show_parser.add_argument("section", type=int, help="Section number (1-based)")
    show_parser.set_defaults(func=cmd_show)

    # add
    add_parser = subparsers.add_parser("add", help="Append an empty section")
    add_parser.set_defaults(func=cmd_add)

    # delete
    delete_parser = subparsers.add_parser("delete", help="Delete a section")
    delete_parser.add_argument("section", type=int, help="Section number (1-based)")
    delete_parser.set_defaults(func=cmd_delete)

    # reset
    reset_parser = subparsers.add_parser("reset", help="Restore the default script")
    reset_parser.set_defaults(func=cmd_reset)

    # set
    set_parser = subparsers.add_parser("set", help="Update a section field")
    set_parser.add_argument("section", type=int, help="Section number (1-based)")
    set_parser.add_argument("key", help="Field: title, time-range, duration, text, text-file")
    set_parser.add_argument("values", nargs="*", help="New value(s)")
    set_parser.set_defaults(func=cmd_set)

    # play
    play_parser = subparsers.add_parser("play", help="Play a section in the terminal")
    play_parser.add_argument("section", type=int, help="Section number (1-based)")
    play_parser.add_argument("--no-countdown", action="store_true", help="Start without the countdown")
    play_parser.add_argument("--from", dest="start", type=int, default=1, help="Chunk number to start from (1-based)")
    play_parser.set_defaults(func=cmd_play)

    # rehearse
    rehearse_parser = subparsers.add_parser("rehearse", help="Render a rehearsal track for a section")
    rehearse_parser.add_argument("section", type=int, help="Section number (1-based)")
    rehearse_parser.add_argument("--voice", default=GUIDE_VOICE, help="edge-tts voice for the guide")
    rehearse_parser.add_argument("--no-voice", action="store_true", help="Cue tones only, no guide voice")
    rehearse_parser.add_argument("--no-tones", action="store_true", help="Guide voice only, no cue tones")
    rehearse_parser.add_argument("--output", default=OUTPUT_DIR, help="Output directory")
    rehearse_parser.set_defaults(func=cmd_rehearse)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
