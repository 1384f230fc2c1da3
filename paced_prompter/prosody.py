"""Static prosody cues and focus words derived from chunk punctuation."""

from paced_prompter.models import Chunk, ChunkType, ProsodyCue

CUE_LABELS = {
    ProsodyCue.STEADY: "STEADY",
    ProsodyCue.PITCH_UP: "PITCH UP",
    ProsodyCue.PITCH_DOWN: "PITCH DOWN",
    ProsodyCue.ENERGY: "ENERGY",
}

SIGN_LABELS = {
    ChunkType.FLOW: "FLOWING",
    ChunkType.END: "PAUSE",
}


def cue_for(chunk: Chunk) -> ProsodyCue:
    """Map a chunk to its display cue. First matching rule wins."""
    if chunk.punctuation == "?":
        return ProsodyCue.PITCH_UP
    if chunk.punctuation == "!":
        return ProsodyCue.ENERGY
    if chunk.type == ChunkType.FLOW:
        return ProsodyCue.STEADY
    return ProsodyCue.PITCH_DOWN


def focus_word_index(chunk: Chunk) -> int:
    """Index of the emphasized word: the only one, the first of two, the middle of three."""
    return 1 if len(chunk.words) >= 3 else 0


def sign_for(chunk: Chunk) -> str:
    return SIGN_LABELS[chunk.type]
