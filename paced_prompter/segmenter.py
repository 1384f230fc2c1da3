"""Split script text into sentence-aware display chunks."""

import re

from paced_prompter.constants import CHUNK_WORDS, TERMINAL_MARKS
from paced_prompter.models import Chunk, ChunkType

# A sentence: a run of non-terminal characters followed by one or more terminal marks
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")


def _find_sentences(text: str) -> tuple[list[str], bool]:
    """Sentences of text, and whether any sentence run was found at all."""
    sentences = []
    end = 0
    for match in _SENTENCE_RE.finditer(text):
        sentences.append(match.group(0))
        end = match.end()

    if not sentences:
        return [text], False

    tail = text[end:]
    if tail.strip():
        sentences.append(tail)
    return sentences, True


def split_sentences(text: str) -> list[str]:
    """Split text into raw sentences.

    Text with no terminated sentence at all is returned as a single sentence.
    Anything after the last terminal mark is kept as a final, unterminated
    sentence so no words are lost.
    """
    return _find_sentences(text)[0]


def _terminal_mark(sentence: str) -> str | None:
    """Last character of the trimmed sentence if it ends the sentence."""
    stripped = sentence.strip()
    if stripped and stripped[-1] in TERMINAL_MARKS:
        return stripped[-1]
    return None


def _chunk_sentence(sentence: str, size: int = CHUNK_WORDS, terminated: bool = True) -> list[Chunk]:
    """Group one sentence's words; the last group is the END chunk."""
    words = [w for w in sentence.strip().split() if w]
    if not words:
        return []

    punctuation = _terminal_mark(sentence) if terminated else None
    chunks = []
    for i in range(0, len(words), size):
        group = tuple(words[i:i + size])
        if i + size >= len(words):
            chunks.append(Chunk(words=group, type=ChunkType.END, punctuation=punctuation))
        else:
            chunks.append(Chunk(words=group, type=ChunkType.FLOW))
    return chunks


def segment(text: str) -> list[Chunk]:
    """Split text into an ordered list of display chunks.

    "Hi there. Go now!" → [Hi there](END, ".") [Go now](END, "!")

    Text made only of marks, such as "?", has no sentence run, so its single
    chunk carries no punctuation.
    """
    sentences, found = _find_sentences(text)
    chunks = []
    for sentence in sentences:
        chunks.extend(_chunk_sentence(sentence, terminated=found))
    return chunks
