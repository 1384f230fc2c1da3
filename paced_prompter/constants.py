"""All magic numbers and configuration constants."""

CHUNK_WORDS = 3                     # words per display chunk (last of a sentence may be shorter)
FLOW_WEIGHT = 1.0                   # relative display time of a mid-sentence chunk
END_WEIGHT = 1.75                   # relative display time of a sentence-final chunk
TERMINAL_MARKS = ".!?"              # characters that end a sentence
COUNTDOWN_START = 5                 # countdown runs 5, 4, 3, 2, 1, 0 before playing
COUNTDOWN_TICK_MS = 1000            # ms between countdown steps
NEW_SECTION_DURATION_MS = 60000     # target duration of a freshly added section
NEW_SECTION_TIME_RANGE = "0:00-1:00"
SECTIONS_FILE = "prompter_sections.json"     # default store location
TTS_RETRY_COUNT = 3                 # max retries per guide clip
TTS_RETRY_BASE_DELAY = 1.0          # seconds, base delay for exponential backoff
TTS_RATE = "+0%"                    # guide voice speech rate
GUIDE_VOICE = "en-US-AriaNeural"    # default rehearsal guide voice
CUE_TONE_MS = 120                   # length of the tone that marks a chunk start
CUE_TONE_FREQUENCIES = {            # Hz per prosody cue
    "STEADY": 440.0,
    "PITCH_UP": 660.0,
    "PITCH_DOWN": 330.0,
    "ENERGY": 550.0,
}
CUE_TONE_GAIN_DB = {                # tone level per prosody cue
    "STEADY": -18.0,
    "PITCH_UP": -12.0,
    "PITCH_DOWN": -12.0,
    "ENERGY": -6.0,
}
GUIDE_TONE_DB = -10                 # cue tones sit under the guide voice
SLOT_FADE_MS = 40                   # fade applied when a clip is trimmed to its slot
SAMPLE_RATE = 44100
OUTPUT_BITRATE = "192k"             # MP3 output bitrate
OUTPUT_DIR = "rehearsals"
PROGRESS_BAR_WIDTH = 30             # characters in the terminal progress bar
VERSION = "0.1.0"
