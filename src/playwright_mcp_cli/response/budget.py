"""
Token budget helpers

Sizes are estimated, not counted: one token is assumed to cover 2.5
characters, which overestimates for typical English and markup so the
rendered response stays under the client's hard limit.
"""

import math

CHARS_PER_TOKEN = 2.5

# Global budget for one serialized tool response
MAX_TOKENS = 20000

# Held back from the snapshot budget for everything rendered after it
SNAPSHOT_RESERVE_TOKENS = 2000
# Floor for the snapshot budget, even when result/code already used most of it
MIN_SNAPSHOT_TOKENS = 1000
# Held back from the console message budget for the page state section
CONSOLE_RESERVE_TOKENS = 1000
# Held back from the accessibility tree budget for the fence and trailing lines
ARIA_RESERVE_TOKENS = 500
# Held back from the image budget
IMAGE_RESERVE_TOKENS = 1000

# Characters dropped before a truncation notice, so the notice itself fits
TRUNCATION_HEADROOM_CHARS = 200
MAX_CONSOLE_MESSAGE_CHARS = 500

RESPONSE_TRUNCATED_NOTICE = "\n\n... [Response truncated to stay under token limit] ..."
SNAPSHOT_TRUNCATED_NOTICE = "\n\n... [Snapshot truncated to fit token limit] ..."
IMAGES_TRUNCATED_NOTICE = (
    "\n\n### Images Truncated\nSome images were omitted to stay within token limits."
)


def estimate_tokens(text: str) -> int:
    """Conservative token estimate for a piece of text."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def truncate_to_token_limit(
    text: str, max_tokens: int, notice: str = RESPONSE_TRUNCATED_NOTICE
) -> str:
    """
    Cut text so that its estimate stays within max_tokens.

    Text that already fits is returned unchanged. Otherwise the text is cut
    TRUNCATION_HEADROOM_CHARS before the boundary and the notice appended,
    so the result always carries exactly one notice at its end.
    """
    max_chars = int(max_tokens * CHARS_PER_TOKEN)
    if len(text) <= max_chars:
        return text

    keep = max(0, max_chars - TRUNCATION_HEADROOM_CHARS)
    return text[:keep] + notice


def trim(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
