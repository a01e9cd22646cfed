"""Context Composer - base prompt + summary -> session context.

Pure functions, no I/O. The session context is the instruction payload
the next streaming session is started with:

    <knowledge base base prompt>

    === CONVERSATION CONTEXT ===
    ...summary...
    === END CONTEXT ===
"""

from avatar_console.config.constants import CONTINUITY


def compose_session_context(base_prompt: str, summary: str) -> str:
    """Merge a knowledge base prompt with the latest conversation summary.

    Args:
        base_prompt: The knowledge base's base prompt
        summary: Delimited summary block, or "" when there is none

    Returns:
        base_prompt unchanged if summary is empty, else base_prompt,
        a blank line, then summary verbatim
    """
    if not summary:
        return base_prompt
    return f"{base_prompt}{CONTINUITY.CONTEXT_SEPARATOR}{summary}"


def wrap_context_block(body: str) -> str:
    """Wrap text in the context block delimiters unless already wrapped."""
    body = body.strip()
    if has_context_block(body):
        return body
    return f"{CONTINUITY.CONTEXT_BLOCK_START}\n{body}\n{CONTINUITY.CONTEXT_BLOCK_END}"


def has_context_block(text: str) -> bool:
    """Whether text contains a complete context block."""
    start = text.find(CONTINUITY.CONTEXT_BLOCK_START)
    if start == -1:
        return False
    return text.find(CONTINUITY.CONTEXT_BLOCK_END, start) != -1


def strip_context_block(text: str) -> str:
    """Remove the first context block (and its separator) from text.

    strip_context_block(compose_session_context(p, s)) == p for any
    base prompt p without a block of its own.
    """
    start = text.find(CONTINUITY.CONTEXT_BLOCK_START)
    if start == -1:
        return text
    end = text.find(CONTINUITY.CONTEXT_BLOCK_END, start)
    if end == -1:
        return text

    end += len(CONTINUITY.CONTEXT_BLOCK_END)
    head = text[:start]
    tail = text[end:]
    if head.endswith(CONTINUITY.CONTEXT_SEPARATOR):
        head = head[: -len(CONTINUITY.CONTEXT_SEPARATOR)]
    return head + tail
