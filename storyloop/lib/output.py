"""Output formatting helpers shared by the reporter and verification runner."""

MAX_FAILURE_OUTPUT_CHARS = 3000


def truncate_output(output: str, max_chars: int = MAX_FAILURE_OUTPUT_CHARS) -> str:
    """Truncate output, keeping start and end for context.

    Returns original text if under limit, otherwise the head and tail
    joined by a truncation marker.
    """
    if len(output) <= max_chars:
        return output
    marker = "\n\n... [truncated] ...\n\n"
    available = max_chars - len(marker)
    head_chars = (available * 2) // 3
    tail_chars = available - head_chars
    return f"{output[:head_chars]}{marker}{output[-tail_chars:]}"


def indent(text: str, prefix: str = "      ") -> str:
    """Indent every line of text (used for nested command output)."""
    return "\n".join(f"{prefix}{line}" for line in text.splitlines())
