"""Extract the JSON object from free-text model output."""

import re

from crisisfeed.services.model_invoker import RawModelOutput, join_output

# Opening or closing code fence, with an optional language tag
FENCE_PATTERN = re.compile(r"```[ \t]*[A-Za-z0-9_+-]*")


def sanitize(raw: RawModelOutput) -> str:
    """Return the best-effort JSON substring of ``raw``.

    Fence markers are removed, then the text is cut to the span between the
    first ``{`` and the last ``}``. Text without braces is returned trimmed
    but otherwise unchanged so that the parse failure stays visible
    downstream.
    """
    text = FENCE_PATTERN.sub("", join_output(raw))

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        text = text[start:end + 1]

    return text.strip()
