"""Post-decode cleanup of a selected HTML body.

Strips transport residue that survives splitting on malformed input: stray
boundary marker lines at the edges and noise before the first tag.  Pure and
idempotent: ``clean_html(clean_html(x)) == clean_html(x)``.
"""

from __future__ import annotations


def _is_noise_line(line: str) -> bool:
    stripped = line.strip()
    if not stripped:
        return True
    # "-->" closes a comment and belongs to the document
    return stripped.startswith("--") and not stripped.startswith("-->")


def clean_html(html: str | None) -> str | None:
    """Return *html* without leaked boundary lines and leading preamble."""
    if html is None:
        return None

    lines = html.splitlines(keepends=True)
    start, end = 0, len(lines)
    while start < end and _is_noise_line(lines[start]):
        start += 1
    while end > start and _is_noise_line(lines[end - 1]):
        end -= 1

    cleaned = "".join(lines[start:end]).strip()
    if cleaned and not cleaned.startswith("<"):
        first_tag = cleaned.find("<")
        if first_tag > 0:
            cleaned = cleaned[first_tag:]
    return cleaned
