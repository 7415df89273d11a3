"""Errors raised by the MIME core.

Parsing problems never surface as exceptions: they are absorbed where they
happen and recorded as :class:`~umbrella_mime.diagnostics.Diagnostic`
entries.  The only hard failure is being handed something that is not a
message at all.
"""

from __future__ import annotations


class ParseError(TypeError):
    """Input is neither bytes-like nor a pre-built :class:`MimePart`."""
