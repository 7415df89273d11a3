"""Pick the representative bodies and the attachment list from a part tree."""

from __future__ import annotations

import mimetypes

from .charset import CharsetResolver
from .diagnostics import DiagnosticCode, DiagnosticCollector, Stage
from .models import Attachment, DecodedContent, DecodedMessage, MimePart
from .transfer import TransferDecoder

_FALLBACK_EXTENSIONS: dict[str, str] = {
    "message/rfc822": ".eml",
    "text/plain": ".txt",
    "text/html": ".html",
    "image/jpeg": ".jpg",
}


def _is_blank(content: DecodedContent | None) -> bool:
    return content is None or not (content.text or "").strip()


def _prefer(current: DecodedContent | None, candidate: DecodedContent) -> DecodedContent:
    # first non-blank candidate wins; a blank one only holds the slot
    if _is_blank(current) and not _is_blank(candidate):
        return candidate
    return current if current is not None else candidate


def fallback_filename(mime_type: str) -> str:
    """Synthesize a name for an attachment that did not declare one."""
    ext = _FALLBACK_EXTENSIONS.get(mime_type) or mimetypes.guess_extension(mime_type) or ".bin"
    return f"attachment{ext}"


class BodySelector:
    """Depth-first walk that sorts leaves into plain text, HTML and attachments.

    For every leaf, in sibling order:

    1. ``Content-Disposition: attachment`` or an explicit filename →
       attachment.
    2. ``text/html`` → HTML candidate; the first non-blank one is kept.
    3. ``text/plain`` → plain-text candidate; the first non-blank one is kept.
    4. Anything else → attachment.

    Every text candidate is decoded, so diagnostics cover all of them.
    Both bodies of a ``multipart/alternative`` are retained and
    :attr:`DecodedMessage.preferred_body` prefers the HTML one.

    A multipart whose text parts are all blank and which carries no
    attachment has its raw top-level body returned as plain text, so
    content stranded in a preamble is not lost.
    """

    def __init__(
        self,
        decoder: TransferDecoder | None = None,
        resolver: CharsetResolver | None = None,
    ) -> None:
        self._resolver = resolver or CharsetResolver()
        self._decoder = decoder or TransferDecoder(self._resolver)

    def select(
        self,
        root: MimePart,
        diagnostics: DiagnosticCollector | None = None,
    ) -> DecodedMessage:
        plain: DecodedContent | None = None
        html: DecodedContent | None = None
        attachments: list[Attachment] = []

        for part in root.leaves():
            if self._is_attachment(part):
                attachments.append(self._attachment(part, diagnostics))
                continue
            decoded = self._decoder.decode_text(part, diagnostics=diagnostics)
            if part.content_type.is_html:
                html = _prefer(html, decoded)
            else:
                plain = _prefer(plain, decoded)

        plain_text = plain.text if plain is not None else None
        html_text = html.text if html is not None else None

        if (
            _is_blank(plain)
            and _is_blank(html)
            and not attachments
            and root.is_container
            and root.raw_body.strip()
        ):
            plain_text, charset = self._resolver.decode(
                root.raw_body,
                root.content_type.charset,
                diagnostics=diagnostics,
                part_index=root.index,
            )
            if diagnostics is not None:
                diagnostics.emit(
                    Stage.SELECTOR,
                    DiagnosticCode.RAW_BODY_FALLBACK,
                    f"no displayable part, raw body returned as {charset} text",
                    part_index=root.index,
                )

        return DecodedMessage(
            plain_text=plain_text,
            html=html_text,
            attachments=tuple(attachments),
        )

    @staticmethod
    def _is_attachment(part: MimePart) -> bool:
        if part.is_attachment or part.filename:
            return True
        return part.mime_type not in ("text/plain", "text/html")

    def _attachment(
        self,
        part: MimePart,
        diagnostics: DiagnosticCollector | None,
    ) -> Attachment:
        payload = self._decoder.decode(
            part.transfer_encoding,
            part.raw_body,
            diagnostics=diagnostics,
            part_index=part.index,
        )
        is_inline = part.is_inline or (part.disposition is None and part.content_id is not None)
        return Attachment(
            filename=part.filename or fallback_filename(part.mime_type),
            mime_type=part.mime_type,
            payload=payload,
            content_id=part.content_id,
            is_inline=is_inline,
        )
