"""Shared envelope formatting helpers.

Keeping formatting here prevents drift between transports and keeps replies
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from typing import List

from core.envelope import Attachment, Envelope, QuickReply

# Shortcodes used by branch callbacks for reactions. Platforms without
# shortcode support get the unicode emoji instead.
EMOJI_SHORTCODES = {
    ":wave:": "👋",
    ":baby:": "👶",
    ":thumbsup:": "👍",
    ":heart:": "❤",
    ":fire:": "🔥",
    ":tada:": "🎉",
}


def emoji_from_shortcode(value: str) -> str:
    return EMOJI_SHORTCODES.get(value.strip(), value.strip())


def _quick_replies_plain(replies: List[QuickReply]) -> str:
    return " ".join(f"[{reply.text}]" for reply in replies)


def _attachment_plain(attachment: Attachment) -> List[str]:
    # Plain text cannot render rich content, so the fallback wins when present.
    if attachment.fallback:
        lines = [attachment.fallback]
    else:
        lines = []
        if attachment.title:
            title = attachment.title.text
            if attachment.title.link:
                title = f"{title} <{attachment.title.link}>"
            lines.append(title)
        if attachment.image:
            lines.append(attachment.image)
    if attachment.quick_replies:
        lines.append(_quick_replies_plain(attachment.quick_replies))
    return lines


def _format_plain(envelope: Envelope) -> str:
    lines: List[str] = list(envelope.strings)
    for attachment in envelope.attachments:
        lines.extend(_attachment_plain(attachment))
    if envelope.payload.quick_replies:
        lines.append(_quick_replies_plain(envelope.payload.quick_replies))
    return "\n".join(line for line in lines if line)


def _format_markdown(envelope: Envelope) -> str:
    """Create the Markdown body used by Telegram."""

    def escape_md(value: str) -> str:
        for ch in r"*[`":
            value = value.replace(ch, f"\\{ch}")
        return value

    lines: List[str] = [escape_md(text) for text in envelope.strings]
    for attachment in envelope.attachments:
        if attachment.title:
            title = escape_md(attachment.title.text)
            if attachment.title.link:
                lines.append(f"**[{title}]({attachment.title.link})**")
            else:
                lines.append(f"**{title}**")
        if attachment.image:
            lines.append(attachment.image)
        elif attachment.fallback and not attachment.title:
            lines.append(escape_md(attachment.fallback))
    return "\n".join(line for line in lines if line)


def _format_html(envelope: Envelope) -> str:
    parts: List[str] = [html.escape(text) for text in envelope.strings]
    for attachment in envelope.attachments:
        if attachment.title:
            title = html.escape(attachment.title.text)
            if attachment.title.link:
                safe_link = html.escape(attachment.title.link)
                parts.append(f"<b><a href=\"{safe_link}\">{title}</a></b>")
            else:
                parts.append(f"<b>{title}</b>")
        if attachment.image:
            safe_image = html.escape(attachment.image)
            parts.append(f"<a href=\"{safe_image}\">{safe_image}</a>")
        elif attachment.fallback and not attachment.title:
            parts.append(html.escape(attachment.fallback))
    return "\n".join(part for part in parts if part)


def format_envelope(envelope: Envelope, mode: str) -> str:
    """Return the envelope body formatted for the requested mode."""

    if mode == "plain":
        return _format_plain(envelope)
    if mode == "markdown":
        return _format_markdown(envelope)
    if mode == "html":
        return _format_html(envelope)
    raise ValueError(f"Unsupported envelope format: {mode}")


def quick_reply_labels(envelope: Envelope) -> List[str]:
    """All quick reply labels, payload first, then per attachment."""

    labels = [reply.text for reply in envelope.payload.quick_replies]
    for attachment in envelope.attachments:
        labels.extend(reply.text for reply in attachment.quick_replies)
    return labels
