# Overview: Service-layer operations for inbound chat messages; validates and logs webhook payloads.

"""
Inbound Messaging Service

The chat platform posts {"messages": [{"from_me", "chat_id", "text": {"body"}}]}.
Messages sent by the salon itself (from_me) and non-text messages are ignored;
the rest are logged for the conversation handler, which lives outside this app.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app


class MessagingError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class InboundMessage:
    chat_id: str
    body: str


def parse_messages(payload) -> tuple[list[InboundMessage], int]:
    """Returns (accepted messages, ignored count)."""
    if not isinstance(payload, dict):
        raise MessagingError("Payload must be an object")
    messages = payload.get("messages")
    if not isinstance(messages, list):
        raise MessagingError("Payload must contain a messages list")

    accepted = []
    ignored = 0
    for raw in messages:
        if not isinstance(raw, dict) or raw.get("from_me"):
            ignored += 1
            continue
        text = raw.get("text") if isinstance(raw.get("text"), dict) else {}
        body = (text.get("body") or "").strip() if isinstance(text.get("body"), str) else ""
        chat_id = raw.get("chat_id")
        if not body or not chat_id:
            ignored += 1
            continue
        accepted.append(InboundMessage(chat_id=str(chat_id), body=body))
    return accepted, ignored


def receive_messages(payload) -> dict:
    accepted, ignored = parse_messages(payload)
    for message in accepted:
        current_app.logger.info("Inbound message from %s (%d chars)", message.chat_id, len(message.body))
    return {"status": "ok", "accepted": len(accepted), "ignored": ignored}
