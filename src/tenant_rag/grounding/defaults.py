"""Canned answers and coarse message-type detection.

These are the responses used when retrieved content cannot (or need
not) ground an answer: greetings, thanks, goodbyes, and the "not found"
fallback.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class MessageType(str, Enum):
    GREETING = "greeting"
    HELP = "help"
    CONTACT = "contact"
    PRICING = "pricing"
    TECHNICAL = "technical"
    ACCOUNT = "account"
    THANKS = "thanks"
    GOODBYE = "goodbye"
    FALLBACK = "fallback"
    NOT_FOUND = "notFound"

    @property
    def is_conversational(self) -> bool:
        return self in CONVERSATIONAL_TYPES


CONVERSATIONAL_TYPES = frozenset({MessageType.GREETING, MessageType.THANKS, MessageType.GOODBYE})


class DefaultAnswers(BaseModel):
    """Catalogue of canned responses, one per :class:`MessageType`."""

    model_config = ConfigDict(frozen=True)

    not_found: str = (
        "Sorry, I don't have that information in the uploaded documents. "
        "Please contact our support team for assistance."
    )
    greeting: str = "Hello! How can I help you today?"
    fallback: str = "I don't have specific information about that. Please contact support for more details."
    help: str = (
        "I'm here to help! You can ask me about our products, services, "
        "or any other information you need."
    )
    contact: str = "For direct contact with our team, you can reach out through our support channels."
    pricing: str = (
        "I don't have specific pricing information in the uploaded documents. "
        "Please contact our sales team for a personalized quote."
    )
    technical: str = (
        "I don't have specific technical information about that. "
        "Our technical support team would be happy to assist you."
    )
    account: str = (
        "I don't have specific account information in the uploaded documents. "
        "Please contact our support team for account assistance."
    )
    thanks: str = "You're very welcome! I'm glad I could help. Is there anything else you'd like to know?"
    goodbye: str = (
        "Goodbye! It was great helping you today. "
        "Feel free to come back anytime if you have more questions."
    )

    def for_type(self, message_type: MessageType) -> str:
        if message_type is MessageType.NOT_FOUND:
            return self.not_found
        return getattr(self, message_type.value, self.not_found)


DEFAULT_ANSWERS = DefaultAnswers()

# Checked in order; the first matching type wins.
_TYPE_CUES: tuple[tuple[MessageType, tuple[str, ...]], ...] = (
    (MessageType.HELP, ("help", "support", "assistance")),
    (MessageType.CONTACT, ("contact", "phone", "email", "reach", "speak to")),
    (MessageType.PRICING, ("price", "cost", "fee", "how much", "pricing")),
    (MessageType.TECHNICAL, ("technical", "troubleshoot", "problem", "issue", "error")),
    (MessageType.ACCOUNT, ("account", "login", "password", "sign in", "register")),
    (MessageType.THANKS, ("thank", "appreciate")),
    (MessageType.GOODBYE, ("bye", "see you", "farewell")),
)


def _is_greeting(message: str) -> bool:
    if "hello" in message or any(g in message for g in ("good morning", "good afternoon", "good evening")):
        return True
    return any(message == word or message.startswith(word + " ") for word in ("hi", "hey"))


def detect_message_type(message: str) -> MessageType:
    """Classify *message* into a coarse :class:`MessageType`.

    Anything not recognised is ``NOT_FOUND``, i.e. a content question.
    """
    text = (message or "").strip().lower()
    if _is_greeting(text):
        return MessageType.GREETING
    for message_type, cues in _TYPE_CUES:
        if any(cue in text for cue in cues):
            return message_type
    return MessageType.NOT_FOUND
