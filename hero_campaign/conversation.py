"""Per-area conversation logs.

A log is append-only. The one controlled exception is the pending
placeholder: a character message appended with `pending=True` while its
generation is in flight, then filled in and finalized exactly once.
"""

from __future__ import annotations

from hero_campaign.graph import CampaignError
from hero_campaign.models import ConversationMessage, Hero

TYPING_PLACEHOLDER = "..."
APOLOGY = "I seem to be having trouble responding right now."


class AreaBusyError(CampaignError):
    """Raised when a conversation already has a character response in flight."""


class RoleNotAssignedError(CampaignError):
    """Raised when a reply is requested but no LLM connection serves the role."""

    def __init__(self, role: str) -> None:
        super().__init__(f"The {role} role is not assigned to an LLM connection")
        self.role = role


class ConversationLog:
    def __init__(self, area_id: str, messages: list[ConversationMessage] | None = None) -> None:
        self.area_id = area_id
        self._messages: list[ConversationMessage] = list(messages or [])

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)

    @property
    def messages(self) -> list[ConversationMessage]:
        return list(self._messages)

    def finalized(self) -> list[ConversationMessage]:
        """Messages without pending placeholders."""
        return [m for m in self._messages if not m.pending]

    @property
    def has_pending(self) -> bool:
        return any(m.pending for m in self._messages)

    def append_user(self, text: str) -> ConversationMessage:
        msg = ConversationMessage(sender="user", text=text)
        self._messages.append(msg)
        return msg

    def append_character(
        self, text: str, speaker: str | None = None, party: list[Hero] | None = None,
    ) -> ConversationMessage:
        """Append a finished character message.

        A message without a speaker is attributed to the only hero of the
        party; with no single hero to attribute it to, it is rejected.
        """
        speaker = self._attribute(speaker, party)
        msg = ConversationMessage(sender="character", speaker=speaker, text=text)
        self._messages.append(msg)
        return msg

    def begin_pending(self, speaker: str) -> ConversationMessage:
        msg = ConversationMessage(
            sender="character", speaker=speaker, text=TYPING_PLACEHOLDER, pending=True,
        )
        self._messages.append(msg)
        return msg

    def fill(self, message_id: str, text: str) -> None:
        """Replace the text of a pending message (streaming fill-in)."""
        self._pending(message_id).text = text

    def finalize(self, message_id: str, text: str, error: bool = False) -> ConversationMessage:
        msg = self._pending(message_id)
        msg.text = text
        msg.pending = False
        msg.error = error
        return msg

    def discard(self, message_id: str) -> None:
        """Remove a pending placeholder whose reply will never arrive."""
        self._messages = [
            m for m in self._messages if not (m.pending and m.id == message_id)
        ]

    def clear(self) -> None:
        self._messages.clear()

    def replace(self, messages: list[ConversationMessage]) -> None:
        self._messages = list(messages)

    def _pending(self, message_id: str) -> ConversationMessage:
        for msg in self._messages:
            if msg.id == message_id:
                if not msg.pending:
                    raise ValueError(f"message {message_id} is already finalized")
                return msg
        raise KeyError(message_id)

    @staticmethod
    def _attribute(speaker: str | None, party: list[Hero] | None) -> str:
        if speaker:
            return speaker
        if party and len(party) == 1:
            return party[0].name
        raise ValueError("a character message needs a speaker")
