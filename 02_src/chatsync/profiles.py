"""Sender profile resolution."""

from .models import ConfirmedMessage, Participant, SenderProfile


def profile_from_participant(participant: Participant) -> SenderProfile:
    """Build a display profile from a conversation participant."""
    name = participant.display_name or "User"
    return SenderProfile(
        id=participant.user_id,
        name=name,
        avatar=participant.avatar_url or (participant.display_name[:1].upper() or "U"),
        email=participant.email or "",
    )


def resolve_profile(
    sender_id: str, participants: list[Participant]
) -> SenderProfile | None:
    """Look a sender up in a participant list."""
    for participant in participants:
        if participant.user_id == sender_id:
            return profile_from_participant(participant)
    return None


def placeholder_profile(sender_id: str, name: str = "Unknown User") -> SenderProfile:
    """Minimal profile for a sender nobody could resolve."""
    return SenderProfile(
        id=sender_id,
        name=name,
        avatar=sender_id[:1].upper() or "U",
        email="",
    )


class ProfileDirectory:
    """Cache of sender profiles for the active conversation.

    Filled from the conversation's participants and from profiles embedded
    in fetched history.
    """

    def __init__(self) -> None:
        self._profiles: dict[str, SenderProfile] = {}
        self._participants: list[Participant] = []

    def set_participants(self, participants: list[Participant]) -> None:
        self._participants = list(participants)
        for participant in participants:
            self._profiles[participant.user_id] = profile_from_participant(participant)

    def learn_from_messages(self, messages: list[ConfirmedMessage]) -> None:
        for message in messages:
            if message.sender is not None:
                self._profiles.setdefault(message.sender.id, message.sender)

    def get(self, sender_id: str) -> SenderProfile | None:
        profile = self._profiles.get(sender_id)
        if profile is None:
            profile = resolve_profile(sender_id, self._participants)
            if profile is not None:
                self._profiles[sender_id] = profile
        return profile

    def resolve(self, sender_id: str, fallback_name: str = "Unknown User") -> SenderProfile:
        """Known profile for ``sender_id`` or a placeholder."""
        return self.get(sender_id) or placeholder_profile(sender_id, fallback_name)

    def clear(self) -> None:
        self._profiles.clear()
        self._participants = []
