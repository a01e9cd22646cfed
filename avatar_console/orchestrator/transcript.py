"""Transcript Aggregator - partial fragments -> completed messages.

One buffer per channel. Non-final fragments are concatenated as they
arrive (no dedup, no whitespace normalization); a final boundary emits the
buffer as one Message and resets it. An empty buffer at a boundary emits
nothing.

Channels are fully independent: an avatar boundary never touches the
user buffer and vice versa.
"""

from avatar_console.streaming.events import Channel, PartialFragment
from avatar_console.storage.models import Message


class TranscriptAggregator:
    """Per-session fragment buffers.

    Usage:
        aggregator = TranscriptAggregator()
        aggregator.accept(PartialFragment(Channel.USER, "I like "))
        aggregator.accept(PartialFragment(Channel.USER, "jazz"))
        message = aggregator.accept(PartialFragment(Channel.USER, "", is_final=True))
        # message.content == "I like jazz", message.role == "user"
    """

    def __init__(self) -> None:
        self._buffers: dict[Channel, list[str]] = {c: [] for c in Channel}

    def accept(self, fragment: PartialFragment) -> Message | None:
        """Apply one fragment.

        Returns:
            The completed Message if the fragment was a non-empty boundary
        """
        if fragment.is_final:
            return self.finalize(fragment.channel)
        self.add_fragment(fragment.channel, fragment.text)
        return None

    def add_fragment(self, channel: Channel, text: str) -> None:
        """Append text to a channel's buffer."""
        self._buffers[channel].append(text)

    def finalize(self, channel: Channel) -> Message | None:
        """Close the current utterance on a channel."""
        content = "".join(self._buffers[channel])
        self._buffers[channel] = []
        if not content:
            return None
        return Message(role=channel.role, content=content)

    def flush(self) -> list[Message]:
        """Finalize both channels, user first, then avatar."""
        emitted = []
        for channel in (Channel.USER, Channel.AVATAR):
            message = self.finalize(channel)
            if message is not None:
                emitted.append(message)
        return emitted

    def buffered(self, channel: Channel) -> str:
        """Text accumulated on a channel since its last boundary."""
        return "".join(self._buffers[channel])

    @property
    def is_empty(self) -> bool:
        return not any("".join(parts) for parts in self._buffers.values())
