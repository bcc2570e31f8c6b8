"""Per-channel accumulation of notification chunks into complete frames.

A satellite frame is larger than a single BLE notification, so chunks are
appended per channel until the completion threshold is reached:
- >= 354 bytes: consume 354, samples start at offset 14
- == 353 bytes: consume 353, samples start at offset 13
- <  353 bytes: keep waiting

After a frame is taken the channel buffer is emptied. Bytes beyond the
consumed size are dropped, not carried into the next frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)

FRAME_MIN_BYTES = 353
FRAME_FULL_BYTES = 354
FULL_FRAME_SAMPLE_OFFSET = 14
SHORT_FRAME_SAMPLE_OFFSET = 13


@dataclass
class CompletedFrame:
    """Bytes of one completed frame and how they should be decoded."""

    data: bytes
    size_used: int
    decode_offset: int
    discarded: int = 0


class ReassemblyBuffer:
    """Accumulates raw notification bytes per channel until a frame completes."""

    def __init__(self) -> None:
        self._pending: Dict[str, bytearray] = {}
        self._frames_taken = 0
        self._bytes_discarded = 0

    def append(self, channel_id: str, data: bytes) -> int:
        """Append a chunk and return the channel's accumulated length."""
        buffer = self._pending.setdefault(channel_id, bytearray())
        buffer.extend(data)
        return len(buffer)

    def is_complete(self, channel_id: str) -> bool:
        return self.pending(channel_id) >= FRAME_MIN_BYTES

    def pending(self, channel_id: str) -> int:
        """Number of bytes currently buffered for a channel."""
        buffer = self._pending.get(channel_id)
        return len(buffer) if buffer is not None else 0

    def take_frame(self, channel_id: str) -> Optional[CompletedFrame]:
        """Consume a completed frame, or return None if the channel is still short."""
        buffer = self._pending.get(channel_id)
        if buffer is None or len(buffer) < FRAME_MIN_BYTES:
            return None

        if len(buffer) >= FRAME_FULL_BYTES:
            size_used, decode_offset = FRAME_FULL_BYTES, FULL_FRAME_SAMPLE_OFFSET
        else:
            size_used, decode_offset = FRAME_MIN_BYTES, SHORT_FRAME_SAMPLE_OFFSET

        discarded = len(buffer) - size_used
        frame = CompletedFrame(
            data=bytes(buffer[:size_used]),
            size_used=size_used,
            decode_offset=decode_offset,
            discarded=discarded,
        )
        self._pending[channel_id] = bytearray()
        self._frames_taken += 1

        if discarded:
            self._bytes_discarded += discarded
            logger.warning(
                f"Channel {channel_id}: dropped {discarded} bytes past the {size_used}-byte frame"
            )

        return frame

    def reset(self, channel_id: Optional[str] = None) -> None:
        """Clear one channel, or every channel when no id is given."""
        if channel_id is None:
            self._pending.clear()
        else:
            self._pending.pop(channel_id, None)

    def get_status(self) -> dict:
        return {
            "channels": len(self._pending),
            "pending_bytes": {cid: len(buf) for cid, buf in self._pending.items() if buf},
            "frames_taken": self._frames_taken,
            "bytes_discarded": self._bytes_discarded,
        }
