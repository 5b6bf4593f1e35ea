# =============================================================================
# LTL Goal Side Channel
# =============================================================================
"""
Receives goal updates from the external trainer process.

The trainer can send two kinds of messages:
- an LTL goal label, e.g. "F green", naming a single goal by colour
- an ordered list of goal codes (0 = GreenPlus, 1 = RedEx, 2 = YellowStar)

Messages may arrive at any time and from any thread. They are only queued
on arrival; the environment drains the queue once per step, before the
agent moves, so a goal never changes halfway through a step.

Wire Format:
------------
Little-endian int32 fields, in the style of ML-Agents side channels:

    int32 kind              0 = LTL goal, 1 = goal sequence
    kind 0: int32 length, <length> bytes of UTF-8
    kind 1: int32 count, <count> x int32 goal code

Delivery is at-least-once, so a decoded value equal to the one already
applied is dropped.
"""

import logging
import queue
import struct
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple

from ltl_gridworld.environment.goals import GoalType, parse_ltl_goal

if TYPE_CHECKING:
    from ltl_gridworld.environment.ltl_grid_env import LTLGridEnv

logger = logging.getLogger(__name__)

CHANNEL_ID = "621f0a70-4f87-11ea-a6bf-784f4387d1f7"

KIND_LTL_GOAL = 0
KIND_GOAL_SEQUENCE = 1

_INT32 = struct.Struct("<i")


class MessageError(ValueError):
    """Raised when a payload cannot be decoded."""


# =============================================================================
# Wire codec
# =============================================================================
class MessageWriter:
    """Builds a side channel payload."""

    def __init__(self):
        self._buffer = bytearray()

    def write_int32(self, value: int) -> None:
        self._buffer += _INT32.pack(value)

    def write_string(self, value: str) -> None:
        encoded = value.encode("utf-8")
        self.write_int32(len(encoded))
        self._buffer += encoded

    def write_int32_list(self, values: Sequence[int]) -> None:
        self.write_int32(len(values))
        for v in values:
            self.write_int32(v)

    def get_bytes(self) -> bytes:
        return bytes(self._buffer)


class MessageReader:
    """Reads fields back out of a payload, raising MessageError when it runs short."""

    def __init__(self, payload: bytes):
        self._payload = payload
        self._offset = 0

    def read_int32(self) -> int:
        end = self._offset + _INT32.size
        if end > len(self._payload):
            raise MessageError("payload truncated while reading int32")
        (value,) = _INT32.unpack_from(self._payload, self._offset)
        self._offset = end
        return value

    def read_string(self) -> str:
        length = self.read_int32()
        end = self._offset + length
        if length < 0 or end > len(self._payload):
            raise MessageError(f"bad string length {length}")
        raw = self._payload[self._offset:end]
        self._offset = end
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MessageError(f"string is not valid UTF-8: {e}") from e

    def read_int32_list(self) -> List[int]:
        count = self.read_int32()
        if count < 0:
            raise MessageError(f"bad list length {count}")
        return [self.read_int32() for _ in range(count)]


def encode_ltl_goal(label: str) -> bytes:
    writer = MessageWriter()
    writer.write_int32(KIND_LTL_GOAL)
    writer.write_string(label)
    return writer.get_bytes()


def encode_goal_sequence(codes: Sequence[int]) -> bytes:
    writer = MessageWriter()
    writer.write_int32(KIND_GOAL_SEQUENCE)
    writer.write_int32_list(codes)
    return writer.get_bytes()


def decode_message(payload: bytes) -> Tuple[int, Any]:
    """
    Split a payload into (kind, value).

    Raises:
    -------
    MessageError
        On truncated payloads or an unknown kind
    """
    reader = MessageReader(payload)
    kind = reader.read_int32()
    if kind == KIND_LTL_GOAL:
        return kind, reader.read_string()
    if kind == KIND_GOAL_SEQUENCE:
        return kind, reader.read_int32_list()
    raise MessageError(f"unknown message kind {kind}")


# =============================================================================
# Channel adapter
# =============================================================================
class LTLGoalChannel:
    """
    Side channel bound to one environment.

    Example:
    --------
    >>> env = LTLGridEnv()
    >>> env.goal_channel.push_sequence([1, 0, 2])   # RedEx, GreenPlus, YellowStar
    >>> obs, reward, terminated, truncated, info = env.step(Action.NOOP)
    >>> info["current_goal"]
    'RedEx'
    """

    channel_id = CHANNEL_ID

    def __init__(self, env: "LTLGridEnv"):
        self.env = env
        self._inbox: "queue.Queue[Tuple[int, Any]]" = queue.Queue()
        self._outbox: "queue.Queue[bytes]" = queue.Queue()

        # Last decoded value that was applied, for dropping duplicates
        self._applied: Optional[Tuple[GoalType, ...]] = None
        self.current_ltl_goal: Optional[str] = None

    # -------------------------------------------------------------------------
    # Inbound (any thread)
    # -------------------------------------------------------------------------
    def on_message_received(self, payload: bytes) -> None:
        """Queue a raw wire payload."""
        try:
            kind, value = decode_message(payload)
        except MessageError as e:
            logger.warning("Dropping malformed goal message: %s", e)
            return
        self._inbox.put((kind, value))

    def push_ltl_goal(self, label: str) -> None:
        self._inbox.put((KIND_LTL_GOAL, label))

    def push_sequence(self, codes: Sequence[int]) -> None:
        self._inbox.put((KIND_GOAL_SEQUENCE, codes))

    # -------------------------------------------------------------------------
    # Draining (simulation thread)
    # -------------------------------------------------------------------------
    def apply_pending(self) -> bool:
        """
        Apply every queued message in arrival order.

        Returns:
        --------
        bool
            True if the environment's goal sequence changed
        """
        changed = False
        while True:
            try:
                kind, value = self._inbox.get_nowait()
            except queue.Empty:
                break
            if kind == KIND_LTL_GOAL:
                changed |= self._apply_ltl_goal(value)
            else:
                changed |= self._apply_sequence(value)
        return changed

    def _apply_ltl_goal(self, label: Any) -> bool:
        if not isinstance(label, str) or not label:
            logger.warning("Ignoring LTL goal message with no label: %r", label)
            return False

        goal = parse_ltl_goal(label)
        if goal is None:
            return False

        self.current_ltl_goal = label
        return self._apply((goal,))

    def _apply_sequence(self, codes: Any) -> bool:
        if isinstance(codes, (str, bytes)) or not hasattr(codes, "__iter__"):
            logger.warning("Ignoring goal sequence of type %s", type(codes).__name__)
            return False

        codes = list(codes)
        if not codes:
            logger.warning("Ignoring empty goal sequence message")
            return False

        try:
            goals = tuple(GoalType.from_code(c) for c in codes)
        except ValueError as e:
            logger.error("Ignoring goal sequence %r: %s", codes, e)
            return False

        return self._apply(goals)

    def mark_applied(self, goals: Sequence[GoalType]) -> None:
        """Record a sequence the environment already runs, e.g. its default."""
        self._applied = tuple(goals) or None

    def _apply(self, goals: Tuple[GoalType, ...]) -> bool:
        if goals == self._applied:
            return False
        if not self.env.apply_goal_sequence(goals):
            return False
        self._applied = goals
        logger.info("Goal sequence set to %s", [g.name for g in goals])
        return True

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------
    def send_ltl_goal(self, label: str) -> None:
        """Queue a message for the trainer."""
        writer = MessageWriter()
        writer.write_string(label)
        self._outbox.put(writer.get_bytes())

    def drain_outgoing(self) -> List[bytes]:
        messages = []
        while True:
            try:
                messages.append(self._outbox.get_nowait())
            except queue.Empty:
                return messages
