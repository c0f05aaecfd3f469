"""Wire messages exchanged with clients.

Every message is a flat JSON object with an uppercase ``type`` and camelCase
keys.  Inbound: MOVE, RESET, EMOTE.  Outbound: STATE, ASSIGN_ROLE, EMOTE, KICK
and ERROR (the latter only ever goes to the sender).
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .errors import MalformedMessageError

EMOJI_MAX_LENGTH = 64


# =============================================================================
# INBOUND
# =============================================================================

class _Inbound(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MoveRequest(_Inbound):
    type: Literal["MOVE"]
    # Chess: from/to square indices.  Tic-tac-toe: index.
    src: Optional[int] = Field(default=None, alias="from", ge=0)
    dst: Optional[int] = Field(default=None, alias="to", ge=0)
    index: Optional[int] = Field(default=None, ge=0)

    def chess_squares(self) -> tuple:
        if self.src is None or self.dst is None:
            raise MalformedMessageError("chess MOVE requires 'from' and 'to'")
        return self.src, self.dst

    def cell(self) -> int:
        if self.index is None:
            raise MalformedMessageError("MOVE requires 'index'")
        return self.index


class ResetRequest(_Inbound):
    type: Literal["RESET"]


class EmoteRequest(_Inbound):
    type: Literal["EMOTE"]
    emoji: str = Field(min_length=1)


InboundMessage = Annotated[Union[MoveRequest, ResetRequest, EmoteRequest], Field(discriminator="type")]
_inbound = TypeAdapter(InboundMessage)


def parse_inbound(text: Union[str, bytes], emoji_max_length: int = EMOJI_MAX_LENGTH) -> Any:
    """Parse one client message, raising MalformedMessageError on anything unusable."""
    try:
        msg = _inbound.validate_json(text)
    except ValidationError as exc:
        raise MalformedMessageError(str(exc)) from exc
    if isinstance(msg, EmoteRequest) and len(msg.emoji) > emoji_max_length:
        raise MalformedMessageError(f"emoji longer than {emoji_max_length} characters")
    return msg


# =============================================================================
# OUTBOUND
# =============================================================================

class _Outbound(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def encode(self) -> str:
        return self.model_dump_json(by_alias=True)


class StateMessage(_Outbound):
    type: Literal["STATE"] = "STATE"
    room_id: str
    size: int
    game: str
    board: List[Optional[str]]
    turn: Optional[str] = None
    status: str
    winner: Optional[str] = None
    winner_role: Optional[str] = None
    is_draw: bool = False
    draw_reason: Optional[str] = None
    in_check: bool = False
    en_passant: Optional[int] = None
    halfmove_clock: Optional[int] = None
    roles: Dict[str, str] = Field(default_factory=dict)
    last_move: Optional[Dict[str, Any]] = None


class AssignRoleMessage(_Outbound):
    type: Literal["ASSIGN_ROLE"] = "ASSIGN_ROLE"
    role: str
    color: Optional[str] = None


class EmoteMessage(_Outbound):
    type: Literal["EMOTE"] = "EMOTE"
    emoji: str
    sender: str
    color: Optional[str] = None


class KickMessage(_Outbound):
    type: Literal["KICK"] = "KICK"
    message: str
    role: str


class ErrorMessage(_Outbound):
    type: Literal["ERROR"] = "ERROR"
    message: str
